"""Entry point: load config → build tools → serve MCP over stdio."""

from __future__ import annotations

import argparse
import logging
import sys

from core.config import load_config
from core.server import OverleafTools, build_server

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Overleaf git MCP server")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="logging verbosity (logs go to stderr)",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    # stdout carries JSON-RPC in stdio mode, so logs must go to stderr
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )
    try:
        config = load_config()
    except EnvironmentError as exc:
        logger.error("configuration error: %s", exc)
        sys.exit(1)

    logger.info("config loaded — %d project(s), host=%s", len(config.projects), config.git.host)

    server = build_server(OverleafTools(config))
    server.run(transport="stdio")


if __name__ == "__main__":
    main()
