"""Ephemeral GIT_ASKPASS helper — the token lives only in a private, short-lived script.

git invokes the script instead of prompting on a terminal, so the token never
appears in argv, in the remote URL, or in shell history.
"""

from __future__ import annotations

import logging
import os
import uuid
from pathlib import Path

logger = logging.getLogger(__name__)

_SCRIPT_MODE = 0o700
_WORK_ROOT_MODE = 0o755


def render_script(token: str) -> str:
    """Shell script that prints *token* and nothing else.

    The token is allow-listed to [A-Za-z0-9_-] before it gets here, so single
    quoting is enough.
    """
    return f"#!/bin/sh\necho '{token}'\n"


class AskPassBroker:
    """Creates, hands out and removes the askpass script for one project."""

    def __init__(self, git_token: str, project_id: str, work_root: Path, username: str = "git"):
        self._token = git_token
        self.project_id = project_id
        self.work_root = Path(work_root)
        self.username = username
        self._active: Path | None = None

    @property
    def active(self) -> Path | None:
        return self._active

    def acquire(self) -> Path:
        """Return the live script path, creating it if none is active."""
        if self._active is not None:
            return self._active

        self.work_root.mkdir(parents=True, exist_ok=True, mode=_WORK_ROOT_MODE)
        path = self.work_root / f"askpass-{self.project_id}-{uuid.uuid4()}.sh"
        # O_EXCL: never write the token into a file someone else pre-created
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, _SCRIPT_MODE)
        # recorded before writing so a failed write is still removed by release()
        self._active = path
        try:
            try:
                fh = os.fdopen(fd, "w")
            except BaseException:
                os.close(fd)
                raise
            with fh:
                fh.write(render_script(self._token))
            # umask may have masked bits off at creation
            os.chmod(path, _SCRIPT_MODE)
        except BaseException:
            self.release()
            raise

        logger.debug("askpass script created for project %s", self.project_id)
        return path

    def release(self) -> None:
        """Remove the active script.  Safe to call any number of times."""
        path, self._active = self._active, None
        if path is None:
            return
        try:
            path.unlink()
        except OSError as exc:
            logger.debug("askpass cleanup for %s skipped: %s", self.project_id, exc)

    def environment_for(self, base: dict[str, str] | None = None) -> dict[str, str]:
        """Environment for a git call that must authenticate through the script."""
        env = dict(os.environ if base is None else base)
        env["GIT_TERMINAL_PROMPT"] = "0"
        env["GIT_ASKPASS"] = str(self.acquire())
        env["GIT_USERNAME"] = self.username

        # Supply the username as credential.username so the clone URL stays bare
        try:
            index = int(env.get("GIT_CONFIG_COUNT", "0"))
        except ValueError:
            index = 0
        env[f"GIT_CONFIG_KEY_{index}"] = "credential.username"
        env[f"GIT_CONFIG_VALUE_{index}"] = self.username
        env["GIT_CONFIG_COUNT"] = str(index + 1)
        return env
