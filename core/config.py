"""Load and validate application configuration from environment variables."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


DEFAULT_PROJECTS_FILE = "projects.json"


@dataclass(frozen=True)
class ProjectConfig:
    name: str
    project_id: str
    git_token: str = field(repr=False)


@dataclass(frozen=True)
class GitConfig:
    host: str = "git.overleaf.com"
    username: str = "git"  # Overleaf always expects this; only the password varies
    work_root: Path | None = None  # None → <tmp>/overleaf-mcp
    commit_timeout: float = 30.0
    push_timeout: float = 60.0


@dataclass(frozen=True)
class PolicyConfig:
    max_content_chars: int = 1_000_000
    max_commit_message_chars: int = 500


@dataclass(frozen=True)
class AppConfig:
    projects: dict[str, ProjectConfig]
    git: GitConfig = field(default_factory=GitConfig)
    policy: PolicyConfig = field(default_factory=PolicyConfig)
    default_project: str = "default"


def _getenv(name: str, default: str | None = None) -> str | None:
    """os.getenv wrapper that strips inline comments (e.g. '30  # note' → '30')."""
    raw = os.getenv(name, default)
    if raw is None:
        return None
    # Split on first ' #' (space-hash) to drop inline comments, then strip
    return raw.split(" #")[0].strip()


def _require(name: str) -> str:
    value = _getenv(name)
    if not value:
        raise EnvironmentError(f"Required environment variable {name} is not set")
    return value


def load_projects(path: Path) -> dict[str, ProjectConfig]:
    """Parse a projects file: ``{"projects": {"<key>": {"name", "projectId", "gitToken"}}}``."""
    try:
        with open(path) as fh:
            raw = json.load(fh)
    except json.JSONDecodeError as exc:
        raise EnvironmentError(f"Projects file {path} is not valid JSON: {exc}") from exc

    entries = raw.get("projects") if isinstance(raw, dict) else None
    if not isinstance(entries, dict) or not entries:
        raise EnvironmentError(f"Projects file {path} has no 'projects' mapping")

    projects: dict[str, ProjectConfig] = {}
    for key, entry in entries.items():
        if not isinstance(entry, dict):
            raise EnvironmentError(f"Project '{key}' in {path} must be an object")
        missing = [k for k in ("projectId", "gitToken") if not entry.get(k)]
        if missing:
            raise EnvironmentError(
                f"Project '{key}' in {path} is missing {', '.join(missing)}"
            )
        projects[key] = ProjectConfig(
            name=str(entry.get("name") or key),
            project_id=str(entry["projectId"]),
            git_token=str(entry["gitToken"]),
        )
    return projects


def load_config() -> AppConfig:
    """Build AppConfig from environment. Raises EnvironmentError on missing keys."""
    projects_file = Path(_getenv("OVERLEAF_PROJECTS_FILE", DEFAULT_PROJECTS_FILE))  # type: ignore[arg-type]
    if projects_file.is_file():
        projects = load_projects(projects_file)
    else:
        projects = {
            "default": ProjectConfig(
                name=_getenv("OVERLEAF_PROJECT_NAME", "default"),  # type: ignore[arg-type]
                project_id=_require("OVERLEAF_PROJECT_ID"),
                git_token=_require("OVERLEAF_GIT_TOKEN"),
            )
        }

    work_root = _getenv("OVERLEAF_TEMP_DIR")
    default_project = _getenv("OVERLEAF_DEFAULT_PROJECT", "default")
    if default_project not in projects:
        # Fall back to the first configured project so single-entry files need no extra key
        default_project = next(iter(projects))

    return AppConfig(
        projects=projects,
        git=GitConfig(
            host=_getenv("OVERLEAF_GIT_HOST", "git.overleaf.com"),  # type: ignore[arg-type]
            work_root=Path(work_root).resolve() if work_root else None,
            commit_timeout=float(_getenv("GIT_COMMIT_TIMEOUT", "30")),  # type: ignore[arg-type]
            push_timeout=float(_getenv("GIT_PUSH_TIMEOUT", "60")),  # type: ignore[arg-type]
        ),
        policy=PolicyConfig(
            max_content_chars=int(_getenv("MAX_CONTENT_CHARS", "1000000")),  # type: ignore[arg-type]
            max_commit_message_chars=int(_getenv("MAX_COMMIT_MESSAGE_CHARS", "500")),  # type: ignore[arg-type]
        ),
        default_project=default_project,  # type: ignore[arg-type]
    )
