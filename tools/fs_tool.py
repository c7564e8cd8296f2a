"""File-system tool — reads, writes and lists files, constrained to one working copy."""

from __future__ import annotations

import os
from pathlib import Path

_VCS_DIR = ".git"


def resolve_in_root(root: Path, path: str) -> Path:
    """Resolve *path* under *root* (collapses ../) then check it stays inside."""
    root = Path(root).resolve()
    resolved = (root / path).resolve()
    try:
        resolved.relative_to(root)
    except ValueError:
        raise PermissionError(f"Path '{path}' escapes the working copy")
    if resolved == root:
        raise PermissionError(f"Path '{path}' does not name a file")
    return resolved


def list_files(root: Path, extension: str | None = None) -> list[str]:
    """List files recursively under *root*, skipping .git.  Paths are relative, POSIX-style."""
    root = Path(root)
    found: list[str] = []
    for dirpath, dirnames, filenames in os.walk(root):
        # prune in place so os.walk never descends into git metadata
        dirnames[:] = [d for d in dirnames if d != _VCS_DIR]
        for name in filenames:
            if extension and not name.endswith(extension):
                continue
            found.append(Path(dirpath, name).relative_to(root).as_posix())
    return sorted(found)


def read_file(root: Path, path: str) -> str:
    """Read and return file contents.  Raises PermissionError on path-traversal."""
    resolved = resolve_in_root(root, path)
    if not resolved.is_file():
        raise FileNotFoundError(f"{path} is not a file")
    return resolved.read_text(encoding="utf-8")


def write_file(root: Path, path: str, content: str) -> Path:
    """Write *content*, creating parent directories.  Returns the absolute path."""
    resolved = resolve_in_root(root, path)
    resolved.parent.mkdir(parents=True, exist_ok=True)
    resolved.write_text(content, encoding="utf-8")
    return resolved


def delete_file(root: Path, path: str) -> Path:
    """Remove a file.  Returns the absolute path that was removed."""
    resolved = resolve_in_root(root, path)
    if not resolved.is_file():
        raise FileNotFoundError(f"{path} is not a file")
    resolved.unlink()
    return resolved
