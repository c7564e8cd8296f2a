"""Overleaf git client: sync → local edit → commit → push, with the token kept out of sight.

Every call that talks to the remote (sync, commit, push) runs inside one
credential window:

    idle → askpass acquired → git running → success | failure → askpass released → idle

Windows on the same client are serialized by a lock; separate clients are
independent.  Errors are redacted before they leave this module.
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
import tempfile
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from core.redaction import redact
from tools import fs_tool
from tools.askpass import AskPassBroker
from tools.git_tool import (
    FailureKind,
    GitAuthError,
    GitCommandError,
    GitError,
    GitTimeoutError,
    classify_failure,
    run_git,
)
from tools.latex_tool import Section, find_section, parse_sections, sections_by_type

logger = logging.getLogger(__name__)

_SAFE_ID = re.compile(r"[A-Za-z0-9_-]+")

DEFAULT_HOST = "git.overleaf.com"
DEFAULT_WORK_ROOT = Path(tempfile.gettempdir()) / "overleaf-mcp"
NOTHING_TO_COMMIT = "Nothing to commit, working tree clean"


def _check_identifier(field: str, value: str) -> None:
    if not isinstance(value, str) or not _SAFE_ID.fullmatch(value):
        raise ValueError(f"{field} must be alphanumeric (with hyphens/underscores)")


class OverleafGitClient:
    """One working copy of one remote project."""

    def __init__(
        self,
        git_token: str,
        project_id: str,
        work_root: str | Path | None = None,
        *,
        host: str = DEFAULT_HOST,
        username: str = "git",
        commit_timeout: float = 30.0,
        push_timeout: float = 60.0,
    ):
        _check_identifier("project_id", project_id)
        _check_identifier("git_token", git_token)
        self.git_token = git_token
        self.project_id = project_id
        self.work_root = Path(work_root).resolve() if work_root else DEFAULT_WORK_ROOT
        self.local_path = self.work_root / project_id
        self.host = host
        self.commit_timeout = commit_timeout
        self.push_timeout = push_timeout
        self._askpass = AskPassBroker(git_token, project_id, self.work_root, username)
        self._lock = asyncio.Lock()

    @property
    def clone_url(self) -> str:
        # No userinfo: the username comes from credential.username, the token from askpass
        return f"https://{self.host}/{self.project_id}"

    # ── credentials ───────────────────────────────────────────────

    def _redact(self, error: BaseException) -> BaseException:
        return redact(error, self.git_token)

    @asynccontextmanager
    async def _credentials(self) -> AsyncIterator[dict[str, str]]:
        """Hold the lock and a live askpass script for the duration of the block."""
        async with self._lock:
            try:
                yield self._askpass.environment_for()
            finally:
                self._askpass.release()

    # ── sync ──────────────────────────────────────────────────────

    def _working_copy_exists(self) -> bool:
        try:
            os.stat(self.local_path)
        except FileNotFoundError:
            return False
        return True

    async def sync(self) -> None:
        """Clone the project if there is no working copy, otherwise pull."""
        self.work_root.mkdir(parents=True, exist_ok=True, mode=0o755)
        async with self._credentials() as env:
            try:
                if self._working_copy_exists():
                    logger.info("pulling %s", self.project_id)
                    await run_git(["pull"], cwd=self.local_path, env=env)
                else:
                    logger.info("cloning %s into %s", self.project_id, self.local_path)
                    await run_git(["clone", self.clone_url, str(self.local_path)], env=env)
            except Exception as exc:
                self._redact(exc)
                logger.warning("sync of %s failed: %s", self.project_id, exc)
                raise

    clone_or_pull = sync

    # ── files ─────────────────────────────────────────────────────

    async def list_files(self, extension: str | None = ".tex") -> list[str]:
        await self.sync()
        return await asyncio.to_thread(fs_tool.list_files, self.local_path, extension)

    async def read_file(self, path: str) -> str:
        await self.sync()
        return await asyncio.to_thread(fs_tool.read_file, self.local_path, path)

    async def write_file(self, path: str, content: str) -> str:
        await self.sync()
        written = await asyncio.to_thread(fs_tool.write_file, self.local_path, path, content)
        logger.info("wrote %s (%d chars)", path, len(content))
        return str(written)

    async def delete_file(self, path: str) -> str:
        await self.sync()
        removed = await asyncio.to_thread(fs_tool.delete_file, self.local_path, path)
        logger.info("deleted %s", path)
        return str(removed)

    # ── LaTeX sections ────────────────────────────────────────────

    async def get_sections(self, path: str) -> list[Section]:
        return parse_sections(await self.read_file(path))

    async def get_section(self, path: str, title: str) -> Section | None:
        return find_section(await self.get_sections(path), title)

    async def get_sections_by_type(self, path: str, section_type: str) -> list[Section]:
        return sections_by_type(await self.get_sections(path), section_type)

    # ── publish ───────────────────────────────────────────────────

    async def commit(self, message: str) -> str:
        """Stage everything and commit.  An empty commit is not an error."""
        async with self._credentials() as env:
            try:
                await run_git(["add", "-A"], cwd=self.local_path, env=env, timeout=self.commit_timeout)
                stdout = await run_git(
                    ["commit", "-m", message],
                    cwd=self.local_path,
                    env=env,
                    timeout=self.commit_timeout,
                )
            except GitError as exc:
                self._redact(exc)
                kind = classify_failure(exc)
                if kind is FailureKind.NOTHING_TO_COMMIT:
                    logger.info("nothing to commit for %s", self.project_id)
                    return NOTHING_TO_COMMIT
                if kind is FailureKind.TIMEOUT:
                    raise GitTimeoutError("Commit operation timed out") from exc
                raise GitCommandError(
                    f"Commit failed: {exc.message}",
                    stdout=exc.stdout,
                    stderr=exc.stderr,
                    returncode=exc.returncode,
                ) from exc
        logger.info("committed %s", self.project_id)
        return stdout or "Commit successful"

    async def push(self) -> str:
        async with self._credentials() as env:
            try:
                stdout = await run_git(
                    ["push"], cwd=self.local_path, env=env, timeout=self.push_timeout
                )
            except GitError as exc:
                self._redact(exc)
                kind = classify_failure(exc)
                logger.warning("push of %s failed (%s)", self.project_id, kind.value)
                if kind is FailureKind.TIMEOUT:
                    raise GitTimeoutError(
                        "Push operation timed out - check network connection"
                    ) from exc
                if kind is FailureKind.AUTH:
                    raise GitAuthError(
                        "Push failed: Authentication error - check git token"
                    ) from exc
                raise GitCommandError(
                    f"Push failed: {exc.message}",
                    stdout=exc.stdout,
                    stderr=exc.stderr,
                    returncode=exc.returncode,
                ) from exc
        logger.info("pushed %s", self.project_id)
        return stdout or "Push successful"

    async def status(self) -> str:
        await self.sync()
        env = {**os.environ, "GIT_TERMINAL_PROMPT": "0"}
        try:
            return await run_git(
                ["status"], cwd=self.local_path, env=env, timeout=self.commit_timeout
            )
        except GitError as exc:
            raise self._redact(exc)
