"""Git subprocess runner — explicit argv, never a shell, bounded by an optional timeout."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from pathlib import Path

logger = logging.getLogger(__name__)

NOTHING_TO_COMMIT_MARKER = "nothing to commit"
_TIMEOUT_MARKERS = ("timeout", "timed out")
_AUTH_MARKERS = ("403", "authentication failed")


class GitError(Exception):
    """A failed git invocation.  Carries the captured output for redaction."""

    def __init__(
        self,
        message: str,
        *,
        stdout: str = "",
        stderr: str = "",
        returncode: int | None = None,
        command: list[str] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.command = command or []
        self.stdout = stdout
        self.stderr = stderr
        self.returncode = returncode

    def __str__(self) -> str:
        return self.message


class GitCommandError(GitError):
    """git exited non-zero, or could not be started."""


class GitTimeoutError(GitError):
    """git did not finish within its timeout and was killed."""


class GitAuthError(GitError):
    """The remote rejected our credentials."""


class FailureKind(Enum):
    NOTHING_TO_COMMIT = "nothing_to_commit"
    TIMEOUT = "timeout"
    AUTH = "auth"
    GENERIC = "generic"


def classify_failure(error: GitError) -> FailureKind:
    """Map a git failure onto the kinds callers react to.

    git prints "nothing to commit" on stdout or stderr depending on the exit
    path, so both the message (which embeds stderr) and stdout are checked.
    The message names only the git subcommand, never the rest of argv, so a
    commit message cannot steer the classification.
    Anything unrecognised is GENERIC.
    """
    if NOTHING_TO_COMMIT_MARKER in f"{error.message} {error.stdout}":
        return FailureKind.NOTHING_TO_COMMIT

    message = error.message.lower()
    if isinstance(error, GitTimeoutError) or any(m in message for m in _TIMEOUT_MARKERS):
        return FailureKind.TIMEOUT

    text = f"{error.message} {error.stderr}".lower()
    if any(m in text for m in _AUTH_MARKERS):
        return FailureKind.AUTH
    return FailureKind.GENERIC


async def run_git(
    args: list[str],
    *,
    cwd: str | Path | None = None,
    env: dict[str, str] | None = None,
    timeout: float | None = None,
) -> str:
    """Run ``git *args`` and return its stdout.  Raises GitError on any failure."""
    cmd = ["git", *args]
    # argv may hold caller text (commit messages); keep it out of error messages
    verb = f"git {args[0]}" if args else "git"
    logger.debug("running %s (cwd=%s)", verb, cwd)
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            cwd=str(cwd) if cwd is not None else None,
            env=env,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        raise GitCommandError(f"Could not run git: {exc}", command=cmd) from exc

    try:
        out, err = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        raise GitTimeoutError(
            f"Command timed out after {timeout}s: {verb}", command=cmd
        ) from None

    stdout = out.decode("utf-8", errors="replace")
    stderr = err.decode("utf-8", errors="replace")
    if proc.returncode != 0:
        raise GitCommandError(
            f"Command failed: {verb}\n{stderr}".rstrip(),
            stdout=stdout,
            stderr=stderr,
            returncode=proc.returncode,
            command=cmd,
        )
    return stdout
