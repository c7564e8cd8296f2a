"""Request policy gate.  Every tool argument passes through here before reaching the client."""

from __future__ import annotations

from core.config import PolicyConfig


class PolicyViolation(Exception):
    """Raised when a request argument is rejected by policy."""


class PolicyEngine:
    def __init__(self, config: PolicyConfig | None = None):
        self.config = config or PolicyConfig()

    # ── paths ─────────────────────────────────────────────────────

    def check_file_path(self, path: object) -> str:
        """Relative, traversal-free path.  Returns it trimmed."""
        if not path or not isinstance(path, str):
            raise PolicyViolation("file_path must be a non-empty string")
        trimmed = path.strip()
        if not trimmed:
            raise PolicyViolation("file_path must be a non-empty string")
        if ".." in trimmed or trimmed.startswith("/"):
            raise PolicyViolation('file_path must be relative and cannot contain ".."')
        return trimmed

    def check_extension(self, extension: object) -> str | None:
        """None/empty means "all files"; otherwise a suffix like '.tex'."""
        if extension is None or extension == "":
            return None
        if not isinstance(extension, str):
            raise PolicyViolation("extension must be a string")
        if not extension.startswith(".") or "/" in extension or "\\" in extension:
            raise PolicyViolation("extension must look like '.tex'")
        return extension

    # ── content ───────────────────────────────────────────────────

    def check_content(self, content: object) -> str:
        if not isinstance(content, str):
            raise PolicyViolation("content must be a string")
        if len(content) > self.config.max_content_chars:
            raise PolicyViolation(
                f"content exceeds maximum size of {self.config.max_content_chars} characters"
            )
        return content

    # ── commits ───────────────────────────────────────────────────

    def check_commit_message(self, message: object) -> str:
        if not message or not isinstance(message, str):
            raise PolicyViolation("commit message must be a non-empty string")
        limit = self.config.max_commit_message_chars
        if len(message) > limit:
            raise PolicyViolation(f"commit message must be less than {limit} characters")
        trimmed = message.strip()
        if not trimmed:
            raise PolicyViolation("commit message must be a non-empty string")
        return trimmed
