"""Scrub a known secret out of error objects before they leave the client."""

from __future__ import annotations

from typing import TypeVar

REDACTED = "[REDACTED]"

# Text fields that may carry tool output back to the caller
_FIELDS = ("message", "stderr", "stdout")

E = TypeVar("E")


def redact_text(text: str, secret: str) -> str:
    """Literal replacement — the secret is never treated as a pattern."""
    if not secret or not text:
        return text
    return text.replace(secret, REDACTED)


def redact(error: E, secret: str) -> E:
    """Replace *secret* in the message/stderr/stdout fields of *error*, in place.

    Missing or non-string fields are skipped.  String entries of ``error.args``
    are rewritten too, so ``str(error)`` is clean for plain exceptions.
    Returns the same object.
    """
    if not secret:
        return error

    for name in _FIELDS:
        value = getattr(error, name, None)
        if isinstance(value, str) and secret in value:
            setattr(error, name, redact_text(value, secret))

    args = getattr(error, "args", None)
    if isinstance(args, tuple) and any(isinstance(a, str) and secret in a for a in args):
        error.args = tuple(  # type: ignore[attr-defined]
            redact_text(a, secret) if isinstance(a, str) else a for a in args
        )
    return error
