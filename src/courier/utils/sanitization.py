"""Sanitization helpers that keep personal data out of log output.

Recipient and sender addresses are the only personal data the delivery engine
handles. Message bodies are never logged at all; addresses are masked so log
lines stay correlatable without exposing who was contacted.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Final

__all__ = [
    "REDACTED",
    "mask_address",
    "sanitize_args",
    "sanitize_exception",
    "sanitize_text",
    "sanitize_value",
]

REDACTED: Final[str] = "<REDACTED>"

_ADDRESS_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"(?P<local>[A-Za-z0-9._%+-]+)@(?P<domain>[A-Za-z0-9.-]+\.[A-Za-z]{2,})"
)


def mask_address(address: str) -> str:
    """Mask the local part of an address, keeping the first character and domain.

    Examples:
        >>> mask_address("recipient@example.com")
        'r***@example.com'
        >>> mask_address("not-an-address")
        '<REDACTED>'
    """
    local, sep, domain = address.partition("@")
    if not sep or not local or not domain:
        return REDACTED
    return f"{local[0]}***@{domain}"


def sanitize_text(text: str) -> str:
    """Mask every address embedded in free text."""
    return _ADDRESS_PATTERN.sub(lambda match: mask_address(match.group(0)), text)


def sanitize_value(value: object) -> object:
    """Recursively mask addresses in strings, mappings and sequences."""
    if isinstance(value, str):
        return sanitize_text(value)
    if isinstance(value, Mapping):
        return {key: sanitize_value(item) for key, item in value.items()}  # pyright: ignore[reportUnknownVariableType]
    if isinstance(value, (list, tuple)):
        items: Sequence[object] = value  # pyright: ignore[reportUnknownVariableType]
        sanitized = [sanitize_value(item) for item in items]
        return tuple(sanitized) if isinstance(value, tuple) else sanitized
    return value


def sanitize_exception(exc: BaseException) -> str:
    """Render an exception for logging with addresses masked.

    Examples:
        >>> sanitize_exception(ValueError("bounced for bob@example.com"))
        'ValueError: bounced for b***@example.com'
    """
    return f"{type(exc).__name__}: {sanitize_text(str(exc))}"


def sanitize_args(args: tuple[object, ...]) -> tuple[object, ...]:
    """Mask addresses in logging ``%`` arguments."""
    return tuple(sanitize_value(arg) for arg in args)
