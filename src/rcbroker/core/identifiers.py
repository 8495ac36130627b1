from __future__ import annotations

import re

from rcbroker.errors import InvalidIdentifier

_WHITESPACE = re.compile(r"\s+")
_VALID = re.compile(r"^[A-Za-z0-9._-]+$")


def normalize_identifier(value: str) -> str:
    """Strip whitespace and a single non-numeric prefix from a remote ID.

    ``" 579 487 224 "`` and ``"r579487224"`` both become ``"579487224"``.
    Applying the function twice gives the same result as applying it once.
    """
    cleaned = _WHITESPACE.sub("", value)
    if len(cleaned) > 1 and not cleaned[0].isdigit():
        remainder = cleaned[1:]
        if remainder.isascii() and remainder.isdigit():
            return remainder
    return cleaned


def validate_identifier(value: str) -> str:
    normalized = normalize_identifier(value)
    if not normalized:
        raise InvalidIdentifier("Device ID is empty")
    if not _VALID.match(normalized):
        raise InvalidIdentifier(f"Device ID contains invalid characters: {value!r}")
    return normalized
