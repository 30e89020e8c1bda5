from __future__ import annotations

import re

from .errors import InvalidIdError

# Canonical UUID: version nibble 1-5, variant nibble 8/9/a/b.
_UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

# Sentinel handed over by templated URLs that never got their parameter filled in.
_PLACEHOLDERS = {"undefined", "null", "none"}


def validate_id(candidate: object) -> str:
    """Return the normalized (trimmed, lower-case) id or raise InvalidIdError.

    Runs before any storage call so malformed ids never cost a round-trip.
    """
    if not isinstance(candidate, str):
        raise InvalidIdError(candidate, "Missing id")
    value = candidate.strip()
    if not value:
        raise InvalidIdError(candidate, "Missing id")
    if value.lower() in _PLACEHOLDERS:
        raise InvalidIdError(candidate, "Placeholder id")
    if not _UUID_RE.match(value):
        raise InvalidIdError(candidate, "Not a valid UUID")
    return value.lower()

