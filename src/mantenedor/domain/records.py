"""Record model and the pure helpers around it.

A record is a type-tagged row with a human label and an open JSON payload.
``type`` and ``name`` live in their own columns; everything else a caller
sends goes into ``payload``.  Outbound views splice the payload into the
top-level object, with the fixed fields taking precedence over any
colliding payload key.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

# Keys owned by the record itself; never stored inside the payload.
RESERVED_KEYS: frozenset[str] = frozenset({"id", "type", "name", "createdAt", "updatedAt"})

# Ids are stored as signed 64-bit integers.
MIN_RECORD_ID = -(2**63)
MAX_RECORD_ID = 2**63 - 1


@dataclass(frozen=True)
class Record:
    """One persisted record.

    Attributes:
        id: Store-assigned integer identifier, immutable after creation.
        type: Collection discriminator (e.g. ``"COST_TYPE"``), trimmed.
        name: Human-readable label, trimmed. Not unique within a type.
        payload: Type-specific attributes (JSON-compatible values).
        created_at: ISO 8601 creation timestamp.
        updated_at: ISO 8601 timestamp of the last write.
    """

    id: int
    type: str
    name: str
    payload: dict[str, Any] = field(default_factory=dict)
    created_at: str = ""
    updated_at: str = ""

    def to_view(self, *, include_type: bool = False) -> dict[str, Any]:
        """Flatten the record into its outbound representation.

        ``{id, [type,] name, **payload, createdAt, updatedAt}``.
        """
        view: dict[str, Any] = {"id": self.id}
        if include_type:
            view["type"] = self.type
        view["name"] = self.name
        for key, value in self.payload.items():
            if key not in RESERVED_KEYS:
                view[key] = value
        view["createdAt"] = self.created_at
        view["updatedAt"] = self.updated_at
        return view


def utc_now_iso() -> str:
    """Current UTC time as ISO 8601 (record and counter timestamps)."""
    return datetime.now(UTC).isoformat()


def normalize_label(value: Any) -> str | None:
    """Return *value* trimmed, or None if it is not a non-empty string."""
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


def split_reserved(payload: dict[str, Any]) -> tuple[dict[str, Any], list[str]]:
    """Separate reserved keys from a caller-supplied payload.

    Returns ``(clean_payload, dropped_keys)``; dropped keys keep their
    original order.
    """
    clean: dict[str, Any] = {}
    dropped: list[str] = []
    for key, value in payload.items():
        if key in RESERVED_KEYS:
            dropped.append(key)
        else:
            clean[key] = value
    return clean, dropped


def merge_payload(base: dict[str, Any], patch: dict[str, Any]) -> dict[str, Any]:
    """Shallow merge: patch keys replace, keys absent from *patch* survive.

    Examples:
        >>> merge_payload({"a": 0, "b": 2}, {"a": 1})
        {'a': 1, 'b': 2}
    """
    return {**base, **patch}


def coerce_record_id(value: Any) -> int | None:
    """Coerce a reference value to a record id.

    Accepts ints, integral floats, and strings of ASCII digits with an
    optional sign.  Booleans, NaN, fractional numbers, values outside the
    signed 64-bit range and anything else yield None.

    Examples:
        >>> coerce_record_id("42")
        42
        >>> coerce_record_id(7.0)
        7
        >>> coerce_record_id("abc") is None
        True
        >>> coerce_record_id(10**20) is None
        True
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, float):
        if not (math.isfinite(value) and value.is_integer()):
            return None
        value = int(value)
    elif isinstance(value, str):
        text = value.strip()
        digits = text[1:] if text[:1] in ("+", "-") else text
        if not (digits.isascii() and digits.isdigit()) or len(digits) > 19:
            return None
        value = int(text)
    elif not isinstance(value, int):
        return None
    if not MIN_RECORD_ID <= value <= MAX_RECORD_ID:
        return None
    return value
