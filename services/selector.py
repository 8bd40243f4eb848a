"""Pick the most recent reading out of a loosely keyed collection."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

_NUMERIC_KEY = re.compile(r"^-?\d+(\.\d+)?$")
# Epoch values above this are taken to be milliseconds.
_MILLISECONDS_THRESHOLD = 1e11


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a reading timestamp; ``None`` when it is not a usable date.

    Accepted forms are ISO-8601 strings (``"2025-08-07 10:00:00"``,
    ``"2025-08-07T10:00:00Z"``, with or without an offset) and epoch numbers in
    seconds, or milliseconds above 1e11. Naive values are taken as UTC. Other
    date spellings such as ``"2025/08/07 10:00"`` are not recognised.
    """
    if isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        try:
            seconds = value / 1000 if abs(value) > _MILLISECONDS_THRESHOLD else value
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None

    if not isinstance(value, str):
        return None

    candidate = value.strip()
    if not candidate:
        return None
    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(candidate)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)
    except (OverflowError, ValueError):
        return None


def _numeric_key(key: Any) -> Optional[float]:
    if not isinstance(key, str) or not _NUMERIC_KEY.match(key.strip()):
        return None
    return float(key)


def select_latest(collection: Optional[Mapping[str, Any]]) -> Optional[Any]:
    """Return the newest reading in ``collection``.

    Timestamped readings win; otherwise the largest numeric key; otherwise the
    last entry in insertion order.
    """
    if not collection:
        return None

    entries = list(collection.items())

    stamped = []
    for _key, reading in entries:
        if not isinstance(reading, Mapping):
            continue
        parsed = parse_timestamp(reading.get("timestamp"))
        if parsed is not None:
            stamped.append((parsed, reading))
    if stamped:
        stamped.sort(key=lambda item: item[0])
        return stamped[-1][1]

    numeric_keys = [_numeric_key(key) for key, _reading in entries]
    if all(number is not None for number in numeric_keys):
        best_index = 0
        for index, number in enumerate(numeric_keys):
            if number >= numeric_keys[best_index]:  # type: ignore[operator]
                best_index = index
        return entries[best_index][1]

    return entries[-1][1]
