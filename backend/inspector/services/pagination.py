"""Pagination policy: normalize raw limit/offset input into a bounded page.

Malformed values are corrected, never rejected. The bound is identical for
every backend so no request can ask for an unbounded result set.
"""

import math
import re
from dataclasses import dataclass
from typing import Any

DEFAULT_LIMIT = 100
MAX_LIMIT = 500

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


@dataclass(frozen=True)
class PageRequest:
    limit: int
    offset: int


def _parse_int(raw: Any) -> int | None:
    """Parse like ``parseInt``: leading integer of a string, else None."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return int(raw) if math.isfinite(raw) else None
    match = _LEADING_INT.match(str(raw))
    return int(match.group(1)) if match else None


def normalize(raw_limit: Any = None, raw_offset: Any = None) -> PageRequest:
    limit = _parse_int(raw_limit)
    offset = _parse_int(raw_offset)

    if limit is None:
        limit = DEFAULT_LIMIT
    limit = min(max(limit, 1), MAX_LIMIT)

    if offset is None or offset < 0:
        offset = 0

    return PageRequest(limit=limit, offset=offset)
