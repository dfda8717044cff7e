# agrichain/models/common.py
from __future__ import annotations

import os
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Type, TypeVar

E = TypeVar("E", bound=Enum)


def now_utc() -> datetime:
    return datetime.now(tz=timezone.utc)


def parse_timestamp(value: Any, default: Optional[datetime] = None) -> Optional[datetime]:
    """
    Normalize a stored timestamp.
    Accepts datetime objects (naive ones are taken as UTC), ISO-8601 strings
    (trailing "Z" allowed) and epoch seconds. Anything else gives `default`.
    """
    if value is None or value == "":
        return default

    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value, tz=timezone.utc)

    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return default
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)

    return default


def coerce_enum(enum_cls: Type[E], value: Any, default: Optional[E]) -> Optional[E]:
    """Map a stored name onto `enum_cls`, falling back to `default` for unknown names."""
    if isinstance(value, enum_cls):
        return value
    for member in enum_cls:
        if member.value == value:
            return member
    return default


def to_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def optional_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def generate_id(prefix: str) -> str:
    """PREFIX + random hex + unix time, e.g. CRP4F1A2B1760000000."""
    return f"{prefix}{os.urandom(3).hex().upper()}{int(time.time())}"
