"""Shared domain types: priority levels, UTC datetimes and JSON-column decoding."""

import json
import math
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import Annotated, Any

from pydantic import AfterValidator, BeforeValidator


class Level(StrEnum):
    """Four-step scale used for urgency, importance and priority."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Interpret naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def decode_json(value: Any) -> Any:
    """Decode JSON text stored in a SQLite column; pass other values through."""
    if isinstance(value, str | bytes):
        return json.loads(value) if value else None
    return value


UTCDateTime = Annotated[datetime, AfterValidator(as_utc)]

# Wrap a type so it accepts either the Python value or its JSON-encoded column text
JsonColumn = BeforeValidator(decode_json)


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (62.5 -> 63), unlike round()."""
    return math.floor(value + 0.5)


def ceil_days(delta: timedelta) -> int:
    """Whole days in a time span, rounding partial days up (36h -> 2, -12h -> 0)."""
    return math.ceil(delta.total_seconds() / 86400)


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO timestamp written by the store into an aware UTC datetime."""
    if not value:
        return None
    return as_utc(datetime.fromisoformat(value))
