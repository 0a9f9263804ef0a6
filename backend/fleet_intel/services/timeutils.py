"""Timestamp parsing, durations and the safe arithmetic shared by every stage."""
import math
from datetime import datetime, timezone
from typing import Optional


def parse_timestamp(timestamp: str) -> Optional[datetime]:
    """
    Parse an ISO 8601 timestamp into an aware datetime.
    Naive values are taken as UTC. Returns None if the value can't be parsed.
    """
    if not isinstance(timestamp, str) or not timestamp.strip():
        return None

    value = timestamp.strip()
    if value.endswith("Z") or value.endswith("z"):
        value = value[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def get_duration_minutes(start_time: str, end_time: str) -> float:
    """Minutes between two timestamps; 0 when either is invalid or the range is reversed."""
    start = parse_timestamp(start_time)
    end = parse_timestamp(end_time)
    if start is None or end is None:
        return 0.0

    minutes = (end - start).total_seconds() / 60.0
    return max(0.0, minutes)


def minutes_to_hours(minutes: float) -> float:
    return minutes / 60.0


def hours_to_minutes(hours: float) -> float:
    return hours * 60.0


def format_duration(minutes: float) -> str:
    """Format minutes for display, e.g. "45m", "2h 5m", "3d 4h"."""
    if minutes < 0 or not math.isfinite(minutes):
        return "0m"

    # Round half up to whole minutes
    total_minutes = int(math.floor(minutes + 0.5))
    if total_minutes < 60:
        return f"{total_minutes}m"

    hours, remaining_minutes = divmod(total_minutes, 60)
    if hours < 24:
        return f"{hours}h" if remaining_minutes == 0 else f"{hours}h {remaining_minutes}m"

    days, remaining_hours = divmod(hours, 24)
    return f"{days}d" if remaining_hours == 0 else f"{days}d {remaining_hours}h"


def get_day_count(start_time: str, end_time: str) -> int:
    """Number of days a period touches, at least 1 for any valid non-negative span."""
    start = parse_timestamp(start_time)
    end = parse_timestamp(end_time)
    if start is None or end is None or end < start:
        return 0

    days = (end - start).total_seconds() / 86400.0
    return max(1, math.ceil(days))


def is_within_range(timestamp: str, range_start: str, range_end: str) -> bool:
    moment = parse_timestamp(timestamp)
    start = parse_timestamp(range_start)
    end = parse_timestamp(range_end)
    if moment is None or start is None or end is None:
        return False
    return start <= moment <= end


def safe_divide(numerator: float, denominator: float, fallback: float = 0.0) -> float:
    """
    Divide, returning `fallback` instead of raising or producing inf/nan.
    Applies when the denominator is zero or non-finite, or the result is non-finite.
    """
    if denominator == 0 or not math.isfinite(denominator):
        return fallback

    result = numerator / denominator
    if not math.isfinite(result):
        return fallback
    return result


def clamp(value: float, min_value: float, max_value: float) -> float:
    return min(max(value, min_value), max_value)
