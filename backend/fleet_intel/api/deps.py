from functools import lru_cache
from typing import Optional

from fastapi import Query

from fleet_intel.config import get_analytics_profile, settings
from fleet_intel.errors import RequestValidationFailed
from fleet_intel.services.analytics_service import FleetAnalyticsService
from fleet_intel.services.gps_client import get_gps_client
from fleet_intel.services.insights.llm_client import LLMClient
from fleet_intel.services.timeutils import parse_timestamp


MAX_RANGE_DAYS = 31


class DateRange:
    def __init__(self, start: str, end: str):
        self.start = start
        self.end = end


def get_date_range(
    start: Optional[str] = Query(None, description="Period start, ISO 8601"),
    end: Optional[str] = Query(None, description="Period end, ISO 8601"),
) -> DateRange:
    """Require an ISO 8601 start/end pair, in order, at most 31 days apart."""
    errors = []
    if not start:
        errors.append({"field": "start", "message": "Query parameter 'start' is required"})
    if not end:
        errors.append({"field": "end", "message": "Query parameter 'end' is required"})
    if errors:
        raise RequestValidationFailed("Missing date range parameters", errors)

    start_dt = parse_timestamp(start)
    end_dt = parse_timestamp(end)
    if start_dt is None:
        errors.append({"field": "start", "message": "Invalid date format for 'start'. Use ISO 8601 format."})
    if end_dt is None:
        errors.append({"field": "end", "message": "Invalid date format for 'end'. Use ISO 8601 format."})
    if errors:
        raise RequestValidationFailed("Invalid date format", errors)

    if start_dt > end_dt:
        raise RequestValidationFailed("'start' date must be before or equal to 'end' date", [
            {"field": "start", "message": "Must be before end date"},
            {"field": "end", "message": "Must be after start date"},
        ])

    if (end_dt - start_dt).total_seconds() / 86400 > MAX_RANGE_DAYS:
        raise RequestValidationFailed(f"Date range cannot exceed {MAX_RANGE_DAYS} days", [
            {"field": "start", "message": "Range too large"},
            {"field": "end", "message": "Range too large"},
        ])

    return DateRange(start, end)


@lru_cache
def get_analytics_service() -> FleetAnalyticsService:
    return FleetAnalyticsService(
        gps_client=get_gps_client(settings),
        profile=get_analytics_profile(),
        max_workers=settings.fleet_fetch_workers,
    )


@lru_cache
def get_llm_client() -> LLMClient:
    return LLMClient.from_settings(settings)
