"""Analytics API endpoints."""
from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from fleet_intel.api.deps import DateRange, get_analytics_service, get_date_range
from fleet_intel.errors import RequestValidationFailed
from fleet_intel.schemas.fleet import FleetAnalytics, FleetSummary, VehicleAnalytics
from fleet_intel.schemas.track import Track
from fleet_intel.services.analytics_service import FleetAnalyticsService
from fleet_intel.services.pipeline import analyze_fleet
from fleet_intel.services.timeutils import parse_timestamp

router = APIRouter()


class TrackBatch(BaseModel):
    start: str
    end: str
    tracks: List[Track] = Field(default_factory=list)


@router.get("/vehicle/{vehicle_id}", response_model=VehicleAnalytics)
def get_vehicle_analytics(
    vehicle_id: str,
    period: DateRange = Depends(get_date_range),
    service: FleetAnalyticsService = Depends(get_analytics_service),
):
    """Metrics, scores and costs for one vehicle."""
    return service.get_vehicle_analytics(vehicle_id, period.start, period.end)


@router.get("/fleet", response_model=FleetAnalytics)
def get_fleet_analytics(
    period: DateRange = Depends(get_date_range),
    service: FleetAnalyticsService = Depends(get_analytics_service),
):
    """Per-vehicle metrics plus fleet aggregates, rankings and costs."""
    return service.get_fleet_analytics(period.start, period.end)


@router.get("/fleet/summary", response_model=FleetSummary)
def get_fleet_summary(
    period: DateRange = Depends(get_date_range),
    service: FleetAnalyticsService = Depends(get_analytics_service),
):
    return service.get_fleet_summary(period.start, period.end)


@router.post("/tracks", response_model=FleetAnalytics)
def analyze_tracks(batch: TrackBatch, service: FleetAnalyticsService = Depends(get_analytics_service)):
    """
    Run the pipeline over caller-supplied tracks.
    Points in each track must already be in chronological order.
    """
    if parse_timestamp(batch.start) is None or parse_timestamp(batch.end) is None:
        raise RequestValidationFailed("Invalid date format", [
            {"field": "start", "message": "Use ISO 8601 format."},
            {"field": "end", "message": "Use ISO 8601 format."},
        ])

    return analyze_fleet(batch.tracks, batch.start, batch.end, service.profile)
