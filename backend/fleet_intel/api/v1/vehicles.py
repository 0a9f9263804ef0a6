"""Vehicle and raw track endpoints."""
from fastapi import APIRouter, Depends

from fleet_intel.api.deps import DateRange, get_analytics_service, get_date_range
from fleet_intel.schemas.track import Track, Vehicle
from fleet_intel.services.analytics_service import FleetAnalyticsService

router = APIRouter()


@router.get("/", response_model=list[Vehicle])
def list_vehicles(service: FleetAnalyticsService = Depends(get_analytics_service)):
    return service.list_vehicles()


@router.get("/{vehicle_id}", response_model=Vehicle)
def get_vehicle(vehicle_id: str, service: FleetAnalyticsService = Depends(get_analytics_service)):
    return service.get_vehicle(vehicle_id)


@router.get("/{vehicle_id}/tracks", response_model=Track)
def get_vehicle_track(
    vehicle_id: str,
    period: DateRange = Depends(get_date_range),
    service: FleetAnalyticsService = Depends(get_analytics_service),
):
    """Raw GPS track for a vehicle over the requested period."""
    return service.get_vehicle_track(vehicle_id, period.start, period.end)
