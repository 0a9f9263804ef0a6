"""Fleet analytics service: fetches tracks from the GPS provider and runs the pipeline."""
import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, List

from fleet_intel.errors import NotFoundError
from fleet_intel.schemas.config import AnalyticsProfile
from fleet_intel.schemas.fleet import FleetAnalytics, FleetSummary, VehicleAnalytics
from fleet_intel.schemas.track import Track, Vehicle
from fleet_intel.services.fleet_aggregator import (
    calculate_high_risk_percentage,
    find_top_risk_vehicle_id,
    get_fleet_health_status,
    get_fleet_risk_status,
    get_vehicles_needing_attention,
)
from fleet_intel.services.gps_client import GPSApiError
from fleet_intel.services.pipeline import analyze_fleet, analyze_vehicle

logger = logging.getLogger(__name__)


class FleetAnalyticsService:
    """Orchestrates track retrieval and analytics for one vehicle or the whole fleet."""

    def __init__(self, gps_client, profile: AnalyticsProfile, max_workers: int = 8):
        self.gps_client = gps_client
        self.profile = profile
        self.max_workers = max(1, max_workers)

    def list_vehicles(self) -> List[Vehicle]:
        return self.gps_client.get_vehicles()

    def get_vehicle(self, vehicle_id: str) -> Vehicle:
        vehicle = self.gps_client.get_vehicle(vehicle_id)
        if vehicle is None:
            raise NotFoundError(f"Vehicle '{vehicle_id}' not found")
        return vehicle

    def get_vehicle_track(self, vehicle_id: str, start: str, end: str) -> Track:
        return self.gps_client.get_vehicle_track(vehicle_id, start, end)

    def get_vehicle_analytics(self, vehicle_id: str, start: str, end: str) -> VehicleAnalytics:
        self.get_vehicle(vehicle_id)
        track = self.get_vehicle_track(vehicle_id, start, end)
        return analyze_vehicle(track, self.profile)

    def get_fleet_analytics(self, start: str, end: str) -> FleetAnalytics:
        started = time.perf_counter()
        vehicles = self.list_vehicles()
        tracks = self._fetch_tracks(vehicles, start, end)

        result = analyze_fleet(tracks, start, end, self.profile)

        logger.info(
            "Fleet analytics for %d/%d vehicles computed in %.1f ms",
            len(tracks), len(vehicles), (time.perf_counter() - started) * 1000,
        )
        return result

    def get_fleet_summary(self, start: str, end: str) -> FleetSummary:
        analytics = self.get_fleet_analytics(start, end)
        fleet = analytics.fleet_metrics

        return FleetSummary(
            total_vehicles=fleet.total_vehicles,
            average_efficiency=fleet.average_efficiency_score,
            average_risk=fleet.average_risk_score,
            total_daily_loss=analytics.fleet_costs.total_daily_idle_cost,
            top_risk_vehicle_id=find_top_risk_vehicle_id(fleet),
            health_status=get_fleet_health_status(fleet.average_efficiency_score),
            risk_status=get_fleet_risk_status(fleet.average_risk_score),
            high_risk_percentage=calculate_high_risk_percentage(analytics.vehicle_metrics),
            vehicles_needing_attention=tuple(get_vehicles_needing_attention(analytics.vehicle_metrics)),
        )

    def _fetch_tracks(self, vehicles: List[Vehicle], start: str, end: str) -> List[Track]:
        """Fetch all tracks concurrently. Vehicles whose fetch fails are skipped."""
        fetched: Dict[str, Track] = {}

        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="TrackFetch") as executor:
            futures = {
                executor.submit(self.gps_client.get_vehicle_track, v.id, start, end): v.id
                for v in vehicles
            }
            for future in as_completed(futures):
                vehicle_id = futures[future]
                try:
                    fetched[vehicle_id] = future.result()
                except GPSApiError as e:
                    logger.warning("Failed to fetch track for vehicle %s: %s", vehicle_id, e.message)

        # Keep the provider's vehicle order
        return [fetched[v.id] for v in vehicles if v.id in fetched]
