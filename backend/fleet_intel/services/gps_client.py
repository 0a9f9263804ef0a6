"""Track supplier: the external GPS provider API and a deterministic demo stand-in."""
import logging
import random
import threading
from datetime import timedelta
from typing import Callable, List, Optional

import requests
from pydantic import ValidationError

from fleet_intel.config import Settings
from fleet_intel.schemas.track import Track, TrackPoint, Vehicle
from fleet_intel.services.timeutils import parse_timestamp

logger = logging.getLogger(__name__)


class GPSApiError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None, is_timeout: bool = False):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.is_timeout = is_timeout


class GPSClient:
    """Client for the GPS provider REST API."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 10.0,
        session_factory: Callable[[], requests.Session] = requests.Session,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session_factory = session_factory
        self.headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_key}",
        }
        self._local = threading.local()

    @property
    def session(self) -> requests.Session:
        # requests.Session is not thread-safe; track fetches run on a worker pool
        session = getattr(self._local, "session", None)
        if session is None:
            session = self.session_factory()
            session.headers.update(self.headers)
            self._local.session = session
        return session

    def _get(self, path: str, params: Optional[dict] = None, timeout: Optional[float] = None) -> dict:
        try:
            response = self.session.get(
                f"{self.base_url}{path}",
                params=params,
                timeout=timeout or self.timeout,
            )
            response.raise_for_status()
            return response.json()
        except requests.Timeout as e:
            raise GPSApiError("GPS API request timed out", is_timeout=True) from e
        except requests.HTTPError as e:
            status = e.response.status_code
            raise GPSApiError(f"GPS API error: {status} {e.response.reason}", status_code=status) from e
        except requests.RequestException as e:
            raise GPSApiError(f"GPS API request failed: {e}") from e

    def get_vehicles(self) -> List[Vehicle]:
        data = self._get("/vehicles")
        try:
            return [Vehicle.model_validate(v) for v in data.get("vehicles", [])]
        except (AttributeError, ValidationError) as e:
            raise GPSApiError("GPS API returned a malformed vehicle list") from e

    def get_vehicle(self, vehicle_id: str) -> Optional[Vehicle]:
        return next((v for v in self.get_vehicles() if v.id == vehicle_id), None)

    def get_vehicle_track(self, vehicle_id: str, start_time: str, end_time: str) -> Track:
        data = self._get(f"/vehicles/{vehicle_id}/tracks", params={"start": start_time, "end": end_time})
        try:
            return Track.model_validate(data)
        except ValidationError as e:
            raise GPSApiError(f"GPS API returned a malformed track for vehicle {vehicle_id}") from e

    def check_health(self) -> bool:
        try:
            self._get("/health", timeout=5)
            return True
        except GPSApiError:
            return False


MOCK_VEHICLES = [
    Vehicle(id="v001", name="Truck Alpha", license_plate="ABC-1234", vehicle_type="truck", group_id="fleet-1"),
    Vehicle(id="v002", name="Van Beta", license_plate="DEF-5678", vehicle_type="van", group_id="fleet-1"),
    Vehicle(id="v003", name="Truck Gamma", license_plate="GHI-9012", vehicle_type="truck", group_id="fleet-1"),
    Vehicle(id="v004", name="Car Delta", license_plate="JKL-3456", vehicle_type="car", group_id="fleet-2"),
    Vehicle(id="v005", name="Van Epsilon", license_plate="MNO-7890", vehicle_type="van", group_id="fleet-2"),
]


class DemoGPSClient:
    """Serves fixed vehicles and generated one-minute tracks without network access."""

    INTERVAL_SECONDS = 60
    MAX_POINTS = 500

    def __init__(self, vehicles: Optional[List[Vehicle]] = None):
        self.vehicles = list(vehicles if vehicles is not None else MOCK_VEHICLES)

    def get_vehicles(self) -> List[Vehicle]:
        return list(self.vehicles)

    def get_vehicle(self, vehicle_id: str) -> Optional[Vehicle]:
        return next((v for v in self.vehicles if v.id == vehicle_id), None)

    def get_vehicle_track(self, vehicle_id: str, start_time: str, end_time: str) -> Track:
        if self.get_vehicle(vehicle_id) is None:
            raise GPSApiError(f"Vehicle not found: {vehicle_id}", status_code=404)
        return Track(
            vehicle_id=vehicle_id,
            start_time=start_time,
            end_time=end_time,
            points=tuple(self._generate_points(vehicle_id, start_time, end_time)),
        )

    def check_health(self) -> bool:
        return True

    def _generate_points(self, vehicle_id: str, start_time: str, end_time: str) -> List[TrackPoint]:
        start = parse_timestamp(start_time)
        end = parse_timestamp(end_time)
        if start is None or end is None or end <= start:
            return []

        # Same vehicle and period always yields the same track
        rng = random.Random(f"{vehicle_id}:{start_time}")

        count = min(int((end - start).total_seconds() // self.INTERVAL_SECONDS), self.MAX_POINTS)
        lat, lon = 40.7128, -74.006
        ignition_on = True
        points = []

        for i in range(count):
            timestamp = start + timedelta(seconds=i * self.INTERVAL_SECONDS)
            moving = rng.random() > 0.3
            speed = float(rng.randint(30, 89)) if moving else 0.0

            if rng.random() < 0.05:
                ignition_on = not ignition_on

            points.append(TrackPoint(
                latitude=lat,
                longitude=lon,
                speed=speed if ignition_on else 0.0,
                timestamp=timestamp.isoformat().replace("+00:00", "Z"),
                ignition_on=ignition_on,
            ))

            if moving and ignition_on:
                lat += (rng.random() - 0.5) * 0.002
                lon += (rng.random() - 0.5) * 0.002

        return points


def get_gps_client(source: Settings):
    """Pick the demo client or the real provider based on settings."""
    if source.use_demo_data:
        logger.info("Using demo GPS data")
        return DemoGPSClient()
    return GPSClient(source.gps_api_base_url, source.gps_api_key, source.gps_api_timeout_seconds)
