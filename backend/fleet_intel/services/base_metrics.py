"""Base metrics: a single pass over a track attributing every segment to one vehicle state."""
from typing import List, Optional, Tuple

from fleet_intel.schemas.config import AnalyticsConfig
from fleet_intel.schemas.metrics import BaseVehicleMetrics, GeoLocation, IdleEvent, VehicleState
from fleet_intel.schemas.track import Track, TrackPoint
from fleet_intel.services.geo import calculate_centroid, haversine_distance
from fleet_intel.services.timeutils import get_duration_minutes, minutes_to_hours, safe_divide


def classify_vehicle_state(point: TrackPoint, config: AnalyticsConfig) -> VehicleState:
    """Ignition off is off; ignition on below the idle threshold is idle; otherwise moving."""
    if not point.ignition_on:
        return VehicleState.OFF
    if point.speed < config.idle_speed_threshold_kmh:
        return VehicleState.IDLE
    return VehicleState.MOVING


def is_stop_transition(previous: VehicleState, current: VehicleState) -> bool:
    return previous == VehicleState.MOVING and current in (VehicleState.IDLE, VehicleState.OFF)


class IdleEventTracker:
    """Follows one idle run at a time and emits an IdleEvent for runs that reach the threshold."""

    def __init__(self, threshold_minutes: float):
        self.threshold_minutes = threshold_minutes
        self._reset()

    def _reset(self) -> None:
        self.active = False
        self.start_time: Optional[str] = None
        self.start_location: Optional[GeoLocation] = None
        self.minutes = 0.0
        self.samples: List[TrackPoint] = []

    def start(self, point: TrackPoint) -> None:
        self.active = True
        self.start_time = point.timestamp
        self.start_location = GeoLocation(lat=point.latitude, lng=point.longitude)
        self.minutes = 0.0
        self.samples = [point]

    def accumulate(self, minutes: float, endpoint: TrackPoint) -> None:
        self.minutes += minutes
        self.samples.append(endpoint)

    def finalize(self, end_time: str) -> Optional[IdleEvent]:
        """Close the current run. Returns an event only if the run was long enough."""
        event = None
        if self.active and self.start_time is not None and self.minutes >= self.threshold_minutes:
            location = calculate_centroid(self.samples) or self.start_location
            event = IdleEvent(
                start_time=self.start_time,
                end_time=end_time,
                duration_minutes=self.minutes,
                location=location,
            )
        self._reset()
        return event


def compute_base_metrics(track: Track, config: Optional[AnalyticsConfig] = None) -> BaseVehicleMetrics:
    """
    Compute distance, moving/idle time, stops, long idle events and speeds for a track.

    Each segment between consecutive points is attributed entirely to the state of
    its earlier point. Segments starting in the off state are dropped. Total time
    comes from the declared track bounds, not from point coverage.
    """
    config = config or AnalyticsConfig()
    total_time = get_duration_minutes(track.start_time, track.end_time)
    points = track.points

    empty = BaseVehicleMetrics(
        vehicle_id=track.vehicle_id,
        period_start=track.start_time,
        period_end=track.end_time,
        total_time_minutes=total_time,
    )

    if not points:
        return empty

    if len(points) == 1:
        point = points[0]
        return empty.model_copy(update={
            "max_speed_kmh": point.speed if point.ignition_on else 0.0,
            "total_points_analyzed": 1,
        })

    distance, moving_time, idle_time, stops, events = _walk_segments(points, config)

    max_speed = max((p.speed for p in points if p.ignition_on), default=0.0)

    # Distance over moving hours, not a mean of instantaneous speeds
    average_speed = safe_divide(distance, minutes_to_hours(moving_time))

    return BaseVehicleMetrics(
        vehicle_id=track.vehicle_id,
        period_start=track.start_time,
        period_end=track.end_time,
        total_distance_km=distance,
        total_moving_time_minutes=moving_time,
        total_idle_time_minutes=idle_time,
        total_time_minutes=total_time,
        average_speed_kmh=average_speed,
        max_speed_kmh=max_speed,
        number_of_stops=stops,
        long_idle_events=tuple(events),
        total_points_analyzed=len(points),
    )


def _walk_segments(
    points: Tuple[TrackPoint, ...], config: AnalyticsConfig
) -> Tuple[float, float, float, int, List[IdleEvent]]:
    """
    Accumulate per-state totals over consecutive point pairs.
    Returns: (distance_km, moving_minutes, idle_minutes, stops, long_idle_events)
    """
    distance = 0.0
    moving_time = 0.0
    idle_time = 0.0
    stops = 0
    events: List[IdleEvent] = []

    tracker = IdleEventTracker(config.long_idle_threshold_minutes)
    previous_state: Optional[VehicleState] = None

    for i, point in enumerate(points):
        state = classify_vehicle_state(point, config)

        if previous_state is not None:
            prev = points[i - 1]
            minutes = get_duration_minutes(prev.timestamp, point.timestamp)

            if previous_state == VehicleState.MOVING:
                distance += haversine_distance(prev.latitude, prev.longitude, point.latitude, point.longitude)
                moving_time += minutes
            elif previous_state == VehicleState.IDLE:
                idle_time += minutes
                tracker.accumulate(minutes, point)
            # off: segment is not operational time

            if is_stop_transition(previous_state, state):
                stops += 1

        if state == VehicleState.IDLE and previous_state != VehicleState.IDLE:
            tracker.start(point)
        elif state != VehicleState.IDLE and previous_state == VehicleState.IDLE:
            event = tracker.finalize(point.timestamp)
            if event:
                events.append(event)

        previous_state = state

    # Track ended mid-idle: close the open run at the last point
    if tracker.active:
        event = tracker.finalize(points[-1].timestamp)
        if event:
            events.append(event)

    return distance, moving_time, idle_time, stops, events


def validate_track(track: Track) -> Tuple[bool, str]:
    """Check whether a track has enough data for segment analysis."""
    if not track.vehicle_id:
        return False, "Missing vehicle_id"
    if not track.start_time or not track.end_time:
        return False, "Missing time bounds"
    if not track.points:
        return False, "Empty track (no points)"
    if len(track.points) < 2:
        return False, "Insufficient points (need at least 2 for segment analysis)"
    return True, "Track is valid"
