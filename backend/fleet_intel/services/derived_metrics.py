"""Derived metrics: ratios and speeding analysis built on top of base metrics."""
import math
from typing import Optional, Sequence

from fleet_intel.schemas.config import AnalyticsConfig
from fleet_intel.schemas.metrics import (
    BaseVehicleMetrics,
    BehavioralFlags,
    DerivedVehicleMetrics,
    SpeedingAnalysis,
    VehicleState,
)
from fleet_intel.schemas.track import Track, TrackPoint
from fleet_intel.services.base_metrics import classify_vehicle_state
from fleet_intel.services.timeutils import get_duration_minutes, safe_divide


def is_speeding_point(point: TrackPoint, speeding_threshold_kmh: float) -> bool:
    return point.ignition_on and point.speed >= speeding_threshold_kmh


def analyze_speeding_time(points: Sequence[TrackPoint], speeding_threshold_kmh: float) -> SpeedingAnalysis:
    """
    Walk the track measuring time spent at or above the speeding threshold.

    A segment counts as speeding time when its earlier point is speeding. A new
    speeding segment begins each time a point enters speeding from non-speeding.
    """
    if len(points) < 2:
        return SpeedingAnalysis()

    minutes_over = 0.0
    segment_count = 0
    max_speeding_speed = 0.0
    previous_was_speeding = False

    for current, following in zip(points, points[1:]):
        speeding = is_speeding_point(current, speeding_threshold_kmh)

        if speeding:
            minutes_over += get_duration_minutes(current.timestamp, following.timestamp)
            max_speeding_speed = max(max_speeding_speed, current.speed)
            if not previous_was_speeding:
                segment_count += 1

        previous_was_speeding = speeding

    return SpeedingAnalysis(
        time_over_threshold_minutes=minutes_over,
        speeding_segment_count=segment_count,
        max_speeding_speed_kmh=max_speeding_speed,
    )


def calculate_idle_ratio(metrics: BaseVehicleMetrics) -> float:
    operational = metrics.total_idle_time_minutes + metrics.total_moving_time_minutes
    return safe_divide(metrics.total_idle_time_minutes, operational)


def calculate_aggressive_driving_ratio(time_over_threshold_minutes: float, moving_time_minutes: float) -> float:
    return safe_divide(time_over_threshold_minutes, moving_time_minutes)


def compute_derived_metrics(
    base: BaseVehicleMetrics, track: Track, config: Optional[AnalyticsConfig] = None
) -> DerivedVehicleMetrics:
    """Extend base metrics with idle and aggressive-driving ratios. No scores are attached here."""
    config = config or AnalyticsConfig()

    speeding = analyze_speeding_time(track.points, config.speeding_threshold_kmh)

    return DerivedVehicleMetrics(
        **dict(base),
        idle_ratio=calculate_idle_ratio(base),
        aggressive_driving_ratio=calculate_aggressive_driving_ratio(
            speeding.time_over_threshold_minutes, base.total_moving_time_minutes
        ),
        time_over_speed_threshold_minutes=speeding.time_over_threshold_minutes,
        speeding_segment_count=speeding.speeding_segment_count,
        max_speeding_speed_kmh=speeding.max_speeding_speed_kmh,
    )


def has_excessive_idling(metrics: DerivedVehicleMetrics, threshold: float = 0.3) -> bool:
    return metrics.idle_ratio > threshold


def has_aggressive_driving(metrics: DerivedVehicleMetrics, threshold: float = 0.1) -> bool:
    return metrics.aggressive_driving_ratio > threshold


def get_behavioral_flags(metrics: DerivedVehicleMetrics) -> BehavioralFlags:
    operational = metrics.total_moving_time_minutes + metrics.total_idle_time_minutes
    utilization = safe_divide(operational, metrics.total_time_minutes)

    return BehavioralFlags(
        excessive_idling=has_excessive_idling(metrics),
        aggressive_driving=has_aggressive_driving(metrics),
        has_long_idle_events=len(metrics.long_idle_events) > 0,
        low_utilization=utilization < 0.5,
    )


def calculate_speed_variance(points: Sequence[TrackPoint], config: Optional[AnalyticsConfig] = None) -> float:
    """Population variance of speed over moving points, in (km/h)^2. 0 with fewer than two samples."""
    config = config or AnalyticsConfig()
    speeds = [p.speed for p in points if classify_vehicle_state(p, config) == VehicleState.MOVING]

    if len(speeds) < 2:
        return 0.0

    mean = sum(speeds) / len(speeds)
    return sum((s - mean) ** 2 for s in speeds) / len(speeds)


def calculate_speed_std_dev(points: Sequence[TrackPoint], config: Optional[AnalyticsConfig] = None) -> float:
    return math.sqrt(calculate_speed_variance(points, config))
