"""Efficiency score: how productively a vehicle's period was used."""
from typing import Optional

from fleet_intel.schemas.config import AnalyticsConfig, EfficiencyWeights
from fleet_intel.schemas.metrics import (
    BaseVehicleMetrics,
    EfficiencyBreakdown,
    EfficiencyComponents,
    EfficiencyContributions,
)
from fleet_intel.services.timeutils import clamp, minutes_to_hours, safe_divide


def calculate_idle_score(metrics: BaseVehicleMetrics) -> float:
    """Less idle time relative to operating time scores higher."""
    operational = metrics.total_idle_time_minutes + metrics.total_moving_time_minutes
    idle_ratio = safe_divide(metrics.total_idle_time_minutes, operational)
    return clamp((1 - idle_ratio) * 100, 0, 100)


def calculate_utilization_score(metrics: BaseVehicleMetrics) -> float:
    utilization = safe_divide(metrics.total_moving_time_minutes, metrics.total_time_minutes)
    return clamp(utilization * 100, 0, 100)


def calculate_distance_score(metrics: BaseVehicleMetrics, config: AnalyticsConfig) -> float:
    """Throughput against the expected km/h baseline, capped at 100."""
    km_per_hour = safe_divide(metrics.total_distance_km, minutes_to_hours(metrics.total_time_minutes))
    score = safe_divide(km_per_hour, config.expected_km_per_hour) * 100
    return clamp(min(100, score), 0, 100)


def calculate_stop_score(metrics: BaseVehicleMetrics, config: AnalyticsConfig) -> float:
    # 1 km floor keeps near-zero distances from exploding the rate
    stops_per_km = metrics.number_of_stops / max(1.0, metrics.total_distance_km)
    score = 100 - stops_per_km * config.stop_penalty_factor
    return clamp(max(0, score), 0, 100)


def compute_efficiency_components(
    metrics: BaseVehicleMetrics, config: Optional[AnalyticsConfig] = None
) -> EfficiencyComponents:
    config = config or AnalyticsConfig()
    return EfficiencyComponents(
        idle_score=calculate_idle_score(metrics),
        utilization_score=calculate_utilization_score(metrics),
        distance_score=calculate_distance_score(metrics, config),
        stop_score=calculate_stop_score(metrics, config),
    )


def calculate_efficiency_score(
    metrics: BaseVehicleMetrics,
    weights: Optional[EfficiencyWeights] = None,
    config: Optional[AnalyticsConfig] = None,
) -> float:
    """
    Weighted composite of idle, utilization, distance and stop scores (0-100, unrounded).
    Returns 0 when the period has no duration.
    """
    weights = weights or EfficiencyWeights()

    if metrics.total_time_minutes == 0:
        return 0.0

    components = compute_efficiency_components(metrics, config)
    weighted = (
        components.idle_score * weights.idle_ratio
        + components.utilization_score * weights.utilization_rate
        + components.distance_score * weights.distance_efficiency
        + components.stop_score * weights.stop_efficiency
    )

    return clamp(weighted, 0, 100)


def get_efficiency_breakdown(
    metrics: BaseVehicleMetrics,
    weights: Optional[EfficiencyWeights] = None,
    config: Optional[AnalyticsConfig] = None,
) -> EfficiencyBreakdown:
    weights = weights or EfficiencyWeights()
    components = compute_efficiency_components(metrics, config)

    return EfficiencyBreakdown(
        components=components,
        weights=weights,
        contributions=EfficiencyContributions(
            idle=components.idle_score * weights.idle_ratio,
            utilization=components.utilization_score * weights.utilization_rate,
            distance=components.distance_score * weights.distance_efficiency,
            stops=components.stop_score * weights.stop_efficiency,
        ),
        final_score=calculate_efficiency_score(metrics, weights, config),
    )


def get_efficiency_level(score: float) -> str:
    if score >= 80:
        return "excellent"
    if score >= 60:
        return "good"
    if score >= 40:
        return "fair"
    if score >= 20:
        return "poor"
    return "critical"
