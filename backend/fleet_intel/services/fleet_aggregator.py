"""Fleet-wide aggregation over per-vehicle metrics and costs."""
from typing import Callable, List, Optional, Sequence, Tuple

from fleet_intel.schemas.fleet import (
    FleetCostEstimation,
    FleetMetrics,
    VehicleCostEstimation,
    VehicleRanking,
)
from fleet_intel.schemas.metrics import ScoredVehicleMetrics
from fleet_intel.services.cost_model import calculate_fleet_costs
from fleet_intel.services.timeutils import safe_divide

TOP_RISK_COUNT = 3


def _rank(
    metrics: Sequence[ScoredVehicleMetrics], score_of: Callable[[ScoredVehicleMetrics], float]
) -> List[VehicleRanking]:
    # Score descending, then vehicle_id ascending so equal scores always order the same way
    ordered = sorted(metrics, key=lambda m: (-score_of(m), m.vehicle_id))
    return [
        VehicleRanking(vehicle_id=m.vehicle_id, vehicle_name=m.vehicle_id, score=score_of(m), rank=i)
        for i, m in enumerate(ordered, start=1)
    ]


def rank_by_efficiency(metrics: Sequence[ScoredVehicleMetrics]) -> List[VehicleRanking]:
    """Best performers first."""
    return _rank(metrics, lambda m: m.efficiency_score)


def rank_by_risk(metrics: Sequence[ScoredVehicleMetrics]) -> List[VehicleRanking]:
    """Riskiest vehicles first."""
    return _rank(metrics, lambda m: m.risk_score)


def get_top_risk_vehicles(risk_rankings: Sequence[VehicleRanking], count: int = TOP_RISK_COUNT) -> List[VehicleRanking]:
    return list(risk_rankings[:count])


def aggregate_fleet_metrics(
    vehicle_metrics: Sequence[ScoredVehicleMetrics], period_start: str, period_end: str
) -> FleetMetrics:
    """Totals, unweighted averages and deterministic rankings across the fleet."""
    if not vehicle_metrics:
        return FleetMetrics(period_start=period_start, period_end=period_end)

    count = len(vehicle_metrics)
    by_risk = rank_by_risk(vehicle_metrics)

    return FleetMetrics(
        period_start=period_start,
        period_end=period_end,
        total_vehicles=count,
        total_distance_km=sum(m.total_distance_km for m in vehicle_metrics),
        total_idle_time_minutes=sum(m.total_idle_time_minutes for m in vehicle_metrics),
        total_moving_time_minutes=sum(m.total_moving_time_minutes for m in vehicle_metrics),
        # Each vehicle counts equally regardless of trip length
        average_idle_ratio=safe_divide(sum(m.idle_ratio for m in vehicle_metrics), count),
        average_efficiency_score=safe_divide(sum(m.efficiency_score for m in vehicle_metrics), count),
        average_risk_score=safe_divide(sum(m.risk_score for m in vehicle_metrics), count),
        vehicles_by_efficiency=tuple(rank_by_efficiency(vehicle_metrics)),
        vehicles_by_risk=tuple(by_risk),
        top_risk_vehicles=tuple(get_top_risk_vehicles(by_risk)),
    )


def aggregate_fleet_costs(
    vehicle_costs: Sequence[VehicleCostEstimation], period_start: str, period_end: str
) -> FleetCostEstimation:
    return calculate_fleet_costs(vehicle_costs, period_start, period_end)


def aggregate_fleet(
    vehicle_metrics: Sequence[ScoredVehicleMetrics],
    vehicle_costs: Sequence[VehicleCostEstimation],
    period_start: str,
    period_end: str,
) -> Tuple[FleetMetrics, FleetCostEstimation]:
    return (
        aggregate_fleet_metrics(vehicle_metrics, period_start, period_end),
        aggregate_fleet_costs(vehicle_costs, period_start, period_end),
    )


def get_fleet_health_status(average_efficiency_score: float) -> str:
    if average_efficiency_score >= 80:
        return "excellent"
    if average_efficiency_score >= 60:
        return "good"
    if average_efficiency_score >= 40:
        return "fair"
    if average_efficiency_score >= 20:
        return "poor"
    return "critical"


def get_fleet_risk_status(average_risk_score: float) -> str:
    if average_risk_score <= 20:
        return "low"
    if average_risk_score <= 40:
        return "moderate"
    if average_risk_score <= 60:
        return "elevated"
    if average_risk_score <= 80:
        return "high"
    return "critical"


def calculate_high_risk_percentage(
    vehicle_metrics: Sequence[ScoredVehicleMetrics], risk_threshold: float = 60
) -> float:
    if not vehicle_metrics:
        return 0.0
    high_risk = sum(1 for m in vehicle_metrics if m.risk_score >= risk_threshold)
    return safe_divide(high_risk, len(vehicle_metrics)) * 100


def get_vehicles_needing_attention(
    vehicle_metrics: Sequence[ScoredVehicleMetrics],
    efficiency_threshold: float = 50,
    risk_threshold: float = 60,
) -> List[str]:
    """Vehicle ids with low efficiency or high risk, in input order."""
    return [
        m.vehicle_id
        for m in vehicle_metrics
        if m.efficiency_score < efficiency_threshold or m.risk_score >= risk_threshold
    ]


def find_top_risk_vehicle_id(fleet_metrics: FleetMetrics) -> Optional[str]:
    if not fleet_metrics.top_risk_vehicles:
        return None
    return fleet_metrics.top_risk_vehicles[0].vehicle_id
