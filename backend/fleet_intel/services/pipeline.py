"""Composes the analytics stages into per-vehicle and fleet results."""
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence

from fleet_intel.schemas.config import AnalyticsProfile
from fleet_intel.schemas.fleet import FleetAnalytics, VehicleAnalytics
from fleet_intel.schemas.metrics import DerivedVehicleMetrics, ScoredVehicleMetrics
from fleet_intel.schemas.track import Track
from fleet_intel.services.base_metrics import compute_base_metrics
from fleet_intel.services.cost_model import calculate_vehicle_costs
from fleet_intel.services.derived_metrics import compute_derived_metrics
from fleet_intel.services.efficiency import calculate_efficiency_score
from fleet_intel.services.fleet_aggregator import aggregate_fleet
from fleet_intel.services.risk import calculate_risk_score


def attach_scores(derived: DerivedVehicleMetrics, efficiency_score: float, risk_score: float) -> ScoredVehicleMetrics:
    return ScoredVehicleMetrics(**dict(derived), efficiency_score=efficiency_score, risk_score=risk_score)


def compute_full_metrics(track: Track, profile: Optional[AnalyticsProfile] = None) -> ScoredVehicleMetrics:
    """Base metrics, then derived ratios, then both scores."""
    profile = profile or AnalyticsProfile()

    base = compute_base_metrics(track, profile.config)
    derived = compute_derived_metrics(base, track, profile.config)

    efficiency = calculate_efficiency_score(base, profile.efficiency_weights, profile.config)
    risk = calculate_risk_score(derived, profile.risk_weights, profile.config)

    return attach_scores(derived, efficiency, risk)


def analyze_vehicle(track: Track, profile: Optional[AnalyticsProfile] = None) -> VehicleAnalytics:
    profile = profile or AnalyticsProfile()
    metrics = compute_full_metrics(track, profile)

    return VehicleAnalytics(
        vehicle_id=track.vehicle_id,
        period_start=track.start_time,
        period_end=track.end_time,
        metrics=metrics,
        costs=calculate_vehicle_costs(metrics, profile.financials),
    )


def analyze_fleet(
    tracks: Sequence[Track],
    period_start: str,
    period_end: str,
    profile: Optional[AnalyticsProfile] = None,
    max_workers: Optional[int] = None,
) -> FleetAnalytics:
    """
    Run the per-vehicle pipeline for every track and aggregate the results.

    With max_workers > 1 the vehicles are processed in a thread pool; results keep
    the input order either way. The profile is shared read-only.
    """
    profile = profile or AnalyticsProfile()

    if max_workers and max_workers > 1 and len(tracks) > 1:
        with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="VehicleWorker") as executor:
            results: List[VehicleAnalytics] = list(executor.map(lambda t: analyze_vehicle(t, profile), tracks))
    else:
        results = [analyze_vehicle(t, profile) for t in tracks]

    vehicle_metrics = [r.metrics for r in results]
    vehicle_costs = [r.costs for r in results]
    fleet_metrics, fleet_costs = aggregate_fleet(vehicle_metrics, vehicle_costs, period_start, period_end)

    return FleetAnalytics(
        period_start=period_start,
        period_end=period_end,
        fleet_metrics=fleet_metrics,
        fleet_costs=fleet_costs,
        vehicle_metrics=tuple(vehicle_metrics),
    )
