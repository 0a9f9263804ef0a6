"""Rule-based insights used when the LLM is unavailable or returns something unusable."""
import math
from typing import List

from fleet_intel.schemas.insights import (
    InsightsRequest,
    InsightsResponse,
    Recommendation,
    RiskCategory,
    RiskSeverity,
    TopRiskAssessment,
)
from fleet_intel.services.timeutils import clamp, safe_divide

MAX_AFFECTED_VEHICLES = 100


def _mean(values: List[float]) -> float:
    return safe_divide(sum(values), len(values))


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def determine_primary_risk(request: InsightsRequest) -> TopRiskAssessment:
    vehicles = request.vehicle_metrics
    avg_idle_ratio = _mean([v.idle_ratio for v in vehicles])
    avg_speeding_ratio = _mean([v.aggressive_driving_ratio for v in vehicles])
    avg_efficiency = _mean([v.efficiency_score for v in vehicles])
    avg_risk = _mean([v.risk_score for v in vehicles])
    annual_cost = request.fleet_costs.total_risk_adjusted_annual_cost

    high_idle = [v.vehicle_id for v in vehicles if v.idle_ratio > 0.3]

    if avg_idle_ratio > 0.35:
        category = RiskCategory.IDLE_TIME
        description = (
            f"Fleet average idle ratio is {avg_idle_ratio * 100:.1f}%, significantly above optimal levels. "
            "This represents unnecessary fuel consumption and lost productivity."
        )
        affected = high_idle
    elif avg_speeding_ratio > 0.15:
        category = RiskCategory.SPEEDING
        description = (
            f"Fleet average speeding ratio is {avg_speeding_ratio * 100:.1f}%, indicating elevated "
            "insurance risk and potential safety concerns."
        )
        affected = [v.vehicle_id for v in vehicles if v.aggressive_driving_ratio > 0.1]
    elif avg_efficiency < 50:
        category = RiskCategory.INEFFICIENCY
        description = (
            f"Fleet average efficiency score is {avg_efficiency:.1f}/100, below acceptable thresholds. "
            "Multiple vehicles require operational review."
        )
        affected = [v.vehicle_id for v in vehicles if v.efficiency_score < 50]
    elif annual_cost > 10000:
        category = RiskCategory.COST
        description = (
            f"Projected annual costs exceed ${annual_cost:.0f}, primarily driven by idle time "
            "and operational inefficiencies."
        )
        affected = [v.vehicle_id for v in vehicles[:3]]
    else:
        category = RiskCategory.IDLE_TIME
        description = (
            "Fleet operations within acceptable parameters with room for optimization "
            "in idle time reduction."
        )
        affected = high_idle[:3]

    if avg_risk >= 70:
        severity = RiskSeverity.CRITICAL
    elif avg_risk >= 50:
        severity = RiskSeverity.HIGH
    elif avg_risk >= 30:
        severity = RiskSeverity.MODERATE
    else:
        severity = RiskSeverity.LOW

    return TopRiskAssessment(
        category=category,
        severity=severity,
        description=description,
        affected_vehicles=affected[:MAX_AFFECTED_VEHICLES],
    )


def generate_recommendations(request: InsightsRequest) -> List[Recommendation]:
    vehicles = request.vehicle_metrics
    costs = request.fleet_costs
    recommendations = []

    highest = costs.highest_cost_vehicle
    if highest is not None:
        recommendations.append(Recommendation(
            priority=1,
            action=(
                f"Review operations for vehicle {highest.vehicle_id} which has the highest "
                f"projected annual cost of ${highest.annual_projected_loss:.0f}."
            ),
            expected_impact=(
                f"Potential savings of up to ${highest.monthly_projected_idle_cost * 0.3:.0f}/month "
                "through idle time reduction."
            ),
            target_vehicles=[highest.vehicle_id],
        ))

    if _mean([v.idle_ratio for v in vehicles]) > 0.25:
        recommendations.append(Recommendation(
            priority=2,
            action=(
                "Implement fleet-wide idle time reduction program with driver training "
                "and automated engine shutoff policies."
            ),
            expected_impact=(
                "Reducing average idle ratio by 10% could save approximately "
                f"${costs.total_monthly_projected_idle_cost * 0.1:.0f}/month."
            ),
            target_vehicles="ALL",
        ))

    worst = sorted(vehicles, key=lambda v: v.efficiency_score)[:3]
    if worst:
        recommendations.append(Recommendation(
            priority=3,
            action=(
                f"Conduct operational audit for {worst[0].vehicle_id} (efficiency score: "
                f"{worst[0].efficiency_score:.1f}/100) to identify specific improvement areas."
            ),
            expected_impact=(
                "Improving lowest-performing vehicle efficiency by 20% typically improves "
                "fleet average by 5-8%."
            ),
            target_vehicles=[v.vehicle_id for v in worst],
        ))

    recommendations.append(Recommendation(
        priority=4,
        action=(
            "Consider implementing route optimization software to reduce total distance "
            "and improve delivery efficiency."
        ),
        expected_impact=(
            "Route optimization typically yields 10-15% reduction in distance traveled "
            "and fuel consumption."
        ),
        target_vehicles="ALL",
    ))

    return recommendations[:5]


def generate_fallback_insights(request: InsightsRequest) -> InsightsResponse:
    """Build a complete insights response from fixed rules over the fleet's metrics."""
    vehicles = request.vehicle_metrics
    fleet = request.fleet_metrics
    costs = request.fleet_costs

    avg_risk = _mean([v.risk_score for v in vehicles])
    avg_efficiency = _mean([v.efficiency_score for v in vehicles])

    fleet_health_score = _round_half_up(clamp(avg_efficiency * 0.6 + (100 - avg_risk) * 0.4, 0, 100))

    daily_cost_per_vehicle = safe_divide(costs.total_daily_idle_cost, fleet.total_vehicles)
    if daily_cost_per_vehicle > 10:
        cost_pressure = 30
    elif daily_cost_per_vehicle > 5:
        cost_pressure = 20
    else:
        cost_pressure = 10
    priority_score = _round_half_up(
        clamp(avg_risk * 0.4 + cost_pressure + (100 - avg_efficiency) * 0.3, 0, 100)
    )

    top_risk = determine_primary_risk(request)
    concern = top_risk.category.value.lower().replace("_", " ")
    highest_id = costs.highest_cost_vehicle.vehicle_id if costs.highest_cost_vehicle else "N/A"

    return InsightsResponse(
        executive_summary=(
            f"Fleet of {fleet.total_vehicles} vehicles analyzed. Average efficiency score: "
            f"{avg_efficiency:.1f}/100. Total projected daily idle cost: "
            f"${costs.total_daily_idle_cost:.2f}. Primary concern: {concern}."
        ),
        top_risk=top_risk,
        cost_impact_explanation=(
            f"The fleet incurs an estimated ${costs.total_daily_idle_cost:.2f} daily in idle costs, "
            f"projecting to ${costs.total_monthly_projected_idle_cost:.0f} monthly and "
            f"${costs.total_risk_adjusted_annual_cost:.0f} annually when accounting for risk factors. "
            f"The highest-cost vehicle ({highest_id}) contributes disproportionately to these losses."
        ),
        recommendations=generate_recommendations(request),
        fleet_health_score=fleet_health_score,
        priority_score=priority_score,
    )
