"""Risk score: likelihood of unsafe or costly driving behaviour."""
from typing import Optional

from fleet_intel.schemas.config import AnalyticsConfig, RiskWeights
from fleet_intel.schemas.metrics import (
    DerivedVehicleMetrics,
    RiskBreakdown,
    RiskComponents,
    RiskContributions,
)
from fleet_intel.services.timeutils import clamp, safe_divide

MINUTES_PER_DAY = 1440
# km/h over the speeding threshold that maps to full severity
MAX_SPEED_SEVERITY_RANGE_KMH = 40.0


def calculate_speeding_score(metrics: DerivedVehicleMetrics) -> float:
    return clamp(metrics.aggressive_driving_ratio * 100, 0, 100)


def calculate_long_idle_frequency_score(metrics: DerivedVehicleMetrics, config: AnalyticsConfig) -> float:
    """Long idle events per day of the period, scaled by the idle risk factor."""
    days = max(1.0, metrics.total_time_minutes / MINUTES_PER_DAY)
    idles_per_day = len(metrics.long_idle_events) / days
    return clamp(min(100, idles_per_day * config.idle_risk_factor), 0, 100)


def calculate_max_speed_severity_score(metrics: DerivedVehicleMetrics, config: AnalyticsConfig) -> float:
    excess = max(0.0, metrics.max_speed_kmh - config.speeding_threshold_kmh)
    return clamp(min(100, excess / MAX_SPEED_SEVERITY_RANGE_KMH * 100), 0, 100)


def calculate_erratic_pattern_score(metrics: DerivedVehicleMetrics) -> float:
    """Max speed relative to average: 1.0 scores 0, 2.0 or more scores 100."""
    if metrics.average_speed_kmh == 0:
        return 50.0 if metrics.max_speed_kmh > 0 else 0.0

    ratio = safe_divide(metrics.max_speed_kmh, metrics.average_speed_kmh, 1.0)
    return clamp((ratio - 1) * 100, 0, 100)


def compute_risk_components(
    metrics: DerivedVehicleMetrics, config: Optional[AnalyticsConfig] = None
) -> RiskComponents:
    config = config or AnalyticsConfig()
    return RiskComponents(
        speeding_score=calculate_speeding_score(metrics),
        long_idle_frequency_score=calculate_long_idle_frequency_score(metrics, config),
        max_speed_severity_score=calculate_max_speed_severity_score(metrics, config),
        erratic_pattern_score=calculate_erratic_pattern_score(metrics),
    )


def _contributions(components: RiskComponents, weights: RiskWeights) -> RiskContributions:
    return RiskContributions(
        speeding=components.speeding_score * weights.speeding_ratio,
        long_idle_frequency=components.long_idle_frequency_score * weights.long_idle_frequency,
        max_speed_severity=components.max_speed_severity_score * weights.max_speed_severity,
        erratic_pattern=components.erratic_pattern_score * weights.erratic_pattern,
    )


def calculate_risk_score(
    metrics: DerivedVehicleMetrics,
    weights: Optional[RiskWeights] = None,
    config: Optional[AnalyticsConfig] = None,
) -> float:
    """
    Weighted composite of speeding, long idle frequency, max speed severity and
    erratic pattern scores (0-100, unrounded). Returns 0 when the period has no duration.
    """
    weights = weights or RiskWeights()

    if metrics.total_time_minutes == 0:
        return 0.0

    c = _contributions(compute_risk_components(metrics, config), weights)
    weighted = c.speeding + c.long_idle_frequency + c.max_speed_severity + c.erratic_pattern

    return clamp(weighted, 0, 100)


def get_risk_breakdown(
    metrics: DerivedVehicleMetrics,
    weights: Optional[RiskWeights] = None,
    config: Optional[AnalyticsConfig] = None,
) -> RiskBreakdown:
    weights = weights or RiskWeights()
    components = compute_risk_components(metrics, config)

    return RiskBreakdown(
        components=components,
        weights=weights,
        contributions=_contributions(components, weights),
        final_score=calculate_risk_score(metrics, weights, config),
    )


def get_risk_level(score: float) -> str:
    if score <= 20:
        return "low"
    if score <= 40:
        return "moderate"
    if score <= 60:
        return "elevated"
    if score <= 80:
        return "high"
    return "critical"


def get_primary_risk_factor(
    metrics: DerivedVehicleMetrics,
    weights: Optional[RiskWeights] = None,
    config: Optional[AnalyticsConfig] = None,
) -> str:
    """Name of the component with the largest weighted contribution; earlier factors win ties."""
    c = _contributions(compute_risk_components(metrics, config), weights or RiskWeights())
    factors = [
        ("speeding", c.speeding),
        ("long_idle_frequency", c.long_idle_frequency),
        ("max_speed_severity", c.max_speed_severity),
        ("erratic_pattern", c.erratic_pattern),
    ]

    primary, best = factors[0]
    for name, contribution in factors[1:]:
        if contribution > best:
            primary, best = name, contribution
    return primary
