"""Cost model: converts idle time and risk score into money."""
from typing import Optional, Sequence

from fleet_intel.schemas.config import FinancialConstants
from fleet_intel.schemas.fleet import CostDriver, FleetCostEstimation, VehicleCostEstimation
from fleet_intel.schemas.metrics import ScoredVehicleMetrics
from fleet_intel.services.timeutils import clamp, minutes_to_hours, safe_divide

MONTHS_PER_YEAR = 12

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "CAD": "CA$",
    "AUD": "A$",
}


def calculate_daily_idle_cost(idle_minutes: float, financials: FinancialConstants) -> float:
    """Fuel burned while idling: hours x litres/hour x price/litre."""
    if idle_minutes <= 0:
        return 0.0

    liters = minutes_to_hours(idle_minutes) * financials.idle_consumption_liters_per_hour
    return liters * financials.fuel_cost_per_liter


def calculate_monthly_projected_idle_cost(daily_idle_cost: float, financials: FinancialConstants) -> float:
    return daily_idle_cost * financials.operating_days_per_month


def calculate_insurance_multiplier(risk_score: float, financials: FinancialConstants) -> float:
    """Linear from 1.0 at risk 0 to the configured multiplier at risk 100."""
    fraction = clamp(risk_score, 0, 100) / 100
    return 1 + fraction * (financials.speeding_insurance_multiplier - 1)


def calculate_speeding_risk_cost(risk_score: float, financials: FinancialConstants) -> float:
    if risk_score <= 0:
        return 0.0

    multiplier = calculate_insurance_multiplier(risk_score, financials)
    return financials.base_insurance_cost_per_vehicle * (multiplier - 1)


def calculate_annual_projected_loss(monthly_idle_cost: float, speeding_risk_cost: float) -> float:
    return monthly_idle_cost * MONTHS_PER_YEAR + speeding_risk_cost


def calculate_vehicle_costs(
    metrics: ScoredVehicleMetrics, financials: Optional[FinancialConstants] = None
) -> VehicleCostEstimation:
    """Project daily, monthly and annual losses for one vehicle. Values are unrounded."""
    financials = financials or FinancialConstants()

    daily_idle_cost = calculate_daily_idle_cost(metrics.total_idle_time_minutes, financials)
    monthly_idle_cost = calculate_monthly_projected_idle_cost(daily_idle_cost, financials)
    speeding_risk_cost = calculate_speeding_risk_cost(metrics.risk_score, financials)

    return VehicleCostEstimation(
        vehicle_id=metrics.vehicle_id,
        daily_idle_cost=daily_idle_cost,
        monthly_projected_idle_cost=monthly_idle_cost,
        speeding_risk_cost=speeding_risk_cost,
        daily_total_loss=daily_idle_cost,
        monthly_projected_loss=monthly_idle_cost,
        annual_projected_loss=calculate_annual_projected_loss(monthly_idle_cost, speeding_risk_cost),
    )


def find_highest_cost_vehicle(costs: Sequence[VehicleCostEstimation]) -> Optional[VehicleCostEstimation]:
    """Vehicle with the largest annual loss; the first one scanned wins a tie."""
    highest = None
    for cost in costs:
        if highest is None or cost.annual_projected_loss > highest.annual_projected_loss:
            highest = cost
    return highest


def calculate_fleet_costs(
    costs: Sequence[VehicleCostEstimation], period_start: str, period_end: str
) -> FleetCostEstimation:
    if not costs:
        return FleetCostEstimation(period_start=period_start, period_end=period_end)

    return FleetCostEstimation(
        period_start=period_start,
        period_end=period_end,
        total_daily_idle_cost=sum(c.daily_idle_cost for c in costs),
        total_monthly_projected_idle_cost=sum(c.monthly_projected_idle_cost for c in costs),
        total_risk_adjusted_annual_cost=sum(c.annual_projected_loss for c in costs),
        cost_by_vehicle=tuple(costs),
        highest_cost_vehicle=find_highest_cost_vehicle(costs),
    )


def calculate_fleet_costs_from_metrics(
    metrics: Sequence[ScoredVehicleMetrics],
    period_start: str,
    period_end: str,
    financials: Optional[FinancialConstants] = None,
) -> FleetCostEstimation:
    costs = [calculate_vehicle_costs(m, financials) for m in metrics]
    return calculate_fleet_costs(costs, period_start, period_end)


def calculate_cost_percentage(vehicle_cost: float, total_fleet_cost: float) -> float:
    return safe_divide(vehicle_cost, total_fleet_cost) * 100


def calculate_potential_idle_savings(current_idle_cost: float, reduction_percent: float) -> float:
    return current_idle_cost * clamp(reduction_percent, 0, 100) / 100


def calculate_potential_risk_savings(
    current_risk_score: float, target_risk_score: float, financials: Optional[FinancialConstants] = None
) -> float:
    """Insurance premium saved by bringing risk down to a target; never negative."""
    financials = financials or FinancialConstants()
    current = calculate_speeding_risk_cost(current_risk_score, financials)
    target = calculate_speeding_risk_cost(target_risk_score, financials)
    return max(0.0, current - target)


def identify_cost_driver(costs: VehicleCostEstimation) -> CostDriver:
    annual_idle = costs.monthly_projected_idle_cost * MONTHS_PER_YEAR
    idle_pct = safe_divide(annual_idle, costs.annual_projected_loss) * 100
    speeding_pct = safe_divide(costs.speeding_risk_cost, costs.annual_projected_loss) * 100

    return CostDriver(
        primary_driver="idle" if idle_pct >= speeding_pct else "speeding",
        idle_percentage=idle_pct,
        speeding_percentage=speeding_pct,
    )


def format_cost(value: float, financials: Optional[FinancialConstants] = None, decimals: int = 2) -> str:
    """Presentation helper, e.g. "$1,234.56". Calculations elsewhere stay unrounded."""
    financials = financials or FinancialConstants()
    code = financials.currency_code.upper()
    symbol = CURRENCY_SYMBOLS.get(code)

    amount = f"{abs(value):,.{decimals}f}"
    sign = "-" if value < 0 else ""
    if symbol is None:
        return f"{sign}{code} {amount}"
    return f"{sign}{symbol}{amount}"
