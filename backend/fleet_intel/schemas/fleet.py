from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict

from fleet_intel.schemas.metrics import ScoredVehicleMetrics


class VehicleCostEstimation(BaseModel):
    model_config = ConfigDict(frozen=True)

    vehicle_id: str
    daily_idle_cost: float
    monthly_projected_idle_cost: float
    # Additional annual premium over the baseline policy
    speeding_risk_cost: float
    daily_total_loss: float
    monthly_projected_loss: float
    annual_projected_loss: float


class CostDriver(BaseModel):
    model_config = ConfigDict(frozen=True)

    primary_driver: str  # "idle" or "speeding"
    idle_percentage: float
    speeding_percentage: float


class VehicleRanking(BaseModel):
    model_config = ConfigDict(frozen=True)

    vehicle_id: str
    vehicle_name: str
    score: float
    rank: int


class FleetMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    period_start: str
    period_end: str
    total_vehicles: int = 0
    total_distance_km: float = 0.0
    total_idle_time_minutes: float = 0.0
    total_moving_time_minutes: float = 0.0
    average_idle_ratio: float = 0.0
    average_efficiency_score: float = 0.0
    average_risk_score: float = 0.0
    vehicles_by_efficiency: Tuple[VehicleRanking, ...] = ()
    vehicles_by_risk: Tuple[VehicleRanking, ...] = ()
    top_risk_vehicles: Tuple[VehicleRanking, ...] = ()


class FleetCostEstimation(BaseModel):
    model_config = ConfigDict(frozen=True)

    period_start: str
    period_end: str
    total_daily_idle_cost: float = 0.0
    total_monthly_projected_idle_cost: float = 0.0
    total_risk_adjusted_annual_cost: float = 0.0
    cost_by_vehicle: Tuple[VehicleCostEstimation, ...] = ()
    highest_cost_vehicle: Optional[VehicleCostEstimation] = None


class VehicleAnalytics(BaseModel):
    model_config = ConfigDict(frozen=True)

    vehicle_id: str
    period_start: str
    period_end: str
    metrics: ScoredVehicleMetrics
    costs: VehicleCostEstimation


class FleetAnalytics(BaseModel):
    model_config = ConfigDict(frozen=True)

    period_start: str
    period_end: str
    fleet_metrics: FleetMetrics
    fleet_costs: FleetCostEstimation
    vehicle_metrics: Tuple[ScoredVehicleMetrics, ...] = ()


class FleetSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_vehicles: int
    average_efficiency: float
    average_risk: float
    total_daily_loss: float
    top_risk_vehicle_id: Optional[str] = None
    health_status: str
    risk_status: str
    high_risk_percentage: float
    vehicles_needing_attention: Tuple[str, ...] = ()
