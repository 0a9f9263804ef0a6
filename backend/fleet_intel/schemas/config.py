from pydantic import BaseModel, ConfigDict


class AnalyticsConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    # km/h - below this with ignition on is considered idle
    idle_speed_threshold_kmh: float = 2.0
    # km/h - at or above this is speeding
    speeding_threshold_kmh: float = 110.0
    # minutes - idle runs at least this long become idle events
    long_idle_threshold_minutes: float = 10.0
    # operational baseline for the distance score
    expected_km_per_hour: float = 35.0
    # score points lost per stop per km
    stop_penalty_factor: float = 50.0
    # risk points per long idle event per day
    idle_risk_factor: float = 15.0
    # configuration only; no score formula reads it
    variance_factor: float = 2.0


class EfficiencyWeights(BaseModel):
    model_config = ConfigDict(frozen=True)

    idle_ratio: float = 0.40
    utilization_rate: float = 0.30
    distance_efficiency: float = 0.20
    stop_efficiency: float = 0.10


class RiskWeights(BaseModel):
    model_config = ConfigDict(frozen=True)

    speeding_ratio: float = 0.45
    long_idle_frequency: float = 0.25
    max_speed_severity: float = 0.20
    erratic_pattern: float = 0.10


class FinancialConstants(BaseModel):
    model_config = ConfigDict(frozen=True)

    fuel_cost_per_liter: float = 1.85
    idle_consumption_liters_per_hour: float = 2.5
    speeding_insurance_multiplier: float = 1.15
    # configuration only; cost estimates do not charge per km
    operational_cost_per_km: float = 0.12
    base_insurance_cost_per_vehicle: float = 2400.0
    operating_days_per_month: float = 22
    currency_code: str = "USD"


class AnalyticsProfile(BaseModel):
    """Everything the pipeline needs to turn a track into scores and costs."""

    model_config = ConfigDict(frozen=True)

    config: AnalyticsConfig = AnalyticsConfig()
    efficiency_weights: EfficiencyWeights = EfficiencyWeights()
    risk_weights: RiskWeights = RiskWeights()
    financials: FinancialConstants = FinancialConstants()
