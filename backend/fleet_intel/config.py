from functools import lru_cache

from pydantic_settings import BaseSettings

from fleet_intel.errors import ConfigurationError
from fleet_intel.schemas.config import (
    AnalyticsConfig,
    AnalyticsProfile,
    EfficiencyWeights,
    FinancialConstants,
    RiskWeights,
)

WEIGHT_SUM_TOLERANCE = 0.001
DEMO_GPS_KEYS = ("dev-api-key", "demo")
PLACEHOLDER_AI_KEY = "your-openai-api-key-here"


class Settings(BaseSettings):
    app_name: str = "Fleet Intelligence API"
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:5173"

    # GPS provider
    demo_mode: bool = False
    gps_api_base_url: str = "https://api.example-gps-provider.com"
    gps_api_key: str = "dev-api-key"
    gps_api_timeout_seconds: float = 10.0
    fleet_fetch_workers: int = 8

    # LLM
    ai_api_key: str = ""
    ai_api_base_url: str = "https://api.openai.com/v1"
    ai_model: str = "gpt-4o-mini"
    ai_temperature: float = 0.3
    ai_max_tokens: int = 2000
    ai_timeout_seconds: float = 30.0

    # Analytics thresholds
    idle_speed_threshold_kmh: float = 2.0
    speeding_threshold_kmh: float = 110.0
    long_idle_threshold_minutes: float = 10.0
    expected_km_per_hour: float = 35.0
    stop_penalty_factor: float = 50.0
    idle_risk_factor: float = 15.0
    # configuration only; no score formula reads it
    variance_factor: float = 2.0

    # Efficiency weights
    efficiency_weight_idle: float = 0.40
    efficiency_weight_utilization: float = 0.30
    efficiency_weight_distance: float = 0.20
    efficiency_weight_stops: float = 0.10

    # Risk weights
    risk_weight_speeding: float = 0.45
    risk_weight_long_idle: float = 0.25
    risk_weight_max_speed: float = 0.20
    risk_weight_erratic: float = 0.10

    # Financial constants
    fuel_cost_per_liter: float = 1.85
    idle_consumption_liters_per_hour: float = 2.5
    speeding_insurance_multiplier: float = 1.15
    # configuration only; cost estimates do not charge per km
    operational_cost_per_km: float = 0.12
    base_insurance_cost_per_vehicle: float = 2400.0
    operating_days_per_month: float = 22
    currency_code: str = "USD"

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def use_demo_data(self) -> bool:
        return self.demo_mode or self.gps_api_key in DEMO_GPS_KEYS

    @property
    def ai_configured(self) -> bool:
        return bool(self.ai_api_key) and self.ai_api_key != PLACEHOLDER_AI_KEY

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()


def validate_weights(weights, name: str) -> None:
    """Raise ConfigurationError unless the weight fields sum to 1.0."""
    total = sum(weights.model_dump().values())
    if abs(total - 1.0) > WEIGHT_SUM_TOLERANCE:
        raise ConfigurationError(f"{name} weights must sum to 1.0, got {total}")


def build_analytics_profile(source: Settings) -> AnalyticsProfile:
    """Assemble the analytics profile from settings, validating both weight sets."""
    efficiency_weights = EfficiencyWeights(
        idle_ratio=source.efficiency_weight_idle,
        utilization_rate=source.efficiency_weight_utilization,
        distance_efficiency=source.efficiency_weight_distance,
        stop_efficiency=source.efficiency_weight_stops,
    )
    risk_weights = RiskWeights(
        speeding_ratio=source.risk_weight_speeding,
        long_idle_frequency=source.risk_weight_long_idle,
        max_speed_severity=source.risk_weight_max_speed,
        erratic_pattern=source.risk_weight_erratic,
    )
    validate_weights(efficiency_weights, "Efficiency")
    validate_weights(risk_weights, "Risk")

    return AnalyticsProfile(
        config=AnalyticsConfig(
            idle_speed_threshold_kmh=source.idle_speed_threshold_kmh,
            speeding_threshold_kmh=source.speeding_threshold_kmh,
            long_idle_threshold_minutes=source.long_idle_threshold_minutes,
            expected_km_per_hour=source.expected_km_per_hour,
            stop_penalty_factor=source.stop_penalty_factor,
            idle_risk_factor=source.idle_risk_factor,
            variance_factor=source.variance_factor,
        ),
        efficiency_weights=efficiency_weights,
        risk_weights=risk_weights,
        financials=FinancialConstants(
            fuel_cost_per_liter=source.fuel_cost_per_liter,
            idle_consumption_liters_per_hour=source.idle_consumption_liters_per_hour,
            speeding_insurance_multiplier=source.speeding_insurance_multiplier,
            operational_cost_per_km=source.operational_cost_per_km,
            base_insurance_cost_per_vehicle=source.base_insurance_cost_per_vehicle,
            operating_days_per_month=source.operating_days_per_month,
            currency_code=source.currency_code,
        ),
    )


@lru_cache
def get_analytics_profile() -> AnalyticsProfile:
    return build_analytics_profile(settings)
