from enum import Enum
from typing import Tuple

from pydantic import BaseModel, ConfigDict

from fleet_intel.schemas.config import EfficiencyWeights, RiskWeights


class VehicleState(str, Enum):
    MOVING = "moving"
    IDLE = "idle"
    OFF = "off"


class GeoLocation(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float
    lng: float


class IdleEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    start_time: str
    end_time: str
    duration_minutes: float
    location: GeoLocation


class BaseVehicleMetrics(BaseModel):
    """Operational totals for one vehicle over one period."""

    model_config = ConfigDict(frozen=True)

    vehicle_id: str
    period_start: str
    period_end: str
    total_distance_km: float = 0.0
    total_moving_time_minutes: float = 0.0
    total_idle_time_minutes: float = 0.0
    total_time_minutes: float = 0.0
    average_speed_kmh: float = 0.0
    max_speed_kmh: float = 0.0
    number_of_stops: int = 0
    long_idle_events: Tuple[IdleEvent, ...] = ()
    total_points_analyzed: int = 0


class DerivedVehicleMetrics(BaseVehicleMetrics):
    """Base metrics plus track-derived ratios. Carries no scores."""

    idle_ratio: float = 0.0
    aggressive_driving_ratio: float = 0.0
    time_over_speed_threshold_minutes: float = 0.0
    # Diagnostics; not used by any score formula
    speeding_segment_count: int = 0
    max_speeding_speed_kmh: float = 0.0


class ScoredVehicleMetrics(DerivedVehicleMetrics):
    efficiency_score: float
    risk_score: float


class SpeedingAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    time_over_threshold_minutes: float = 0.0
    speeding_segment_count: int = 0
    max_speeding_speed_kmh: float = 0.0


class BehavioralFlags(BaseModel):
    model_config = ConfigDict(frozen=True)

    excessive_idling: bool
    aggressive_driving: bool
    has_long_idle_events: bool
    low_utilization: bool


class EfficiencyComponents(BaseModel):
    model_config = ConfigDict(frozen=True)

    idle_score: float
    utilization_score: float
    distance_score: float
    stop_score: float


class EfficiencyContributions(BaseModel):
    model_config = ConfigDict(frozen=True)

    idle: float
    utilization: float
    distance: float
    stops: float


class EfficiencyBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    components: EfficiencyComponents
    weights: EfficiencyWeights
    contributions: EfficiencyContributions
    final_score: float


class RiskComponents(BaseModel):
    model_config = ConfigDict(frozen=True)

    speeding_score: float
    long_idle_frequency_score: float
    max_speed_severity_score: float
    erratic_pattern_score: float


class RiskContributions(BaseModel):
    model_config = ConfigDict(frozen=True)

    speeding: float
    long_idle_frequency: float
    max_speed_severity: float
    erratic_pattern: float


class RiskBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    components: RiskComponents
    weights: RiskWeights
    contributions: RiskContributions
    final_score: float
