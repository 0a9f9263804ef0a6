from enum import Enum
from typing import List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from fleet_intel.schemas.fleet import FleetCostEstimation, FleetMetrics
from fleet_intel.schemas.metrics import ScoredVehicleMetrics


class RiskCategory(str, Enum):
    IDLE_TIME = "IDLE_TIME"
    SPEEDING = "SPEEDING"
    INEFFICIENCY = "INEFFICIENCY"
    COST = "COST"


class RiskSeverity(str, Enum):
    LOW = "LOW"
    MODERATE = "MODERATE"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class InsightsRequest(BaseModel):
    """Pre-aggregated metrics only; raw GPS points never reach the insight layer."""

    model_config = ConfigDict(frozen=True)

    vehicle_metrics: List[ScoredVehicleMetrics] = Field(min_length=1)
    fleet_metrics: FleetMetrics
    fleet_costs: FleetCostEstimation


class TopRiskAssessment(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: RiskCategory
    severity: RiskSeverity
    description: str = Field(min_length=10, max_length=10000)
    affected_vehicles: List[str] = Field(max_length=100)


class Recommendation(BaseModel):
    model_config = ConfigDict(frozen=True)

    priority: int = Field(ge=1, le=10)
    action: str = Field(min_length=10, max_length=10000)
    expected_impact: str = Field(min_length=5, max_length=10000)
    target_vehicles: Union[List[str], Literal["ALL"]]


class InsightsResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    executive_summary: str = Field(min_length=10, max_length=500)
    top_risk: TopRiskAssessment
    cost_impact_explanation: str = Field(min_length=10, max_length=1000)
    recommendations: List[Recommendation] = Field(min_length=1, max_length=5)
    fleet_health_score: float = Field(ge=0, le=100)
    priority_score: float = Field(ge=0, le=100)


class InsightsResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    insights: InsightsResponse
    source: Literal["llm", "fallback"]
