from fleet_intel.schemas.config import (
    AnalyticsConfig,
    AnalyticsProfile,
    EfficiencyWeights,
    FinancialConstants,
    RiskWeights,
)
from fleet_intel.schemas.fleet import (
    FleetAnalytics,
    FleetCostEstimation,
    FleetMetrics,
    VehicleAnalytics,
    VehicleCostEstimation,
    VehicleRanking,
)
from fleet_intel.schemas.metrics import (
    BaseVehicleMetrics,
    DerivedVehicleMetrics,
    GeoLocation,
    IdleEvent,
    ScoredVehicleMetrics,
    VehicleState,
)
from fleet_intel.schemas.track import Track, TrackPoint, Vehicle

__all__ = [
    "AnalyticsConfig", "AnalyticsProfile", "EfficiencyWeights", "FinancialConstants", "RiskWeights",
    "FleetAnalytics", "FleetCostEstimation", "FleetMetrics", "VehicleAnalytics",
    "VehicleCostEstimation", "VehicleRanking",
    "BaseVehicleMetrics", "DerivedVehicleMetrics", "GeoLocation", "IdleEvent",
    "ScoredVehicleMetrics", "VehicleState",
    "Track", "TrackPoint", "Vehicle",
]
