"""Serializes pre-computed fleet metrics into an LLM prompt."""
import json

from fleet_intel.schemas.insights import InsightsRequest, InsightsResponse

SYSTEM_PROMPT = (
    "You are a fleet operations intelligence analyst. Your task is to analyze pre-computed "
    "fleet metrics and provide actionable business insights. You always respond with valid "
    "JSON only, never with explanatory text or markdown formatting."
)

# Per-vehicle fields sent to the model; idle event details are left out
VEHICLE_FIELDS = (
    "vehicle_id",
    "total_distance_km",
    "total_idle_time_minutes",
    "total_moving_time_minutes",
    "idle_ratio",
    "aggressive_driving_ratio",
    "max_speed_kmh",
    "efficiency_score",
    "risk_score",
)


def build_prompt(request: InsightsRequest) -> str:
    payload = {
        "fleet_metrics": request.fleet_metrics.model_dump(
            exclude={"vehicles_by_efficiency", "vehicles_by_risk"}
        ),
        "fleet_costs": request.fleet_costs.model_dump(exclude={"cost_by_vehicle"}),
        "vehicles": [v.model_dump(include=set(VEHICLE_FIELDS)) for v in request.vehicle_metrics],
    }
    schema = InsightsResponse.model_json_schema()

    return "\n\n".join([
        "Analyze the following fleet data and provide actionable intelligence insights.",
        "DATA:\n" + json.dumps(payload, indent=2, default=str),
        "Respond with a single JSON object matching this JSON schema:\n" + json.dumps(schema),
    ])
