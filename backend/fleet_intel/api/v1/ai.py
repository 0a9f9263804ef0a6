"""AI insight endpoints."""
from fastapi import APIRouter, Depends, Query

from fleet_intel.api.deps import get_llm_client
from fleet_intel.schemas.insights import InsightsRequest, InsightsResult
from fleet_intel.services.insights import generate_insights
from fleet_intel.services.insights.llm_client import LLMClient

router = APIRouter()


@router.post("/insights", response_model=InsightsResult)
def create_insights(
    request: InsightsRequest,
    fallback: bool = Query(True, description="Use rule-based insights if the LLM fails"),
    client: LLMClient = Depends(get_llm_client),
):
    return generate_insights(request, client, use_fallback_on_error=fallback)


@router.get("/status")
def get_ai_status(client: LLMClient = Depends(get_llm_client)):
    available = client.configured
    return {
        "available": available,
        "message": (
            "AI service is configured and available"
            if available
            else "AI service is not configured. Set AI_API_KEY to enable."
        ),
    }
