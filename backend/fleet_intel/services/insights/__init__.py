"""Insight generation: LLM first, rule-based fallback when allowed."""
import logging
from typing import Any, Optional

from fleet_intel.schemas.insights import InsightsRequest, InsightsResult
from fleet_intel.services.insights.fallback import generate_fallback_insights
from fleet_intel.services.insights.llm_client import LLMClient, LLMError
from fleet_intel.services.insights.prompt import build_prompt
from fleet_intel.services.insights.response_parser import InsightsParseError, parse_response

logger = logging.getLogger(__name__)

LLM_ERROR_CODES = {
    "TIMEOUT": "AI_TIMEOUT",
    "NOT_CONFIGURED": "AI_NOT_CONFIGURED",
    "EMPTY_RESPONSE": "AI_EMPTY_RESPONSE",
    "API_ERROR": "AI_API_ERROR",
    "RATE_LIMITED": "AI_API_ERROR",
}


class InsightsError(Exception):
    def __init__(self, message: str, code: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details

    @property
    def status_code(self) -> int:
        return 503 if self.code == "AI_NOT_CONFIGURED" else 502


def generate_fallback(request: InsightsRequest) -> InsightsResult:
    return InsightsResult(insights=generate_fallback_insights(request), source="fallback")


def generate_insights(
    request: InsightsRequest, client: LLMClient, use_fallback_on_error: bool = True
) -> InsightsResult:
    """
    Ask the LLM for insights about the fleet.

    When use_fallback_on_error is set, any LLM or parsing failure (including a missing
    API key) yields rule-based insights instead. Otherwise raises InsightsError.
    """
    if not client.configured:
        if use_fallback_on_error:
            logger.warning("LLM not configured, using fallback insights")
            return generate_fallback(request)
        raise InsightsError("AI API key not configured. Set AI_API_KEY in environment.", "AI_NOT_CONFIGURED")

    try:
        raw = client.complete(build_prompt(request))
        insights = parse_response(raw)
    except LLMError as e:
        logger.error("LLM error (%s): %s", e.code, e.message)
        if use_fallback_on_error:
            logger.warning("Using fallback insights due to LLM error")
            return generate_fallback(request)
        raise InsightsError(e.message, LLM_ERROR_CODES.get(e.code, "AI_API_ERROR")) from e
    except InsightsParseError as e:
        logger.error("LLM response parse error: %s", e.message)
        if use_fallback_on_error:
            logger.warning("Using fallback insights due to parse error")
            return generate_fallback(request)
        code = "AI_INVALID_RESPONSE" if e.code == "INVALID_JSON" else "AI_SCHEMA_ERROR"
        raise InsightsError(e.message, code, e.details) from e

    return InsightsResult(insights=insights, source="llm")
