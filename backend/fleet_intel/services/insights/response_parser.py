"""Turns raw LLM output into a validated InsightsResponse."""
import json
import re
from typing import Any, List, Optional

from pydantic import ValidationError

from fleet_intel.schemas.insights import InsightsResponse

CODE_BLOCK_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")


class InsightsParseError(Exception):
    """code is INVALID_JSON or SCHEMA_ERROR."""

    def __init__(self, message: str, code: str, details: Optional[List[dict]] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details


def extract_json(raw: str) -> str:
    """Strip markdown fences and any prose around the outermost JSON object."""
    cleaned = raw.strip()

    match = CODE_BLOCK_RE.search(cleaned)
    if match:
        cleaned = match.group(1).strip()

    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start != -1 and end > start:
        cleaned = cleaned[start:end + 1]

    return cleaned


def parse_json(raw: str) -> Any:
    try:
        return json.loads(extract_json(raw))
    except json.JSONDecodeError as e:
        raise InsightsParseError(f"Failed to parse JSON: {e.msg}", "INVALID_JSON") from e


def parse_response(raw: str) -> InsightsResponse:
    data = parse_json(raw)

    try:
        return InsightsResponse.model_validate(data)
    except ValidationError as e:
        details = [
            {"field": ".".join(str(p) for p in err["loc"]) or "root", "message": err["msg"]}
            for err in e.errors()
        ]
        raise InsightsParseError(
            f"Response failed schema validation: {len(details)} error(s)", "SCHEMA_ERROR", details
        ) from e
