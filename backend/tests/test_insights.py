import json

import pytest
import requests
from pydantic import ValidationError

from fleet_intel.schemas.insights import InsightsRequest, RiskCategory, RiskSeverity
from fleet_intel.services.cost_model import calculate_fleet_costs_from_metrics
from fleet_intel.services.fleet_aggregator import aggregate_fleet_metrics
from fleet_intel.services.insights import InsightsError, generate_insights
from fleet_intel.services.insights import llm_client
from fleet_intel.services.insights.fallback import (
    determine_primary_risk,
    generate_fallback_insights,
    generate_recommendations,
)
from fleet_intel.services.insights.llm_client import LLMClient, LLMError
from fleet_intel.services.insights.prompt import build_prompt
from fleet_intel.services.insights.response_parser import InsightsParseError, extract_json, parse_response
from tests.factories import FakeResponse, make_idle_events, make_scored, ts


def make_request(vehicles) -> InsightsRequest:
    return InsightsRequest(
        vehicle_metrics=vehicles,
        fleet_metrics=aggregate_fleet_metrics(vehicles, ts(0), ts(1440)),
        fleet_costs=calculate_fleet_costs_from_metrics(vehicles, ts(0), ts(1440)),
    )


def valid_response_json(request: InsightsRequest) -> str:
    return generate_fallback_insights(request).model_dump_json()


class FakeLLMClient(LLMClient):
    def __init__(self, reply=None, error=None):
        super().__init__(api_key="sk-test", base_url="http://llm.test/v1", model="test-model")
        self.reply = reply
        self.error = error
        self.prompts = []

    def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return self.reply


class TestPrimaryRisk:
    def test_idle_time(self):
        request = make_request([make_scored("v001", idle_ratio=0.5), make_scored("v002", idle_ratio=0.25)])
        risk = determine_primary_risk(request)

        assert risk.category == RiskCategory.IDLE_TIME
        assert risk.affected_vehicles == ["v001"]

    def test_speeding(self):
        request = make_request([
            make_scored("v001", aggressive_driving_ratio=0.3),
            make_scored("v002", aggressive_driving_ratio=0.05),
        ])
        risk = determine_primary_risk(request)

        assert risk.category == RiskCategory.SPEEDING
        assert risk.affected_vehicles == ["v001"]

    def test_inefficiency(self):
        request = make_request([make_scored("v001", efficiency_score=30), make_scored("v002", efficiency_score=60)])
        risk = determine_primary_risk(request)

        assert risk.category == RiskCategory.INEFFICIENCY
        assert risk.affected_vehicles == ["v001"]

    def test_cost(self):
        vehicles = [make_scored(f"v00{i}", total_idle_time_minutes=600) for i in range(1, 5)]
        risk = determine_primary_risk(make_request(vehicles))

        assert risk.category == RiskCategory.COST
        assert risk.affected_vehicles == ["v001", "v002", "v003"]

    def test_healthy_fleet_defaults_to_idle_time(self):
        risk = determine_primary_risk(make_request([make_scored("v001", efficiency_score=90)]))

        assert risk.category == RiskCategory.IDLE_TIME
        assert "acceptable parameters" in risk.description
        assert risk.affected_vehicles == []

    @pytest.mark.parametrize(
        "risk_score,severity",
        [(75, RiskSeverity.CRITICAL), (50, RiskSeverity.HIGH), (30, RiskSeverity.MODERATE), (29, RiskSeverity.LOW)],
    )
    def test_severity(self, risk_score, severity):
        request = make_request([make_scored("v001", risk_score=risk_score)])
        assert determine_primary_risk(request).severity == severity


class TestFallbackInsights:
    def test_scores(self):
        insights = generate_fallback_insights(make_request([make_scored("v001", efficiency_score=50, risk_score=20)]))

        # 50 * 0.6 + 80 * 0.4
        assert insights.fleet_health_score == 62
        # 20 * 0.4 + 10 + 50 * 0.3
        assert insights.priority_score == 33

    def test_cost_pressure_raises_priority(self):
        insights = generate_fallback_insights(make_request([
            make_scored("v001", efficiency_score=50, risk_score=20, total_idle_time_minutes=600),
        ]))
        assert insights.priority_score == 53

    def test_recommendations_in_priority_order(self):
        vehicles = [make_scored("v001", idle_ratio=0.4, efficiency_score=70), make_scored("v002", idle_ratio=0.3, efficiency_score=20)]
        recommendations = generate_recommendations(make_request(vehicles))

        assert [r.priority for r in recommendations] == [1, 2, 3, 4]
        assert recommendations[1].target_vehicles == "ALL"
        assert recommendations[2].target_vehicles == ["v002", "v001"]

    def test_no_fleet_idle_program_for_low_idle(self):
        recommendations = generate_recommendations(make_request([make_scored("v001", idle_ratio=0.1)]))
        assert [r.priority for r in recommendations] == [1, 3, 4]

    def test_summary_mentions_primary_concern(self):
        insights = generate_fallback_insights(make_request([make_scored("v001", idle_ratio=0.6)]))
        assert "Primary concern: idle time." in insights.executive_summary


class TestResponseParser:
    def test_strips_code_fences(self):
        assert extract_json('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_strips_surrounding_prose(self):
        assert extract_json('Here you go: {"a": 1} hope it helps') == '{"a": 1}'

    def test_parses_valid_response(self):
        request = make_request([make_scored("v001", idle_ratio=0.5)])
        raw = valid_response_json(request)

        parsed = parse_response(f"```json\n{raw}\n```")
        assert parsed == generate_fallback_insights(request)

    def test_invalid_json(self):
        with pytest.raises(InsightsParseError) as exc_info:
            parse_response("I cannot help with that")
        assert exc_info.value.code == "INVALID_JSON"

    def test_schema_error_lists_fields(self):
        with pytest.raises(InsightsParseError) as exc_info:
            parse_response('{"executive_summary": "too short"}')

        error = exc_info.value
        assert error.code == "SCHEMA_ERROR"
        fields = {d["field"] for d in error.details}
        assert "top_risk" in fields
        assert "recommendations" in fields

    def test_out_of_range_score_is_rejected(self):
        request = make_request([make_scored("v001")])
        data = json.loads(valid_response_json(request))
        data["fleet_health_score"] = 140

        with pytest.raises(InsightsParseError) as exc_info:
            parse_response(json.dumps(data))
        assert exc_info.value.details[0]["field"] == "fleet_health_score"


class TestPrompt:
    def test_prompt_carries_aggregates_only(self):
        request = make_request([make_scored("v001", long_idle_events=make_idle_events(2))])
        prompt = build_prompt(request)

        assert '"vehicle_id": "v001"' in prompt
        assert "long_idle_events" not in prompt.split("Respond with")[0]
        assert "executive_summary" in prompt

    def test_request_needs_vehicle_metrics(self):
        complete = make_request([make_scored("v001")])
        with pytest.raises(ValidationError):
            InsightsRequest(vehicle_metrics=[], fleet_metrics=complete.fleet_metrics, fleet_costs=complete.fleet_costs)

    def test_request_needs_fleet_costs(self):
        complete = make_request([make_scored("v001")])
        with pytest.raises(ValidationError):
            InsightsRequest(vehicle_metrics=complete.vehicle_metrics, fleet_metrics=complete.fleet_metrics)


class TestGenerateInsights:
    def test_unconfigured_client_uses_fallback(self, unconfigured_llm):
        result = generate_insights(make_request([make_scored("v001")]), unconfigured_llm)
        assert result.source == "fallback"

    def test_unconfigured_client_without_fallback(self, unconfigured_llm):
        with pytest.raises(InsightsError) as exc_info:
            generate_insights(make_request([make_scored("v001")]), unconfigured_llm, use_fallback_on_error=False)

        assert exc_info.value.code == "AI_NOT_CONFIGURED"
        assert exc_info.value.status_code == 503

    def test_llm_response(self):
        request = make_request([make_scored("v001", idle_ratio=0.5)])
        client = FakeLLMClient(reply=valid_response_json(request))
        result = generate_insights(request, client)

        assert result.source == "llm"
        assert len(client.prompts) == 1

    def test_unparseable_reply_falls_back(self):
        result = generate_insights(make_request([make_scored("v001")]), FakeLLMClient(reply="nope"))
        assert result.source == "fallback"

    def test_unparseable_reply_without_fallback(self):
        with pytest.raises(InsightsError) as exc_info:
            generate_insights(make_request([make_scored("v001")]), FakeLLMClient(reply="nope"), use_fallback_on_error=False)

        assert exc_info.value.code == "AI_INVALID_RESPONSE"
        assert exc_info.value.status_code == 502

    def test_schema_mismatch_without_fallback(self):
        client = FakeLLMClient(reply='{"executive_summary": "x"}')
        with pytest.raises(InsightsError) as exc_info:
            generate_insights(make_request([make_scored("v001")]), client, use_fallback_on_error=False)
        assert exc_info.value.code == "AI_SCHEMA_ERROR"

    @pytest.mark.parametrize(
        "llm_code,code",
        [("TIMEOUT", "AI_TIMEOUT"), ("RATE_LIMITED", "AI_API_ERROR"), ("EMPTY_RESPONSE", "AI_EMPTY_RESPONSE")],
    )
    def test_llm_error_codes(self, llm_code, code):
        client = FakeLLMClient(error=LLMError("failed", llm_code))
        with pytest.raises(InsightsError) as exc_info:
            generate_insights(make_request([make_scored("v001")]), client, use_fallback_on_error=False)
        assert exc_info.value.code == code

    def test_llm_error_falls_back(self):
        client = FakeLLMClient(error=LLMError("failed", "API_ERROR"))
        assert generate_insights(make_request([make_scored("v001")]), client).source == "fallback"


class TestLLMClient:
    def make_client(self) -> LLMClient:
        return LLMClient(api_key="sk-test", base_url="http://llm.test/v1/", model="test-model", timeout=5)

    def test_returns_message_content(self, monkeypatch):
        calls = []

        def fake_post(url, json=None, headers=None, timeout=None):
            calls.append((url, json, headers, timeout))
            return FakeResponse({"choices": [{"message": {"content": '{"ok": true}'}}], "usage": {"total_tokens": 12}})

        monkeypatch.setattr(llm_client.requests, "post", fake_post)
        assert self.make_client().complete("prompt") == '{"ok": true}'

        url, body, headers, timeout = calls[0]
        assert url == "http://llm.test/v1/chat/completions"
        assert body["model"] == "test-model"
        assert body["messages"][1]["content"] == "prompt"
        assert headers["Authorization"] == "Bearer sk-test"
        assert timeout == 5

    def test_not_configured(self, unconfigured_llm):
        with pytest.raises(LLMError) as exc_info:
            unconfigured_llm.complete("prompt")
        assert exc_info.value.code == "NOT_CONFIGURED"

    def test_timeout(self, monkeypatch):
        def fake_post(*args, **kwargs):
            raise requests.Timeout("slow")

        monkeypatch.setattr(llm_client.requests, "post", fake_post)
        with pytest.raises(LLMError) as exc_info:
            self.make_client().complete("prompt")
        assert exc_info.value.code == "TIMEOUT"

    def test_rate_limited(self, monkeypatch):
        monkeypatch.setattr(
            llm_client.requests, "post", lambda *a, **kw: FakeResponse(status_code=429, reason="Too Many Requests")
        )
        with pytest.raises(LLMError) as exc_info:
            self.make_client().complete("prompt")
        assert exc_info.value.code == "RATE_LIMITED"
        assert exc_info.value.status_code == 429

    def test_api_error_uses_provider_message(self, monkeypatch):
        payload = {"error": {"message": "model overloaded"}}
        monkeypatch.setattr(
            llm_client.requests, "post", lambda *a, **kw: FakeResponse(payload, status_code=500, reason="Server Error")
        )
        with pytest.raises(LLMError) as exc_info:
            self.make_client().complete("prompt")
        assert exc_info.value.code == "API_ERROR"
        assert "model overloaded" in exc_info.value.message

    def test_empty_reply(self, monkeypatch):
        monkeypatch.setattr(
            llm_client.requests, "post", lambda *a, **kw: FakeResponse({"choices": [{"message": {"content": "  "}}]})
        )
        with pytest.raises(LLMError) as exc_info:
            self.make_client().complete("prompt")
        assert exc_info.value.code == "EMPTY_RESPONSE"

    @pytest.mark.parametrize(
        "payload",
        [[], {"choices": [None]}, {"choices": {"message": "hi"}}, {"choices": [{"message": "hi"}]},
         {"choices": [{"message": {"content": {"text": "hi"}}}]}],
    )
    def test_unexpected_body_is_api_error(self, monkeypatch, payload):
        monkeypatch.setattr(llm_client.requests, "post", lambda *a, **kw: FakeResponse(payload))
        with pytest.raises(LLMError) as exc_info:
            self.make_client().complete("prompt")
        assert exc_info.value.code == "API_ERROR"

    @pytest.mark.parametrize("payload", [{}, {"choices": []}, {"choices": [{}]}])
    def test_missing_content_is_empty_response(self, monkeypatch, payload):
        monkeypatch.setattr(llm_client.requests, "post", lambda *a, **kw: FakeResponse(payload))
        with pytest.raises(LLMError) as exc_info:
            self.make_client().complete("prompt")
        assert exc_info.value.code == "EMPTY_RESPONSE"

    def test_unexpected_body_falls_back(self, monkeypatch):
        monkeypatch.setattr(llm_client.requests, "post", lambda *a, **kw: FakeResponse({"choices": [None]}))
        result = generate_insights(make_request([make_scored("v001")]), self.make_client())
        assert result.source == "fallback"
