"""
Pytest configuration for fleet analytics tests.

The GPS provider and LLM are replaced through FastAPI dependency overrides, so API
tests run against demo data with no network access.
"""
import os

# Must be set before fleet_intel.config is imported
os.environ.setdefault("DEMO_MODE", "true")
os.environ.setdefault("AI_API_KEY", "")

import pytest

from fleet_intel.schemas.config import AnalyticsProfile
from fleet_intel.services.analytics_service import FleetAnalyticsService
from fleet_intel.services.gps_client import DemoGPSClient
from fleet_intel.services.insights.llm_client import LLMClient


@pytest.fixture
def profile():
    return AnalyticsProfile()


@pytest.fixture
def demo_service(profile):
    return FleetAnalyticsService(DemoGPSClient(), profile, max_workers=4)


@pytest.fixture
def unconfigured_llm():
    return LLMClient(api_key="", base_url="http://llm.invalid/v1", model="test-model")


@pytest.fixture
def test_client(demo_service, unconfigured_llm):
    """Provide a test client for API tests."""
    from fastapi.testclient import TestClient

    from fleet_intel.api.deps import get_analytics_service, get_llm_client
    from fleet_intel.main import app

    app.dependency_overrides[get_analytics_service] = lambda: demo_service
    app.dependency_overrides[get_llm_client] = lambda: unconfigured_llm
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()
