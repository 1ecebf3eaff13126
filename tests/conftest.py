"""Pytest configuration and fixtures."""

import os

import pytest

from cortex.core.config import EnrichmentConfig, GatewayConfig
from cortex.core.data_gateway import FederatedDataGateway
from cortex.core.disclaimer_gate import DisclaimerGate
from cortex.core.enrichment_orchestrator import BackgroundEnrichmentOrchestrator
from cortex.core.schemas_suggestions import SuggestionResult
from tests.fakes.fake_db import FakeDB

POLICY_VERSION = "2024-10"


@pytest.fixture(scope="session", autouse=True)
def setup_test_env():
    """Set up test environment variables."""
    os.environ["SUPABASE_URL"] = "https://test.supabase.co"
    os.environ["SUPABASE_SERVICE_ROLE_KEY"] = "test-key"
    os.environ["ANTHROPIC_API_KEY"] = "test-anthropic-key"
    os.environ["CORTEX_ENV"] = "test"


async def ok_generator(kind, record):
    """Generator that succeeds immediately."""
    return SuggestionResult(
        payload={"kind": kind.value, "title": record.title},
        confidence=0.8,
        reasoning="test",
    )


@pytest.fixture
def fake_db():
    return FakeDB()


@pytest.fixture
def gate(fake_db):
    return DisclaimerGate(policy_version=POLICY_VERSION, store=fake_db)


@pytest.fixture
def orchestrator(fake_db):
    return BackgroundEnrichmentOrchestrator(
        config=EnrichmentConfig(workers=2),
        generator=ok_generator,
        records_store=fake_db,
        suggestions_store=fake_db,
        preferences_store=fake_db,
    )


@pytest.fixture
def gateway(fake_db, gate, orchestrator):
    return FederatedDataGateway(
        config=GatewayConfig(),
        gate=gate,
        orchestrator=orchestrator,
        records_store=fake_db,
        suggestions_store=fake_db,
        users_store=fake_db,
        access_log_store=fake_db,
    )
