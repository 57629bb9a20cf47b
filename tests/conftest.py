"""Global test fixtures - fake collaborators, no network."""
import sys
from pathlib import Path

import pytest

# Project root on the path for flat-layout imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from shared.config import ToolConfig
from shared.logging_config import AuditLogger
from approvals.models import MarketInfo, ToolContext
from approvals.state_machine import OrderStaging
from tests.fakes import NOW_MS, FakeClob, FakeClobFactory, FakeGamma, StaticCredentials


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def rain_market():
    return MarketInfo(
        id="12345",
        slug="will-it-rain-in-berlin",
        question="Will it rain in Berlin tomorrow?",
        outcomes=["Yes", "No"],
        token_ids=["tok-yes", "tok-no"],
        outcome_prices=["0.62", "0.38"],
        raw={"id": "12345", "slug": "will-it-rain-in-berlin"},
    )


@pytest.fixture
def config():
    return ToolConfig(trade_enabled=True, max_notional_usd=100.0)


@pytest.fixture
def context():
    return ToolContext(session_key="session-1")


@pytest.fixture
def credentials():
    return StaticCredentials()


@pytest.fixture
def gamma(rain_market):
    return FakeGamma([rain_market])


@pytest.fixture
def clob():
    return FakeClob()


@pytest.fixture
def clob_factory(clob):
    return FakeClobFactory(clob)


@pytest.fixture
def audit():
    return AuditLogger()


@pytest.fixture
def staging(config, credentials, gamma, clob_factory, audit):
    return OrderStaging(
        config,
        credentials,
        gamma,
        clob_factory,
        audit=audit,
        clock=lambda: NOW_MS,
    )
