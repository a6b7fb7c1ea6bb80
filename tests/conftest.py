"""Shared test fixtures for SmartWealth."""

import random
from decimal import Decimal

import pytest

from smartwealth.agents import FinancialAdvisorAgent, PriceSimulationAgent
from smartwealth.audit import AuditLogger
from smartwealth.config import GeminiSettings
from smartwealth.models.ledger import (
    Account,
    AccountType,
)
from smartwealth.orchestrator import LedgerService
from smartwealth.services.storage import InMemoryAuditStorage, InMemoryLedgerStorage
from smartwealth.validation import LedgerValidator


@pytest.fixture(autouse=True)
def offline_environment(monkeypatch):
    """No test may reach Gemini or Google Sheets."""
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.setenv("STORAGE_BACKEND", "memory")
    monkeypatch.setenv("SEED_DEMO_DATA", "true")


@pytest.fixture
def gemini_settings():
    return GeminiSettings(api_key=None)


@pytest.fixture
def checking():
    return Account(id="acc-1", name="Checking", type=AccountType.CHECKING, balance=Decimal("1000"))


@pytest.fixture
def cash():
    return Account(id="acc-2", name="Wallet", type=AccountType.CASH, balance=Decimal("200"))


@pytest.fixture
def ledger_storage():
    return InMemoryLedgerStorage("tester")


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def service(ledger_storage, audit_storage, gemini_settings):
    """LedgerService wired to in-memory storage and offline agents."""
    return LedgerService(
        ledger_storage,
        validator=LedgerValidator(max_amount=Decimal("100000000"), future_date_tolerance_days=7),
        advisor=FinancialAdvisorAgent(settings=gemini_settings),
        price_agent=PriceSimulationAgent(
            settings=gemini_settings,
            rng=random.Random(42),
            fallback_spread=0.05,
            retry_spread=0.03,
        ),
        audit_logger=AuditLogger(audit_storage, user_id="tester"),
    )
