"""
Pytest fixtures for the ledger test suite.

Provides:
- An in-memory SQLite LedgerStore per test (fresh schema every time)
- A file-backed SQLite store for tests that need real concurrent writers
- Kernel services wired to a DeterministicClock
- The standard chart of accounts, and a helper for two-line drafts

Environment Variables:
- LEDGER_TEST_DATABASE_URL: run the file-store tests against this URL
  instead (e.g. a scratch PostgreSQL database).
"""

import json
import logging
import os
from collections.abc import Callable, Generator
from datetime import date
from decimal import Decimal
from io import StringIO
from uuid import UUID, uuid4

import pytest
from sqlalchemy.orm import Session

from ledger_kernel.config import LedgerConfig
from ledger_kernel.db.engine import LedgerStore
from ledger_kernel.domain.clock import DeterministicClock
from ledger_kernel.domain.dtos import AccountView, DraftEntry, JournalLineInput
from ledger_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from ledger_kernel.services.account_service import AccountService
from ledger_kernel.services.balance_service import BalanceService
from ledger_kernel.services.currency_service import CurrencyService
from ledger_kernel.services.journal_service import JournalService
from ledger_modules.reporting.service import ReportingService
from ledger_services.facade import LedgerFacade

TEST_ACTOR_ID = uuid4()


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture ledger_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, journal_service):
            journal_service.post(entry_id, actor_id)
            logs = captured_logs()
            assert any(r["message"] == "journal_entry_posted" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("ledger_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Configuration, clock, actor
# =============================================================================


@pytest.fixture
def ledger_config() -> LedgerConfig:
    return LedgerConfig(database_url="sqlite://", retry_backoff_seconds=0.0)


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    """Fixed at 2024-01-01 12:00 UTC."""
    return DeterministicClock()


@pytest.fixture
def test_actor_id() -> UUID:
    return TEST_ACTOR_ID


# =============================================================================
# Storage
# =============================================================================


@pytest.fixture
def store(ledger_config) -> Generator[LedgerStore, None, None]:
    """In-memory SQLite store with every table created."""
    store = LedgerStore.from_url(
        ledger_config.database_url,
        max_retries=ledger_config.max_retries,
        retry_backoff_seconds=ledger_config.retry_backoff_seconds,
    )
    store.create_tables()
    yield store
    store.dispose()


@pytest.fixture
def session(store) -> Generator[Session, None, None]:
    """
    A bare session on the in-memory store.

    Services only flush, so everything a test does is rolled back on exit.
    """
    session = store.session()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def file_store(tmp_path) -> Generator[LedgerStore, None, None]:
    """
    File-backed store where each thread gets its own connection.

    Used by the concurrency tests; the generous retry budget absorbs
    SQLite's "database is locked" between competing writers.
    """
    url = os.environ.get("LEDGER_TEST_DATABASE_URL") or f"sqlite:///{tmp_path / 'ledger.db'}"
    store = LedgerStore.from_url(
        url,
        busy_timeout_seconds=10.0,
        max_retries=20,
        retry_backoff_seconds=0.01,
    )
    store.drop_tables()
    store.create_tables()
    yield store
    store.drop_tables()
    store.dispose()


# =============================================================================
# Service fixtures
# =============================================================================


@pytest.fixture
def account_service(session, ledger_config, deterministic_clock) -> AccountService:
    return AccountService(session, ledger_config, deterministic_clock)


@pytest.fixture
def currency_service(session, ledger_config, deterministic_clock) -> CurrencyService:
    return CurrencyService(session, ledger_config, deterministic_clock)


@pytest.fixture
def journal_service(
    session, ledger_config, deterministic_clock, currency_service
) -> JournalService:
    return JournalService(
        session, ledger_config, deterministic_clock, currency_service.converter()
    )


@pytest.fixture
def balance_service(session, ledger_config) -> BalanceService:
    return BalanceService(session, ledger_config.base_currency)


@pytest.fixture
def reporting_service(session, ledger_config, deterministic_clock) -> ReportingService:
    return ReportingService(session, deterministic_clock, ledger_config=ledger_config)


@pytest.fixture
def facade(store, ledger_config, deterministic_clock) -> LedgerFacade:
    return LedgerFacade(store, ledger_config, deterministic_clock)


# =============================================================================
# Data fixtures
# =============================================================================


@pytest.fixture
def standard_chart(account_service, test_actor_id) -> dict[str, AccountView]:
    """The standard chart seeded into the session, keyed by account code."""
    return {view.code: view for view in account_service.seed_standard_chart(test_actor_id)}


@pytest.fixture
def make_draft() -> Callable[..., DraftEntry]:
    """
    Build a two-line draft: debit one account, credit another.

    Usage::

        draft = make_draft(cash.id, sales.id, Decimal("1000.00"))
    """

    def _make(
        debit_account_id: UUID,
        credit_account_id: UUID,
        amount: Decimal,
        credit_amount: Decimal | None = None,
        transaction_date: date = date(2024, 1, 1),
        description: str = "Cash sale",
        currency: str | None = None,
        exchange_rate: Decimal | None = None,
        reference: str | None = None,
    ) -> DraftEntry:
        return DraftEntry(
            description=description,
            transaction_date=transaction_date,
            currency=currency,
            exchange_rate=exchange_rate,
            reference=reference,
            lines=(
                JournalLineInput(account_id=debit_account_id, debit=amount),
                JournalLineInput(
                    account_id=credit_account_id,
                    credit=amount if credit_amount is None else credit_amount,
                ),
            ),
        )

    return _make
