from __future__ import annotations

from contextlib import contextmanager
from dataclasses import replace

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from referral.api import routes
from referral.domain.account import Account
from referral.domain.errors import AccountConflictError
from referral.domain.service import ReferralService


class FakeLedger:
    """In-memory ledger mimicking the Postgres repository, transactions included."""

    def __init__(self) -> None:
        self.rows: dict[int, Account] = {}
        self.calls: list[tuple] = []
        self.failures: dict[str, Exception] = {}

    def seed(self, account_id: int, introducer_id: int | None, beneficiary_id: int | None = None) -> None:
        self.rows[account_id] = Account(account_id, introducer_id, beneficiary_id)

    def _record(self, operation: str, *args) -> None:
        self.calls.append((operation, *args))
        failure = self.failures.get(operation)
        if failure is not None:
            raise failure

    def operations(self) -> list[str]:
        return [call[0] for call in self.calls]

    def insert_provisional(self, account_id: int, introducer_id: int) -> None:
        self._record("insert", account_id, introducer_id)
        if account_id in self.rows:
            raise AccountConflictError(account_id)
        self.rows[account_id] = Account(account_id, introducer_id, None)

    def count_referrals(self, introducer_id: int) -> int:
        self._record("count", introducer_id)
        return sum(1 for row in self.rows.values() if row.introducer_id == introducer_id)

    def find_account(self, account_id: int) -> Account | None:
        self._record("find", account_id)
        row = self.rows.get(account_id)
        return replace(row) if row else None

    def finalize(self, account_id: int, beneficiary_id: int | None) -> None:
        self._record("finalize", account_id, beneficiary_id)
        self.rows[account_id].beneficiary_id = beneficiary_id

    def list_accounts(self) -> list[Account]:
        self._record("list")
        return [replace(self.rows[key]) for key in sorted(self.rows)]

    @contextmanager
    def unit_of_work(self):
        self._record("begin")
        snapshot = {key: replace(row) for key, row in self.rows.items()}
        try:
            yield self
        except Exception:
            self.rows = snapshot
            self.calls.append(("rollback",))
            raise
        self.calls.append(("commit",))


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def service(ledger: FakeLedger) -> ReferralService:
    return ReferralService(ledger)


@pytest.fixture
def api_client(service: ReferralService, ledger: FakeLedger):
    """Provide a FastAPI test client backed by the in-memory ledger."""
    app = FastAPI()
    app.include_router(routes.router)
    app.state.referral_service = service

    with TestClient(app) as client:
        yield client, ledger
