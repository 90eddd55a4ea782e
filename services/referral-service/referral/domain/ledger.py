"""Access contract for the account ledger.

The ledger is the single source of truth for referral counts and beneficiary
chains. Implementations translate their storage failures into
:mod:`referral.domain.errors` exceptions.
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Protocol

from .account import Account


class LedgerView(Protocol):
    """Read access needed by the referral assigner."""

    def count_referrals(self, introducer_id: int) -> int:
        """Return how many records name ``introducer_id`` as their introducer."""
        ...

    def find_account(self, account_id: int) -> Account | None:
        ...


class LedgerWriter(LedgerView, Protocol):
    """Read and write access used for one creation step sequence."""

    def insert_provisional(self, account_id: int, introducer_id: int) -> None:
        """Insert a record with no beneficiary; raise ``AccountConflictError`` on duplicates."""
        ...

    def finalize(self, account_id: int, beneficiary_id: int | None) -> None:
        ...


class AccountLedger(LedgerWriter, Protocol):
    """Full ledger: per-operation access plus an atomic unit of work."""

    def list_accounts(self) -> list[Account]:
        """Return every record ordered ascending by identity."""
        ...

    def unit_of_work(self) -> AbstractContextManager[LedgerWriter]:
        """Open a transaction; commit on clean exit, roll back on any exception."""
        ...
