"""Account creation workflows applying the referral rule against the ledger."""

from __future__ import annotations

import logging
from typing import Any, Sequence

from .account import Account
from .assigner import assign_beneficiary
from .contracts import CreateAccountInput
from .errors import (
    AccountConflictError,
    AccountValidationError,
    BatchAbortedError,
    LedgerStorageError,
    ReferralServiceError,
)
from .ledger import AccountLedger, LedgerWriter
from .. import metrics

logger = logging.getLogger(__name__)


def _failure_reason(exc: ReferralServiceError) -> str:
    if isinstance(exc, AccountValidationError):
        return "validation"
    if isinstance(exc, AccountConflictError):
        return "conflict"
    return "storage"


def _record_created(mode: str, accounts: list[Account]) -> None:
    metrics.ACCOUNTS_CREATED.labels(mode=mode).inc(len(accounts))
    for account in accounts:
        outcome = metrics.beneficiary_outcome(account.introducer_id, account.beneficiary_id)
        metrics.BENEFICIARY_OUTCOMES.labels(outcome=outcome).inc()


class ReferralService:
    """Creation orchestrator over an injected :class:`AccountLedger`.

    Every creation runs the same ordered steps: insert the provisional record,
    compute the beneficiary against the ledger state that now includes it,
    then write the beneficiary back. A failing step stops the sequence.

    Single creations run each step as its own ledger operation, so two
    concurrent creations for one introducer can read the same referral count
    and receive the same parity outcome. Bulk creations run inside one unit
    of work, which serializes items within the batch only.
    """

    def __init__(self, ledger: AccountLedger) -> None:
        self._ledger = ledger

    def create_account(self, account_id: Any, introducer_id: Any) -> Account:
        """Validate the identities, then create and finalize one account."""
        try:
            payload = CreateAccountInput.parse(account_id, introducer_id)
            account = self._create(self._ledger, payload)
        except ReferralServiceError as exc:
            metrics.CREATION_FAILURES.labels(mode="single", reason=_failure_reason(exc)).inc()
            if isinstance(exc, AccountConflictError):
                logger.warning("account %s already exists", exc.account_id)
            elif isinstance(exc, LedgerStorageError):
                logger.exception("account %s could not be created", account_id)
            raise
        _record_created("single", [account])
        return account

    def create_accounts_bulk(self, items: Sequence[Any]) -> list[Account]:
        """Create every item in order inside one unit of work.

        Later items observe the inserts and beneficiaries of earlier ones. The
        first failing item aborts the transaction and surfaces as
        :class:`BatchAbortedError`; nothing from the batch is persisted.
        """
        if not isinstance(items, Sequence) or isinstance(items, (str, bytes)) or not items:
            raise AccountValidationError("Body must be a non-empty array")

        results: list[Account] = []
        try:
            with self._ledger.unit_of_work() as ledger:
                for index, item in enumerate(items):
                    try:
                        payload = CreateAccountInput.from_mapping(item)
                        results.append(self._create(ledger, payload))
                    except ReferralServiceError as exc:
                        raise BatchAbortedError(index, exc) from exc
        except BatchAbortedError as exc:
            metrics.CREATION_FAILURES.labels(mode="bulk", reason=_failure_reason(exc.cause)).inc()
            logger.warning("bulk creation of %d accounts rolled back: %s", len(items), exc)
            raise
        except LedgerStorageError:
            metrics.CREATION_FAILURES.labels(mode="bulk", reason="storage").inc()
            logger.exception("bulk creation of %d accounts failed to commit", len(items))
            raise

        _record_created("bulk", results)
        return results

    def list_accounts(self) -> list[Account]:
        """Return all accounts ordered by identity."""
        return self._ledger.list_accounts()

    def _create(self, ledger: LedgerWriter, payload: CreateAccountInput) -> Account:
        ledger.insert_provisional(payload.account_id, payload.introducer_id)
        beneficiary_id = assign_beneficiary(payload.introducer_id, ledger)
        ledger.finalize(payload.account_id, beneficiary_id)
        logger.info(
            "account %s finalized (introducer=%s, beneficiary=%s)",
            payload.account_id,
            payload.introducer_id,
            beneficiary_id,
        )
        return Account(
            account_id=payload.account_id,
            introducer_id=payload.introducer_id,
            beneficiary_id=beneficiary_id,
        )
