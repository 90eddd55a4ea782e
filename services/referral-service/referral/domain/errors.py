"""Exceptions raised by the referral domain and its ledger implementations."""

from __future__ import annotations


class ReferralServiceError(Exception):
    """Base exception for referral service errors."""


class AccountValidationError(ReferralServiceError):
    """Raised when identities are missing or non-numeric, or a batch is empty."""


class AccountConflictError(ReferralServiceError):
    """Raised when an account with the same identity already exists."""

    def __init__(self, account_id: int) -> None:
        super().__init__(f"Account with account_id {account_id} already exists")
        self.account_id = account_id


class LedgerStorageError(ReferralServiceError):
    """Raised for any other failure talking to the ledger store."""


class BatchAbortedError(ReferralServiceError):
    """Raised when one item of a bulk creation fails and the batch is rolled back."""

    def __init__(self, index: int, cause: ReferralServiceError) -> None:
        super().__init__(f"item {index}: {cause}")
        self.index = index
        self.cause = cause
