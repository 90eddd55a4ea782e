"""HTTP route definitions for the referral service."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Request, status
from pydantic import BaseModel

from ..domain.account import Account
from ..domain.errors import (
    AccountConflictError,
    AccountValidationError,
    BatchAbortedError,
    LedgerStorageError,
)
from ..domain.service import ReferralService

logger = logging.getLogger(__name__)

router = APIRouter()

_STORAGE_DETAIL = "Database error"


class CreatedAccount(BaseModel):
    """Finalized account triple returned after creation."""

    id: int
    introducer_id: int | None
    beneficiary_id: int | None

    @classmethod
    def from_domain(cls, account: Account) -> "CreatedAccount":
        return cls(
            id=account.account_id,
            introducer_id=account.introducer_id,
            beneficiary_id=account.beneficiary_id,
        )


class CreateAccountResponse(CreatedAccount):
    message: str = "Account created successfully"


class BulkCreateResponse(BaseModel):
    message: str = "Accounts created"
    results: list[CreatedAccount]


class AccountListing(BaseModel):
    """Row of the account listing."""

    account_id: int
    introducer_id: int | None
    beneficiary_id: int | None

    @classmethod
    def from_domain(cls, account: Account) -> "AccountListing":
        return cls(
            account_id=account.account_id,
            introducer_id=account.introducer_id,
            beneficiary_id=account.beneficiary_id,
        )


def get_service(request: Request) -> ReferralService:
    """Resolve the `ReferralService` stored on the FastAPI application state."""
    service: ReferralService = request.app.state.referral_service
    return service


@router.get("/health", tags=["health"])
def health() -> dict[str, str]:
    """Return a minimal readiness indicator used by orchestration systems."""
    return {"status": "ok"}


@router.post("/addAccount", response_model=CreateAccountResponse)
def add_account(
    payload: Any = Body(default=None),
    service: ReferralService = Depends(get_service),
) -> CreateAccountResponse:
    """Create one account and assign its beneficiary."""
    if not isinstance(payload, dict):
        payload = {}
    try:
        account = service.create_account(payload.get("account_id"), payload.get("introducer_id"))
    except AccountValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except AccountConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except LedgerStorageError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=_STORAGE_DETAIL
        ) from exc
    return CreateAccountResponse(
        id=account.account_id,
        introducer_id=account.introducer_id,
        beneficiary_id=account.beneficiary_id,
    )


@router.post("/addAccountsBulk", response_model=BulkCreateResponse)
def add_accounts_bulk(
    payload: Any = Body(default=None),
    service: ReferralService = Depends(get_service),
) -> BulkCreateResponse:
    """Create a batch of accounts atomically, in request order."""
    items = payload if isinstance(payload, list) else []
    try:
        accounts = service.create_accounts_bulk(items)
    except AccountValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except BatchAbortedError as exc:
        detail = _STORAGE_DETAIL if isinstance(exc.cause, LedgerStorageError) else str(exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail
        ) from exc
    except LedgerStorageError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=_STORAGE_DETAIL
        ) from exc
    return BulkCreateResponse(results=[CreatedAccount.from_domain(a) for a in accounts])


@router.get("/accounts", response_model=list[AccountListing])
def list_accounts(service: ReferralService = Depends(get_service)) -> list[AccountListing]:
    """Return every account ordered by identity."""
    try:
        accounts = service.list_accounts()
    except LedgerStorageError as exc:
        logger.exception("listing accounts failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=_STORAGE_DETAIL
        ) from exc
    return [AccountListing.from_domain(account) for account in accounts]
