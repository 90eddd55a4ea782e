"""Referral rule deciding who benefits from a newly introduced account."""

from __future__ import annotations

from .ledger import LedgerView


def assign_beneficiary(introducer_id: int, ledger: LedgerView) -> int | None:
    """Return the beneficiary for an account just inserted under ``introducer_id``.

    The referral count includes the new record, so it is at least one. Odd
    referrals benefit the introducer. Even referrals pass to the beneficiary
    of the introducer's own introducer, resolved in exactly one hop; any
    missing link yields ``None``.
    """
    referral_count = ledger.count_referrals(introducer_id)
    if referral_count % 2 == 1:
        return introducer_id

    introducer = ledger.find_account(introducer_id)
    if introducer is None or introducer.introducer_id is None:
        return None

    grand_introducer = ledger.find_account(introducer.introducer_id)
    if grand_introducer is None:
        return None
    return grand_introducer.beneficiary_id
