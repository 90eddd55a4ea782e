from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class Account:
    """A record in the account ledger.

    ``beneficiary_id`` is ``None`` while the record is provisional and stays
    ``None`` after finalization when the referral rule yields no beneficiary.
    """

    account_id: int
    introducer_id: int | None
    beneficiary_id: int | None = None
