"""Prometheus counters for account creation."""

from __future__ import annotations

from prometheus_client import Counter

ACCOUNTS_CREATED = Counter(
    "referral_accounts_created_total",
    "Accounts finalized with a computed beneficiary.",
    ["mode"],
)

BENEFICIARY_OUTCOMES = Counter(
    "referral_beneficiary_outcomes_total",
    "Beneficiary assignments by outcome (introducer, upstream, none).",
    ["outcome"],
)

CREATION_FAILURES = Counter(
    "referral_creation_failures_total",
    "Failed account creation requests by reason.",
    ["mode", "reason"],
)


def beneficiary_outcome(introducer_id: int, beneficiary_id: int | None) -> str:
    if beneficiary_id is None:
        return "none"
    if beneficiary_id == introducer_id:
        return "introducer"
    return "upstream"
