"""Domain-level request contracts shared by multiple layers."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping

from .errors import AccountValidationError

_INVALID_IDENTITIES = "account_id and introducer_id must be numbers"


def parse_identity(value: Any) -> int:
    """Coerce a raw identity to ``int`` or raise :class:`AccountValidationError`.

    Accepts integers, integral floats and ASCII numeric strings. Booleans,
    ``None``, digit separators, non-finite and fractional values are rejected.
    """
    if value is None or isinstance(value, bool):
        raise AccountValidationError(_INVALID_IDENTITIES)
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        value = value.strip()
        if not value.isascii() or "_" in value:
            raise AccountValidationError(_INVALID_IDENTITIES)
        try:
            return int(value)
        except ValueError:
            pass
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise AccountValidationError(_INVALID_IDENTITIES) from exc
    if not math.isfinite(number) or not number.is_integer():
        raise AccountValidationError(_INVALID_IDENTITIES)
    return int(number)


@dataclass(slots=True, frozen=True)
class CreateAccountInput:
    """Validated inputs required to create an account in the ledger."""

    account_id: int
    introducer_id: int

    @classmethod
    def parse(cls, account_id: Any, introducer_id: Any) -> "CreateAccountInput":
        return cls(
            account_id=parse_identity(account_id),
            introducer_id=parse_identity(introducer_id),
        )

    @classmethod
    def from_mapping(cls, item: Any) -> "CreateAccountInput":
        """Build an input from one element of a bulk request body."""
        if not isinstance(item, Mapping):
            raise AccountValidationError(
                "Invalid item: account_id and introducer_id must be numbers"
            )
        try:
            return cls.parse(item.get("account_id"), item.get("introducer_id"))
        except AccountValidationError as exc:
            raise AccountValidationError(f"Invalid item: {exc}") from exc
