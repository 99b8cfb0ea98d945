"""
Module: rental_engines.late_fee
Responsibility:
    Compute the late fee for an overdue schedule row under a grace period,
    a percentage or fixed rate, and an optional cap.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Callers decide when to write the fee onto a row's ``late_fee``.

Invariants enforced:
    - No fee while ``days_overdue <= grace_period_days``.
    - A cap of zero is a real cap (fee 0.00), not "no cap".
    - Result is rounded half-up to two places, once, at the end.

Failure modes:
    - InvalidLateFeePolicyError for unknown options, an unknown fee type,
      or negative values.
    - InvalidAmountError for a negative or non-numeric base amount.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

from rental_engines.tracer import traced_engine
from rental_kernel.domain.values import ZERO, round_money, to_decimal
from rental_kernel.exceptions import InvalidAmountError, InvalidLateFeePolicyError

HUNDRED = Decimal("100")


class LateFeeType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


# Option keys accepted from JSON payloads and YAML files
_OPTION_ALIASES = {
    "lateFeeType": "late_fee_type",
    "lateFeeValue": "late_fee_value",
    "gracePeriodDays": "grace_period_days",
    "maxAmount": "max_amount",
}


@dataclass(frozen=True)
class LateFeePolicy:
    """
    Late fee options.

    Contract:
        Defaults are 5 percent after a 3-day grace period, uncapped.
    Guarantees:
        - ``late_fee_value`` and ``max_amount`` are non-negative Decimals.
        - ``grace_period_days`` is a non-negative int.
    """

    late_fee_type: LateFeeType = LateFeeType.PERCENTAGE
    late_fee_value: Decimal = Decimal("5")
    grace_period_days: int = 3
    max_amount: Decimal | None = None

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "late_fee_type", LateFeeType(self.late_fee_type))
        except ValueError as e:
            raise InvalidLateFeePolicyError(
                "late_fee_type", self.late_fee_type, "must be 'percentage' or 'fixed'"
            ) from e

        object.__setattr__(
            self, "late_fee_value", self._non_negative("late_fee_value", self.late_fee_value)
        )
        if self.max_amount is not None:
            object.__setattr__(
                self, "max_amount", self._non_negative("max_amount", self.max_amount)
            )

        days = self.grace_period_days
        if isinstance(days, bool) or not isinstance(days, int) or days < 0:
            raise InvalidLateFeePolicyError(
                "grace_period_days", days, "must be a non-negative integer"
            )

    @staticmethod
    def _non_negative(name: str, value: Any) -> Decimal:
        try:
            amount = to_decimal(value)
        except ValueError as e:
            raise InvalidLateFeePolicyError(name, value, "must be a number") from e
        if amount < ZERO:
            raise InvalidLateFeePolicyError(name, value, "cannot be negative")
        return amount

    @classmethod
    def from_options(
        cls, options: LateFeePolicy | Mapping[str, Any] | None = None
    ) -> LateFeePolicy:
        """
        Build a policy from a mapping of options.

        snake_case and camelCase keys are both accepted.  A key set to None
        falls back to its default, except ``max_amount`` where None means
        uncapped.
        """
        if options is None:
            return cls()
        if isinstance(options, LateFeePolicy):
            return options

        values: dict[str, Any] = {}
        for key, value in options.items():
            name = _OPTION_ALIASES.get(key, key)
            if name not in cls.__dataclass_fields__:
                raise InvalidLateFeePolicyError(key, value, "unknown option")
            if value is None and name != "max_amount":
                continue
            values[name] = value
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        return {
            "late_fee_type": self.late_fee_type.value,
            "late_fee_value": str(self.late_fee_value),
            "grace_period_days": self.grace_period_days,
            "max_amount": str(self.max_amount) if self.max_amount is not None else None,
        }


@traced_engine(
    "late_fee", "1.0", fingerprint_fields=("days_overdue", "amount", "options")
)
def calculate_late_fee(
    days_overdue: int,
    amount: Decimal | int | float | str,
    options: LateFeePolicy | Mapping[str, Any] | None = None,
) -> Decimal:
    """
    Late fee for a row ``days_overdue`` days late with ``amount`` due.

    Example: 4 days late on 100.00 at the default 5% -> Decimal("5.00").
    """
    policy = LateFeePolicy.from_options(options)

    if days_overdue <= policy.grace_period_days:
        return round_money(ZERO)

    try:
        base = to_decimal(amount)
    except ValueError as e:
        raise InvalidAmountError(amount, "amount must be a finite number") from e
    if base < ZERO:
        raise InvalidAmountError(amount, "amount cannot be negative")

    if policy.late_fee_type == LateFeeType.PERCENTAGE:
        fee = base * policy.late_fee_value / HUNDRED
    else:
        fee = policy.late_fee_value

    if policy.max_amount is not None and fee > policy.max_amount:
        fee = policy.max_amount

    return round_money(fee)
