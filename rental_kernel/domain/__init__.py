"""
Pure domain layer.

Value helpers and the clock abstraction, with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O (except SystemClock)
"""

from rental_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from rental_kernel.domain.values import (
    MONEY_DECIMAL_PLACES,
    ZERO,
    format_money,
    round_money,
    to_date,
    to_decimal,
)

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "MONEY_DECIMAL_PLACES",
    "ZERO",
    "format_money",
    "round_money",
    "to_date",
    "to_decimal",
]
