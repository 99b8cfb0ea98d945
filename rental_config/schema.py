"""
Rental configuration schema.

Frozen dataclasses for the runtime configuration.  YAML files are parsed
into these types by ``rental_config.loader``; services receive a
``RentalConfig`` and never read files or environment variables themselves.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from rental_engines.late_fee import LateFeePolicy
from rental_engines.schedule import GENERATION_LIMIT


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection settings handed to ``init_engine_from_config``."""

    url: str = "sqlite://"
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800

    def __post_init__(self) -> None:
        if not self.url:
            raise ValueError("database.url cannot be empty")
        for name in ("pool_size", "max_overflow", "pool_timeout", "pool_recycle"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValueError(f"database.{name} must be a non-negative integer")

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "echo": self.echo,
            "pool_size": self.pool_size,
            "max_overflow": self.max_overflow,
            "pool_timeout": self.pool_timeout,
            "pool_recycle": self.pool_recycle,
        }


@dataclass(frozen=True)
class RentalConfig:
    """
    Runtime configuration of the schedule service.

    Guarantees:
        - ``generation_limit`` >= 1.
        - ``payment_retry_attempts`` >= 0; 1 means one retry after a
          concurrent modification.
    """

    late_fee: LateFeePolicy = field(default_factory=LateFeePolicy)
    generation_limit: int = GENERATION_LIMIT
    payment_retry_attempts: int = 1
    database: DatabaseConfig = field(default_factory=DatabaseConfig)

    def __post_init__(self) -> None:
        limit = self.generation_limit
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise ValueError("generation_limit must be a positive integer")
        retries = self.payment_retry_attempts
        if isinstance(retries, bool) or not isinstance(retries, int) or retries < 0:
            raise ValueError("payment_retry_attempts must be a non-negative integer")

    def to_dict(self) -> dict[str, Any]:
        return {
            "late_fee": self.late_fee.to_dict(),
            "generation_limit": self.generation_limit,
            "payment_retry_attempts": self.payment_retry_attempts,
            "database": self.database.to_dict(),
        }
