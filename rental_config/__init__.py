"""
rental_config -- single public entrypoint for runtime configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Services and scripts never read configuration
    files or environment variables directly.

Architecture position:
    Configuration -- sits above ``rental_kernel`` and ``rental_engines``
    and below ``rental_modules``.  The kernel MUST NEVER import from
    ``rental_config``.

Failure modes:
    - ``FileNotFoundError`` -- the selected file does not exist.
    - ``ConfigurationError`` -- malformed YAML or invalid values.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``RENTAL_CONFIG_TRACE`` log entry with the source and checksum, so a
    late fee can be tied back to the policy that produced it.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from rental_config.loader import compute_checksum, load_config, parse_config
from rental_config.schema import DatabaseConfig, RentalConfig

_logger = logging.getLogger("rental_kernel.config")

CONFIG_ENV_VAR = "RENTAL_CONFIG"


def get_active_config(path: Path | str | None = None) -> RentalConfig:
    """The ONLY public configuration entrypoint.

    Resolution order: explicit ``path``, then the ``RENTAL_CONFIG``
    environment variable, then built-in defaults.
    """
    source = path if path is not None else os.environ.get(CONFIG_ENV_VAR)
    if source:
        config = load_config(source)
        source_name = str(source)
    else:
        config = RentalConfig()
        source_name = "defaults"

    _logger.info(
        "RENTAL_CONFIG_TRACE",
        extra={
            "trace_type": "RENTAL_CONFIG_TRACE",
            "config_source": source_name,
            "checksum": compute_checksum(config),
            "late_fee_type": config.late_fee.late_fee_type.value,
            "generation_limit": config.generation_limit,
            "payment_retry_attempts": config.payment_retry_attempts,
        },
    )
    return config


__all__ = [
    "CONFIG_ENV_VAR",
    "DatabaseConfig",
    "RentalConfig",
    "compute_checksum",
    "get_active_config",
    "load_config",
    "parse_config",
]
