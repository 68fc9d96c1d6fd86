"""Gateway settings read from the environment."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)


def _int_env(name: str, default: int, lower: int, upper: int) -> int:
    """Read an integer variable, clamped to [lower, upper].

    Non-integer values fall back to ``default`` with a warning.
    """
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Invalid {name} '{raw}', using {default}")
        return default
    return max(lower, min(upper, value))


@dataclass(frozen=True)
class GatewaySettings:
    """Runtime settings shared by the registry and the gateway.

    Environment Variables:
        SQLGATE_POOL_SIZE: Per-session pool max size (default: 5, range: 1-20)
        SQLGATE_CONNECT_TIMEOUT: Pool creation timeout in seconds
            (default: 10, range: 1-300)
        SQLGATE_DEFAULT_PAGE_SIZE: Default row limit for table reads
            (default: 50, range: 1-100)
    """

    pool_size: int = 5
    connect_timeout: int = 10
    default_page_size: int = 50

    @classmethod
    def from_env(cls) -> GatewaySettings:
        return cls(
            pool_size=_int_env("SQLGATE_POOL_SIZE", 5, 1, 20),
            connect_timeout=_int_env("SQLGATE_CONNECT_TIMEOUT", 10, 1, 300),
            default_page_size=_int_env("SQLGATE_DEFAULT_PAGE_SIZE", 50, 1, 100),
        )
