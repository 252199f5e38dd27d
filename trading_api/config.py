"""Adapter configuration."""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_RATE_LIMIT_DELAY = 0.1


@dataclass
class AdapterConfig:
    """Settings handed to an adapter when the engine creates it.

    ``credentials`` holds exchange-specific secrets (``api_key``,
    ``api_secret``, ``client_id``); ``options`` holds any other
    adapter-specific setting.
    """
    exchange_id: str
    credentials: Dict[str, str] = field(default_factory=dict)
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    rate_limit_delay: float = DEFAULT_RATE_LIMIT_DELAY
    options: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_env(cls, exchange_id: str, **options: Any) -> "AdapterConfig":
        """Build a config from ``<EXCHANGE_ID>_*`` environment variables.

        Reads ``_API_KEY``, ``_API_SECRET``, ``_CLIENT_ID``,
        ``_TIMEOUT_SECONDS`` and ``_RATE_LIMIT_DELAY``. Unset credentials are
        left out; unset numbers fall back to the defaults.

        Args:
            exchange_id: Registry id of the exchange, e.g. ``"bitstamp"``.
            **options: Extra adapter-specific options.
        """
        prefix = exchange_id.upper()

        credentials = {}
        for key in ("api_key", "api_secret", "client_id"):
            value = os.getenv(f"{prefix}_{key.upper()}")
            if value:
                credentials[key] = value

        return cls(
            exchange_id=exchange_id.lower(),
            credentials=credentials,
            timeout_seconds=_float_env(f"{prefix}_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS),
            rate_limit_delay=_float_env(f"{prefix}_RATE_LIMIT_DELAY", DEFAULT_RATE_LIMIT_DELAY),
            options=dict(options),
        )


def _float_env(name: str, default: float) -> float:
    raw: Optional[str] = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"Environment variable {name} must be a number, got {raw!r}") from e
