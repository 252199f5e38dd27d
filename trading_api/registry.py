"""Lookup table of exchange adapters keyed by exchange id.

The engine picks its adapter from configuration::

    api = create_adapter("bitstamp")                   # credentials from env
    api = create_adapter("paper", AdapterConfig("paper", options={...}))
"""

import logging
from typing import Callable, Dict, List, Optional, Type, TypeVar

from .base import TradingApi
from .config import AdapterConfig

logger = logging.getLogger(__name__)

A = TypeVar("A", bound=Type[TradingApi])

_ADAPTERS: Dict[str, Type[TradingApi]] = {}


def register_adapter(exchange_id: str) -> Callable[[A], A]:
    """Class decorator registering a TradingApi implementation under an id.

    Raises:
        ValueError: If the id is already taken by another class.
    """
    key = exchange_id.lower()

    def decorator(cls: A) -> A:
        existing = _ADAPTERS.get(key)
        if existing is not None and existing is not cls:
            raise ValueError(
                f"Exchange id '{key}' already registered to {existing.__name__}"
            )
        if not hasattr(cls, "from_config"):
            raise TypeError(f"{cls.__name__} must define a from_config() classmethod")
        _ADAPTERS[key] = cls
        logger.debug(f"Registered adapter {cls.__name__} as '{key}'")
        return cls
    return decorator


def _load_builtin_adapters() -> None:
    from . import clients  # noqa: F401


def available_adapters() -> List[str]:
    _load_builtin_adapters()
    return sorted(_ADAPTERS)


def get_adapter_class(exchange_id: str) -> Type[TradingApi]:
    """Return the adapter class registered for an exchange id.

    Raises:
        KeyError: If no adapter is registered under that id.
    """
    _load_builtin_adapters()
    try:
        return _ADAPTERS[exchange_id.lower()]
    except KeyError:
        known = ", ".join(sorted(_ADAPTERS)) or "none"
        raise KeyError(f"No adapter registered for '{exchange_id}' (known: {known})") from None


def create_adapter(exchange_id: str, config: Optional[AdapterConfig] = None) -> TradingApi:
    """Instantiate the adapter for an exchange id.

    Args:
        exchange_id: Registry id, e.g. ``"bitstamp"``.
        config: Adapter settings. Read from the environment when omitted.

    Returns:
        TradingApi: A ready-to-use adapter instance.
    """
    cls = get_adapter_class(exchange_id)
    if config is None:
        config = AdapterConfig.from_env(exchange_id)
    adapter = cls.from_config(config)  # type: ignore[attr-defined]
    logger.info(f"Created {adapter.get_impl_name()} adapter for '{exchange_id}'")
    return adapter
