"""Failure kinds that may cross the Trading API boundary.

Every network-touching operation of a :class:`~trading_api.base.TradingApi`
fails with exactly one of two errors:

* :class:`ExchangeTimeoutError` - the exchange could not be reached in time.
  Transient; the caller may retry now or at the next trade cycle.
* :class:`TradingApiError` - anything else (bad response, auth failure,
  rejected order, rate limiting). Continued automated trading is unsafe.
"""

import functools
import logging
from typing import Any, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


class ExchangeTimeoutError(Exception):
    """Raised when a call to the exchange timed out."""

    def __init__(
        self,
        message: str,
        exchange: Optional[str] = None,
        operation: Optional[str] = None
    ):
        super().__init__(message)
        self.exchange = exchange
        self.operation = operation


class TradingApiError(Exception):
    """Raised when a call to the exchange failed for any reason other than a timeout."""

    def __init__(
        self,
        message: str,
        exchange: Optional[str] = None,
        operation: Optional[str] = None
    ):
        super().__init__(message)
        self.exchange = exchange
        self.operation = operation


def contract_errors(operation: str) -> Callable[[F], F]:
    """Decorate an adapter operation so only the two contract errors escape it.

    ``ExchangeTimeoutError`` and ``TradingApiError`` pass through untouched.
    A builtin ``TimeoutError`` becomes ``ExchangeTimeoutError``; every other
    exception becomes ``TradingApiError``, chained to the original.

    Args:
        operation: Name of the operation, used in messages and log context.

    Returns:
        The decorator.
    """
    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            exchange = getattr(self, "exchange_name", None)
            try:
                return func(self, *args, **kwargs)
            except (ExchangeTimeoutError, TradingApiError) as e:
                if e.exchange is None:
                    e.exchange = exchange
                if e.operation is None:
                    e.operation = operation
                raise
            except TimeoutError as e:
                logger.warning(f"{exchange}: {operation} timed out: {str(e)}")
                raise ExchangeTimeoutError(
                    f"{operation} timed out: {str(e)}",
                    exchange=exchange,
                    operation=operation
                ) from e
            except Exception as e:
                raise TradingApiError(
                    f"{operation} failed: {type(e).__name__}: {str(e)}",
                    exchange=exchange,
                    operation=operation
                ) from e
        return wrapper  # type: ignore[return-value]
    return decorator
