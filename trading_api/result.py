"""Tagged results for Trading API calls.

``attempt`` runs an operation and returns exactly one of ``Ok``,
``TimeoutFailure`` or ``ApiFailure``, so a caller can branch on the variant
instead of relying on the order of ``except`` clauses.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar, Union

from .errors import ExchangeTimeoutError, TradingApiError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class TimeoutFailure:
    """Transient failure; retry now or at the next trade cycle."""
    error: ExchangeTimeoutError


@dataclass(frozen=True)
class ApiFailure:
    """Non-transient failure; automated trading should stop."""
    error: TradingApiError


Result = Union[Ok[T], TimeoutFailure, ApiFailure]


def attempt(operation: Callable[..., T], *args: Any, **kwargs: Any) -> "Result[T]":
    """Call a Trading API operation and capture its outcome.

    Args:
        operation: A bound adapter method, e.g. ``api.get_market_orders``.
        *args: Positional arguments for the operation.
        **kwargs: Keyword arguments for the operation.

    Returns:
        Ok with the value, TimeoutFailure or ApiFailure. Any other exception
        leaking out of an adapter breaks the contract and is reported as an
        ApiFailure.
    """
    try:
        return Ok(operation(*args, **kwargs))
    except ExchangeTimeoutError as e:
        return TimeoutFailure(e)
    except TradingApiError as e:
        return ApiFailure(e)
    except Exception as e:
        name = getattr(operation, "__qualname__", repr(operation))
        logger.error(f"{name} raised {type(e).__name__} outside the Trading API error taxonomy: {str(e)}")
        error = TradingApiError(f"{name} raised unexpected {type(e).__name__}: {str(e)}")
        error.__cause__ = e
        return ApiFailure(error)


def is_ok(result: "Result[Any]") -> bool:
    return isinstance(result, Ok)


def unwrap(result: "Result[T]") -> T:
    """Return the value of an ``Ok`` or raise the error carried by a failure."""
    if isinstance(result, Ok):
        return result.value
    if isinstance(result, (TimeoutFailure, ApiFailure)):
        raise result.error
    raise TypeError(f"Not a Trading API result: {result!r}")
