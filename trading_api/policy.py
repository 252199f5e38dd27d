"""How a strategy and the engine react to each Trading API failure kind.

* ``ExchangeTimeoutError`` is transient: retry within the cycle or give up
  on this cycle and let the engine run the strategy again next time. It is
  logged as a warning.
* ``TradingApiError`` means trading is unsafe: the strategy wraps it in a
  ``StrategyError`` and the engine shuts down, reporting it as the cause.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, TypeVar

from .base import TradingApi
from .errors import ExchangeTimeoutError, TradingApiError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StrategyError(Exception):
    """Raised by a strategy when the engine should halt the bot."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class CycleOutcome(Enum):
    COMPLETED = "COMPLETED"
    DEFERRED = "DEFERRED"
    SHUTDOWN = "SHUTDOWN"


@dataclass
class CycleReport:
    outcome: CycleOutcome
    cause: Optional[BaseException] = None

    @property
    def should_shutdown(self) -> bool:
        return self.outcome is CycleOutcome.SHUTDOWN


def call_with_policy(
    operation: Callable[..., T],
    *args: Any,
    timeout_retries: int = 0,
    **kwargs: Any
) -> T:
    """Call a Trading API operation the way a strategy should.

    Args:
        operation: A bound adapter method.
        *args: Positional arguments for the operation.
        timeout_retries: How many extra attempts to make after a timeout.
        **kwargs: Keyword arguments for the operation.

    Returns:
        The operation's result.

    Raises:
        ExchangeTimeoutError: If every attempt timed out.
        StrategyError: Wrapping the TradingApiError of a failed call.
    """
    if timeout_retries < 0:
        raise ValueError("timeout_retries must be >= 0")

    name = getattr(operation, "__name__", repr(operation))
    attempts = timeout_retries + 1
    for attempt in range(1, attempts + 1):
        try:
            return operation(*args, **kwargs)
        except ExchangeTimeoutError as e:
            logger.warning(f"{name} timed out (attempt {attempt}/{attempts}): {str(e)}")
            if attempt == attempts:
                raise
        except TradingApiError as e:
            logger.error(f"{name} failed, trading is no longer safe: {str(e)}")
            raise StrategyError(f"{name} failed: {str(e)}", cause=e) from e

    # Unreachable: the loop always returns or raises
    raise AssertionError("call_with_policy exhausted attempts without a result")


def run_trading_cycle(strategy: Callable[[TradingApi], Any], api: TradingApi) -> CycleReport:
    """Run one strategy cycle and decide what the engine does next.

    Args:
        strategy: Callable executing one cycle of trading logic against ``api``.
        api: The adapter the strategy trades through.

    Returns:
        CycleReport: COMPLETED, DEFERRED after a timeout, or SHUTDOWN with the
        terminating cause.
    """
    impl = api.get_impl_name()
    try:
        strategy(api)
    except ExchangeTimeoutError as e:
        logger.warning(f"[{impl}] exchange timed out, deferring to next cycle: {str(e)}")
        return CycleReport(CycleOutcome.DEFERRED, cause=e)
    except StrategyError as e:
        cause = e.cause or e
        logger.error(f"[{impl}] strategy requested shutdown: {str(e)}")
        return CycleReport(CycleOutcome.SHUTDOWN, cause=cause)
    except TradingApiError as e:
        logger.error(f"[{impl}] unrecoverable Trading API failure, shutting down: {str(e)}")
        return CycleReport(CycleOutcome.SHUTDOWN, cause=e)
    return CycleReport(CycleOutcome.COMPLETED)
