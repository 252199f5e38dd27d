"""Trading API contract and exchange adapters for Bitstamp and paper trading."""

from .base import TradingApi
from .clients import BitstampClient, PaperMarket, PaperTradingClient
from .config import AdapterConfig
from .errors import ExchangeTimeoutError, TradingApiError
from .models import BalanceInfo, MarketOrder, MarketOrderBook, OpenOrder, OrderSide
from .orders import OrderStatus, get_order_status
from .policy import CycleOutcome, CycleReport, StrategyError, call_with_policy, run_trading_cycle
from .registry import available_adapters, create_adapter, register_adapter
from .result import ApiFailure, Ok, TimeoutFailure, attempt

__all__ = [
    "TradingApi",
    "BitstampClient",
    "PaperMarket",
    "PaperTradingClient",
    "AdapterConfig",
    "ExchangeTimeoutError",
    "TradingApiError",
    "BalanceInfo",
    "MarketOrder",
    "MarketOrderBook",
    "OpenOrder",
    "OrderSide",
    "OrderStatus",
    "get_order_status",
    "CycleOutcome",
    "CycleReport",
    "StrategyError",
    "call_with_policy",
    "run_trading_cycle",
    "available_adapters",
    "create_adapter",
    "register_adapter",
    "ApiFailure",
    "Ok",
    "TimeoutFailure",
    "attempt",
]
