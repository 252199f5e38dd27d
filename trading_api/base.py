"""Abstract base class for exchange adapters."""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import List

from .errors import TradingApiError
from .models import BalanceInfo, MarketOrderBook, OpenOrder, OrderSide


class TradingApi(ABC):
    """The Trading API that trading strategies use to trade.

    Each exchange adapter provides its own implementation against the
    exchange's native API. Only limit orders traded at the spot price are
    supported; there is no margin or futures trading.

    Every network-touching method raises one of two errors and nothing else:

    * ``ExchangeTimeoutError`` if a timeout occurred talking to the exchange.
      The timeout limit is specific to each adapter. The caller may retry,
      or leave the strategy and let the engine run it again next cycle.
    * ``TradingApiError`` if the call failed for any other reason. Something
      bad has happened; the strategy should wrap it in a ``StrategyError``
      so the engine shuts the bot down before unexpected losses occur.

    Order lifecycle: an id returned by ``create_order`` is listed by
    ``get_your_open_orders`` until the order is fully filled or cancelled.
    There is no terminal-state query. Absence from the open orders is the
    only signal that an order is done (see ``trading_api.orders``).

    Instances are meant to be driven by one trade cycle at a time; callers
    must not invoke operations concurrently on the same instance unless the
    adapter says otherwise.
    """

    VERSION = "1.0"

    @staticmethod
    def get_version() -> str:
        """Return the version of the Trading API."""
        return TradingApi.VERSION

    @abstractmethod
    def get_impl_name(self) -> str:
        """Return the name of this API implementation."""
        pass

    @abstractmethod
    def get_market_orders(self, market_id: str) -> MarketOrderBook:
        """Fetch the latest order book for a market.

        Args:
            market_id: The adapter-specific id of the market.

        Returns:
            MarketOrderBook: Bids best (highest) first, asks best (lowest) first.

        Raises:
            ExchangeTimeoutError: If the exchange timed out.
            TradingApiError: If the call failed for any other reason.
        """
        pass

    @abstractmethod
    def get_your_open_orders(self, market_id: str) -> List[OpenOrder]:
        """Fetch the orders placed by the bot that are still open.

        Args:
            market_id: The adapter-specific id of the market.

        Returns:
            List[OpenOrder]: The open orders; empty if there are none.

        Raises:
            ExchangeTimeoutError: If the exchange timed out.
            TradingApiError: If the call failed for any other reason.
        """
        pass

    @abstractmethod
    def create_order(
        self,
        market_id: str,
        side: OrderSide,
        quantity: Decimal,
        price: Decimal
    ) -> str:
        """Place a limit order.

        Args:
            market_id: The adapter-specific id of the market.
            side: ``OrderSide.BUY`` or ``OrderSide.SELL``.
            quantity: Amount of units to buy or sell. Must be positive.
            price: Price per unit. Must be positive.

        Returns:
            str: The exchange-assigned id of the new order.

        Raises:
            ExchangeTimeoutError: If the exchange timed out.
            TradingApiError: If the order was rejected (insufficient funds,
                bad precision, ...) or the call failed for any other reason.
        """
        pass

    @abstractmethod
    def cancel_order(self, order_id: str) -> bool:
        """Cancel an existing order.

        Args:
            order_id: The id returned by ``create_order``.

        Returns:
            bool: True if the exchange cancelled the order, False if it could
            not (already filled, already cancelled, unknown id).

        Raises:
            ExchangeTimeoutError: If the exchange timed out.
            TradingApiError: If the call failed for any other reason.
        """
        pass

    @abstractmethod
    def get_latest_market_price(self, market_id: str) -> Decimal:
        """Fetch the last traded price for a market.

        The denomination follows the exchange's convention for the market,
        e.g. USD for BTC/USD.

        Raises:
            ExchangeTimeoutError: If the exchange timed out.
            TradingApiError: If the call failed for any other reason.
        """
        pass

    @abstractmethod
    def get_balance_info(self) -> BalanceInfo:
        """Fetch the balances of your wallets on the exchange.

        Raises:
            ExchangeTimeoutError: If the exchange timed out.
            TradingApiError: If the call failed for any other reason.
        """
        pass

    @abstractmethod
    def get_percentage_of_buy_order_taken_for_exchange_fee(self, market_id: str) -> Decimal:
        """Return the BUY order fee for a market as a fraction.

        A fee of 0.33% is returned as ``Decimal("0.0033")``.

        Raises:
            ExchangeTimeoutError: If the exchange timed out.
            TradingApiError: If the call failed for any other reason.
        """
        pass

    @abstractmethod
    def get_percentage_of_sell_order_taken_for_exchange_fee(self, market_id: str) -> Decimal:
        """Return the SELL order fee for a market as a fraction.

        A fee of 0.33% is returned as ``Decimal("0.0033")``.

        Raises:
            ExchangeTimeoutError: If the exchange timed out.
            TradingApiError: If the call failed for any other reason.
        """
        pass

    def _validate_order_request(self, side: OrderSide, quantity: Decimal, price: Decimal) -> None:
        """Reject malformed order requests before they reach the exchange."""
        if not isinstance(side, OrderSide):
            raise TradingApiError(f"Unknown order side: {side!r}")
        if not isinstance(quantity, Decimal) or not quantity.is_finite() or quantity <= 0:
            raise TradingApiError(f"Order quantity must be a positive Decimal, got {quantity!r}")
        if not isinstance(price, Decimal) or not price.is_finite() or price <= 0:
            raise TradingApiError(f"Order price must be a positive Decimal, got {price!r}")
