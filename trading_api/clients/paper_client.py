"""In-memory simulated spot exchange implementing the Trading API."""

import itertools
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from ..base import TradingApi
from ..config import AdapterConfig
from ..conformance import (
    check_balance_info,
    check_fee_fraction,
    check_open_orders,
    check_order_book,
    sort_order_book_entries,
)
from ..errors import ExchangeTimeoutError, TradingApiError, contract_errors
from ..models import BalanceInfo, MarketOrder, MarketOrderBook, OpenOrder, OrderSide
from ..registry import register_adapter

logger = logging.getLogger(__name__)


@dataclass
class PaperMarket:
    """A market on the paper exchange.

    ``bids`` and ``asks`` are ``(price, quantity)`` pairs in any order; the
    exchange sorts them when a book is requested. Quantities are in the base
    asset and prices in the quote asset per base unit.
    """
    market_id: str
    base: str
    quote: str
    last_price: Decimal
    bids: List[Tuple[Decimal, Decimal]] = field(default_factory=list)
    asks: List[Tuple[Decimal, Decimal]] = field(default_factory=list)
    buy_fee: Decimal = Decimal("0.0025")
    sell_fee: Decimal = Decimal("0.0025")


@dataclass
class _PaperOrder:
    order_id: str
    market_id: str
    side: OrderSide
    price: Decimal
    original_quantity: Decimal
    remaining: Decimal
    created: datetime


@register_adapter("paper")
class PaperTradingClient(TradingApi):
    """Simulated exchange for dry runs and adapter conformance tests.

    Orders rest until ``fill_order`` or ``cancel_order`` is called. Creating
    an order moves funds from available to on hold (quote asset for BUY,
    base asset for SELL); fills settle them, cancellation releases them.
    New orders are listed by ``get_your_open_orders`` immediately.

    ``inject_timeout`` and ``inject_api_failure`` make the next call fail, to
    exercise a caller's error handling. Not thread-safe.
    """

    def __init__(
        self,
        markets: Optional[Iterable[PaperMarket]] = None,
        balances: Optional[Dict[str, Decimal]] = None,
        name: str = "Paper Trading"
    ):
        """Initialize the paper exchange.

        Args:
            markets: Markets that can be traded.
            balances: Starting available balances keyed by asset code.
            name: Implementation name reported by ``get_impl_name``.
        """
        self.exchange_name = "paper"
        self.name = name
        # Copied so fills never touch the caller's market objects
        self.markets: Dict[str, PaperMarket] = {
            m.market_id: replace(m, bids=list(m.bids), asks=list(m.asks)) for m in (markets or [])
        }
        self.available: Dict[str, Decimal] = {k.upper(): Decimal(v) for k, v in (balances or {}).items()}
        self.on_hold: Dict[str, Decimal] = {}
        self._orders: Dict[str, _PaperOrder] = {}
        self._ids = itertools.count(1)
        self._pending_failure: Optional[Exception] = None

    @classmethod
    def from_config(cls, config: AdapterConfig) -> "PaperTradingClient":
        """Build a paper exchange from ``config.options``.

        Recognised options: ``markets`` (list of PaperMarket or dicts of its
        fields), ``balances`` (asset -> amount) and ``name``.
        """
        markets = []
        for market in config.options.get("markets", []):
            if isinstance(market, PaperMarket):
                markets.append(market)
            else:
                markets.append(_market_from_dict(market))
        return cls(
            markets=markets,
            balances=config.options.get("balances"),
            name=config.options.get("name", "Paper Trading"),
        )

    def inject_timeout(self, message: str = "Simulated exchange timeout") -> None:
        self._pending_failure = ExchangeTimeoutError(message)

    def inject_api_failure(self, message: str = "Simulated malformed exchange response") -> None:
        self._pending_failure = TradingApiError(message)

    def _raise_pending_failure(self) -> None:
        if self._pending_failure is not None:
            failure, self._pending_failure = self._pending_failure, None
            raise failure

    def _market(self, market_id: str) -> PaperMarket:
        market = self.markets.get(market_id)
        if market is None:
            raise TradingApiError(f"Unknown market: {market_id}")
        return market

    def get_impl_name(self) -> str:
        return self.name

    @contract_errors("get_market_orders")
    def get_market_orders(self, market_id: str) -> MarketOrderBook:
        self._raise_pending_failure()
        market = self._market(market_id)
        bids, asks = sort_order_book_entries(
            (MarketOrder(OrderSide.BUY, Decimal(p), Decimal(q)) for p, q in market.bids),
            (MarketOrder(OrderSide.SELL, Decimal(p), Decimal(q)) for p, q in market.asks),
        )
        return check_order_book(MarketOrderBook(market_id=market_id, bids=bids, asks=asks))

    @contract_errors("get_your_open_orders")
    def get_your_open_orders(self, market_id: str) -> List[OpenOrder]:
        self._raise_pending_failure()
        self._market(market_id)
        return check_open_orders(
            OpenOrder(
                order_id=order.order_id,
                creation_date=order.created,
                market_id=order.market_id,
                side=order.side,
                price=order.price,
                quantity=order.remaining,
                original_quantity=order.original_quantity,
            )
            for order in self._orders.values()
            if order.market_id == market_id
        )

    @contract_errors("create_order")
    def create_order(
        self,
        market_id: str,
        side: OrderSide,
        quantity: Decimal,
        price: Decimal
    ) -> str:
        self._raise_pending_failure()
        self._validate_order_request(side, quantity, price)
        market = self._market(market_id)

        asset, amount = self._reservation(market, side, quantity, price)
        if self.available.get(asset, Decimal("0")) < amount:
            raise TradingApiError(
                f"Insufficient {asset} balance to {side.value} {quantity} {market.base} at {price}: "
                f"need {amount}, have {self.available.get(asset, Decimal('0'))}"
            )
        self._move(self.available, self.on_hold, asset, amount)

        order_id = str(next(self._ids))
        self._orders[order_id] = _PaperOrder(
            order_id=order_id,
            market_id=market_id,
            side=side,
            price=price,
            original_quantity=quantity,
            remaining=quantity,
            created=datetime.now(timezone.utc),
        )
        logger.info(f"Paper order {order_id} placed: {side.value} {quantity} {market_id} @ {price}")
        return order_id

    @contract_errors("cancel_order")
    def cancel_order(self, order_id: str) -> bool:
        self._raise_pending_failure()
        order = self._orders.pop(order_id, None)
        if order is None:
            logger.info(f"Paper order {order_id} not open, nothing to cancel")
            return False
        market = self._market(order.market_id)
        asset, amount = self._reservation(market, order.side, order.remaining, order.price)
        self._move(self.on_hold, self.available, asset, amount)
        logger.info(f"Paper order {order_id} cancelled")
        return True

    @contract_errors("get_latest_market_price")
    def get_latest_market_price(self, market_id: str) -> Decimal:
        self._raise_pending_failure()
        return self._market(market_id).last_price

    @contract_errors("get_balance_info")
    def get_balance_info(self) -> BalanceInfo:
        self._raise_pending_failure()
        return check_balance_info(BalanceInfo(
            balances_available=dict(self.available),
            balances_on_hold={k: v for k, v in self.on_hold.items() if v != 0},
        ))

    @contract_errors("get_percentage_of_buy_order_taken_for_exchange_fee")
    def get_percentage_of_buy_order_taken_for_exchange_fee(self, market_id: str) -> Decimal:
        self._raise_pending_failure()
        return check_fee_fraction(self._market(market_id).buy_fee)

    @contract_errors("get_percentage_of_sell_order_taken_for_exchange_fee")
    def get_percentage_of_sell_order_taken_for_exchange_fee(self, market_id: str) -> Decimal:
        self._raise_pending_failure()
        return check_fee_fraction(self._market(market_id).sell_fee)

    def fill_order(self, order_id: str, quantity: Optional[Decimal] = None) -> None:
        """Simulate the exchange matching some or all of an open order.

        Args:
            order_id: Id of an open order.
            quantity: Amount filled; the whole remaining amount when omitted.

        Raises:
            KeyError: If the order is not open.
            ValueError: If the quantity is not in (0, remaining].
        """
        order = self._orders[order_id]
        quantity = order.remaining if quantity is None else quantity
        if quantity <= 0 or quantity > order.remaining:
            raise ValueError(f"Fill quantity {quantity} outside (0, {order.remaining}]")

        market = self._market(order.market_id)
        asset, reserved = self._reservation(market, order.side, quantity, order.price)
        self.on_hold[asset] = self.on_hold.get(asset, Decimal("0")) - reserved

        if order.side is OrderSide.BUY:
            received = quantity * (1 - market.buy_fee)
            self._credit(market.base, received)
        else:
            received = quantity * order.price * (1 - market.sell_fee)
            self._credit(market.quote, received)

        order.remaining -= quantity
        market.last_price = order.price
        if order.remaining == 0:
            del self._orders[order_id]
            logger.info(f"Paper order {order_id} fully filled")
        else:
            logger.info(f"Paper order {order_id} partially filled, {order.remaining} remaining")

    @staticmethod
    def _reservation(
        market: PaperMarket,
        side: OrderSide,
        quantity: Decimal,
        price: Decimal
    ) -> Tuple[str, Decimal]:
        if side is OrderSide.BUY:
            return market.quote.upper(), quantity * price
        return market.base.upper(), quantity

    def _credit(self, asset: str, amount: Decimal) -> None:
        asset = asset.upper()
        self.available[asset] = self.available.get(asset, Decimal("0")) + amount

    @staticmethod
    def _move(source: Dict[str, Decimal], target: Dict[str, Decimal], asset: str, amount: Decimal) -> None:
        source[asset] = source.get(asset, Decimal("0")) - amount
        target[asset] = target.get(asset, Decimal("0")) + amount


def _market_from_dict(data: dict) -> PaperMarket:
    try:
        return PaperMarket(
            market_id=data["market_id"],
            base=data["base"],
            quote=data["quote"],
            last_price=Decimal(str(data["last_price"])),
            bids=[(Decimal(str(p)), Decimal(str(q))) for p, q in data.get("bids", [])],
            asks=[(Decimal(str(p)), Decimal(str(q))) for p, q in data.get("asks", [])],
            buy_fee=Decimal(str(data.get("buy_fee", "0.0025"))),
            sell_fee=Decimal(str(data.get("sell_fee", "0.0025"))),
        )
    except KeyError as e:
        raise ValueError(f"Paper market config missing field {e}") from e
