"""Value types exchanged across the Trading API boundary."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, Optional, Tuple


class OrderSide(Enum):
    """Side of a limit order."""
    BUY = "BUY"
    SELL = "SELL"


@dataclass(frozen=True)
class MarketOrder:
    """A single entry in a market order book."""
    side: OrderSide
    price: Decimal
    quantity: Decimal

    @property
    def total(self) -> Decimal:
        return self.price * self.quantity


@dataclass(frozen=True)
class MarketOrderBook:
    """Snapshot of the order book for one market.

    Bids are ordered by descending price and asks by ascending price, so the
    best price on each side is always first.
    """
    market_id: str
    bids: Tuple[MarketOrder, ...] = ()
    asks: Tuple[MarketOrder, ...] = ()

    def best_bid(self) -> Optional[MarketOrder]:
        return self.bids[0] if self.bids else None

    def best_ask(self) -> Optional[MarketOrder]:
        return self.asks[0] if self.asks else None


@dataclass(frozen=True)
class OpenOrder:
    """An order placed by the bot that is still resting on the exchange.

    ``quantity`` is what remains unfilled; ``original_quantity`` is what was
    requested when the order was created.
    """
    order_id: str
    creation_date: datetime
    market_id: str
    side: OrderSide
    price: Decimal
    quantity: Decimal
    original_quantity: Decimal

    @property
    def total(self) -> Decimal:
        return self.price * self.quantity

    @property
    def filled_quantity(self) -> Decimal:
        return self.original_quantity - self.quantity


@dataclass(frozen=True)
class BalanceInfo:
    """Wallet snapshot keyed by asset code (e.g. ``"BTC"``)."""
    balances_available: Dict[str, Decimal] = field(default_factory=dict)
    # Funds reserved by open orders
    balances_on_hold: Dict[str, Decimal] = field(default_factory=dict)

    def available(self, asset: str) -> Decimal:
        return self.balances_available.get(asset.upper(), Decimal("0"))

    def on_hold(self, asset: str) -> Decimal:
        return self.balances_on_hold.get(asset.upper(), Decimal("0"))
