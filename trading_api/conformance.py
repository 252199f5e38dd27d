"""Checks every adapter runs on its results before handing them to a strategy.

A malformed exchange response must surface as ``TradingApiError``, never as
a half-built or mis-sorted value.
"""

from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Tuple

from .errors import TradingApiError
from .models import BalanceInfo, MarketOrder, MarketOrderBook, OpenOrder

ONE_HUNDRED = Decimal("100")


def sort_order_book_entries(
    bids: Iterable[MarketOrder],
    asks: Iterable[MarketOrder]
) -> Tuple[Tuple[MarketOrder, ...], Tuple[MarketOrder, ...]]:
    """Sort bids descending and asks ascending by price (best price first)."""
    sorted_bids = sorted(bids, key=lambda x: x.price, reverse=True)
    sorted_asks = sorted(asks, key=lambda x: x.price)
    return tuple(sorted_bids), tuple(sorted_asks)


def check_order_book(book: MarketOrderBook) -> MarketOrderBook:
    """Verify that both sides of the book are ordered best price first.

    Returns:
        The same book, for chaining.

    Raises:
        TradingApiError: If an entry is out of order or has a non-positive price.
    """
    _check_entries(book.market_id, "bid", book.bids)
    _check_entries(book.market_id, "ask", book.asks)

    for i in range(len(book.bids) - 1):
        if book.bids[i].price < book.bids[i + 1].price:
            raise TradingApiError(
                f"Bids for {book.market_id} not in descending price order at index {i}"
            )
    for i in range(len(book.asks) - 1):
        if book.asks[i].price > book.asks[i + 1].price:
            raise TradingApiError(
                f"Asks for {book.market_id} not in ascending price order at index {i}"
            )
    return book


def _check_entries(market_id: str, label: str, entries: Tuple[MarketOrder, ...]) -> None:
    for entry in entries:
        if entry.price <= 0 or entry.quantity < 0:
            raise TradingApiError(
                f"Invalid {label} entry for {market_id}: price={entry.price} quantity={entry.quantity}"
            )


def check_fee_fraction(fee: Decimal) -> Decimal:
    """Verify that a fee is a fraction in [0, 1), e.g. 0.0033 for 0.33%."""
    if not isinstance(fee, Decimal) or not fee.is_finite():
        raise TradingApiError(f"Fee must be a finite Decimal, got {fee!r}")
    if fee < 0 or fee >= 1:
        raise TradingApiError(f"Fee {fee} is not a fraction in [0, 1)")
    return fee


def percentage_to_fraction(value) -> Decimal:
    """Convert a fee quoted as a percentage (``"0.25"``) into a fraction (``0.0025``)."""
    try:
        percentage = Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise TradingApiError(f"Cannot parse fee percentage {value!r}") from e
    return check_fee_fraction(percentage / ONE_HUNDRED)


def check_open_order(order: OpenOrder) -> OpenOrder:
    """Verify that an open order is fully formed."""
    if not order.order_id:
        raise TradingApiError("Open order is missing its id")
    if order.price <= 0:
        raise TradingApiError(f"Open order {order.order_id} has non-positive price {order.price}")
    if order.quantity < 0 or order.quantity > order.original_quantity:
        raise TradingApiError(
            f"Open order {order.order_id} has remaining quantity {order.quantity} "
            f"outside [0, {order.original_quantity}]"
        )
    return order


def check_open_orders(orders: Iterable[OpenOrder]) -> List[OpenOrder]:
    return [check_open_order(order) for order in orders]


def check_balance_info(info: BalanceInfo) -> BalanceInfo:
    """Verify that no balance is negative."""
    for label, balances in (("available", info.balances_available), ("on hold", info.balances_on_hold)):
        for asset, amount in balances.items():
            if amount < 0:
                raise TradingApiError(f"Negative {label} balance for {asset}: {amount}")
    return info
