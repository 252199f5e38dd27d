"""Order status inferred from the open-orders set.

The exchange never pushes a terminal event. An order placed by
``create_order`` is OPEN while it is listed by ``get_your_open_orders`` and
CLOSED (filled or cancelled, indistinguishably) once it is not.
"""

import logging
from enum import Enum
from typing import Iterable, Optional

from .base import TradingApi
from .models import OpenOrder

logger = logging.getLogger(__name__)


class OrderStatus(Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


def find_open_order(open_orders: Iterable[OpenOrder], order_id: str) -> Optional[OpenOrder]:
    for order in open_orders:
        if order.order_id == order_id:
            return order
    return None


def get_order_status(api: TradingApi, market_id: str, order_id: str) -> OrderStatus:
    """Query the exchange and report whether an order is still open.

    Raises:
        ExchangeTimeoutError: If the exchange timed out.
        TradingApiError: If the call failed for any other reason.
    """
    order = find_open_order(api.get_your_open_orders(market_id), order_id)
    if order is None:
        logger.debug(f"Order {order_id} on {market_id} no longer open")
        return OrderStatus.CLOSED
    return OrderStatus.OPEN
