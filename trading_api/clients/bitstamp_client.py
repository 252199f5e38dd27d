"""Bitstamp exchange adapter implementing the Trading API over REST."""

import hashlib
import hmac
import logging
import os
import time
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

import requests

from ..base import TradingApi
from ..config import AdapterConfig
from ..conformance import (
    check_balance_info,
    check_open_orders,
    check_order_book,
    percentage_to_fraction,
    sort_order_book_entries,
)
from ..errors import ExchangeTimeoutError, TradingApiError, contract_errors
from ..models import BalanceInfo, MarketOrder, MarketOrderBook, OpenOrder, OrderSide
from ..registry import register_adapter
from ..utils.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

# Gateway and Cloudflare errors seen while Bitstamp is briefly unreachable
TIMEOUT_STATUS_CODES = frozenset({502, 503, 504, 520, 521, 522, 523, 524, 525})

ORDER_TYPES = {
    "0": OrderSide.BUY,
    "1": OrderSide.SELL,
}


@register_adapter("bitstamp")
class BitstampClient(TradingApi):
    """Client for trading on Bitstamp via its v2 REST API.

    Market ids are Bitstamp currency pairs such as ``"btcusd"``. Quantities
    are in the base currency (BTC) and prices in the quote currency (USD).

    Each operation makes exactly one HTTP request bounded by ``timeout``
    seconds (default: 30); nothing is retried internally. Connection
    failures, request timeouts and gateway errors (HTTP 502-504, 520-525)
    raise ``ExchangeTimeoutError``; every other failure, HTTP 429 included,
    raises ``TradingApiError``.

    An order returned by ``create_order`` is listed by ``open_orders`` as
    soon as the call returns. ``OpenOrder.original_quantity`` comes from
    ``amount_at_create``; when an entry lacks it, the remaining ``amount``
    is used instead.

    Reference: https://www.bitstamp.net/api/
    """

    BASE_URL = "https://www.bitstamp.net/api/v2"

    def __init__(
        self,
        client_id: Optional[str] = None,
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        rate_limit_delay: float = 0.1
    ):
        """Initialize the Bitstamp client.

        Args:
            client_id: Bitstamp customer id. If not provided, reads from BITSTAMP_CLIENT_ID env var.
            api_key: API key. If not provided, reads from BITSTAMP_API_KEY env var.
            api_secret: API secret. If not provided, reads from BITSTAMP_API_SECRET env var.
            base_url: API base URL (default: https://www.bitstamp.net/api/v2).
            timeout: Request timeout in seconds (default: 30).
            rate_limit_delay: Minimum delay between requests in seconds (default: 0.1).

        Note: Credentials are only needed for private endpoints (orders, balances, fees).
        """
        self.client_id = client_id or os.getenv("BITSTAMP_CLIENT_ID")
        self.api_key = api_key or os.getenv("BITSTAMP_API_KEY")
        self.api_secret = api_secret or os.getenv("BITSTAMP_API_SECRET")
        self.base_url = (base_url or self.BASE_URL).rstrip('/')
        self.timeout = timeout
        self.exchange_name = "bitstamp"
        self.rate_limiter = RateLimiter(min_delay=rate_limit_delay)
        self.session = requests.Session()
        self.session.headers.update({
            'Accept': 'application/json',
        })
        self._last_nonce = 0

    @classmethod
    def from_config(cls, config: AdapterConfig) -> "BitstampClient":
        return cls(
            client_id=config.credentials.get("client_id"),
            api_key=config.credentials.get("api_key"),
            api_secret=config.credentials.get("api_secret"),
            base_url=config.options.get("base_url"),
            timeout=config.timeout_seconds,
            rate_limit_delay=config.rate_limit_delay,
        )

    def get_impl_name(self) -> str:
        return "Bitstamp REST API v2"

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _next_nonce(self) -> str:
        nonce = max(int(time.time() * 1000), self._last_nonce + 1)
        self._last_nonce = nonce
        return str(nonce)

    def _sign(self, nonce: str) -> str:
        message = f"{nonce}{self.client_id}{self.api_key}".encode()
        return hmac.new(self.api_secret.encode(), message, hashlib.sha256).hexdigest().upper()

    def _make_public_request(self, endpoint: str) -> Any:
        return self._make_request('GET', endpoint)

    def _make_private_request(
        self,
        endpoint: str,
        params: Optional[Dict[str, str]] = None,
        allow_error: bool = False
    ) -> Any:
        if not (self.client_id and self.api_key and self.api_secret):
            raise TradingApiError(
                "Bitstamp credentials not configured: set client_id, api_key and api_secret"
            )
        nonce = self._next_nonce()
        data = {
            'key': self.api_key,
            'signature': self._sign(nonce),
            'nonce': nonce,
        }
        if params:
            data.update(params)
        return self._make_request('POST', endpoint, data=data, allow_error=allow_error)

    def _make_request(
        self,
        method: str,
        endpoint: str,
        data: Optional[dict] = None,
        allow_error: bool = False
    ) -> Any:
        """Send one request to Bitstamp and decode the JSON response.

        Args:
            method: HTTP method (GET or POST).
            endpoint: API path relative to the base URL (e.g. 'ticker/btcusd/').
            data: Form fields for POST requests.
            allow_error: Return ``{"status": "error"}`` payloads to the caller
                instead of raising.

        Returns:
            The decoded JSON payload.

        Raises:
            ExchangeTimeoutError: On connection failure, timeout or gateway error.
            TradingApiError: On any other failure.
        """
        url = f"{self.base_url}/{endpoint}"
        self.rate_limiter.wait()

        try:
            response = self.session.request(
                method=method,
                url=url,
                data=data,
                timeout=self.timeout
            )
        except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as e:
            logger.warning(f"Bitstamp {method} {endpoint} failed to complete: {str(e)}")
            raise ExchangeTimeoutError(f"Request to {endpoint} timed out: {str(e)}") from e
        except requests.exceptions.RequestException as e:
            raise TradingApiError(f"Request to {endpoint} failed: {str(e)}") from e

        if response.status_code == 429:
            self.rate_limiter.penalize()
            raise TradingApiError(f"Rate limited by Bitstamp on {endpoint} (HTTP 429)")

        if response.status_code in TIMEOUT_STATUS_CODES:
            logger.warning(f"Bitstamp {method} {endpoint} returned HTTP {response.status_code}")
            raise ExchangeTimeoutError(
                f"Bitstamp unavailable on {endpoint}: HTTP {response.status_code}"
            )

        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            error_msg = f"HTTP {response.status_code}: {response.text}"
            raise TradingApiError(error_msg) from e

        self.rate_limiter.relax()

        try:
            payload = response.json()
        except ValueError as e:
            raise TradingApiError(f"Invalid JSON from {endpoint}: {response.text[:200]}") from e

        if isinstance(payload, dict) and payload.get('status') == 'error' and not allow_error:
            raise TradingApiError(f"Bitstamp rejected {endpoint}: {payload.get('reason')}")
        return payload

    # ------------------------------------------------------------------
    # Trading API
    # ------------------------------------------------------------------

    @contract_errors("get_market_orders")
    def get_market_orders(self, market_id: str) -> MarketOrderBook:
        """Fetch the order book for a Bitstamp currency pair.

        Args:
            market_id: Bitstamp currency pair, e.g. 'btcusd'.

        Returns:
            MarketOrderBook: Bids best first, asks best first.
        """
        response = self._make_public_request(f'order_book/{market_id}/')
        return self._normalize_order_book(market_id, response)

    @contract_errors("get_your_open_orders")
    def get_your_open_orders(self, market_id: str) -> List[OpenOrder]:
        response = self._make_private_request(f'open_orders/{market_id}/')
        if not isinstance(response, list):
            raise TradingApiError(f"Expected a list of open orders, got {type(response).__name__}")
        return check_open_orders(self._normalize_open_order(market_id, raw) for raw in response)

    @contract_errors("create_order")
    def create_order(
        self,
        market_id: str,
        side: OrderSide,
        quantity: Decimal,
        price: Decimal
    ) -> str:
        """Place a limit order on Bitstamp.

        Args:
            market_id: Bitstamp currency pair, e.g. 'btcusd'.
            side: BUY or SELL.
            quantity: Amount of base currency.
            price: Price in quote currency.

        Returns:
            str: The Bitstamp order id.
        """
        self._validate_order_request(side, quantity, price)
        endpoint = 'buy' if side is OrderSide.BUY else 'sell'
        response = self._make_private_request(
            f'{endpoint}/{market_id}/',
            params={
                'amount': format(quantity, 'f'),
                'price': format(price, 'f'),
            }
        )
        if not isinstance(response, dict) or not response.get('id'):
            raise TradingApiError(f"Bitstamp did not return an order id: {response!r}")
        order_id = str(response['id'])
        logger.info(f"Placed {side.value} order {order_id}: {quantity} {market_id} @ {price}")
        return order_id

    @contract_errors("cancel_order")
    def cancel_order(self, order_id: str) -> bool:
        response = self._make_private_request('cancel_order/', params={'id': order_id}, allow_error=True)
        if isinstance(response, dict) and 'error' in response:
            logger.info(f"Bitstamp could not cancel order {order_id}: {response['error']}")
            return False
        if isinstance(response, dict) and response.get('status') == 'error':
            reason = response.get('reason')
            if 'not found' in str(reason).lower():
                logger.info(f"Bitstamp could not cancel order {order_id}: {reason}")
                return False
            raise TradingApiError(f"Bitstamp rejected cancel_order/: {reason}")
        if isinstance(response, dict) and str(response.get('id')) == str(order_id):
            return True
        raise TradingApiError(f"Unexpected cancel_order response for {order_id}: {response!r}")

    @contract_errors("get_latest_market_price")
    def get_latest_market_price(self, market_id: str) -> Decimal:
        response = self._make_public_request(f'ticker/{market_id}/')
        return self._decimal(response['last'], 'last')

    @contract_errors("get_balance_info")
    def get_balance_info(self) -> BalanceInfo:
        response = self._make_private_request('balance/')
        return self._normalize_balance(response)

    @contract_errors("get_percentage_of_buy_order_taken_for_exchange_fee")
    def get_percentage_of_buy_order_taken_for_exchange_fee(self, market_id: str) -> Decimal:
        return self._fetch_fee(market_id)

    @contract_errors("get_percentage_of_sell_order_taken_for_exchange_fee")
    def get_percentage_of_sell_order_taken_for_exchange_fee(self, market_id: str) -> Decimal:
        # Bitstamp charges the same fee on both sides
        return self._fetch_fee(market_id)

    def _fetch_fee(self, market_id: str) -> Decimal:
        response = self._make_private_request('balance/')
        key = f"{market_id}_fee"
        if not isinstance(response, dict) or key not in response:
            raise TradingApiError(f"No fee reported for market {market_id}")
        return percentage_to_fraction(response[key])

    # ------------------------------------------------------------------
    # Normalization
    # ------------------------------------------------------------------

    @staticmethod
    def _decimal(value: Any, field_name: str) -> Decimal:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError) as e:
            raise TradingApiError(f"Invalid decimal for {field_name}: {value!r}") from e
        if not result.is_finite():
            raise TradingApiError(f"Invalid decimal for {field_name}: {value!r}")
        return result

    def _normalize_order_book(self, market_id: str, data: Any) -> MarketOrderBook:
        """Normalize a Bitstamp order_book payload.

        Bitstamp sends each side as a list of ``[price, amount]`` string pairs.
        """
        if not isinstance(data, dict) or 'bids' not in data or 'asks' not in data:
            raise TradingApiError(f"Malformed order book for {market_id}")

        bids = [
            MarketOrder(OrderSide.BUY, self._decimal(price, 'bid price'), self._decimal(amount, 'bid amount'))
            for price, amount in data['bids']
        ]
        asks = [
            MarketOrder(OrderSide.SELL, self._decimal(price, 'ask price'), self._decimal(amount, 'ask amount'))
            for price, amount in data['asks']
        ]
        sorted_bids, sorted_asks = sort_order_book_entries(bids, asks)
        return check_order_book(MarketOrderBook(market_id=market_id, bids=sorted_bids, asks=sorted_asks))

    def _normalize_open_order(self, market_id: str, raw: dict) -> OpenOrder:
        side = ORDER_TYPES.get(str(raw['type']))
        if side is None:
            raise TradingApiError(f"Unknown Bitstamp order type {raw['type']!r}")

        try:
            created = datetime.fromisoformat(str(raw['datetime'])).replace(tzinfo=timezone.utc)
        except ValueError as e:
            raise TradingApiError(f"Invalid order datetime {raw['datetime']!r}") from e

        amount = self._decimal(raw['amount'], 'amount')
        original = amount
        if raw.get('amount_at_create') is not None:
            original = self._decimal(raw['amount_at_create'], 'amount_at_create')
        return OpenOrder(
            order_id=str(raw['id']),
            creation_date=created,
            market_id=market_id,
            side=side,
            price=self._decimal(raw['price'], 'price'),
            quantity=amount,
            original_quantity=original,
        )

    def _normalize_balance(self, data: Any) -> BalanceInfo:
        """Split Bitstamp's flat ``<asset>_available`` / ``<asset>_reserved`` keys."""
        if not isinstance(data, dict):
            raise TradingApiError(f"Expected balance object, got {type(data).__name__}")

        available = {}
        on_hold = {}
        for key, value in data.items():
            if key.endswith('_available'):
                available[key[:-len('_available')].upper()] = self._decimal(value, key)
            elif key.endswith('_reserved'):
                on_hold[key[:-len('_reserved')].upper()] = self._decimal(value, key)

        if not available:
            raise TradingApiError("Balance response contained no available balances")
        return check_balance_info(BalanceInfo(balances_available=available, balances_on_hold=on_hold))
