"""Tests for the paper trading client."""

import pytest
from decimal import Decimal
from trading_api.clients.paper_client import PaperMarket, PaperTradingClient
from trading_api.config import AdapterConfig
from trading_api.errors import ExchangeTimeoutError, TradingApiError
from trading_api.models import BalanceInfo, MarketOrderBook, OrderSide
from trading_api.orders import OrderStatus, get_order_status


class TestPaperTradingClient:
    """Test suite for PaperTradingClient."""

    def test_client_initialization(self, paper_client):
        """Test that PaperTradingClient initializes correctly."""
        assert paper_client.get_impl_name() == "Paper Trading"
        assert paper_client.exchange_name == "paper"
        assert "BTC/USD" in paper_client.markets

    def test_get_market_orders_preserves_order(self, paper_client):
        """Test that the BTC/USD book reaches the caller best price first, unchanged."""
        book = paper_client.get_market_orders("BTC/USD")

        assert isinstance(book, MarketOrderBook)
        assert book.market_id == "BTC/USD"
        assert [(b.price, b.quantity) for b in book.bids] == [
            (Decimal("100.0"), Decimal("2")),
            (Decimal("99.5"), Decimal("1")),
        ]
        assert [(a.price, a.quantity) for a in book.asks] == [
            (Decimal("100.5"), Decimal("1")),
            (Decimal("101.0"), Decimal("3")),
        ]

    def test_get_market_orders_sorts_unsorted_input(self, btc_usd_market):
        btc_usd_market.bids.reverse()
        btc_usd_market.asks.reverse()
        client = PaperTradingClient(markets=[btc_usd_market])

        book = client.get_market_orders("BTC/USD")

        assert book.bids[0].price >= book.bids[1].price
        assert book.asks[0].price <= book.asks[1].price

    def test_get_market_orders_is_idempotent(self, paper_client):
        assert paper_client.get_market_orders("BTC/USD") == paper_client.get_market_orders("BTC/USD")

    def test_unknown_market(self, paper_client):
        with pytest.raises(TradingApiError):
            paper_client.get_market_orders("DOGE/EUR")

    def test_no_open_orders_is_empty_list(self, paper_client):
        assert paper_client.get_your_open_orders("BTC/USD") == []

    def test_create_order_then_listed(self, paper_client):
        """Test that a new order is listed with the requested side, price and quantity."""
        order_id = paper_client.create_order("BTC/USD", OrderSide.BUY, Decimal("0.5"), Decimal("99"))

        open_orders = paper_client.get_your_open_orders("BTC/USD")

        assert len(open_orders) == 1
        order = open_orders[0]
        assert order.order_id == order_id
        assert order.side is OrderSide.BUY
        assert order.price == Decimal("99")
        assert order.quantity == Decimal("0.5")
        assert order.original_quantity == Decimal("0.5")
        assert order.market_id == "BTC/USD"

    def test_create_order_reserves_funds(self, paper_client):
        paper_client.create_order("BTC/USD", OrderSide.BUY, Decimal("2"), Decimal("100"))
        paper_client.create_order("BTC/USD", OrderSide.SELL, Decimal("1"), Decimal("105"))

        info = paper_client.get_balance_info()

        assert isinstance(info, BalanceInfo)
        assert info.available("USD") == Decimal("9800")
        assert info.on_hold("USD") == Decimal("200")
        assert info.available("BTC") == Decimal("9")
        assert info.on_hold("BTC") == Decimal("1")

    def test_create_order_insufficient_funds(self, paper_client):
        with pytest.raises(TradingApiError):
            paper_client.create_order("BTC/USD", OrderSide.BUY, Decimal("1000"), Decimal("100"))

        assert paper_client.get_your_open_orders("BTC/USD") == []

    @pytest.mark.parametrize("quantity,price", [
        (Decimal("0"), Decimal("100")),
        (Decimal("1"), Decimal("-1")),
        (Decimal("NaN"), Decimal("100")),
        (1, Decimal("100")),
    ])
    def test_create_order_rejects_invalid_request(self, paper_client, quantity, price):
        with pytest.raises(TradingApiError):
            paper_client.create_order("BTC/USD", OrderSide.SELL, quantity, price)

    def test_create_order_rejects_unknown_side(self, paper_client):
        with pytest.raises(TradingApiError):
            paper_client.create_order("BTC/USD", "BUY", Decimal("1"), Decimal("100"))

    def test_cancel_order(self, paper_client):
        """Test that cancelling releases funds and removes the order."""
        order_id = paper_client.create_order("BTC/USD", OrderSide.BUY, Decimal("1"), Decimal("99"))

        assert paper_client.cancel_order(order_id) is True
        assert paper_client.get_your_open_orders("BTC/USD") == []
        info = paper_client.get_balance_info()
        assert info.available("USD") == Decimal("10000")
        assert info.on_hold("USD") == Decimal("0")

    def test_cancel_already_cancelled_order_returns_false(self, paper_client):
        order_id = paper_client.create_order("BTC/USD", OrderSide.BUY, Decimal("1"), Decimal("99"))
        paper_client.cancel_order(order_id)

        assert paper_client.cancel_order(order_id) is False

    def test_cancel_unknown_order_returns_false(self, paper_client):
        assert paper_client.cancel_order("does-not-exist") is False

    def test_cancel_filled_order_returns_false(self, paper_client):
        order_id = paper_client.create_order("BTC/USD", OrderSide.SELL, Decimal("1"), Decimal("101"))
        paper_client.fill_order(order_id)

        assert paper_client.cancel_order(order_id) is False

    def test_partial_fill_reduces_remaining_quantity(self, paper_client):
        order_id = paper_client.create_order("BTC/USD", OrderSide.BUY, Decimal("2"), Decimal("100"))

        paper_client.fill_order(order_id, Decimal("0.5"))

        order = paper_client.get_your_open_orders("BTC/USD")[0]
        assert order.quantity == Decimal("1.5")
        assert order.original_quantity == Decimal("2")
        assert order.filled_quantity == Decimal("0.5")
        assert get_order_status(paper_client, "BTC/USD", order_id) is OrderStatus.OPEN

    def test_full_fill_settles_and_closes_order(self, paper_client):
        """Test that a filled order is only observable by its absence."""
        order_id = paper_client.create_order("BTC/USD", OrderSide.SELL, Decimal("2"), Decimal("101"))

        paper_client.fill_order(order_id)

        assert paper_client.get_your_open_orders("BTC/USD") == []
        assert get_order_status(paper_client, "BTC/USD", order_id) is OrderStatus.CLOSED
        info = paper_client.get_balance_info()
        assert info.available("BTC") == Decimal("8")
        assert info.on_hold("BTC") == Decimal("0")
        # 2 * 101 less the 0.25% sell fee
        assert info.available("USD") == Decimal("10000") + Decimal("201.495")
        assert paper_client.get_latest_market_price("BTC/USD") == Decimal("101")

    def test_fill_rejects_excess_quantity(self, paper_client):
        order_id = paper_client.create_order("BTC/USD", OrderSide.BUY, Decimal("1"), Decimal("100"))

        with pytest.raises(ValueError):
            paper_client.fill_order(order_id, Decimal("2"))

    def test_fill_leaves_caller_market_untouched(self, paper_client, btc_usd_market):
        order_id = paper_client.create_order("BTC/USD", OrderSide.SELL, Decimal("1"), Decimal("103"))

        paper_client.fill_order(order_id)

        assert paper_client.get_latest_market_price("BTC/USD") == Decimal("103")
        assert btc_usd_market.last_price == Decimal("100.25")

    def test_get_latest_market_price(self, paper_client):
        assert paper_client.get_latest_market_price("BTC/USD") == Decimal("100.25")

    def test_fees_are_fractions(self, paper_client):
        buy_fee = paper_client.get_percentage_of_buy_order_taken_for_exchange_fee("BTC/USD")
        sell_fee = paper_client.get_percentage_of_sell_order_taken_for_exchange_fee("BTC/USD")

        assert buy_fee == Decimal("0.0033")
        assert sell_fee == Decimal("0.0025")
        assert Decimal("0") <= buy_fee < Decimal("1")
        assert Decimal("0") <= sell_fee < Decimal("1")

    def test_fee_configured_as_percentage_rejected(self, btc_usd_market):
        btc_usd_market.buy_fee = Decimal("0.33") * 100
        client = PaperTradingClient(markets=[btc_usd_market])

        with pytest.raises(TradingApiError):
            client.get_percentage_of_buy_order_taken_for_exchange_fee("BTC/USD")

    def test_get_balance_info_is_idempotent(self, paper_client):
        assert paper_client.get_balance_info() == paper_client.get_balance_info()

    def test_injected_timeout_affects_one_call(self, paper_client):
        paper_client.inject_timeout()

        with pytest.raises(ExchangeTimeoutError) as exc_info:
            paper_client.get_latest_market_price("BTC/USD")

        assert exc_info.value.exchange == "paper"
        assert exc_info.value.operation == "get_latest_market_price"
        assert paper_client.get_latest_market_price("BTC/USD") == Decimal("100.25")

    def test_injected_api_failure(self, paper_client):
        paper_client.inject_api_failure()

        with pytest.raises(TradingApiError):
            paper_client.cancel_order("1")


class TestPaperTradingClientConfig:
    """Test suite for building a paper client from config."""

    def test_from_config_with_dicts(self):
        config = AdapterConfig(
            exchange_id="paper",
            options={
                "name": "Dry Run",
                "markets": [{
                    "market_id": "ETH/BTC",
                    "base": "ETH",
                    "quote": "BTC",
                    "last_price": "0.05",
                    "bids": [["0.049", "10"]],
                    "asks": [["0.051", "4"]],
                    "buy_fee": "0.001",
                }],
                "balances": {"btc": "1"},
            },
        )

        client = PaperTradingClient.from_config(config)

        assert client.get_impl_name() == "Dry Run"
        assert client.get_latest_market_price("ETH/BTC") == Decimal("0.05")
        assert client.get_balance_info().available("BTC") == Decimal("1")
        assert client.get_percentage_of_buy_order_taken_for_exchange_fee("ETH/BTC") == Decimal("0.001")
        assert client.get_percentage_of_sell_order_taken_for_exchange_fee("ETH/BTC") == Decimal("0.0025")

    def test_from_config_with_market_objects(self, btc_usd_market):
        config = AdapterConfig(exchange_id="paper", options={"markets": [btc_usd_market]})

        client = PaperTradingClient.from_config(config)

        assert client.markets["BTC/USD"] == btc_usd_market
        assert client.markets["BTC/USD"] is not btc_usd_market

    def test_market_book_copied_from_caller(self, btc_usd_market):
        client = PaperTradingClient(markets=[btc_usd_market])

        btc_usd_market.bids.append((Decimal("90"), Decimal("5")))

        assert len(client.get_market_orders("BTC/USD").bids) == 2

    def test_from_config_missing_field(self):
        config = AdapterConfig(exchange_id="paper", options={"markets": [{"market_id": "X"}]})

        with pytest.raises(ValueError):
            PaperTradingClient.from_config(config)

    def test_market_defaults(self):
        market = PaperMarket(market_id="LTC/USD", base="LTC", quote="USD", last_price=Decimal("70"))

        assert market.bids == []
        assert market.buy_fee == Decimal("0.0025")
