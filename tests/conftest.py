"""Pytest configuration and shared fixtures."""

import pytest
from decimal import Decimal

from trading_api.clients.paper_client import PaperMarket, PaperTradingClient


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "integration: calls the live Bitstamp API (run with -m integration)"
    )


def pytest_collection_modifyitems(config, items):
    """Skip live Bitstamp tests unless the integration marker was selected."""
    markexpr = config.getoption("-m") or ""
    if "integration" in markexpr:
        return

    skip_live = pytest.mark.skip(reason="Live Bitstamp tests need -m integration")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_live)


@pytest.fixture
def btc_usd_market():
    """BTC/USD market with the book used throughout the contract tests."""
    return PaperMarket(
        market_id="BTC/USD",
        base="BTC",
        quote="USD",
        last_price=Decimal("100.25"),
        bids=[(Decimal("100.0"), Decimal("2")), (Decimal("99.5"), Decimal("1"))],
        asks=[(Decimal("100.5"), Decimal("1")), (Decimal("101.0"), Decimal("3"))],
        buy_fee=Decimal("0.0033"),
        sell_fee=Decimal("0.0025"),
    )


@pytest.fixture
def paper_client(btc_usd_market):
    """Paper exchange funded with 10 BTC and 10,000 USD."""
    return PaperTradingClient(
        markets=[btc_usd_market],
        balances={"BTC": Decimal("10"), "USD": Decimal("10000")},
    )
