"""Tests for tagged Trading API results."""

import pytest
from decimal import Decimal
from trading_api.errors import ExchangeTimeoutError, TradingApiError
from trading_api.result import ApiFailure, Ok, TimeoutFailure, attempt, is_ok, unwrap


class TestAttempt:
    """Test suite for attempt()."""

    def test_ok(self, paper_client):
        """Test that a successful call is wrapped in Ok."""
        result = attempt(paper_client.get_latest_market_price, "BTC/USD")

        assert isinstance(result, Ok)
        assert is_ok(result)
        assert unwrap(result) == Decimal("100.25")

    def test_simulated_timeout_is_timeout_failure(self, paper_client):
        paper_client.inject_timeout()

        result = attempt(paper_client.get_market_orders, "BTC/USD")

        assert isinstance(result, TimeoutFailure)
        assert isinstance(result.error, ExchangeTimeoutError)
        assert not is_ok(result)

    def test_malformed_response_is_api_failure(self, paper_client):
        paper_client.inject_api_failure()

        result = attempt(paper_client.get_balance_info)

        assert isinstance(result, ApiFailure)
        assert isinstance(result.error, TradingApiError)

    def test_leaked_exception_is_api_failure(self):
        """Test that an exception outside the taxonomy is reported as ApiFailure."""
        def broken():
            raise ZeroDivisionError("oops")

        result = attempt(broken)

        assert isinstance(result, ApiFailure)
        assert isinstance(result.error.__cause__, ZeroDivisionError)

    def test_keyword_arguments(self, paper_client):
        result = attempt(paper_client.get_your_open_orders, market_id="BTC/USD")

        assert result == Ok([])


class TestUnwrap:
    """Test suite for unwrap()."""

    def test_unwrap_failure_raises_error(self):
        error = ExchangeTimeoutError("slow")

        with pytest.raises(ExchangeTimeoutError):
            unwrap(TimeoutFailure(error))

    def test_unwrap_api_failure_raises_error(self):
        with pytest.raises(TradingApiError):
            unwrap(ApiFailure(TradingApiError("bad")))

    def test_unwrap_rejects_other_values(self):
        with pytest.raises(TypeError):
            unwrap("not a result")
