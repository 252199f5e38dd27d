"""Tests for the Trading API error taxonomy."""

import pytest
from trading_api.errors import ExchangeTimeoutError, TradingApiError, contract_errors


class FakeAdapter:
    exchange_name = "fake"

    def __init__(self, error=None, value=None):
        self.error = error
        self.value = value

    @contract_errors("fetch")
    def fetch(self):
        if self.error is not None:
            raise self.error
        return self.value


class TestErrorTaxonomy:
    """Test suite for the two failure kinds."""

    def test_kinds_are_distinct(self):
        """Test that catching one failure kind never catches the other."""
        assert not issubclass(ExchangeTimeoutError, TradingApiError)
        assert not issubclass(TradingApiError, ExchangeTimeoutError)

    def test_error_context(self):
        """Test that errors carry exchange and operation context."""
        error = TradingApiError("boom", exchange="bitstamp", operation="create_order")

        assert str(error) == "boom"
        assert error.exchange == "bitstamp"
        assert error.operation == "create_order"


class TestContractErrors:
    """Test suite for the contract_errors decorator."""

    def test_success_passes_value_through(self):
        assert FakeAdapter(value=7).fetch() == 7

    def test_timeout_error_passes_through(self):
        """Test that ExchangeTimeoutError is re-raised with context filled in."""
        original = ExchangeTimeoutError("slow")

        with pytest.raises(ExchangeTimeoutError) as exc_info:
            FakeAdapter(error=original).fetch()

        assert exc_info.value is original
        assert exc_info.value.exchange == "fake"
        assert exc_info.value.operation == "fetch"

    def test_api_error_passes_through(self):
        original = TradingApiError("rejected", operation="custom")

        with pytest.raises(TradingApiError) as exc_info:
            FakeAdapter(error=original).fetch()

        assert exc_info.value is original
        assert exc_info.value.operation == "custom"

    def test_builtin_timeout_becomes_exchange_timeout(self):
        """Test that a socket-level timeout maps to ExchangeTimeoutError."""
        with pytest.raises(ExchangeTimeoutError) as exc_info:
            FakeAdapter(error=TimeoutError("read timed out")).fetch()

        assert isinstance(exc_info.value.__cause__, TimeoutError)

    @pytest.mark.parametrize("error", [
        KeyError("price"),
        ValueError("bad json"),
        ConnectionResetError("reset"),
        RuntimeError("unexpected"),
    ])
    def test_other_errors_become_api_errors(self, error):
        """Test that any other failure maps to TradingApiError."""
        with pytest.raises(TradingApiError) as exc_info:
            FakeAdapter(error=error).fetch()

        assert exc_info.value.__cause__ is error
        assert exc_info.value.exchange == "fake"
