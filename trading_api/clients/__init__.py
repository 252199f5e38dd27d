"""Exchange adapter implementations."""

from .bitstamp_client import BitstampClient
from .paper_client import PaperMarket, PaperTradingClient

__all__ = [
    "BitstampClient",
    "PaperMarket",
    "PaperTradingClient",
]
