"""REST client for the remote trading service."""

from .client import TradingApiClient

__all__ = ["TradingApiClient"]
