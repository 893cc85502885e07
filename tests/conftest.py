"""
Pytest configuration and shared fixtures for Trade Desk tests.
"""
import pytest

from core.config.settings import (
    InstrumentSearchSettings,
    OrderEntrySettings,
    PositionTrackerSettings,
    Settings,
    TradingApiSettings,
)
from core.trading.models import Account
from core.trading.state import SessionState
from tests.mocks.fake_trading_gateway import FakeTradingGateway
from tests.mocks.manual_timers import ManualTimerScheduler


@pytest.fixture
def test_settings():
    """Test settings configuration."""
    return Settings(
        environment="testing",
        trading_api=TradingApiSettings(base_url="http://trading.test/api/dhan/"),
        instruments=InstrumentSearchSettings(debounce_seconds=0.3, min_query_length=2, result_limit=10),
        positions=PositionTrackerSettings(poll_interval_seconds=5.0),
        orders=OrderEntrySettings(default_exchange="NSE", default_product_type="INTRADAY"),
    )


@pytest.fixture
def gateway():
    """Scriptable in-memory trading service."""
    return FakeTradingGateway()


@pytest.fixture
def timers():
    """Simulated clock; nothing fires until the test advances it."""
    return ManualTimerScheduler()


@pytest.fixture
def state():
    return SessionState()


@pytest.fixture
def linked_state():
    """Session state with an active account, as after a successful link."""
    return SessionState(account=Account(client_id="C1"))


@pytest.fixture
def sample_instruments():
    return [
        {
            "securityId": "2885",
            "tradingSymbol": "RELIANCE",
            "name": "RELIANCE INDUSTRIES LTD",
            "exchangeSegment": "NSE",
            "instrumentType": "EQUITY",
            "tickSize": 0.05,
            "lotSize": 1,
        },
        {
            "securityId": 11536,
            "tradingSymbol": "TCS",
            "name": "TATA CONSULTANCY SERV LT",
            "exchangeSegment": "NSE",
            "instrumentType": "EQUITY",
            "tickSize": 0.05,
            "lotSize": 1,
        },
        {
            "securityId": "1333",
            "tradingSymbol": "HDFCBANK",
            "name": "HDFC BANK LTD",
            "exchangeSegment": "NSE",
            "instrumentType": "EQUITY",
            "tickSize": 0.05,
            "lotSize": 1,
        },
    ]


@pytest.fixture
def sample_positions():
    return [
        {
            "symbol": "RELIANCE",
            "securityId": "2885",
            "exchange": "NSE",
            "quantity": 10,
            "avgPrice": 2450.0,
            "ltp": 2455.0,
            "pnl": 50.0,
            "positionType": "LONG",
            "productType": "INTRADAY",
        },
        {
            "symbol": "TCS",
            "securityId": "11536",
            "exchange": "NSE",
            "quantity": -5,
            "avgPrice": 3600.0,
            "ltp": 3602.5,
            "pnl": -12.5,
            "positionType": "SHORT",
            "productType": "INTRADAY",
        },
    ]
