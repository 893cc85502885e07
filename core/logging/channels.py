"""
Logging channel definitions for Trade Desk.
Every record carries a `channel` field so downstream log shipping can route it.
"""

from enum import Enum
from typing import Dict


class LogChannel(str, Enum):
    """Logging channels for different components."""

    APPLICATION = "application"  # General application logs
    TRADING = "trading"          # Orders, positions, session
    API = "api"                  # Remote trading service calls
    AUDIT = "audit"              # Account link/unlink, order and close requests
    ERROR = "error"              # Error logs


# Component name -> channel
COMPONENT_CHANNELS: Dict[str, LogChannel] = {
    "session_manager": LogChannel.AUDIT,
    "order_composer": LogChannel.TRADING,
    "position_tracker": LogChannel.TRADING,
    "instrument_resolver": LogChannel.TRADING,
    "trading_api": LogChannel.API,
    "application": LogChannel.APPLICATION,
}


def get_channel_for_component(component: str) -> LogChannel:
    """Resolve the channel for a component, defaulting to APPLICATION."""
    return COMPONENT_CHANNELS.get(component, LogChannel.APPLICATION)
