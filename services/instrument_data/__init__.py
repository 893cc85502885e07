"""
Instrument Data Service

Resolves typed symbols into tradable instruments via the trading service.
"""

from .resolver import InstrumentResolver

__all__ = [
    'InstrumentResolver',
]
