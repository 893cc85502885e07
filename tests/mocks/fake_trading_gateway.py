"""
In-memory stand-in for the remote trading service.

Records every call so tests can assert on network traffic, and lets tests
script responses per operation (a value, an exception, or a callable).
"""

import asyncio
from collections import defaultdict, deque
from typing import Any, Dict, List, Optional


class FakeTradingGateway:
    """Implements the TradingGateway protocol against scripted responses."""

    def __init__(self):
        self.calls: List[tuple] = []
        self.account: Optional[Dict[str, Any]] = None
        self.positions: List[Dict[str, Any]] = []
        self.instruments: List[Dict[str, Any]] = []
        self.order_response: Dict[str, Any] = {"orderId": "ORD-1", "status": "TRANSIT"}
        self.close_response: Dict[str, Any] = {"orderId": "ORD-CLOSE-1", "status": "TRANSIT"}
        self._scripted: Dict[str, deque] = defaultdict(deque)
        # Optional gates to hold a call in flight until the test releases it
        self.gates: Dict[str, asyncio.Event] = {}
        self.closed = False

    def script(self, operation: str, *responses: Any) -> None:
        """Queue responses for an operation; exceptions are raised, callables are called."""
        self._scripted[operation].extend(responses)

    def count(self, operation: str) -> int:
        return sum(1 for call in self.calls if call[0] == operation)

    def calls_for(self, operation: str) -> List[tuple]:
        return [call for call in self.calls if call[0] == operation]

    @property
    def network_calls(self) -> int:
        return len(self.calls)

    async def _respond(self, operation: str, default: Any, *args: Any) -> Any:
        self.calls.append((operation, *args))
        gate = self.gates.get(operation)
        if gate is not None:
            await gate.wait()
        if self._scripted[operation]:
            response = self._scripted[operation].popleft()
            if isinstance(response, BaseException):
                raise response
            if callable(response):
                return response(*args)
            return response
        return default

    async def get_account(self):
        return await self._respond("get_account", self.account)

    async def link_account(self, client_id: str, access_token: str):
        default = {"clientId": client_id, "active": True}
        return await self._respond("link_account", default, client_id, access_token)

    async def search_symbols(self, query: str, exchange: str, limit: int):
        default = [
            item for item in self.instruments
            if query in item.get("tradingSymbol", "") or query in item.get("name", "").upper()
        ][:limit]
        return await self._respond("search_symbols", default, query, exchange, limit)

    async def get_positions(self):
        return await self._respond("get_positions", list(self.positions))

    async def place_order(self, order: Dict[str, Any]):
        return await self._respond("place_order", dict(self.order_response), order)

    async def close_position(self, request: Dict[str, Any]):
        return await self._respond("close_position", dict(self.close_response), request)

    async def close(self):
        self.closed = True
