from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, runtime_checkable


@runtime_checkable
class TradingGateway(Protocol):
    """Remote trading service surface the engine depends on.

    Every method returns the unwrapped ``data`` payload of a successful
    response. A non-success response raises ``RemoteCallError``; network
    and decoding failures raise ``TransportError``.
    """

    async def get_account(self) -> Optional[Dict[str, Any]]:
        ...

    async def link_account(self, client_id: str, access_token: str) -> Dict[str, Any]:
        ...

    async def search_symbols(self, query: str, exchange: str, limit: int) -> List[Dict[str, Any]]:
        ...

    async def get_positions(self) -> List[Dict[str, Any]]:
        ...

    async def place_order(self, order: Dict[str, Any]) -> Dict[str, Any]:
        ...

    async def close_position(self, request: Dict[str, Any]) -> Dict[str, Any]:
        ...


@runtime_checkable
class TimerHandleLike(Protocol):
    @property
    def active(self) -> bool:
        ...

    def cancel(self) -> None:
        ...


@runtime_checkable
class TimerScheduler(Protocol):
    """Schedules a coroutine callback after ``delay`` seconds.

    Each call returns a fresh handle; callers cancel the previous handle
    before rescheduling.
    """

    def schedule(self, delay: float, callback: Callable[[], Awaitable[None]]) -> TimerHandleLike:
        ...
