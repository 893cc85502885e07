"""
Instrument Resolver - turns typed text into candidate instruments.

Search input is debounced: each keystroke cancels the pending timer and
schedules a new one, so only the query that stays stable for the quiet
period is sent. Every query gets a generation number and a response is
applied only if it still belongs to the latest generation.
"""

from typing import List, Optional

from core.config.settings import InstrumentSearchSettings
from core.logging import get_trading_logger_safe
from core.trading.interfaces import TimerHandleLike, TimerScheduler, TradingGateway
from core.trading.models import Instrument
from core.trading.state import SessionState
from core.utils.exceptions import TradeDeskException, create_error_context, user_message

logger = get_trading_logger_safe(__name__)


class InstrumentResolver:
    """Debounced symbol search with last-query-wins result handling."""

    def __init__(self, gateway: TradingGateway, state: SessionState,
                 timers: TimerScheduler, settings: InstrumentSearchSettings):
        self.gateway = gateway
        self.state = state
        self.timers = timers
        self.settings = settings
        self._pending: Optional[TimerHandleLike] = None
        self._generation = 0

    @property
    def results(self) -> List[Instrument]:
        return self.state.search_results

    @property
    def has_pending_search(self) -> bool:
        return self._pending is not None and self._pending.active

    def _is_searchable(self, query: str) -> bool:
        return len(query.strip()) >= self.settings.min_query_length

    async def search(self, query: str, exchange: Optional[str] = None) -> List[Instrument]:
        """
        Search instruments directly, without debouncing.

        Short queries return an empty list without a request. Errors are
        logged and yield an empty list.
        """
        if not self._is_searchable(query):
            return []

        exchange = exchange or self.settings.default_exchange
        normalized = query.strip().upper()
        try:
            payload = await self.gateway.search_symbols(normalized, exchange, self.settings.result_limit)
            instruments = [Instrument.model_validate(item) for item in payload]
        except (TradeDeskException, ValueError) as e:
            self.state.last_search_error = user_message(e)
            logger.warning("Symbol search failed", query=normalized, exchange=exchange,
                           **create_error_context(e, "search_symbols"))
            return []

        self.state.last_search_error = None
        return instruments[: self.settings.result_limit]

    def on_query_changed(self, query: str, exchange: Optional[str] = None) -> None:
        """Feed a keystroke. Supersedes any pending search."""
        self._cancel_pending()
        self._generation += 1
        self.state.search_query = query

        if not self._is_searchable(query):
            self.state.search_results = []
            return

        generation = self._generation

        async def _fire() -> None:
            await self._run_search(generation, query, exchange)

        self._pending = self.timers.schedule(self.settings.debounce_seconds, _fire)

    async def _run_search(self, generation: int, query: str, exchange: Optional[str]) -> None:
        results = await self.search(query, exchange)
        if generation != self._generation:
            logger.debug("Discarding stale search results", query=query)
            return
        self.state.search_results = results

    def clear(self) -> None:
        """Drop results and any pending search; in-flight responses become stale."""
        self._cancel_pending()
        self._generation += 1
        self.state.search_query = ""
        self.state.search_results = []

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
