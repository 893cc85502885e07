# app/engine.py

"""Order-entry and position-synchronization engine for one trading session."""

from typing import Any, List, Optional

from core.config.settings import Settings
from core.logging import get_logger
from core.trading.interfaces import TimerScheduler, TradingGateway
from core.trading.models import Account, Instrument, OrderDraft, OrderResult, CloseResult, Position
from core.trading.state import SessionState
from services.auth.models import LinkCredentials
from services.auth.session_manager import SessionManager
from services.instrument_data.resolver import InstrumentResolver
from services.order_entry.composer import OrderComposer
from services.portfolio_manager.position_tracker import PositionTracker


class TradingEngine:
    """Wires the session manager, resolver, composer and tracker around one SessionState.

    Account activation arms position polling, deactivation stops it, and a
    successful order or close triggers an immediate position refresh.
    """

    def __init__(self, settings: Settings, gateway: TradingGateway, timers: TimerScheduler,
                 state: Optional[SessionState] = None):
        self.settings = settings
        self.gateway = gateway
        self.timers = timers
        self.state = state or SessionState()
        self.logger = get_logger("trade_desk.engine", component="application")

        self.position_tracker = PositionTracker(gateway, self.state, timers, settings.positions)
        self.session_manager = SessionManager(gateway, self.state)
        self.instrument_resolver = InstrumentResolver(gateway, self.state, timers, settings.instruments)
        self.order_composer = OrderComposer(
            gateway, self.state, settings.orders,
            on_submitted=self.position_tracker.refresh,
        )
        self.session_manager.add_listener(self._on_account_changed)

    async def _on_account_changed(self, account: Optional[Account]) -> None:
        if account is None:
            self.position_tracker.stop(clear=True)
            self.instrument_resolver.clear()
            self.order_composer.reset()
            return
        # A different account may replace the current one; start from a clean list
        if self.position_tracker.polling:
            self.position_tracker.stop(clear=True)
        await self.position_tracker.start_polling()

    async def start(self) -> Optional[Account]:
        """Restore an already linked account, if the service has one."""
        account = await self.session_manager.start()
        if account is None:
            self.logger.info("Engine started logged out")
        else:
            self.logger.info("Engine started", client_id=account.client_id)
        return account

    async def shutdown(self) -> None:
        """Stop polling, cancel outstanding timers and release the HTTP client."""
        self.position_tracker.stop(clear=True)
        self.instrument_resolver.clear()
        shutdown = getattr(self.timers, "shutdown", None)
        if shutdown is not None:
            await shutdown()
        close = getattr(self.gateway, "close", None)
        if close is not None:
            await close()
        self.logger.info("Engine stopped")

    # Session
    @property
    def account(self) -> Optional[Account]:
        return self.session_manager.get_active_account()

    async def link(self, client_id: str, access_token: str) -> Account:
        return await self.session_manager.link(
            LinkCredentials(client_id=client_id, access_token=access_token)
        )

    async def unlink(self) -> None:
        await self.session_manager.unlink()

    # Instruments
    def type_query(self, query: str, exchange: Optional[str] = None) -> None:
        self.instrument_resolver.on_query_changed(query, exchange)

    async def search(self, query: str, exchange: Optional[str] = None) -> List[Instrument]:
        return await self.instrument_resolver.search(query, exchange)

    @property
    def search_results(self) -> List[Instrument]:
        return self.instrument_resolver.results

    def select_instrument(self, instrument: Instrument) -> OrderDraft:
        draft = self.order_composer.select_instrument(instrument)
        self.instrument_resolver.clear()
        return draft

    # Orders
    @property
    def draft(self) -> OrderDraft:
        return self.order_composer.draft

    def update_draft(self, **fields: Any) -> OrderDraft:
        return self.order_composer.update(**fields)

    async def submit_order(self) -> OrderResult:
        return await self.order_composer.submit()

    # Positions
    @property
    def positions(self) -> List[Position]:
        return self.position_tracker.positions

    async def refresh_positions(self) -> List[Position]:
        return await self.position_tracker.fetch()

    async def close_position(self, position: Position, confirmed: bool = False) -> CloseResult:
        return await self.position_tracker.close(position, confirmed=confirmed)
