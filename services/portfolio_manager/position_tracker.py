"""
Position Tracker - the local view of open positions.

The list is a cache of server state: every successful fetch replaces it
wholesale. While an account is linked it is refreshed on a fixed interval
and immediately after an order is placed or a position is closed.
"""

from datetime import datetime, timezone
from typing import List, Optional

from core.config.settings import PositionTrackerSettings
from core.logging import get_trading_logger_safe
from core.trading.interfaces import TimerHandleLike, TimerScheduler, TradingGateway
from core.trading.models import CloseResult, Position
from core.trading.state import SessionState
from core.trading.utils import describe_position
from core.utils.exceptions import (
    CloseError,
    CloseNotConfirmedError,
    MissingIdentifierError,
    TradeDeskException,
    TransportError,
    create_error_context,
    user_message,
)

logger = get_trading_logger_safe(__name__)


class PositionTracker:
    """Keeps SessionState.positions in step with the trading service."""

    def __init__(self, gateway: TradingGateway, state: SessionState,
                 timers: TimerScheduler, settings: PositionTrackerSettings):
        self.gateway = gateway
        self.state = state
        self.timers = timers
        self.poll_interval = settings.poll_interval_seconds
        self._handle: Optional[TimerHandleLike] = None
        self._polling = False
        # Bumped on every stop; responses from an older epoch are dropped
        self._epoch = 0

    @property
    def positions(self) -> List[Position]:
        return self.state.positions

    @property
    def polling(self) -> bool:
        return self._polling

    async def fetch(self) -> List[Position]:
        """Fetch positions and replace the local list.

        Raises TradeDeskException subclasses on failure; the list is left as is.
        """
        epoch = self._epoch
        payload = await self.gateway.get_positions()
        try:
            positions = [Position.model_validate(item) for item in payload]
        except ValueError as e:
            raise TransportError(f"Malformed positions payload: {e}") from e

        if epoch != self._epoch or not self.state.is_linked:
            logger.debug("Discarding positions for an inactive session", count=len(positions))
            return positions

        self.state.positions = positions
        self.state.last_positions_sync = datetime.now(timezone.utc)
        self.state.last_positions_error = None
        logger.debug("Positions refreshed", count=len(positions))
        return positions

    async def refresh(self) -> bool:
        """Fetch, logging instead of raising. Used by polling and post-action triggers."""
        try:
            await self.fetch()
            return True
        except TradeDeskException as e:
            self.state.last_positions_error = user_message(e)
            logger.warning("Position refresh failed", **create_error_context(e, "get_positions"))
            return False

    async def start_polling(self) -> None:
        """Fetch now, then every poll interval until stop()."""
        if self._polling:
            return
        self._polling = True
        epoch = self._epoch
        logger.info("Position polling started", interval_seconds=self.poll_interval)
        await self.refresh()
        # Superseded by a stop while the fetch was in flight
        if self._polling and epoch == self._epoch:
            self._schedule_next()

    def stop(self, clear: bool = True) -> None:
        """Stop polling immediately; pending and in-flight ticks are cancelled."""
        was_polling = self._polling
        self._polling = False
        self._epoch += 1
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if clear:
            self.state.clear_positions()
        if was_polling:
            logger.info("Position polling stopped")

    def _schedule_next(self) -> None:
        # Only ever replaces a handle that has already fired
        self._handle = self.timers.schedule(self.poll_interval, self._tick)

    async def _tick(self) -> None:
        if not self._polling:
            return
        epoch = self._epoch
        await self.refresh()
        if self._polling and epoch == self._epoch:
            self._schedule_next()

    async def close(self, position: Position, confirmed: bool = False) -> CloseResult:
        """
        Close an open position by sending the reversing request.

        Args:
            position: The position to flatten; keyed by its security id
            confirmed: Explicit user confirmation; without it nothing is sent

        Raises:
            MissingIdentifierError: position has no security id
            CloseNotConfirmedError: confirmation was not given
            CloseError: the trading service rejected the request or was unreachable
        """
        if not position.security_id:
            raise MissingIdentifierError()
        if not confirmed:
            raise CloseNotConfirmedError(security_id=position.security_id)

        request = position.to_close_request()
        closing_side = position.position_type.closing_side
        logger.info("Closing position", security_id=position.security_id,
                    position=describe_position(position), closing_side=closing_side.value)
        try:
            payload = await self.gateway.close_position(request)
        except TradeDeskException as e:
            logger.warning("Close position failed", **create_error_context(
                e, "close_position", {"security_id": position.security_id}))
            raise CloseError(
                f"Failed to close position: {user_message(e)}",
                security_id=position.security_id,
            ) from e

        result = CloseResult.from_payload(
            payload,
            message=payload.get("message") if isinstance(payload, dict) else None,
            symbol=position.symbol,
            security_id=position.security_id,
            position_type=position.position_type,
            closing_side=closing_side,
        )
        logger.info("Close request accepted", order_id=result.order_id, status=result.status,
                    security_id=position.security_id)
        await self.refresh()
        return result
