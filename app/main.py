# app/main.py

import asyncio
import signal

from core.logging import configure_logging, get_logger
from core.trading.utils import describe_position, format_pnl, total_pnl
from app.containers import AppContainer


class ApplicationOrchestrator:
    """Runs the engine until interrupted: restores the account and keeps positions polled."""

    def __init__(self, container: AppContainer = None):
        self.container = container or AppContainer()
        self._shutdown_event = asyncio.Event()

        self.settings = self.container.settings()
        configure_logging(self.settings)
        self.logger = get_logger("trade_desk.main", component="application")
        self.engine = self.container.trading_engine()

    async def startup(self) -> bool:
        """Start the engine; returns True when an account is active."""
        self.logger.info("🚀 Starting trade desk", base_url=self.settings.trading_api.base_url)
        account = await self.engine.start()
        if account is None:
            self.logger.warning("No linked account - link one with `trade-desk link` first")
            return False
        self.logger.info("✅ Watching positions", client_id=account.client_id,
                         interval_seconds=self.settings.positions.poll_interval_seconds)
        return True

    async def shutdown(self) -> None:
        self.logger.info("🛑 Shutting down trade desk...")
        await self.engine.shutdown()
        self.logger.info("✅ Trade desk shut down")

    def request_shutdown(self) -> None:
        self._shutdown_event.set()

    async def _report_loop(self) -> None:
        """Log a position summary once per poll interval."""
        interval = self.settings.positions.poll_interval_seconds
        while not self._shutdown_event.is_set():
            positions = self.engine.positions
            self.logger.info("Positions", count=len(positions),
                             total_pnl=format_pnl(total_pnl(positions)),
                             error=self.engine.state.last_positions_error)
            for position in positions:
                self.logger.info(describe_position(position))
            try:
                await asyncio.wait_for(self._shutdown_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass

    async def run(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.request_shutdown)
            except NotImplementedError:
                # Windows event loops do not support signal handlers
                pass

        try:
            if await self.startup():
                await self._report_loop()
        finally:
            await self.shutdown()


async def main():
    app = ApplicationOrchestrator()
    await app.run()


if __name__ == "__main__":
    asyncio.run(main())
