# Application DI container
from dependency_injector import containers, providers

from core.config.settings import Settings
from core.trading.state import SessionState
from core.utils.timers import AsyncioTimerScheduler
from services.trading_api.client import TradingApiClient
from app.engine import TradingEngine


class AppContainer(containers.DeclarativeContainer):
    """Application dependency injection container"""

    # Configuration
    settings = providers.Singleton(Settings)

    # Remote trading service
    trading_api_client = providers.Singleton(
        TradingApiClient,
        settings=settings.provided.trading_api,
    )

    # Debounce and polling timers
    timer_scheduler = providers.Singleton(AsyncioTimerScheduler)

    # The single session this process owns
    session_state = providers.Singleton(SessionState)

    trading_engine = providers.Singleton(
        TradingEngine,
        settings=settings,
        gateway=trading_api_client,
        timers=timer_scheduler,
        state=session_state,
    )
