# services/auth/session_manager.py

"""Holds the single linked-account identity for a trading session."""

from typing import Awaitable, Callable, List, Optional

from core.logging import bind_account_context, get_audit_logger_safe
from core.trading.interfaces import TradingGateway
from core.trading.models import Account
from core.trading.state import SessionState
from core.utils.exceptions import (
    AuthError,
    TradeDeskException,
    ValidationError,
    create_error_context,
    user_message,
)
from .models import AuthStatus, LinkCredentials

logger = get_audit_logger_safe(__name__)

AccountListener = Callable[[Optional[Account]], Awaitable[None]]


class SessionManager:
    """Owns account activation for one SessionState.

    Listeners are notified with the new Account on activation and with
    None on deactivation; the engine uses this to arm and stop position
    polling.
    """

    def __init__(self, gateway: TradingGateway, state: SessionState):
        self.gateway = gateway
        self.state = state
        self._status = AuthStatus.UNAUTHENTICATED
        self._listeners: List[AccountListener] = []

    @property
    def status(self) -> AuthStatus:
        return self._status

    def add_listener(self, listener: AccountListener) -> None:
        self._listeners.append(listener)

    def get_active_account(self) -> Optional[Account]:
        return self.state.account

    async def start(self) -> Optional[Account]:
        """Best-effort restore of an account the service already has linked."""
        try:
            payload = await self.gateway.get_account()
        except TradeDeskException as e:
            logger.info("No active account restored", **create_error_context(e, "get_account"))
            return None

        if not payload:
            logger.info("No active account linked")
            return None

        try:
            account = Account.from_payload(payload)
        except ValueError as e:
            logger.warning("Ignoring malformed account payload", error=str(e))
            return None
        if not account.client_id or not account.is_linked:
            logger.info("Service reported an inactive account", client_id=account.client_id or None)
            return None

        await self._activate(account)
        bind_account_context(logger, account.client_id).info("Restored active account")
        return account

    async def link(self, credentials: LinkCredentials) -> Account:
        """Link a broker account. Single shot: failures leave the session logged out."""
        if not credentials.is_complete():
            raise ValidationError("Client id and access token are required", field="credentials")

        self._status = AuthStatus.AUTHENTICATING
        try:
            payload = await self.gateway.link_account(
                credentials.client_id,
                credentials.access_token.get_secret_value(),
            )
            account = Account.from_payload(payload)
        except TradeDeskException as e:
            self._status = AuthStatus.ERROR if self.state.account is None else AuthStatus.AUTHENTICATED
            logger.warning("Account link failed", client_id=credentials.client_id,
                           **create_error_context(e, "link_account"))
            raise AuthError(f"Failed to link account: {user_message(e)}") from e
        except ValueError as e:
            self._status = AuthStatus.ERROR if self.state.account is None else AuthStatus.AUTHENTICATED
            raise AuthError(f"Failed to link account: invalid account payload ({e})") from e

        if not account.client_id:
            account = account.model_copy(update={"client_id": credentials.client_id})

        await self._activate(account)
        bind_account_context(logger, account.client_id).info("Account linked")
        return account

    async def unlink(self) -> None:
        """Drop the local session. Polling stops and positions are cleared by listeners."""
        if self.state.account is None:
            return
        client_id = self.state.account.client_id
        self.state.account = None
        self._status = AuthStatus.UNAUTHENTICATED
        bind_account_context(logger, client_id).info("Account unlinked")
        await self._notify(None)

    async def _activate(self, account: Account) -> None:
        self.state.account = account
        self._status = AuthStatus.AUTHENTICATED
        await self._notify(account)

    async def _notify(self, account: Optional[Account]) -> None:
        for listener in list(self._listeners):
            await listener(account)
