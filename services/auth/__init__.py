"""Account linking and the single active trading session."""

from .session_manager import SessionManager
from .models import AuthStatus, LinkCredentials

__all__ = [
    "SessionManager",
    "AuthStatus",
    "LinkCredentials",
]
