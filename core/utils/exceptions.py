# Structured exception hierarchy for the Trade Desk engine

from typing import Dict, Any, Optional
from datetime import datetime, timezone


class TradeDeskException(Exception):
    """Base exception for all Trade Desk specific errors"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc)


# Remote boundary errors
class TransportError(TradeDeskException):
    """Network or unexpected failure talking to the trading service"""
    pass


class RemoteCallError(TradeDeskException):
    """Trading service answered with a false/absent success indicator"""

    def __init__(self, message: str, status_code: Optional[int] = None,
                 api_response: Optional[Dict[str, Any]] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.status_code = status_code
        self.api_response = api_response or {}


# Session errors
class AuthError(TradeDeskException):
    """Account link rejected - no session formed"""
    pass


# Local precondition errors
class ValidationError(TradeDeskException):
    """Local precondition failed - no network call was made"""

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None,
                 **kwargs):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value


# Order errors
class SubmissionError(TradeDeskException):
    """Order submission failed remotely - draft left unchanged"""
    pass


# Position errors
class CloseError(TradeDeskException):
    """Closing a position failed - positions left unchanged"""

    MISSING_IDENTIFIER = "missing_identifier"
    NOT_CONFIRMED = "not_confirmed"
    REMOTE = "remote"

    def __init__(self, message: str, reason: str = REMOTE,
                 security_id: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.reason = reason
        self.security_id = security_id


class MissingIdentifierError(CloseError, ValidationError):
    """Position has no security id, so there is nothing to key the close on"""

    def __init__(self, message: str = "Position has no security id; cannot close it",
                 **kwargs):
        super().__init__(message, reason=CloseError.MISSING_IDENTIFIER,
                         field="security_id", **kwargs)


class CloseNotConfirmedError(CloseError, ValidationError):
    """Close requested without explicit user confirmation"""

    def __init__(self, message: str = "Closing a position requires confirmation",
                 security_id: Optional[str] = None, **kwargs):
        super().__init__(message, reason=CloseError.NOT_CONFIRMED,
                         security_id=security_id, field="confirmed", value=False,
                         **kwargs)


def user_message(error: Exception) -> str:
    """Most specific human readable message for an error."""
    if isinstance(error, TradeDeskException) and error.message:
        return error.message
    return str(error) or type(error).__name__


def create_error_context(error: Exception, operation: str,
                        additional_context: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Create structured error context for logging

    Args:
        error: The exception that occurred
        operation: The operation that failed
        additional_context: Additional context information

    Returns:
        Structured error context dictionary
    """
    context = {
        "error_type": type(error).__name__,
        "error_message": user_message(error),
        "operation": operation,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    if isinstance(error, TradeDeskException):
        if error.details:
            context["error_details"] = error.details

        if isinstance(error, RemoteCallError) and error.status_code is not None:
            context["status_code"] = error.status_code

        if isinstance(error, ValidationError) and error.field:
            context["field"] = error.field

        if isinstance(error, CloseError):
            context["reason"] = error.reason
            if error.security_id:
                context["security_id"] = error.security_id

    # Merge additional context
    if additional_context:
        context.update(additional_context)

    return context
