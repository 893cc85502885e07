"""Authentication models for the account-link flow."""

from enum import Enum

from pydantic import BaseModel, Field, SecretStr, field_validator


class AuthStatus(Enum):
    """Authentication status enumeration."""
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    ERROR = "error"


class LinkCredentials(BaseModel):
    """Broker client id plus the access token issued by the broker."""
    client_id: str = Field(default="")
    access_token: SecretStr = Field(default=SecretStr(""))

    @field_validator("client_id", mode="before")
    @classmethod
    def strip_client_id(cls, v):
        return v.strip() if isinstance(v, str) else v

    def is_complete(self) -> bool:
        return bool(self.client_id) and bool(self.access_token.get_secret_value().strip())
