from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel


class TransactionType(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class OrderType(str, Enum):
    MARKET = "MARKET"
    LIMIT = "LIMIT"


class ProductType(str, Enum):
    INTRADAY = "INTRADAY"
    CNC = "CNC"

    @classmethod
    def _missing_(cls, value):
        # Delivery is the broker's CNC product
        if isinstance(value, str):
            normalized = value.strip().upper()
            if normalized == "DELIVERY":
                return cls.CNC
            for member in cls:
                if member.value == normalized:
                    return member
        return None


class PositionType(str, Enum):
    LONG = "LONG"
    SHORT = "SHORT"

    @property
    def closing_side(self) -> TransactionType:
        """Side of the order that flattens a position of this type."""
        return TransactionType.SELL if self is PositionType.LONG else TransactionType.BUY


class WireModel(BaseModel):
    """Base for models exchanged with the trading service (camelCase on the wire)."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class Account(WireModel):
    client_id: str
    is_linked: bool = True
    linked_at: Optional[datetime] = None
    last_synced_at: Optional[datetime] = None

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "Account":
        """Build from the service payload; the access token is never kept."""
        linked = data.get("isLinked", data.get("active", data.get("isActive", True)))
        return cls(
            client_id=str(data.get("clientId") or data.get("client_id") or ""),
            is_linked=bool(linked),
            linked_at=data.get("linkedAt"),
            last_synced_at=data.get("lastSyncedAt"),
        )


class Instrument(WireModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    trading_symbol: str
    security_id: str
    name: str = ""
    exchange_segment: str = ""
    instrument_type: Optional[str] = None
    tick_size: Optional[float] = None
    lot_size: Optional[int] = None

    @field_validator("security_id", mode="before")
    @classmethod
    def coerce_security_id(cls, v):
        # The instrument master sometimes carries numeric ids
        return str(v).strip() if v is not None else v

    @property
    def label(self) -> str:
        if self.name and self.name != self.trading_symbol:
            return f"{self.trading_symbol} - {self.name}"
        return self.trading_symbol


class OrderDraft(WireModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        validate_assignment=True,
    )

    symbol: str = ""
    security_id: str = ""
    exchange: str = "NSE"
    transaction_type: TransactionType = TransactionType.BUY
    quantity: int = 1
    price: float = Field(default=0.0, ge=0)
    order_type: OrderType = OrderType.MARKET
    product_type: ProductType = ProductType.INTRADAY

    @property
    def has_instrument(self) -> bool:
        return bool(self.security_id.strip())

    @property
    def is_valid(self) -> bool:
        if not self.has_instrument or self.quantity <= 0:
            return False
        if self.order_type is OrderType.LIMIT and self.price <= 0:
            return False
        return True

    def to_order_request(self) -> Dict[str, Any]:
        """Submit-ready body. The display symbol is never part of it."""
        body: Dict[str, Any] = {
            "securityId": self.security_id.strip(),
            "exchange": self.exchange,
            "transactionType": self.transaction_type.value,
            "quantity": self.quantity,
            "orderType": self.order_type.value,
            "productType": self.product_type.value,
        }
        if self.order_type is OrderType.LIMIT:
            body["price"] = self.price
        return body


class Position(WireModel):
    symbol: str = ""
    security_id: Optional[str] = None
    exchange: str = ""
    quantity: int = 0
    avg_price: float = 0.0
    ltp: float = 0.0
    pnl: float = 0.0
    position_type: PositionType = PositionType.LONG
    product_type: str = ""

    @field_validator("security_id", mode="before")
    @classmethod
    def coerce_security_id(cls, v):
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @field_validator("symbol", "exchange", "product_type", mode="before")
    @classmethod
    def coerce_missing_text(cls, v):
        # The service serializes absent text fields as null
        return "" if v is None else v

    @field_validator("quantity", "avg_price", "ltp", "pnl", mode="before")
    @classmethod
    def coerce_missing_number(cls, v):
        return 0 if v is None else v

    @field_validator("position_type", mode="before")
    @classmethod
    def coerce_position_type(cls, v, info: ValidationInfo):
        if v is None or (isinstance(v, str) and not v.strip()):
            quantity = info.data.get("quantity") or 0
            return PositionType.SHORT if quantity < 0 else PositionType.LONG
        return v.strip().upper() if isinstance(v, str) else v

    def to_close_request(self) -> Dict[str, Any]:
        return {
            "securityId": self.security_id,
            "exchange": self.exchange,
            "quantity": abs(self.quantity),
            "productType": self.product_type,
            "positionType": self.position_type.value,
        }


class OrderResult(BaseModel):
    order_id: Optional[str] = None
    status: Optional[str] = None
    message: Optional[str] = None
    symbol: str = ""
    security_id: str = ""

    @classmethod
    def from_payload(cls, data: Optional[Dict[str, Any]], message: Optional[str] = None,
                     **kwargs) -> "OrderResult":
        data = data or {}
        order_id = data.get("orderId")
        return cls(
            order_id=str(order_id) if order_id is not None else None,
            status=data.get("status") or data.get("orderStatus"),
            message=message,
            **kwargs,
        )


class CloseResult(OrderResult):
    position_type: PositionType
    closing_side: TransactionType
