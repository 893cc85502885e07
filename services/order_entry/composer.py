"""Order Composer - draft order state, validation and submission."""

from typing import Any, Awaitable, Callable, Optional

from core.config.settings import OrderEntrySettings
from core.logging import get_trading_logger_safe
from core.trading.interfaces import TradingGateway
from core.trading.models import Instrument, OrderDraft, OrderResult, OrderType, ProductType
from core.trading.state import SessionState
from core.utils.exceptions import (
    SubmissionError,
    TradeDeskException,
    ValidationError,
    create_error_context,
    user_message,
)

logger = get_trading_logger_safe(__name__)

RefreshTrigger = Callable[[], Awaitable[Any]]

# Fields a user may edit directly; the security id only arrives via select_instrument
EDITABLE_FIELDS = {
    "symbol", "exchange", "transaction_type", "quantity", "price", "order_type", "product_type",
}


class OrderComposer:
    """Holds the draft for one session and turns it into an order request."""

    def __init__(self, gateway: TradingGateway, state: SessionState,
                 settings: Optional[OrderEntrySettings] = None,
                 on_submitted: Optional[RefreshTrigger] = None):
        self.gateway = gateway
        self.state = state
        self.settings = settings or OrderEntrySettings()
        self.on_submitted = on_submitted
        self._submitting = False
        self.state.draft = self.new_draft()

    @property
    def draft(self) -> OrderDraft:
        return self.state.draft

    @property
    def submitting(self) -> bool:
        return self._submitting

    def new_draft(self) -> OrderDraft:
        return OrderDraft(
            exchange=self.settings.default_exchange,
            product_type=ProductType(self.settings.default_product_type),
        )

    def reset(self) -> OrderDraft:
        self.state.draft = self.new_draft()
        return self.state.draft

    def select_instrument(self, instrument: Instrument) -> OrderDraft:
        """Bind the draft to a resolved instrument."""
        updates = {
            "symbol": instrument.trading_symbol,
            "security_id": instrument.security_id,
        }
        if instrument.exchange_segment:
            updates["exchange"] = instrument.exchange_segment
        self.state.draft = self.draft.model_copy(update=updates)
        logger.debug("Instrument selected", symbol=instrument.trading_symbol,
                     security_id=instrument.security_id)
        return self.state.draft

    def update(self, **fields: Any) -> OrderDraft:
        """Apply user edits atomically; invalid values leave the draft untouched."""
        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            field = sorted(unknown)[0]
            raise ValidationError(
                f"Field '{field}' cannot be edited directly; select an instrument instead"
                if field == "security_id" else f"Unknown draft field '{field}'",
                field=field,
                value=fields[field],
            )

        data = self.draft.model_dump()
        if "symbol" in fields:
            fields["symbol"] = str(fields["symbol"]).strip().upper()
            if fields["symbol"] != self.draft.symbol:
                # New free text unbinds the previously selected instrument
                data["security_id"] = ""
        data.update(fields)
        try:
            self.state.draft = OrderDraft.model_validate(data)
        except ValueError as e:
            field = next(iter(fields)) if len(fields) == 1 else None
            raise ValidationError(f"Invalid draft value: {e}", field=field) from e
        return self.state.draft

    def validate(self, draft: Optional[OrderDraft] = None) -> OrderDraft:
        """Local checks that must pass before any request is sent."""
        draft = draft or self.draft
        if not draft.has_instrument:
            raise ValidationError("Select an instrument before placing an order",
                                  field="security_id", value=draft.security_id)
        if draft.quantity <= 0:
            raise ValidationError("Quantity must be a positive whole number",
                                  field="quantity", value=draft.quantity)
        if draft.order_type is OrderType.LIMIT and draft.price <= 0:
            raise ValidationError("Limit orders need a positive price",
                                  field="price", value=draft.price)
        return draft

    def build_order_request(self) -> dict:
        return self.validate().to_order_request()

    async def submit(self) -> OrderResult:
        """
        Submit the current draft.

        Raises:
            ValidationError: local precondition failed, nothing was sent
            SubmissionError: the trading service rejected the order or was unreachable
        """
        if self._submitting:
            raise ValidationError("An order is already being submitted", field="draft")

        draft = self.validate()
        request = draft.to_order_request()

        self._submitting = True
        try:
            logger.info("Submitting order", security_id=draft.security_id, symbol=draft.symbol,
                        side=draft.transaction_type.value, quantity=draft.quantity,
                        order_type=draft.order_type.value)
            payload = await self.gateway.place_order(request)
        except TradeDeskException as e:
            logger.warning("Order submission failed", **create_error_context(
                e, "place_order", {"security_id": draft.security_id}))
            raise SubmissionError(f"Order failed: {user_message(e)}") from e
        finally:
            self._submitting = False

        result = OrderResult.from_payload(
            payload,
            message=payload.get("message") if isinstance(payload, dict) else None,
            symbol=draft.symbol,
            security_id=draft.security_id,
        )
        self.reset()
        logger.info("Order accepted", order_id=result.order_id, status=result.status,
                    security_id=result.security_id)

        if self.on_submitted is not None:
            await self.on_submitted()
        return result
