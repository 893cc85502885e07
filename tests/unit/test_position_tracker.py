import asyncio

import pytest

from core.config.settings import PositionTrackerSettings
from core.trading.models import Position, PositionType, TransactionType
from core.utils.exceptions import (
    CloseError,
    CloseNotConfirmedError,
    MissingIdentifierError,
    RemoteCallError,
    TransportError,
    ValidationError,
)
from services.portfolio_manager import PositionTracker


@pytest.fixture
def tracker(gateway, linked_state, timers, sample_positions):
    gateway.positions = sample_positions
    return PositionTracker(gateway, linked_state, timers, PositionTrackerSettings())


@pytest.mark.asyncio
async def test_fetch_replaces_list_wholesale(tracker, gateway, linked_state, sample_positions):
    await tracker.fetch()
    assert [p.security_id for p in tracker.positions] == ["2885", "11536"]
    assert linked_state.last_positions_sync is not None

    gateway.positions = sample_positions[1:]
    await tracker.fetch()
    assert [p.security_id for p in tracker.positions] == ["11536"]


@pytest.mark.asyncio
async def test_backend_values_are_kept_verbatim(tracker):
    await tracker.fetch()
    short = tracker.positions[1]
    assert short.position_type is PositionType.SHORT
    assert short.quantity == -5
    assert short.pnl == -12.5
    assert short.ltp == 3602.5


@pytest.mark.asyncio
async def test_fetch_failure_keeps_previous_list(tracker, gateway):
    await tracker.fetch()
    gateway.script("get_positions", TransportError("Could not reach trading service"))

    with pytest.raises(TransportError):
        await tracker.fetch()

    assert len(tracker.positions) == 2


@pytest.mark.asyncio
async def test_malformed_payload_is_transport_error(tracker, gateway):
    gateway.script("get_positions", [{"securityId": "1", "quantity": "many"}])
    with pytest.raises(TransportError):
        await tracker.fetch()


@pytest.mark.asyncio
async def test_refresh_records_error_instead_of_raising(tracker, gateway, linked_state):
    gateway.script("get_positions", RemoteCallError("Session expired"))

    assert await tracker.refresh() is False
    assert linked_state.last_positions_error == "Session expired"

    assert await tracker.refresh() is True
    assert linked_state.last_positions_error is None


@pytest.mark.asyncio
async def test_polling_fetches_immediately_then_every_interval(tracker, gateway, timers):
    await tracker.start_polling()
    assert gateway.count("get_positions") == 1

    await timers.advance(4.9)
    assert gateway.count("get_positions") == 1

    await timers.advance(0.1)
    assert gateway.count("get_positions") == 2

    await timers.advance(10.0)
    assert gateway.count("get_positions") == 4


@pytest.mark.asyncio
async def test_start_polling_twice_keeps_single_schedule(tracker, gateway, timers):
    await tracker.start_polling()
    await tracker.start_polling()

    await timers.advance(5.0)
    assert gateway.count("get_positions") == 2
    assert len(timers.pending) == 1


@pytest.mark.asyncio
async def test_polling_continues_after_failed_tick(tracker, gateway, timers, linked_state):
    await tracker.start_polling()
    gateway.script("get_positions", TransportError("timeout"))

    await timers.advance(5.0)
    assert linked_state.last_positions_error == "timeout"
    assert len(tracker.positions) == 2

    await timers.advance(5.0)
    assert gateway.count("get_positions") == 3
    assert linked_state.last_positions_error is None


@pytest.mark.asyncio
async def test_stop_cancels_timer_and_clears_positions(tracker, gateway, timers):
    await tracker.start_polling()
    tracker.stop()

    await timers.advance(30.0)

    assert gateway.count("get_positions") == 1
    assert tracker.positions == []
    assert not tracker.polling
    assert timers.pending == []


@pytest.mark.asyncio
async def test_response_arriving_after_stop_is_discarded(tracker, gateway, linked_state):
    gate = asyncio.Event()
    gateway.gates["get_positions"] = gate

    fetch = asyncio.create_task(tracker.fetch())
    await asyncio.sleep(0)
    tracker.stop()
    gate.set()
    await fetch

    assert linked_state.positions == []
    assert linked_state.last_positions_sync is None


@pytest.mark.asyncio
async def test_in_flight_tick_does_not_reschedule_after_stop(tracker, gateway, timers):
    await tracker.start_polling()

    def stop_during_fetch():
        tracker.stop()
        return []

    gateway.script("get_positions", stop_during_fetch)
    await timers.advance(5.0)
    await timers.advance(30.0)

    assert gateway.count("get_positions") == 2
    assert timers.pending == []


@pytest.mark.asyncio
async def test_fetch_without_account_does_not_populate(gateway, state, timers, sample_positions):
    gateway.positions = sample_positions
    tracker = PositionTracker(gateway, state, timers, PositionTrackerSettings())

    await tracker.fetch()
    assert state.positions == []


@pytest.mark.asyncio
@pytest.mark.parametrize("position_type,quantity,expected_side", [
    ("LONG", 10, TransactionType.SELL),
    ("SHORT", -5, TransactionType.BUY),
])
async def test_close_sends_reversing_request(tracker, gateway, position_type, quantity, expected_side):
    position = Position(symbol="RELIANCE", security_id="2885", exchange="NSE", quantity=quantity,
                        position_type=position_type, product_type="INTRADAY")

    result = await tracker.close(position, confirmed=True)

    (_, sent), = gateway.calls_for("close_position")
    assert sent == {
        "securityId": "2885",
        "exchange": "NSE",
        "quantity": abs(quantity),
        "productType": "INTRADAY",
        "positionType": position_type,
    }
    assert result.closing_side is expected_side
    assert result.order_id == "ORD-CLOSE-1"
    # Successful close refreshes the list
    assert gateway.count("get_positions") == 1


@pytest.mark.asyncio
async def test_close_without_security_id_sends_nothing(tracker, gateway):
    position = Position(symbol="RELIANCE", security_id="  ", quantity=10)

    with pytest.raises(MissingIdentifierError) as exc_info:
        await tracker.close(position, confirmed=True)

    assert isinstance(exc_info.value, CloseError)
    assert isinstance(exc_info.value, ValidationError)
    assert exc_info.value.reason == CloseError.MISSING_IDENTIFIER
    assert gateway.network_calls == 0


@pytest.mark.asyncio
async def test_close_requires_confirmation(tracker, gateway):
    position = Position(symbol="RELIANCE", security_id="2885", quantity=10)

    with pytest.raises(CloseNotConfirmedError) as exc_info:
        await tracker.close(position)

    assert exc_info.value.security_id == "2885"
    assert gateway.network_calls == 0


@pytest.mark.asyncio
async def test_remote_close_failure_keeps_positions(tracker, gateway):
    await tracker.fetch()
    gateway.script("close_position", RemoteCallError("Market closed", status_code=400))

    with pytest.raises(CloseError) as exc_info:
        await tracker.close(tracker.positions[0], confirmed=True)

    assert exc_info.value.reason == CloseError.REMOTE
    assert exc_info.value.message == "Failed to close position: Market closed"
    assert len(tracker.positions) == 2
    assert gateway.count("get_positions") == 1


@pytest.mark.asyncio
async def test_emptied_server_list_empties_local_list(tracker, gateway, sample_positions):
    gateway.script("get_positions", sample_positions[1:], [])

    await tracker.fetch()
    assert [p.symbol for p in tracker.positions] == ["TCS"]

    await tracker.fetch()
    assert tracker.positions == []


@pytest.mark.asyncio
async def test_null_text_fields_do_not_drop_the_list(tracker, gateway, sample_positions):
    gateway.script("get_positions", [
        {"symbol": "TCS", "securityId": "500", "exchange": None, "quantity": 3,
         "avgPrice": None, "ltp": 3600.0, "pnl": None, "positionType": "LONG",
         "productType": None},
        sample_positions[0],
    ])

    await tracker.fetch()

    assert [p.security_id for p in tracker.positions] == ["500", "2885"]
    tcs = tracker.positions[0]
    assert (tcs.exchange, tcs.product_type) == ("", "")
    assert (tcs.avg_price, tcs.pnl) == (0, 0)


@pytest.mark.asyncio
@pytest.mark.parametrize("quantity,expected", [(4, PositionType.LONG), (-4, PositionType.SHORT)])
async def test_null_position_type_follows_quantity_sign(tracker, gateway, quantity, expected):
    gateway.script("get_positions", [
        {"symbol": "TCS", "securityId": "500", "quantity": quantity, "positionType": None},
    ])

    await tracker.fetch()

    assert tracker.positions[0].position_type is expected


@pytest.mark.asyncio
async def test_restart_during_first_fetch_keeps_single_schedule(tracker, gateway, timers):
    gate = asyncio.Event()
    gateway.gates["get_positions"] = gate

    first = asyncio.create_task(tracker.start_polling())
    await asyncio.sleep(0)
    tracker.stop()
    second = asyncio.create_task(tracker.start_polling())
    await asyncio.sleep(0)

    gate.set()
    await asyncio.gather(first, second)
    del gateway.gates["get_positions"]

    assert len(timers.pending) == 1
    await timers.advance(5.0)
    assert gateway.count("get_positions") == 3
