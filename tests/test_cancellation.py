from datetime import datetime

import pytest

from cinebook.database import models
from cinebook.exceptions import InvalidState, NotFound
from cinebook.services.booking_service import BookingReconciler, PaymentProof
from cinebook.services.cancellation_service import (
    cancel_booking,
    get_user_booking,
    list_user_bookings,
)
from cinebook.services.intent_service import build_intent
from cinebook.services.notifier import BOOKING_CANCELLED
from cinebook.services.payment_service import record_order
from cinebook.services.seat_ledger import occupied_seats


async def _book(db, catalog, gateway, notifier, user, seats, order_id):
    intent = build_intent(db, user, catalog.movie_id, catalog.theater_name, catalog.start, seats)
    record_order(db, order_id, intent.amount, user, "INR")
    proof = PaymentProof(order_id, f"pay_{order_id}", gateway.sign(order_id, f"pay_{order_id}"))
    return await BookingReconciler(notifier).commit(db, intent, proof, user)


@pytest.mark.asyncio
async def test_cancelled_seats_can_be_booked_again(db, catalog, gateway, notifier):
    booking = await _book(db, catalog, gateway, notifier, catalog.alice, ["B1", "B2"], "order_1")
    assert booking.amount == 500

    cancelled = await cancel_booking(db, booking.id, catalog.alice, notifier)

    assert cancelled.status == models.BookingStatus.cancelled.value
    assert cancelled.cancelled_at is not None
    assert cancelled.seats == ["B1", "B2"]
    assert cancelled.amount == 500
    assert not {"B1", "B2"} & occupied_seats(db, *catalog.triple)

    intent = build_intent(db, catalog.bob, catalog.movie_id, catalog.theater_name, catalog.start, ["B1", "B2"])
    assert intent.amount == 500

    user_id, template, data = notifier.dispatch.call_args.args
    assert (user_id, template) == (catalog.alice.id, BOOKING_CANCELLED)
    assert data["booking_id"] == booking.id


@pytest.mark.asyncio
async def test_cancel_stamps_given_time(db, catalog, gateway, notifier):
    booking = await _book(db, catalog, gateway, notifier, catalog.alice, ["C1"], "order_1")
    when = datetime(2030, 1, 1, 12, 0)

    cancelled = await cancel_booking(db, booking.id, catalog.alice, notifier, now=when)

    assert cancelled.cancelled_at == when


@pytest.mark.asyncio
async def test_cancelling_twice_is_invalid(db, catalog, gateway, notifier):
    booking = await _book(db, catalog, gateway, notifier, catalog.alice, ["C1"], "order_1")
    await cancel_booking(db, booking.id, catalog.alice, notifier)

    with pytest.raises(InvalidState) as exc:
        await cancel_booking(db, booking.id, catalog.alice, notifier)
    assert exc.value.status_code == 409


@pytest.mark.asyncio
async def test_pending_booking_cannot_be_cancelled(db, catalog, notifier, add_booking):
    booking_id = add_booking(catalog.alice.id, ["D1"], status=models.BookingStatus.pending.value)

    with pytest.raises(InvalidState):
        await cancel_booking(db, booking_id, catalog.alice, notifier)


@pytest.mark.asyncio
async def test_only_the_owner_can_cancel(db, catalog, gateway, notifier):
    booking = await _book(db, catalog, gateway, notifier, catalog.alice, ["E1"], "order_1")

    with pytest.raises(NotFound):
        await cancel_booking(db, booking.id, catalog.bob, notifier)
    with pytest.raises(NotFound):
        await cancel_booking(db, 424242, catalog.alice, notifier)

    assert "E1" in occupied_seats(db, *catalog.triple)


def test_history_is_owner_scoped_and_newest_first(db, catalog, add_booking):
    older = add_booking(catalog.alice.id, ["A1"])
    newer = add_booking(catalog.alice.id, ["A2"])
    add_booking(catalog.bob.id, ["A3"])

    assert [b.id for b in list_user_bookings(db, catalog.alice)] == [newer, older]
    assert get_user_booking(db, older, catalog.alice).seats == ["A1"]
    with pytest.raises(NotFound):
        get_user_booking(db, older, catalog.bob)
