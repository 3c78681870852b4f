# cinebook/services/booking_service.py
"""
Booking reconciler: turns a verified payment plus an order intent into a
confirmed booking, or fails the whole thing.

Two layers keep a seat from being sold twice for the same triple:

* a Redis lock per (movie, theater, showtime) serializes reconcilers across
  processes, so the ledger re-check normally sees every earlier commit;
* the ``seat_claims`` unique constraint makes the insert itself conditional.
  If two writers still race (no Redis, lock expired), the loser's transaction
  fails with IntegrityError and is rolled back in full.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from cinebook.core.config import COMMIT_LOCK_TTL_MS, COMMIT_LOCK_WAIT_MS
from cinebook.database import models
from cinebook.database.payment_models import ORDER_ORPHANED, ORDER_PAID, PaymentOrder
from cinebook.exceptions import (
    AmountMismatch,
    BookingError,
    InvalidState,
    NotFound,
    PaymentNotBookable,
    SeatConflict,
)
from cinebook.services.intent_service import OrderIntent
from cinebook.services.lock_service import triple_lock
from cinebook.services.notifier import BOOKING_CONFIRMED
from cinebook.services.seat_ledger import occupied_seats

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentProof:
    """Gateway callback fields that already passed signature verification."""
    order_id: str
    payment_id: str
    signature: str


def notification_data(booking: models.Booking) -> Dict[str, Any]:
    return {
        "booking_id": booking.id,
        "movie_title": booking.movie.title if booking.movie else None,
        "theater_name": booking.theater_name,
        "theater_location": booking.theater_location,
        "showtime": booking.showtime_start.strftime("%d %b %Y, %I:%M %p"),
        "seats": list(booking.seats),
        "amount": booking.amount,
    }


class BookingReconciler:
    def __init__(
        self,
        notifier,
        redis=None,
        lock_ttl_ms: int = COMMIT_LOCK_TTL_MS,
        lock_wait_ms: int = COMMIT_LOCK_WAIT_MS,
    ):
        self.notifier = notifier
        self.redis = redis
        self.lock_ttl_ms = lock_ttl_ms
        self.lock_wait_ms = lock_wait_ms

    async def commit(
        self, db: Session, intent: OrderIntent, proof: PaymentProof, user: models.User
    ) -> models.Booking:
        """
        Re-check the intent's seats and persist a confirmed, paid booking.

        Raises SeatConflict (commit-time variant) if any seat was taken since
        the intent was built; nothing is written for the booking in that case
        and the payment order is flagged for refund.
        """
        async with triple_lock(self.redis, intent.triple, self.lock_ttl_ms, self.lock_wait_ms):
            booking, replayed, data = await run_in_threadpool(
                self._check_and_write, db, intent, proof, user.id
            )

        if replayed:
            logger.info("Payment %s already settled as booking %s", proof.payment_id, booking.id)
            return booking

        logger.info("✅ Booking confirmed: %s (seats=%s)", booking.id, list(booking.seats))
        self.notifier.dispatch(user.id, BOOKING_CONFIRMED, data)
        return booking

    async def reject(
        self, db: Session, proof: PaymentProof, user: models.User, reason: BookingError
    ) -> models.Booking:
        """
        Settle a verified payment whose booking request no longer validates,
        for example because the showtime has started.

        A replay of an already booked payment returns that booking; otherwise
        the order is flagged for refund and PaymentNotBookable is raised.
        """
        return await run_in_threadpool(self._reject, db, proof, user.id, reason)

    # --------- runs in the thread pool ---------

    def _reject(
        self, db: Session, proof: PaymentProof, user_id: int, reason: BookingError
    ) -> models.Booking:
        order = self._load_order(db, proof.order_id)
        if order is None or order.user_id != user_id:
            raise NotFound("Payment order not found")
        if order.status == ORDER_PAID:
            return self._settled_booking(db, order, proof)
        if order.status != ORDER_ORPHANED:
            self._orphan(db, order.order_id, proof, {"error": reason.code, "detail": reason.message})
        raise PaymentNotBookable(reason)

    def _check_and_write(
        self, db: Session, intent: OrderIntent, proof: PaymentProof, user_id: int
    ) -> Tuple[models.Booking, bool, Optional[Dict[str, Any]]]:
        order = self._load_order(db, proof.order_id)
        if order is None or order.user_id != user_id:
            raise NotFound("Payment order not found")

        if order.status == ORDER_PAID:
            return self._settled_booking(db, order, proof), True, None
        if order.status == ORDER_ORPHANED:
            raise InvalidState("Payment order was rejected earlier; contact support for a refund")

        if order.amount != intent.amount:
            logger.warning(
                "Amount mismatch for order %s: quoted=%s intent=%s", order.order_id, order.amount, intent.amount
            )
            raise AmountMismatch(f"Order amount {order.amount} does not match booking amount {intent.amount}")

        conflicts = self._conflicts(db, intent)
        if conflicts:
            self._orphan(db, order.order_id, proof, {"error": "seat_conflict", "conflicting_seats": conflicts})
            raise SeatConflict(conflicts, after_payment=True)

        booking = models.Booking(
            user_id=user_id,
            movie_id=intent.movie_id,
            theater_name=intent.theater_name,
            theater_location=intent.theater_location,
            showtime_id=intent.showtime_id,
            showtime_start=intent.showtime_start,
            seats=list(intent.seats),
            amount=intent.amount,
            status=models.BookingStatus.confirmed.value,
            payment_status=models.PaymentStatus.paid.value,
            order_id=proof.order_id,
            payment_id=proof.payment_id,
        )
        booking.claims = [
            models.SeatClaim(
                movie_id=intent.movie_id,
                theater_name=intent.theater_name,
                showtime_start=intent.showtime_start,
                seat_label=seat,
            )
            for seat in intent.seats
        ]
        try:
            db.add(booking)
            db.flush()
            order.status = ORDER_PAID
            order.payment_id = proof.payment_id
            order.booking_id = booking.id
            db.commit()
        except IntegrityError:
            db.rollback()
            conflicts = self._conflicts(db, intent) or list(intent.seats)
            logger.warning("Seat claim constraint rejected booking for order %s", proof.order_id)
            self._orphan(db, proof.order_id, proof, {"error": "seat_conflict", "conflicting_seats": conflicts})
            raise SeatConflict(conflicts, after_payment=True)

        db.refresh(booking)
        return booking, False, notification_data(booking)

    @staticmethod
    def _load_order(db: Session, order_id: str) -> Optional[PaymentOrder]:
        return (
            db.query(PaymentOrder)
            .filter(PaymentOrder.order_id == order_id)
            .with_for_update()
            .first()
        )

    @staticmethod
    def _conflicts(db: Session, intent: OrderIntent) -> List[str]:
        occupied = occupied_seats(db, *intent.triple)
        return [s for s in intent.seats if s in occupied]

    @staticmethod
    def _settled_booking(db: Session, order: PaymentOrder, proof: PaymentProof) -> models.Booking:
        """The booking a replayed callback already produced; anything else is a state error."""
        existing = db.get(models.Booking, order.booking_id) if order.booking_id else None
        if existing is None or order.payment_id != proof.payment_id:
            raise InvalidState("Payment order is already settled")
        if existing.status != models.BookingStatus.confirmed.value:
            raise InvalidState(f"Booking {existing.id} for this payment is {existing.status}")
        return existing

    def _orphan(self, db: Session, order_id: str, proof: PaymentProof, reason: Dict[str, Any]) -> None:
        """Flag a captured payment that produced no booking so support can refund it."""
        order = self._load_order(db, order_id)
        if order is None:
            return
        order.status = ORDER_ORPHANED
        order.payment_id = proof.payment_id
        order.meta = {**(order.meta or {}), **reason}
        db.commit()
        logger.error(
            "❌ Payment %s for order %s captured but not booked (%s); refund required",
            proof.payment_id, order_id, reason,
        )
