import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from cinebook.database import models
from cinebook.exceptions import InvalidState, NotFound
from cinebook.services.booking_service import notification_data
from cinebook.services.notifier import BOOKING_CANCELLED
from cinebook.utils import utcnow

logger = logging.getLogger(__name__)


def get_user_booking(db: Session, booking_id: int, user: models.User) -> models.Booking:
    """A booking owned by ``user``; other users' bookings are reported as missing."""
    booking = (
        db.query(models.Booking)
        .filter(models.Booking.id == booking_id, models.Booking.user_id == user.id)
        .first()
    )
    if booking is None:
        raise NotFound("Booking not found")
    return booking


def list_user_bookings(db: Session, user: models.User) -> List[models.Booking]:
    return (
        db.query(models.Booking)
        .filter(models.Booking.user_id == user.id)
        .order_by(models.Booking.created_at.desc(), models.Booking.id.desc())
        .all()
    )


def _cancel_in_db(
    db: Session, booking_id: int, user_id: int, now: Optional[datetime]
) -> Tuple[models.Booking, Dict[str, Any]]:
    booking = (
        db.query(models.Booking)
        .filter(models.Booking.id == booking_id, models.Booking.user_id == user_id)
        .with_for_update()
        .first()
    )
    if booking is None:
        raise NotFound("Booking not found")
    if booking.status == models.BookingStatus.cancelled.value:
        raise InvalidState("Booking is already cancelled")
    if booking.status != models.BookingStatus.confirmed.value:
        raise InvalidState(f"Only confirmed bookings can be cancelled (status={booking.status})")

    booking.status = models.BookingStatus.cancelled.value
    booking.cancelled_at = now or utcnow()
    # seats stay on the booking for audit; releasing the claims frees them
    db.query(models.SeatClaim).filter(models.SeatClaim.booking_id == booking.id).delete(
        synchronize_session=False
    )
    db.commit()
    db.refresh(booking)
    return booking, notification_data(booking)


async def cancel_booking(
    db: Session,
    booking_id: int,
    user: models.User,
    notifier,
    now: Optional[datetime] = None,
) -> models.Booking:
    """
    Cancel a confirmed booking owned by ``user`` and release its seats.

    Raises NotFound for missing or foreign bookings and InvalidState when the
    booking is not in ``confirmed``.
    """
    booking, data = await run_in_threadpool(_cancel_in_db, db, booking_id, user.id, now)
    logger.info("🚫 Booking cancelled: %s (seats released: %s)", booking.id, list(booking.seats))
    notifier.dispatch(user.id, BOOKING_CANCELLED, data)
    return booking
