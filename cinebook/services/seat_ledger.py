"""
Seat ledger: which seats of a showtime can no longer be sold.

A seat is occupied when the showtime blocks it (maintenance or VIP holds) or
when a non-cancelled booking claims it. The answer is a point-in-time
snapshot; the reconciler repeats the check at commit time.
"""
import logging
from datetime import datetime
from typing import Set

from sqlalchemy.orm import Session

from cinebook.database import models
from cinebook.services.catalog_service import get_showtime
from cinebook.utils import normalize_seat_label, to_utc_naive

logger = logging.getLogger(__name__)


def claimed_seats(db: Session, movie_id: int, theater_name: str, showtime_start: datetime) -> Set[str]:
    """Seats held by bookings that are not cancelled."""
    rows = (
        db.query(models.SeatClaim.seat_label)
        .join(models.Booking, models.SeatClaim.booking_id == models.Booking.id)
        .filter(
            models.SeatClaim.movie_id == movie_id,
            models.SeatClaim.theater_name == theater_name,
            models.SeatClaim.showtime_start == to_utc_naive(showtime_start),
            models.Booking.status != models.BookingStatus.cancelled.value,
        )
        .all()
    )
    return {label for (label,) in rows}


def occupied_seats(db: Session, movie_id: int, theater_name: str, showtime_start: datetime) -> Set[str]:
    """
    Union of the showtime's blocked seats and every claimed seat.
    Unknown showtimes log a warning and report nothing occupied.
    """
    showtime = get_showtime(db, movie_id, theater_name, showtime_start)
    if showtime is None:
        logger.warning(
            "occupied_seats: unknown showtime movie=%s theater=%r start=%s",
            movie_id, theater_name, showtime_start,
        )
        return set()

    blocked = {normalize_seat_label(s) for s in (showtime.blocked_seats or [])}
    return blocked | claimed_seats(db, movie_id, theater_name, showtime.start_time)
