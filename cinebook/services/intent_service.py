import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from cinebook.database import models
from cinebook.exceptions import InvalidSeatSelection, InvalidShowtime, SeatConflict
from cinebook.services.catalog_service import get_movie, get_showtime, get_theater_by_name
from cinebook.services.seat_ledger import occupied_seats
from cinebook.utils import is_valid_seat_label, normalize_seat_label, to_utc_naive, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrderIntent:
    """A validated, priced booking request that has not been committed yet."""
    movie_id: int
    theater_name: str
    theater_location: str
    showtime_id: int
    showtime_start: datetime
    seats: Tuple[str, ...]
    price_per_seat: int
    amount: int

    @property
    def triple(self) -> Tuple[int, str, datetime]:
        return (self.movie_id, self.theater_name, self.showtime_start)


def normalize_seats(seats: Iterable[str]) -> List[str]:
    """Upper-case and strip labels; reject empty, malformed or duplicate selections."""
    labels = [normalize_seat_label(s) for s in (seats or [])]
    if not labels:
        raise InvalidSeatSelection("Select at least one seat")

    malformed = [s for s in labels if not is_valid_seat_label(s)]
    if malformed:
        raise InvalidSeatSelection(f"Invalid seat labels: {', '.join(malformed)}")

    seen = set()
    duplicates = []
    for s in labels:
        if s in seen and s not in duplicates:
            duplicates.append(s)
        seen.add(s)
    if duplicates:
        raise InvalidSeatSelection(f"Duplicate seats: {', '.join(duplicates)}")
    return labels


def build_intent(
    db: Session,
    user: Optional[models.User],
    movie_id: int,
    theater_name: str,
    showtime_start: datetime,
    seats: Iterable[str],
    now: Optional[datetime] = None,
    check_occupancy: bool = True,
) -> OrderIntent:
    """
    Validate a booking request against the catalog and price it.

    With ``check_occupancy`` the requested seats are also checked against the
    seat ledger (optimistically; the reconciler checks again at commit).
    """
    if user is None:
        # the auth dependency normally rejects first
        raise InvalidSeatSelection("An authenticated user is required to book seats")

    movie = get_movie(db, movie_id)
    if movie is None:
        raise InvalidShowtime(f"Movie {movie_id} not found")
    theater = get_theater_by_name(db, theater_name)
    if theater is None:
        raise InvalidShowtime(f"Theater {theater_name!r} not found")

    start = to_utc_naive(showtime_start)
    showtime = get_showtime(db, movie_id, theater_name, start)
    if showtime is None:
        raise InvalidShowtime(f"No showtime for movie {movie_id} at {theater_name} on {start.isoformat()}")

    current = to_utc_naive(now) if now is not None else utcnow()
    if showtime.start_time <= current:
        raise InvalidShowtime("Showtime has already started")

    labels = normalize_seats(seats)

    if check_occupancy:
        occupied = occupied_seats(db, movie_id, theater_name, start)
        conflicts = [s for s in labels if s in occupied]
        if conflicts:
            logger.info("Seat conflict at intent time for user %s: %s", user.id, conflicts)
            raise SeatConflict(conflicts)
        if len(occupied) + len(labels) > showtime.capacity:
            raise InvalidSeatSelection(
                f"Only {max(showtime.capacity - len(occupied), 0)} seats left for this showtime"
            )

    amount = len(labels) * showtime.price_per_seat
    return OrderIntent(
        movie_id=movie.id,
        theater_name=theater.name,
        theater_location=theater.location,
        showtime_id=showtime.id,
        showtime_start=showtime.start_time,
        seats=tuple(labels),
        price_per_seat=showtime.price_per_seat,
        amount=amount,
    )
