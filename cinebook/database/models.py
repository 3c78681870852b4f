# cinebook/database/models.py
import enum

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from cinebook.database.database import Base
from cinebook.utils import utcnow


class BookingStatus(str, enum.Enum):
    pending = "pending"
    confirmed = "confirmed"
    cancelled = "cancelled"


class PaymentStatus(str, enum.Enum):
    unpaid = "unpaid"
    paid = "paid"
    failed = "failed"


# ==========================
# ✅ USER MODEL
# ==========================
class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String(100), unique=True, nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow)

    bookings = relationship("Booking", back_populates="user")


# ==========================
# ✅ MOVIE MODEL
# ==========================
class Movie(Base):
    __tablename__ = "movies"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(150), nullable=False)
    language = Column(String(50), nullable=True)
    runtime = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    showtimes = relationship("Showtime", back_populates="movie")


# ==========================
# ✅ THEATER MODEL
# ==========================
class Theater(Base):
    __tablename__ = "theaters"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(150), unique=True, nullable=False, index=True)
    location = Column(String(150), nullable=False)

    showtimes = relationship("Showtime", back_populates="theater")


# ==========================
# ✅ SHOWTIME MODEL
# ==========================
class Showtime(Base):
    __tablename__ = "showtimes"
    __table_args__ = (
        UniqueConstraint("movie_id", "theater_id", "start_time", name="uq_showtime_slot"),
    )

    id = Column(Integer, primary_key=True, index=True)
    movie_id = Column(Integer, ForeignKey("movies.id"), nullable=False)
    theater_id = Column(Integer, ForeignKey("theaters.id"), nullable=False)
    start_time = Column(DateTime, nullable=False)  # naive UTC
    screen = Column(String(50), nullable=False, default="1")
    capacity = Column(Integer, nullable=False)
    price_per_seat = Column(Integer, nullable=False)  # smallest currency unit
    blocked_seats = Column(JSON, nullable=False, default=list)

    movie = relationship("Movie", back_populates="showtimes")
    theater = relationship("Theater", back_populates="showtimes")


# ==========================
# ✅ BOOKING MODEL
# ==========================
class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    movie_id = Column(Integer, ForeignKey("movies.id"), nullable=False)
    # theater is a snapshot taken at booking time, not a live reference
    theater_name = Column(String(150), nullable=False)
    theater_location = Column(String(150), nullable=False)
    showtime_id = Column(Integer, ForeignKey("showtimes.id"), nullable=False)
    showtime_start = Column(DateTime, nullable=False)
    seats = Column(JSON, nullable=False)
    amount = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default=BookingStatus.confirmed.value)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.unpaid.value)
    order_id = Column(String(100), nullable=True, index=True)
    payment_id = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    cancelled_at = Column(DateTime, nullable=True)

    user = relationship("User", back_populates="bookings")
    movie = relationship("Movie")
    showtime = relationship("Showtime")
    claims = relationship("SeatClaim", back_populates="booking", cascade="all, delete-orphan")


# ==========================
# ✅ SEAT CLAIM MODEL
# ==========================
class SeatClaim(Base):
    """One row per seat held by a non-cancelled booking.

    The unique constraint over (movie, theater name, showtime, seat) is what
    makes two bookings for the same seat impossible: the losing transaction
    fails with an IntegrityError and writes nothing.
    """
    __tablename__ = "seat_claims"
    __table_args__ = (
        UniqueConstraint(
            "movie_id", "theater_name", "showtime_start", "seat_label",
            name="uq_seat_claim_triple_seat",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)
    movie_id = Column(Integer, nullable=False)
    theater_name = Column(String(150), nullable=False)
    showtime_start = Column(DateTime, nullable=False)
    seat_label = Column(String(10), nullable=False)

    booking = relationship("Booking", back_populates="claims")
