import os

# configure before anything from cinebook is imported
os.environ["DATABASE_URL"] = "sqlite:///./.pytest_cinebook.db"
os.environ["REDIS_URL"] = ""
os.environ["PAYMENT_GATEWAY"] = "fallback"
os.environ["RAZORPAY_KEY_SECRET"] = "test-secret"
os.environ["SECRET_KEY"] = "test-jwt-secret"
os.environ["SMTP_SERVER"] = ""

from datetime import timedelta  # noqa: E402
from types import SimpleNamespace  # noqa: E402
from unittest.mock import MagicMock  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from cinebook.auth import create_access_token  # noqa: E402
from cinebook.core.redis import get_redis_optional  # noqa: E402
from cinebook.database import models, payment_models  # noqa: E402,F401
from cinebook.database.database import Base, build_engine, get_db  # noqa: E402
from cinebook.main import app  # noqa: E402
from cinebook.services.notifier import get_notifier  # noqa: E402
from cinebook.services.payment_service import PaymentGateway, get_payment_gateway  # noqa: E402
from cinebook.utils import utcnow  # noqa: E402

PRICE = 250
THEATER = "Galaxy Cinema"


@pytest.fixture
def engine(tmp_path):
    eng = build_engine(f"sqlite:///{tmp_path / 'cinebook_test.db'}")
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def catalog(db):
    """One movie in one theater, a showtime two days out, two users."""
    start = (utcnow() + timedelta(days=2)).replace(microsecond=0)
    movie = models.Movie(title="Interstellar", language="English", runtime=169)
    theater = models.Theater(name=THEATER, location="Downtown")
    alice = models.User(name="Alice", email="alice@example.com")
    bob = models.User(name="Bob", email="bob@example.com")
    db.add_all([movie, theater, alice, bob])
    db.flush()
    showtime = models.Showtime(
        movie_id=movie.id,
        theater_id=theater.id,
        start_time=start,
        screen="1",
        capacity=60,
        price_per_seat=PRICE,
        blocked_seats=["J1", "J2"],
    )
    db.add(showtime)
    db.commit()

    return SimpleNamespace(
        movie_id=movie.id,
        theater_name=theater.name,
        theater_location=theater.location,
        showtime_id=showtime.id,
        start=start,
        triple=(movie.id, theater.name, start),
        alice=SimpleNamespace(id=alice.id, name=alice.name, email=alice.email),
        bob=SimpleNamespace(id=bob.id, name=bob.name, email=bob.email),
    )


@pytest.fixture
def add_booking(db, catalog):
    """Insert a booking plus its seat claims directly."""

    def _add(user_id, seats, status=models.BookingStatus.confirmed.value):
        booking = models.Booking(
            user_id=user_id,
            movie_id=catalog.movie_id,
            theater_name=catalog.theater_name,
            theater_location=catalog.theater_location,
            showtime_id=catalog.showtime_id,
            showtime_start=catalog.start,
            seats=list(seats),
            amount=len(seats) * PRICE,
            status=status,
            payment_status=models.PaymentStatus.paid.value,
        )
        if status != models.BookingStatus.cancelled.value:
            booking.claims = [
                models.SeatClaim(
                    movie_id=catalog.movie_id,
                    theater_name=catalog.theater_name,
                    showtime_start=catalog.start,
                    seat_label=s,
                )
                for s in seats
            ]
        db.add(booking)
        db.commit()
        return booking.id

    return _add


@pytest.fixture
def gateway():
    return PaymentGateway(mode="fallback", key_id="", key_secret="test-secret", currency="INR", timeout=1)


@pytest.fixture
def notifier():
    mock = MagicMock()
    mock.dispatch.return_value = None
    return mock


@pytest.fixture
def client(session_factory, gateway, notifier):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    async def no_redis():
        return None

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis_optional] = no_redis
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_notifier] = lambda: notifier
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(catalog):
    def _headers(user):
        return {"Authorization": f"Bearer {create_access_token({'sub': user.email})}"}

    return _headers
