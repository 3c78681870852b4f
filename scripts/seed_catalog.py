"""Seed the database with a demo user, movies, theaters and upcoming showtimes.

Run from the repo root:
python scripts/seed_catalog.py
"""
import random
from datetime import timedelta

from cinebook.auth import create_access_token
from cinebook.database import models, payment_models  # noqa: F401
from cinebook.database.database import Base, SessionLocal, engine
from cinebook.utils import utcnow

DEMO_EMAIL = "demo@cinebook.local"

MOVIES = [
    {"title": "The Great Adventure", "language": "English", "runtime": 120},
    {"title": "Comedy Night", "language": "English", "runtime": 95},
    {"title": "Sci-Fi Saga", "language": "Hindi", "runtime": 140},
]

THEATERS = [
    {"name": "PVR Phoenix", "location": "Lower Parel, Mumbai"},
    {"name": "INOX Nariman Point", "location": "Nariman Point, Mumbai"},
]

BLOCKABLE = [f"{row}{num}" for row in "ABCD" for num in range(1, 7)]


def seed():
    # ensure tables exist
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        user = db.query(models.User).filter(models.User.email == DEMO_EMAIL).first()
        if not user:
            user = models.User(name="Demo User", email=DEMO_EMAIL)
            db.add(user)
            db.commit()
            db.refresh(user)

        existing = db.query(models.Movie).count()
        if existing:
            print(f"DB already has {existing} movie(s); skipping catalog seeding.")
        else:
            movies = [models.Movie(**m) for m in MOVIES]
            theaters = [models.Theater(**t) for t in THEATERS]
            db.add_all(movies + theaters)
            db.flush()

            base = utcnow().replace(minute=0, second=0, microsecond=0) + timedelta(days=1)
            for movie in movies:
                for theater in theaters:
                    for hour in (10, 14, 19):
                        db.add(models.Showtime(
                            movie_id=movie.id,
                            theater_id=theater.id,
                            start_time=base.replace(hour=hour),
                            screen="1",
                            capacity=120,
                            price_per_seat=25000,
                            blocked_seats=random.sample(BLOCKABLE, 4),
                        ))
            db.commit()
            print("Seeded movies, theaters and showtimes successfully.")

        print(f"Demo user: {user.email} (id={user.id})")
        print(f"Bearer token: {create_access_token({'sub': user.email})}")
    finally:
        db.close()


if __name__ == "__main__":
    seed()
