from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from cinebook.database import models
from cinebook.utils import to_utc_naive

# --------- Catalog lookups (read-only; catalog CRUD lives elsewhere) ---------


def get_movie(db: Session, movie_id: int) -> Optional[models.Movie]:
    return db.query(models.Movie).filter(models.Movie.id == movie_id).first()


def get_theater_by_name(db: Session, theater_name: str) -> Optional[models.Theater]:
    return db.query(models.Theater).filter(models.Theater.name == theater_name).first()


def get_showtime(
    db: Session, movie_id: int, theater_name: str, start_time: datetime
) -> Optional[models.Showtime]:
    """Find the showtime for a (movie, theater name, start) triple, or None."""
    start = to_utc_naive(start_time)
    return (
        db.query(models.Showtime)
        .join(models.Theater, models.Showtime.theater_id == models.Theater.id)
        .filter(
            models.Showtime.movie_id == movie_id,
            models.Theater.name == theater_name,
            models.Showtime.start_time == start,
        )
        .first()
    )
