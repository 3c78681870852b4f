from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from cinebook.core.config import DATABASE_URL

SQLALCHEMY_DATABASE_URL = DATABASE_URL


def build_engine(url: str):
    """Create an engine; SQLite connections are shared with the thread pool."""
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": 30}
    return create_engine(url, connect_args=connect_args, pool_pre_ping=True)


# Create SQLAlchemy engine
engine = build_engine(SQLALCHEMY_DATABASE_URL)

# Session maker
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base model for all ORM classes
Base = declarative_base()


# ✅ Dependency for FastAPI routes
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
