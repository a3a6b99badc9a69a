# app/database.py
"""
Database connection and session management for both stores.

- Event store (DATABASE_URL): the append-only movement log owned by this service.
- Status store (STATUS_DATABASE_URL): the refurbishment database owned by another
  team. Read-only here; its tables are never created from this code.
"""

from sqlalchemy import create_engine
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import sessionmaker
from app.config import settings


def _make_engine(url: str):
    if url.startswith("sqlite"):
        # SQLite file DB is shared between the scheduler task and request threads
        return create_engine(url, connect_args={"check_same_thread": False}, echo=False)
    return create_engine(
        url,
        pool_pre_ping=True,          # Auto-reconnect if DB connection drops
        pool_size=10,
        max_overflow=20,
        echo=False,                  # Set True to log all SQL queries (debug only)
    )


engine = _make_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

status_engine = _make_engine(settings.STATUS_DATABASE_URL)
StatusSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=status_engine)
StatusBase = declarative_base()


def get_db():
    """FastAPI dependency — yields a DB session and closes it after request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables():
    """
    Creates the event-store tables on startup. Safe to call multiple times.
    The status store is never touched here.
    """
    from app.models.vehicle_movement import VehicleMovement  # noqa

    Base.metadata.create_all(bind=engine)
