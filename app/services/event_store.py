# app/services/event_store.py
"""
Event store over the vehicle_movements log.

Writes are idempotent batch appends; everything else is a read-only
projection. "Currently parked" is never stored: a plate is parked when its
latest ENTRY has no EXIT after it. Durations are computed against `now`
at query time, so two calls can return different parking_hours.
"""

import json
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, date
from typing import Iterable, Optional
from sqlalchemy import and_, exists, func
from sqlalchemy.orm import Session, aliased
from app.models.vehicle_movement import VehicleMovement, ENTRY, EXIT
from app.services.movement_parser import ParsedMovement
from app.utils.dates import day_bounds
from app.utils.logger import get_logger

logger = get_logger(__name__)

UNSPECIFIED_LOCATION = "unspecified"
_UNIQUE_COLUMNS = ["plate_number", "movement_time", "movement_type"]


@dataclass
class ParkedVehicle:
    plate_number: str
    entry_time: datetime
    location: str
    card_type: Optional[str]
    parking_hours: float


@dataclass
class EventStats:
    total_events: int
    currently_parked_count: int
    today_event_count: int


def _insert_ignore_statement(db: Session):
    """INSERT that silently skips rows violating the (plate, time, type) constraint."""
    table = VehicleMovement.__table__
    dialect = db.get_bind().dialect.name
    if dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
        return insert(table).on_conflict_do_nothing(index_elements=_UNIQUE_COLUMNS)
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
        return insert(table).on_conflict_do_nothing(index_elements=_UNIQUE_COLUMNS)
    if dialect in ("mysql", "mariadb"):
        return table.insert().prefix_with("IGNORE")
    raise NotImplementedError(f"Idempotent insert not supported for dialect '{dialect}'")


def append(db: Session, events: Iterable[ParsedMovement]) -> int:
    """
    Insert a batch of movements in one transaction.
    Returns how many rows were new. Any failure rolls back the whole batch
    and is re-raised to the caller.
    """
    stmt = _insert_ignore_statement(db)
    created_at = datetime.now()
    inserted = 0
    try:
        for event in events:
            result = db.execute(stmt, {
                "plate_number": event.plate_number,
                "movement_type": event.movement_type,
                "movement_time": event.movement_time,
                "location": event.location or None,
                "card_type": event.card_type or None,
                "raw_data": json.dumps(event.raw_data, ensure_ascii=False) if event.raw_data else None,
                "created_at": created_at,
            })
            inserted += max(result.rowcount or 0, 0)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.debug(f"Appended {inserted} new movement(s)")
    return inserted


def parked_vehicles(db: Session, now: Optional[datetime] = None) -> list[ParkedVehicle]:
    """Plates whose latest ENTRY has no later EXIT, most recent entry first."""
    now = now or datetime.now()

    latest_entry = (
        db.query(
            VehicleMovement.plate_number.label("plate_number"),
            func.max(VehicleMovement.movement_time).label("entry_time"),
        )
        .filter(VehicleMovement.movement_type == ENTRY)
        .group_by(VehicleMovement.plate_number)
        .subquery()
    )
    later_exit = aliased(VehicleMovement)
    exited_after = exists().where(and_(
        later_exit.plate_number == VehicleMovement.plate_number,
        later_exit.movement_type == EXIT,
        later_exit.movement_time > VehicleMovement.movement_time,
    ))

    rows = (
        db.query(VehicleMovement)
        .join(latest_entry, and_(
            VehicleMovement.plate_number == latest_entry.c.plate_number,
            VehicleMovement.movement_time == latest_entry.c.entry_time,
        ))
        .filter(VehicleMovement.movement_type == ENTRY, ~exited_after)
        .order_by(VehicleMovement.movement_time.desc())
        .all()
    )

    return [
        ParkedVehicle(
            plate_number=row.plate_number,
            entry_time=row.movement_time,
            location=row.location or UNSPECIFIED_LOCATION,
            card_type=row.card_type,
            parking_hours=round((now - row.movement_time).total_seconds() / 3600, 2),
        )
        for row in rows
    ]


def count_by_location(db: Session) -> dict[str, int]:
    """Parked vehicle count per location, largest first."""
    counts = Counter(v.location for v in parked_vehicles(db))
    return dict(sorted(counts.items(), key=lambda kv: (-kv[1], kv[0])))


def history_for(db: Session, plate: str) -> list[VehicleMovement]:
    return (
        db.query(VehicleMovement)
        .filter(VehicleMovement.plate_number == plate)
        .order_by(VehicleMovement.movement_time.desc(), VehicleMovement.id.desc())
        .all()
    )


def movements_between(db: Session, start: datetime, end: datetime) -> list[VehicleMovement]:
    """All movements with start <= time <= end, newest first."""
    return (
        db.query(VehicleMovement)
        .filter(VehicleMovement.movement_time >= start, VehicleMovement.movement_time <= end)
        .order_by(VehicleMovement.movement_time.desc())
        .all()
    )


def search_plates(db: Session, fragment: str, limit: int = 20) -> list[str]:
    rows = (
        db.query(VehicleMovement.plate_number)
        .filter(VehicleMovement.plate_number.contains(fragment, autoescape=True))
        .distinct()
        .order_by(VehicleMovement.plate_number)
        .limit(limit)
        .all()
    )
    return [r.plate_number for r in rows]


def stats(db: Session, today: Optional[date] = None) -> EventStats:
    day_start, day_end = day_bounds(today or date.today())
    total = db.query(func.count(VehicleMovement.id)).scalar() or 0
    today_count = db.query(func.count(VehicleMovement.id)).filter(
        VehicleMovement.movement_time >= day_start,
        VehicleMovement.movement_time < day_end,
    ).scalar() or 0
    return EventStats(
        total_events=total,
        currently_parked_count=len(parked_vehicles(db)),
        today_event_count=today_count,
    )


def last_update_time(db: Session) -> Optional[datetime]:
    """Insertion time of the newest stored movement (not its scan time)."""
    return db.query(func.max(VehicleMovement.created_at)).scalar()
