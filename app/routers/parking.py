# app/routers/parking.py
"""Read-only occupancy endpoints — projections of the movement log."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from datetime import date, datetime, timedelta
from typing import Optional
from app.database import get_db
from app.services import event_store
from app.services.status_report import long_parked
from app.schemas.movement import VehicleMovementOut, ParkedVehicleOut, StatsOut

router = APIRouter()


@router.get("/stats", response_model=StatsOut, summary="Totals, parked count, per-location counts")
def get_stats(db: Session = Depends(get_db)):
    return {
        "stats": event_store.stats(db),
        "locations": event_store.count_by_location(db),
        "last_update_time": event_store.last_update_time(db),
    }


@router.get("/parked", response_model=list[ParkedVehicleOut], summary="Vehicles currently parked")
def get_parked(limit: Optional[int] = None, db: Session = Depends(get_db)):
    vehicles = event_store.parked_vehicles(db)
    return vehicles[:limit] if limit else vehicles


@router.get("/locations", summary="Parked vehicle count per location")
def get_locations(db: Session = Depends(get_db)):
    return event_store.count_by_location(db)


@router.get("/long-parked/{days}", response_model=list[ParkedVehicleOut], summary="Parked at least N days")
def get_long_parked(days: int, db: Session = Depends(get_db)):
    if days < 0:
        raise HTTPException(status_code=400, detail="days must be >= 0")
    return long_parked(event_store.parked_vehicles(db), days)


@router.get("/vehicles/search", response_model=list[str], summary="Plates containing a fragment")
def search_vehicles(plate: str, db: Session = Depends(get_db)):
    if not plate.strip():
        raise HTTPException(status_code=400, detail="plate is required")
    return event_store.search_plates(db, plate.strip())


@router.get("/vehicles/{plate}/history", response_model=list[VehicleMovementOut],
            summary="All movements for a plate, newest first")
def get_vehicle_history(plate: str, db: Session = Depends(get_db)):
    return event_store.history_for(db, plate)


@router.get("/movements", response_model=list[VehicleMovementOut], summary="Movements in a date range")
def get_movements(start: Optional[date] = None, end: Optional[date] = None, db: Session = Depends(get_db)):
    """Inclusive calendar-day range; both default to today."""
    start = start or date.today()
    end = end or start
    range_start = datetime.combine(start, datetime.min.time())
    range_end = datetime.combine(end, datetime.min.time()) + timedelta(days=1, seconds=-1)
    return event_store.movements_between(db, range_start, range_end)
