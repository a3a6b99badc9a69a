# app/schemas/movement.py
from pydantic import BaseModel
from datetime import datetime
from typing import Optional


class VehicleMovementOut(BaseModel):
    id: int
    plate_number: str
    movement_type: str
    movement_time: datetime
    location: Optional[str]
    card_type: Optional[str]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class ParkedVehicleOut(BaseModel):
    plate_number: str
    entry_time: datetime
    location: str
    card_type: Optional[str]
    parking_hours: float


class EventStatsOut(BaseModel):
    total_events: int
    currently_parked_count: int
    today_event_count: int


class StatsOut(BaseModel):
    stats: EventStatsOut
    locations: dict[str, int]
    last_update_time: Optional[datetime]
