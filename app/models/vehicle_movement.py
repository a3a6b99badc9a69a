# app/models/vehicle_movement.py
"""
Append-only vehicle movement log.
One row per ENTRY or EXIT scan pulled from the parking provider.
Rows are never updated or deleted; parked state is derived by query.
"""

from sqlalchemy import Column, Integer, String, DateTime, Text, UniqueConstraint
from app.database import Base

ENTRY = "ENTRY"
EXIT = "EXIT"
MOVEMENT_TYPES = (ENTRY, EXIT)


class VehicleMovement(Base):
    __tablename__ = "vehicle_movements"
    __table_args__ = (
        # Re-polling the same day returns the same scans; they must be dropped
        UniqueConstraint("plate_number", "movement_time", "movement_type",
                         name="uq_vehicle_movements_plate_time_type"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    plate_number = Column(String(50), nullable=False, index=True)
    movement_type = Column(String(10), nullable=False, index=True)   # ENTRY | EXIT
    movement_time = Column(DateTime, nullable=False, index=True)     # provider local time, second precision
    location = Column(String(100), index=True)                       # equipment name, e.g. "RF IN LPR"
    card_type = Column(String(50))
    raw_data = Column(Text)                                          # provider record as JSON
    created_at = Column(DateTime)

    def __repr__(self):
        return f"<VehicleMovement {self.id} plate={self.plate_number} type={self.movement_type} at={self.movement_time}>"
