# app/models/__init__.py
# Import all models here for SQLAlchemy discovery

from app.models.vehicle_movement import VehicleMovement      # noqa
from app.models.product_status import (                      # noqa
    Car, Maker, CarModel, Restoration, RestorationTask, WorkPart, WorkGroup, Work,
)
