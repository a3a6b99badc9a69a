# app/schemas/status.py
from pydantic import BaseModel, Field
from typing import Optional
from app.schemas.movement import ParkedVehicleOut


class PlatesIn(BaseModel):
    plates: list[str] = Field(default_factory=list)


class StatusRecordIdsIn(BaseModel):
    status_record_ids: list[int] = Field(default_factory=list)


class StatusInfoOut(BaseModel):
    status_code: Optional[str]
    status_text: str
    category: str
    category_text: str
    has_failed_inspection: bool
    status_record_id: Optional[int] = None


class TaskSummaryOut(BaseModel):
    work_part: Optional[str]
    work_group: Optional[str]
    work_name: Optional[str]


class TaskDetailOut(TaskSummaryOut):
    task_id: int
    status_code: Optional[str]
    status_text: str
    inspection_result: Optional[str]
    work_position: Optional[str]


class VehicleStatusDetailOut(BaseModel):
    car_id: int
    plate_number: str
    vin: Optional[str]
    model_year: Optional[str]
    mileage: Optional[int]
    maker_name: Optional[str]
    model_name: Optional[str]
    status: StatusInfoOut
    tasks: list[TaskDetailOut]


class LocationSummaryOut(BaseModel):
    total: int
    buckets: dict[str, int]


class StatusSummaryOut(BaseModel):
    registered_parked: int
    unregistered_parked: int
    locations: dict[str, LocationSummaryOut]
    totals: LocationSummaryOut
    active_tasks_by_part: dict[str, int]
    bucket_labels: dict[str, str]


class StatusVehicleOut(ParkedVehicleOut):
    status: Optional[StatusInfoOut] = None
    active_tasks: list[TaskSummaryOut] = Field(default_factory=list)
