# app/routers/status.py
"""
Refurbishment status endpoints.
Parked plates come from the movement log; status comes from the external
store and degrades to "unknown" (missing) when that store is down.
"""

from dataclasses import asdict
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from app.database import get_db
from app.services import event_store, status_report
from app.services import status_taxonomy as taxonomy
from app.services.status_resolver import StatusResolver, get_status_resolver
from app.schemas.status import (
    PlatesIn, StatusRecordIdsIn, StatusInfoOut, TaskSummaryOut, VehicleStatusDetailOut,
    StatusSummaryOut, StatusVehicleOut,
)

router = APIRouter()


@router.post("/status/resolve", response_model=dict[str, StatusInfoOut],
             summary="Plates -> latest refurbishment status (unregistered plates are absent)")
def resolve_status(body: PlatesIn, resolver: StatusResolver = Depends(get_status_resolver)):
    return resolver.resolve_status(body.plates)


@router.post("/status/active-tasks", response_model=dict[str, list[TaskSummaryOut]],
             summary="Plates -> tasks in progress")
def active_tasks(body: PlatesIn, resolver: StatusResolver = Depends(get_status_resolver)):
    return resolver.active_tasks_for(body.plates)


@router.post("/status/task-counts", response_model=dict[str, int],
             summary="Active task count per work part")
def task_counts(body: StatusRecordIdsIn, resolver: StatusResolver = Depends(get_status_resolver)):
    return resolver.active_task_counts_by_part(body.status_record_ids)


@router.get("/status/summary", response_model=StatusSummaryOut,
            summary="Parked vehicles bucketed by status, per location")
def status_summary(db: Session = Depends(get_db), resolver: StatusResolver = Depends(get_status_resolver)):
    parked = event_store.parked_vehicles(db)
    status_map = resolver.resolve_status(v.plate_number for v in parked)
    registered = status_report.registered_only(parked, status_map)
    summaries = status_report.summarize_by_location(parked, status_map)
    record_ids = [status_map[v.plate_number].status_record_id for v in registered]

    return {
        "registered_parked": len(registered),
        "unregistered_parked": len(parked) - len(registered),
        "locations": {loc: s.as_dict() for loc, s in summaries.items()},
        "totals": status_report.totals(summaries).as_dict(),
        "active_tasks_by_part": resolver.active_task_counts_by_part(record_ids),
        "bucket_labels": dict(taxonomy.BUCKET_TEXT),
    }


@router.get("/status/bucket/{bucket}", response_model=list[StatusVehicleOut],
            summary="Parked vehicles in one status bucket (fail takes precedence)")
def vehicles_in_bucket(bucket: str, db: Session = Depends(get_db),
                       resolver: StatusResolver = Depends(get_status_resolver)):
    if bucket not in taxonomy.REPORT_BUCKETS:
        raise HTTPException(status_code=404, detail=f"Unknown bucket '{bucket}'")
    parked = event_store.parked_vehicles(db)
    status_map = resolver.resolve_status(v.plate_number for v in parked)
    vehicles = status_report.vehicles_in_bucket(parked, status_map, bucket)
    tasks = resolver.active_tasks_for(v.plate_number for v in vehicles)
    return [
        {**asdict(v), "status": status_map.get(v.plate_number), "active_tasks": tasks.get(v.plate_number, [])}
        for v in vehicles
    ]


@router.get("/vehicles/{plate}/status", response_model=VehicleStatusDetailOut,
            summary="Vehicle refurbishment status with task timeline")
def vehicle_status(plate: str, resolver: StatusResolver = Depends(get_status_resolver)):
    detail = resolver.vehicle_detail(plate)
    if detail is None:
        raise HTTPException(status_code=404, detail=f"No registered vehicle for plate {plate}")
    return detail
