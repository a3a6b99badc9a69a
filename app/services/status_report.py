# app/services/status_report.py
"""
Occupancy x refurbishment status reporting.

Combines parked vehicles (event store) with resolved status (status store).
Rule: a vehicle with a failed outbound inspection is counted under "fail"
only, whatever its nominal status category.
"""

from dataclasses import dataclass, field, asdict
from typing import Optional
from app.services.event_store import ParkedVehicle
from app.services.status_resolver import StatusInfo
from app.services import status_taxonomy as taxonomy


@dataclass
class LocationSummary:
    total: int = 0
    buckets: dict[str, int] = field(default_factory=lambda: dict.fromkeys(taxonomy.REPORT_BUCKETS, 0))

    def as_dict(self) -> dict:
        return asdict(self)


def bucket_for(info: Optional[StatusInfo]) -> Optional[str]:
    """Reporting bucket for a resolved status, or None if it has no record."""
    if info is None or not info.has_record:
        return None
    if info.has_failed_inspection:
        return taxonomy.FAIL
    return info.category


def registered_only(parked: list[ParkedVehicle], status_map: dict[str, StatusInfo]) -> list[ParkedVehicle]:
    """Parked vehicles that have a product-status record."""
    return [v for v in parked if v.plate_number in status_map and status_map[v.plate_number].has_record]


def unregistered(parked: list[ParkedVehicle], status_map: dict[str, StatusInfo]) -> list[ParkedVehicle]:
    """Parked vehicles with no car or no restoration on file."""
    return [v for v in parked if v.plate_number not in status_map or not status_map[v.plate_number].has_record]


def summarize_by_location(parked: list[ParkedVehicle],
                          status_map: dict[str, StatusInfo]) -> dict[str, LocationSummary]:
    """Per-location totals and bucket counts over registered vehicles, largest location first."""
    summaries: dict[str, LocationSummary] = {}
    for vehicle in registered_only(parked, status_map):
        summary = summaries.setdefault(vehicle.location, LocationSummary())
        summary.total += 1
        bucket = bucket_for(status_map[vehicle.plate_number])
        if bucket in summary.buckets:   # "other" is counted in total only
            summary.buckets[bucket] += 1
    return dict(sorted(summaries.items(), key=lambda kv: (-kv[1].total, kv[0])))


def totals(summaries: dict[str, LocationSummary]) -> LocationSummary:
    overall = LocationSummary()
    for summary in summaries.values():
        overall.total += summary.total
        for bucket, count in summary.buckets.items():
            overall.buckets[bucket] += count
    return overall


def vehicles_in_bucket(parked: list[ParkedVehicle], status_map: dict[str, StatusInfo],
                       bucket: str) -> list[ParkedVehicle]:
    return [v for v in parked if bucket_for(status_map.get(v.plate_number)) == bucket]


def long_parked(parked: list[ParkedVehicle], days: int) -> list[ParkedVehicle]:
    """Vehicles parked at least `days` full days."""
    return [v for v in parked if v.parking_hours >= days * 24]
