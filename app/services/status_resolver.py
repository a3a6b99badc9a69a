# app/services/status_resolver.py
"""
Joins parked plates to the external refurbishment store.

Lookups are batched (one query per step, never one per plate):
  1. plate        -> latest non-deleted car      (MAX(c_no) per plate)
  2. car          -> latest restoration          (MAX(r_no) per car)
  3. restoration  -> has a non-deleted FAIL task

Every step runs in its own short session and may fail on its own. A failure
is logged and degrades the result; it is never raised. Callers must read a
missing plate as "unknown", except in resolve_status() where a plate without a
car is genuinely unregistered.
"""

from dataclasses import dataclass, field
from functools import lru_cache
from typing import Callable, Iterable, Optional
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session
from app.database import StatusSessionLocal
from app.models.product_status import (
    Car, Maker, CarModel, Restoration, RestorationTask, WorkPart, WorkGroup, Work,
    NOT_DELETED, DELETED_TASK_MARK, INSPECTION_FAIL,
)
from app.services import status_taxonomy as taxonomy
from app.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class StatusInfo:
    status_code: Optional[str]
    status_text: str
    category: str
    category_text: str
    has_failed_inspection: bool = False
    status_record_id: Optional[int] = None

    @classmethod
    def from_record(cls, status_code: Optional[str], has_failed: bool, record_id: Optional[int] = None):
        category = taxonomy.categorize(status_code)
        return cls(
            status_code=status_code,
            status_text=taxonomy.status_text(status_code),
            category=category,
            category_text=taxonomy.FAIL_TEXT if has_failed else taxonomy.category_text(category),
            has_failed_inspection=has_failed,
            status_record_id=record_id,
        )

    @classmethod
    def no_record(cls):
        """Car is registered but has never had a restoration."""
        return cls(
            status_code=None,
            status_text=taxonomy.NO_RECORD_TEXT,
            category=taxonomy.NONE,
            category_text=taxonomy.NO_RECORD_TEXT,
        )

    @property
    def has_record(self) -> bool:
        return self.status_code is not None


@dataclass
class TaskSummary:
    work_part: Optional[str]
    work_group: Optional[str]
    work_name: Optional[str]


@dataclass
class TaskDetail:
    task_id: int
    status_code: Optional[str]
    status_text: str
    inspection_result: Optional[str]
    work_part: Optional[str]
    work_group: Optional[str]
    work_name: Optional[str]
    work_position: Optional[str]


@dataclass
class VehicleStatusDetail:
    car_id: int
    plate_number: str
    vin: Optional[str]
    model_year: Optional[str]
    mileage: Optional[int]
    maker_name: Optional[str]
    model_name: Optional[str]
    status: StatusInfo
    tasks: list[TaskDetail] = field(default_factory=list)


def _task_not_deleted():
    return or_(RestorationTask.cash_code.is_(None), RestorationTask.cash_code != DELETED_TASK_MARK)


def _unique(plates: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(p for p in plates if p))


class StatusResolver:
    def __init__(self, session_factory: Callable[[], Session] = StatusSessionLocal):
        self._session_factory = session_factory

    def _lookup(self, what: str, query, default=None):
        """Run one lookup step in its own session; log and return default on failure."""
        db = self._session_factory()
        try:
            return query(db)
        except Exception as e:
            logger.error(f"[STATUS] {what} lookup failed: {e}")
            return default
        finally:
            db.close()

    # ── Batch steps ──────────────────────────────────────────────────────────
    @staticmethod
    def _latest_cars(db: Session, plates: list[str]) -> dict[int, str]:
        """car id -> plate, one (newest) non-deleted car per plate."""
        newest = (
            select(func.max(Car.id))
            .where(Car.plate_number.in_(plates), Car.deleted == NOT_DELETED)
            .group_by(Car.plate_number)
        )
        rows = db.query(Car.id, Car.plate_number).filter(Car.id.in_(newest)).all()
        return {row.id: row.plate_number for row in rows}

    @staticmethod
    def _latest_restorations(db: Session, car_ids: list[int]) -> list:
        newest = (
            select(func.max(Restoration.id))
            .where(Restoration.car_id.in_(car_ids))
            .group_by(Restoration.car_id)
        )
        return (
            db.query(Restoration.id, Restoration.car_id, Restoration.status_code)
            .filter(Restoration.id.in_(newest))
            .all()
        )

    @staticmethod
    def _failed_restoration_ids(db: Session, restoration_ids: list[int]) -> set[int]:
        rows = (
            db.query(RestorationTask.restoration_id)
            .filter(
                RestorationTask.restoration_id.in_(restoration_ids),
                RestorationTask.inspection_result == INSPECTION_FAIL,
                _task_not_deleted(),
            )
            .distinct()
            .all()
        )
        return {row.restoration_id for row in rows}

    def _restorations_for_plates(self, plates: list[str], what: str):
        """(car id -> plate, restoration rows) or (None, None) on failure."""
        cars = self._lookup(f"{what}: car", lambda db: self._latest_cars(db, plates))
        if cars is None:
            return None, None
        if not cars:
            return cars, []
        restorations = self._lookup(f"{what}: restoration", lambda db: self._latest_restorations(db, list(cars)))
        return cars, restorations

    # ── Public API ───────────────────────────────────────────────────────────
    def resolve_status(self, plates: Iterable[str]) -> dict[str, StatusInfo]:
        """
        plate -> StatusInfo for every plate with a registered car.
        Registered without a restoration -> StatusInfo.no_record().
        Not registered -> absent.
        """
        plates = _unique(plates)
        if not plates:
            return {}

        cars, restorations = self._restorations_for_plates(plates, "status")
        if not cars or restorations is None:
            return {}

        failed = set()
        if restorations:
            failed = self._lookup(
                "status: inspection",
                lambda db: self._failed_restoration_ids(db, [r.id for r in restorations]),
                default=set(),
            )

        result: dict[str, StatusInfo] = {}
        for r in restorations:
            plate = cars.get(r.car_id)
            if plate:
                result[plate] = StatusInfo.from_record(r.status_code, r.id in failed, r.id)

        for plate in cars.values():
            result.setdefault(plate, StatusInfo.no_record())
        return result

    def status_record_ids_for(self, plates: Iterable[str]) -> list[int]:
        plates = _unique(plates)
        if not plates:
            return []
        _, restorations = self._restorations_for_plates(plates, "status ids")
        return [r.id for r in restorations or []]

    def active_tasks_for(self, plates: Iterable[str]) -> dict[str, list[TaskSummary]]:
        """plate -> tasks currently in the active working set."""
        plates = _unique(plates)
        if not plates:
            return {}

        cars, restorations = self._restorations_for_plates(plates, "active tasks")
        if not restorations:
            return {}
        plate_by_restoration = {r.id: cars[r.car_id] for r in restorations if r.car_id in cars}

        def query(db: Session):
            return (
                db.query(
                    RestorationTask.restoration_id,
                    WorkPart.title.label("work_part"),
                    WorkGroup.title.label("work_group"),
                    Work.title.label("work_name"),
                )
                .outerjoin(WorkPart, RestorationTask.work_part_id == WorkPart.id)
                .outerjoin(WorkGroup, RestorationTask.work_group_id == WorkGroup.id)
                .outerjoin(Work, RestorationTask.work_id == Work.id)
                .filter(
                    RestorationTask.restoration_id.in_(list(plate_by_restoration)),
                    RestorationTask.status_code.in_(taxonomy.ACTIVE_TASK_STATUSES),
                    _task_not_deleted(),
                )
                .order_by(RestorationTask.id)
                .all()
            )

        tasks = self._lookup("active tasks: task", query, default=[])
        result: dict[str, list[TaskSummary]] = {}
        for task in tasks:
            plate = plate_by_restoration.get(task.restoration_id)
            if plate:
                result.setdefault(plate, []).append(
                    TaskSummary(work_part=task.work_part, work_group=task.work_group, work_name=task.work_name)
                )
        return result

    def active_task_counts_by_part(self, status_record_ids: Iterable[int]) -> dict[str, int]:
        """Active task count per work part across the given restorations, largest first."""
        ids = list(dict.fromkeys(status_record_ids or []))
        if not ids:
            return {}

        def query(db: Session):
            return (
                db.query(WorkPart.title.label("part"), func.count(RestorationTask.id).label("count"))
                .select_from(RestorationTask)
                .outerjoin(WorkPart, RestorationTask.work_part_id == WorkPart.id)
                .filter(
                    RestorationTask.restoration_id.in_(ids),
                    RestorationTask.status_code.in_(taxonomy.ACTIVE_TASK_STATUSES),
                    _task_not_deleted(),
                )
                .group_by(WorkPart.title)
                .all()
            )

        counts: dict[str, int] = {}
        for row in self._lookup("task statistics", query, default=[]):
            part = row.part or taxonomy.OTHER_PART_TEXT
            counts[part] = counts.get(part, 0) + row.count
        return dict(sorted(counts.items(), key=lambda kv: (-kv[1], kv[0])))

    def vehicle_detail(self, plate: str) -> Optional[VehicleStatusDetail]:
        """Full status and task timeline for one plate. None if unregistered or unavailable."""

        def query(db: Session):
            car = (
                db.query(Car, Maker.name.label("maker_name"), CarModel.name.label("model_name"))
                .outerjoin(Maker, Car.maker_id == Maker.id)
                .outerjoin(CarModel, Car.model_id == CarModel.id)
                .filter(Car.plate_number == plate, Car.deleted == NOT_DELETED)
                .order_by(Car.id.desc())
                .first()
            )
            if car is None:
                return None
            restoration = (
                db.query(Restoration)
                .filter(Restoration.car_id == car.Car.id)
                .order_by(Restoration.id.desc())
                .first()
            )
            return car, restoration

        found = self._lookup(f"vehicle {plate}", query)
        if not found:
            return None
        car_row, restoration = found
        car = car_row.Car

        detail = VehicleStatusDetail(
            car_id=car.id,
            plate_number=car.plate_number,
            vin=car.vin,
            model_year=car.model_year,
            mileage=car.mileage,
            maker_name=car_row.maker_name,
            model_name=car_row.model_name,
            status=StatusInfo.no_record(),
        )
        if restoration is None:
            return detail

        tasks = self._lookup(f"vehicle {plate}: tasks", lambda db: self._task_timeline(db, restoration.id), default=[])
        has_failed = any(t.inspection_result == INSPECTION_FAIL for t in tasks)
        detail.status = StatusInfo.from_record(restoration.status_code, has_failed, restoration.id)
        detail.tasks = tasks
        return detail

    @staticmethod
    def _task_timeline(db: Session, restoration_id: int) -> list[TaskDetail]:
        rows = (
            db.query(
                RestorationTask,
                WorkPart.title.label("work_part"),
                WorkGroup.title.label("work_group"),
                Work.title.label("work_name"),
                Work.position.label("work_position"),
            )
            .outerjoin(WorkPart, RestorationTask.work_part_id == WorkPart.id)
            .outerjoin(WorkGroup, RestorationTask.work_group_id == WorkGroup.id)
            .outerjoin(Work, RestorationTask.work_id == Work.id)
            .filter(RestorationTask.restoration_id == restoration_id, _task_not_deleted())
            .order_by(WorkPart.id, WorkGroup.id, RestorationTask.id)
            .all()
        )
        return [
            TaskDetail(
                task_id=row.RestorationTask.id,
                status_code=row.RestorationTask.status_code,
                status_text=taxonomy.task_status_text(row.RestorationTask.status_code),
                inspection_result=row.RestorationTask.inspection_result,
                work_part=row.work_part,
                work_group=row.work_group,
                work_name=row.work_name,
                work_position=row.work_position,
            )
            for row in rows
        ]


@lru_cache()
def get_status_resolver() -> StatusResolver:
    """Process-wide resolver bound to the status store; FastAPI dependency."""
    return StatusResolver()
