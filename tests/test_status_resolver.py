# tests/test_status_resolver.py
"""Tests for the refurbishment status lookups against an in-memory status store."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from unittest.mock import MagicMock, patch
from datetime import datetime
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from app.database import StatusBase
from app.models.product_status import (
    Car, Maker, CarModel, Restoration, RestorationTask, WorkPart, WorkGroup, Work,
)
from app.services import status_report
from app.services import status_taxonomy as taxonomy
from app.services.event_store import ParkedVehicle
from app.services.status_resolver import StatusResolver, StatusInfo


@pytest.fixture
def session_factory():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    StatusBase.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def resolver(session_factory):
    return StatusResolver(session_factory=session_factory)


def seed(factory, *rows):
    db = factory()
    db.add_all(rows)
    db.commit()
    db.close()


class TestResolveStatus:
    def test_unregistered_plate_is_absent(self, resolver):
        assert resolver.resolve_status(["99허9999"]) == {}

    def test_registered_without_restoration(self, resolver, session_factory):
        seed(session_factory, Car(id=1, plate_number="A", deleted="N"))
        result = resolver.resolve_status(["A"])
        assert result["A"] == StatusInfo.no_record()
        assert not result["A"].has_record

    def test_latest_car_and_restoration_win(self, resolver, session_factory):
        seed(
            session_factory,
            Car(id=1, plate_number="A", deleted="N"),
            Car(id=2, plate_number="A", deleted="N"),
            Restoration(id=10, car_id=1, status_code="FINISH"),
            Restoration(id=20, car_id=2, status_code="INBOUND_COMPLETED"),
            Restoration(id=21, car_id=2, status_code="WORKING"),
        )
        info = resolver.resolve_status(["A"])["A"]
        assert info.status_code == "WORKING"
        assert info.category == taxonomy.WORKING
        assert info.status_record_id == 21
        assert not info.has_failed_inspection

    def test_deleted_car_ignored(self, resolver, session_factory):
        seed(
            session_factory,
            Car(id=1, plate_number="A", deleted="N"),
            Car(id=2, plate_number="A", deleted="Y"),
            Restoration(id=10, car_id=1, status_code="FINISH"),
            Restoration(id=20, car_id=2, status_code="WORKING"),
        )
        assert resolver.resolve_status(["A"])["A"].status_code == "FINISH"

    def test_failed_inspection_flag(self, resolver, session_factory):
        seed(
            session_factory,
            Car(id=1, plate_number="A", deleted="N"),
            Car(id=2, plate_number="B", deleted="N"),
            Restoration(id=10, car_id=1, status_code="OUTBOUND_PENDING"),
            Restoration(id=20, car_id=2, status_code="OUTBOUND_PENDING"),
            RestorationTask(id=100, restoration_id=10, status_code="TASK_COMPLETE", inspection_result="FAIL"),
            RestorationTask(id=200, restoration_id=20, status_code="TASK_COMPLETE", inspection_result="FAIL",
                            cash_code="DELETE"),
        )
        result = resolver.resolve_status(["A", "B"])
        assert result["A"].has_failed_inspection
        assert result["A"].category_text == taxonomy.FAIL_TEXT
        assert result["A"].category == taxonomy.OUTBOUND_WAITING
        assert not result["B"].has_failed_inspection

    def test_duplicate_and_empty_plates(self, resolver, session_factory):
        seed(session_factory, Car(id=1, plate_number="A", deleted="N"),
             Restoration(id=10, car_id=1, status_code="IN"))
        assert list(resolver.resolve_status(["A", "A", ""])) == ["A"]
        assert resolver.resolve_status([]) == {}

    def test_null_status_restoration_is_unregistered(self, resolver, session_factory):
        seed(session_factory, Car(id=1, plate_number="P", deleted="N"),
             Restoration(id=5, car_id=1, status_code=None))
        status_map = resolver.resolve_status(["P"])
        assert status_map["P"].status_record_id == 5
        assert not status_map["P"].has_record

        vehicles = [ParkedVehicle(plate_number="P", entry_time=datetime(2025, 12, 22, 9), location="Gate A",
                                  card_type=None, parking_hours=1.0)]
        assert status_report.registered_only(vehicles, status_map) == []
        assert [v.plate_number for v in status_report.unregistered(vehicles, status_map)] == ["P"]
        assert status_report.summarize_by_location(vehicles, status_map) == {}

    def test_inspection_step_failure_keeps_entries(self, resolver, session_factory):
        seed(session_factory, Car(id=1, plate_number="A", deleted="N"),
             Restoration(id=10, car_id=1, status_code="OUTBOUND_PENDING"),
             RestorationTask(id=100, restoration_id=10, status_code="TASK_COMPLETE", inspection_result="FAIL"))
        with patch.object(StatusResolver, "_failed_restoration_ids", side_effect=RuntimeError("lock wait timeout")):
            info = resolver.resolve_status(["A"])["A"]
        assert info.status_code == "OUTBOUND_PENDING"
        assert info.category == taxonomy.OUTBOUND_WAITING
        assert not info.has_failed_inspection

    def test_store_failure_returns_empty(self):
        factory = MagicMock()
        factory.return_value.query.side_effect = RuntimeError("connection refused")
        assert StatusResolver(session_factory=factory).resolve_status(["A"]) == {}
        factory.return_value.close.assert_called()

    def test_status_record_ids_for(self, resolver, session_factory):
        seed(session_factory, Car(id=1, plate_number="A", deleted="N"),
             Restoration(id=10, car_id=1, status_code="IN"), Restoration(id=11, car_id=1, status_code="CHECK"))
        assert resolver.status_record_ids_for(["A", "B"]) == [11]


@pytest.fixture
def workshop(session_factory):
    seed(
        session_factory,
        Car(id=1, plate_number="A", vin="KMH123", model_year="2021", mileage=42000, maker_id=1, model_id=1,
            deleted="N"),
        Maker(id=1, name="Hyundai"),
        CarModel(id=1, name="Avante"),
        WorkPart(id=1, title="판금"),
        WorkPart(id=2, title="도장"),
        WorkGroup(id=1, title="외관"),
        Work(id=1, title="범퍼 교환", position="front"),
        Restoration(id=10, car_id=1, status_code="WORKING"),
        RestorationTask(id=100, restoration_id=10, status_code="TASKING", work_part_id=1, work_group_id=1, work_id=1),
        RestorationTask(id=101, restoration_id=10, status_code="WAIT", work_part_id=2),
        RestorationTask(id=102, restoration_id=10, status_code="ON_QUEUE", work_part_id=2),
        RestorationTask(id=103, restoration_id=10, status_code="TASK_COMPLETE", work_part_id=1),
        RestorationTask(id=104, restoration_id=10, status_code="DOING", cash_code="DELETE", work_part_id=1),
        RestorationTask(id=105, restoration_id=10, status_code="DOING"),
    )


class TestTasks:
    def test_active_tasks_for(self, resolver, workshop):
        tasks = resolver.active_tasks_for(["A", "B"])
        assert list(tasks) == ["A"]
        assert len(tasks["A"]) == 4
        assert tasks["A"][0].work_part == "판금"
        assert tasks["A"][0].work_group == "외관"
        assert tasks["A"][0].work_name == "범퍼 교환"

    def test_active_task_counts_by_part(self, resolver, workshop):
        counts = resolver.active_task_counts_by_part([10])
        assert counts == {"도장": 2, "기타": 1, "판금": 1}
        assert list(counts)[0] == "도장"

    def test_counts_empty_ids(self, resolver):
        assert resolver.active_task_counts_by_part([]) == {}

    def test_vehicle_detail(self, resolver, workshop):
        detail = resolver.vehicle_detail("A")
        assert detail.maker_name == "Hyundai"
        assert detail.model_name == "Avante"
        assert detail.status.status_code == "WORKING"
        assert detail.status.status_record_id == 10
        assert {t.task_id for t in detail.tasks} == {100, 101, 102, 103, 105}
        assert not detail.status.has_failed_inspection

    def test_vehicle_detail_unregistered(self, resolver):
        assert resolver.vehicle_detail("ZZ") is None
