# tests/test_movement_parser.py
"""Unit tests for the provider payload parser."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from datetime import datetime
from app.models.vehicle_movement import ENTRY, EXIT
from app.services.movement_parser import (
    extract_items, parse_movement, parse_movement_time, parse_movement_type, parse_movements,
)


def make_row(plate="12가3456", status="0", when="2025-12-22 17:31:21.0", eqpm="RF IN LPR(상행)", card="일반차량"):
    return {"acPlate": plate, "iInOutStatus": status, "dtTrnsDate": when, "acEqpmName": eqpm, "iCardTypeNm": card}


class TestExtractItems:
    def test_plain_array(self):
        assert extract_items([make_row()]) == [make_row()]

    @pytest.mark.parametrize("key", ["rows", "list", "data"])
    def test_wrapped(self, key):
        assert extract_items({key: [make_row()]}) == [make_row()]

    def test_rows_win_over_data(self):
        payload = {"rows": [make_row(plate="A")], "data": [make_row(plate="B")]}
        assert extract_items(payload)[0]["acPlate"] == "A"

    def test_empty_rows_still_match(self):
        payload = {"rows": [], "data": [make_row(plate="B")]}
        assert extract_items(payload) == []

    def test_null_rows_fall_through(self):
        payload = {"rows": None, "data": [make_row(plate="B")]}
        assert extract_items(payload)[0]["acPlate"] == "B"

    def test_unknown_shape(self):
        assert extract_items({"result": "ok"}) == []
        assert extract_items(None) == []


class TestFieldParsing:
    @pytest.mark.parametrize("value,expected", [
        ("0", ENTRY), (0, ENTRY), ("1", EXIT), (1, EXIT),
        ("입차", ENTRY), ("출차", EXIT), ("IN", ENTRY), ("out", EXIT),
    ])
    def test_movement_type(self, value, expected):
        assert parse_movement_type(value) == expected

    @pytest.mark.parametrize("value", [None, "2", "?"])
    def test_movement_type_unknown(self, value):
        assert parse_movement_type(value) is None

    def test_fraction_dropped(self):
        assert parse_movement_time("2025-12-22 17:31:21.0") == datetime(2025, 12, 22, 17, 31, 21)

    def test_iso_time(self):
        assert parse_movement_time("2025-12-22T17:31:21") == datetime(2025, 12, 22, 17, 31, 21)

    def test_bad_time(self):
        assert parse_movement_time("yesterday") is None
        assert parse_movement_time("") is None


class TestParseMovement:
    def test_full_row(self):
        m = parse_movement(make_row())
        assert m.plate_number == "12가3456"
        assert m.movement_type == ENTRY
        assert m.movement_time == datetime(2025, 12, 22, 17, 31, 21)
        assert m.location == "RF IN LPR(상행)"
        assert m.card_type == "일반차량"
        assert m.raw_data["acPlate"] == "12가3456"

    def test_blank_location_becomes_none(self):
        assert parse_movement(make_row(eqpm="")).location is None

    def test_missing_plate_dropped(self):
        assert parse_movement(make_row(plate="  ")) is None

    def test_missing_time_dropped(self):
        assert parse_movement(make_row(when=None)) is None

    def test_unknown_direction_dropped(self):
        assert parse_movement(make_row(status="9")) is None

    def test_parse_movements_keeps_order_and_skips_bad_rows(self):
        payload = {"rows": [make_row(plate="A"), make_row(plate=""), make_row(plate="B", status="1")]}
        movements = parse_movements(payload)
        assert [m.plate_number for m in movements] == ["A", "B"]
        assert movements[1].movement_type == EXIT
