# app/services/movement_parser.py
"""
Normalizes the provider's LPR search payload into ParsedMovement records.

The provider has returned the grid rows in several envelopes over time. The
shape rules below are tried in order and the first match wins; everything
downstream only ever sees ParsedMovement.

Provider row fields used:
  acPlate        plate number
  iInOutStatus   "0" = entry, "1" = exit (older consoles send text)
  dtTrnsDate     "2025-12-22 17:31:21.0" — fraction is dropped
  acEqpmName     equipment name, e.g. "RF IN LPR(상행)"
  iCardTypeNm    card type label, e.g. "일반차량"
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional
from app.models.vehicle_movement import ENTRY, EXIT
from app.utils.dates import DATETIME_FORMAT
from app.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class ParsedMovement:
    plate_number: str
    movement_type: str               # ENTRY | EXIT
    movement_time: datetime
    location: Optional[str] = None
    card_type: Optional[str] = None
    raw_data: dict = field(default_factory=dict)


# ── Shape rules: (name, matcher, extractor) ─────────────────────────────────
def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else [value]


_SHAPE_RULES: tuple[tuple[str, Callable[[Any], bool], Callable[[Any], list]], ...] = (
    ("array", lambda p: isinstance(p, list), lambda p: p),
    ("rows", lambda p: isinstance(p, dict) and p.get("rows") is not None, lambda p: _as_list(p["rows"])),
    ("list", lambda p: isinstance(p, dict) and p.get("list") is not None, lambda p: _as_list(p["list"])),
    ("data", lambda p: isinstance(p, dict) and p.get("data") is not None, lambda p: _as_list(p["data"])),
)


def extract_items(payload: Any) -> list:
    """Return the list of raw row dicts inside any known payload shape."""
    for name, matches, extract in _SHAPE_RULES:
        if matches(payload):
            logger.debug(f"Payload shape: {name}")
            return extract(payload)
    return []


def parse_movement_type(status: Any) -> Optional[str]:
    """Decode iInOutStatus. Returns None when the direction cannot be determined."""
    if status is None:
        return None
    text = str(status).strip()
    if text == "0":
        return ENTRY
    if text == "1":
        return EXIT
    lowered = text.lower()
    if "입" in text or "in" in lowered:
        return ENTRY
    if "출" in text or "out" in lowered:
        return EXIT
    return None


def parse_movement_time(value: Any) -> Optional[datetime]:
    """'2025-12-22 17:31:21.0' -> datetime(2025, 12, 22, 17, 31, 21)."""
    if not value:
        return None
    text = str(value).strip().split(".")[0]
    try:
        return datetime.strptime(text, DATETIME_FORMAT)
    except ValueError:
        try:
            return datetime.fromisoformat(text).replace(microsecond=0)
        except ValueError:
            return None


def parse_movement(item: Any) -> Optional[ParsedMovement]:
    """One provider row -> ParsedMovement, or None if it lacks plate, time or direction."""
    if not isinstance(item, dict):
        return None

    plate = str(item.get("acPlate") or "").strip()
    movement_time = parse_movement_time(item.get("dtTrnsDate"))
    if not plate or movement_time is None:
        return None

    movement_type = parse_movement_type(item.get("iInOutStatus"))
    if movement_type is None:
        logger.debug(f"Unknown direction {item.get('iInOutStatus')!r} for plate {plate} — skipped")
        return None

    return ParsedMovement(
        plate_number=plate,
        movement_type=movement_type,
        movement_time=movement_time,
        location=item.get("acEqpmName") or None,
        card_type=item.get("iCardTypeNm") or None,
        raw_data=item,
    )


def parse_movements(payload: Any) -> list[ParsedMovement]:
    """Parse a whole search response, preserving provider order."""
    movements = []
    for item in extract_items(payload):
        movement = parse_movement(item)
        if movement is not None:
            movements.append(movement)
    return movements
