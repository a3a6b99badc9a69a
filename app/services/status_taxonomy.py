# app/services/status_taxonomy.py
"""
Refurbishment status vocabulary.

The status store carries codes from two system generations (the current
RECEPTION_COMPLETED…SERVICE_COMPLETED flow and the legacy INPUT…FINISH flow).
Both are collapsed into one set of reporting categories here so callers never
branch on raw codes. A new generation is added as one more table in
_GENERATIONS; nothing else changes.

Labels are the Korean terms the yard staff use on the dashboard.
"""

from types import MappingProxyType
from typing import Optional

# ── Categories ───────────────────────────────────────────────────────────────
PENDING = "pending"
WORKING = "working"
COMPLETED = "completed"
OUTBOUND_WAITING = "outbound_waiting"
DONE = "done"
OTHER = "other"
NONE = "none"
FAIL = "fail"   # reporting bucket only, never a category

CATEGORY_TEXT = MappingProxyType({
    PENDING: "입고/대기",
    WORKING: "작업중",
    COMPLETED: "작업완료",
    OUTBOUND_WAITING: "출고대기",
    DONE: "출고완료",
    NONE: "전산 미등록",
    OTHER: "기타",
})

FAIL_TEXT = "검수 NG"
NO_RECORD_TEXT = "상품화 정보 없음"
UNKNOWN_TEXT = "알 수 없음"

# Buckets used by location/fleet summaries. A vehicle lands in exactly one.
REPORT_BUCKETS = (WORKING, COMPLETED, OUTBOUND_WAITING, PENDING, DONE, FAIL)
BUCKET_TEXT = MappingProxyType({**{b: CATEGORY_TEXT[b] for b in REPORT_BUCKETS if b != FAIL}, FAIL: FAIL_TEXT})

# ── Status code generations: code -> (label, category) ───────────────────────
_CURRENT_GENERATION = MappingProxyType({
    "RECEPTION_COMPLETED": ("접수완료", PENDING),
    "INBOUND_PENDING": ("입고대기", PENDING),
    "INBOUND_COMPLETED": ("입고완료", PENDING),
    "INBOUND_INSPECTION_PENDING": ("입고검수대기", PENDING),
    "INBOUND_INSPECTION_COMPLETED": ("입고검수완료", PENDING),
    "WORK_PENDING": ("작업대기", WORKING),
    "WORKING": ("작업중", WORKING),
    "WORK_COMPLETED": ("작업완료", COMPLETED),
    "OUTBOUND_INSPECTION_COMPLETED": ("출고검수완료", COMPLETED),
    "OUTBOUND_IDLE": ("출고요청", OUTBOUND_WAITING),
    "OUTBOUND_PENDING": ("출고대기", OUTBOUND_WAITING),
    "OUTBOUND_COMPLETED": ("출고완료", DONE),
    "SERVICE_COMPLETED": ("서비스완료", DONE),
})

_LEGACY_GENERATION = MappingProxyType({
    "INPUT": ("신청접수", PENDING),
    "PICKUPING": ("픽업중", PENDING),
    "PICKUPOK": ("픽업완료", PENDING),
    "IN": ("입고", PENDING),
    "CHECK": ("검수완료", PENDING),
    "COMPLETE": ("작업완료", COMPLETED),
    "OUTREADY": ("출고대기", OUTBOUND_WAITING),
    "HOMESERVICE": ("홈서비스", OUTBOUND_WAITING),
    "UNPAY": ("미결제", OUTBOUND_WAITING),
    "FINISH": ("종료", DONE),
})

# Later generations win on a shared code (none overlap today)
_GENERATIONS = (_LEGACY_GENERATION, _CURRENT_GENERATION)


def _merge(*tables):
    merged = {}
    for table in tables:
        merged.update(table)
    return MappingProxyType(merged)


STATUS_TABLE = _merge(*_GENERATIONS)
STATUS_TEXT = MappingProxyType({code: label for code, (label, _) in STATUS_TABLE.items()})


def categorize(status_code: Optional[str]) -> str:
    """Map any status code to a reporting category. Never raises."""
    if not status_code:
        return NONE
    entry = STATUS_TABLE.get(status_code)
    return entry[1] if entry else OTHER


def status_text(status_code: Optional[str]) -> str:
    """Human label for a status code; falls back to the raw code."""
    if not status_code:
        return UNKNOWN_TEXT
    return STATUS_TEXT.get(status_code, status_code)


def category_text(category: str) -> str:
    return CATEGORY_TEXT.get(category, CATEGORY_TEXT[OTHER])


def category_text_for(status_code: Optional[str]) -> str:
    return category_text(categorize(status_code))


# ── Task status (restoration_task.rt_status_cd) ─────────────────────────────
TASK_STATUS_TEXT = MappingProxyType({
    # current generation
    "TASK_PENDING": "작업대기",
    "ON_QUEUE": "작업대기",
    "TASKING": "작업중",
    "TASK_COMPLETE": "작업완료",
    "TASK_EXCLUDE": "작업제외",
    # legacy generation
    "WAIT": "작업대기",
    "DOING": "작업중",
    "COMPLETE": "작업완료",
    "NG": "부적합",
})

# Tasks counted as current load. WAIT/ON_QUEUE are queued rather than started
# but have always been counted here; see DESIGN.md before narrowing this.
ACTIVE_TASK_STATUSES = frozenset({"TASKING", "ON_QUEUE", "DOING", "WAIT"})

OTHER_PART_TEXT = CATEGORY_TEXT[OTHER]


def task_status_text(status_code: Optional[str]) -> str:
    if not status_code:
        return UNKNOWN_TEXT
    return TASK_STATUS_TEXT.get(status_code, status_code)


def is_active_task(status_code: Optional[str]) -> bool:
    return status_code in ACTIVE_TASK_STATUSES
