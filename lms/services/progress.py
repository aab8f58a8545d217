# services/progress.py
from datetime import datetime
from typing import Any, Dict, Iterable, Optional, Tuple


def compute_percent(completed_lessons: Iterable[str], lesson_ids: Iterable[str]) -> int:
    """
    Share of the course's current lessons that are completed, rounded half up.
    Ids of lessons that no longer exist are ignored; no lessons means 0.
    """
    current = set(lesson_ids)
    if not current:
        return 0
    done = len(current.intersection(completed_lessons))
    total = len(current)
    return (done * 200 + total) // (2 * total)


def status_for(current_status: str, percent: int) -> str:
    if current_status == "cancelled":
        return "cancelled"
    return "completed" if percent == 100 else "active"


def progress_state(enrollment: Dict[str, Any], lesson_ids: Iterable[str],
                   ts: datetime) -> Tuple[int, str, Optional[datetime]]:
    """(percent, status, completed_at) of an enrollment against the given lessons."""
    percent = compute_percent(enrollment.get("progress", {}).get("completed_lessons", []), lesson_ids)
    status = status_for(enrollment["status"], percent)
    completed_at = (enrollment.get("completed_at") or ts) if percent == 100 else None
    return percent, status, completed_at


def is_stale(enrollment: Dict[str, Any], percent: int, status: str) -> bool:
    return (enrollment.get("progress", {}).get("percent"), enrollment["status"]) != (percent, status)
