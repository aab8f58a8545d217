# repos/enrollments.py
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from pymongo import ASCENDING, DESCENDING
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from errors import NotFoundError
from repos.helper import serialize, to_object_id

STATUSES = ("active", "completed", "cancelled")


def ensure_indexes(db: Database) -> None:
    db.enrollments.create_index([("user_id", ASCENDING), ("course_id", ASCENDING)], unique=True, name="user_course_unique")
    db.enrollments.create_index([("user_id", ASCENDING), ("progress.last_accessed_at", DESCENDING)], name="user_last_accessed")
    db.enrollments.create_index([("course_id", ASCENDING), ("status", ASCENDING)], name="by_course")


def get_enrollment(db: Database, enrollment_id: str) -> Optional[Dict[str, Any]]:
    return serialize(db.enrollments.find_one({"_id": to_object_id(enrollment_id, "Enrollment")}))


def require_enrollment(db: Database, enrollment_id: str) -> Dict[str, Any]:
    doc = get_enrollment(db, enrollment_id)
    if not doc:
        raise NotFoundError("Enrollment not found")
    return doc


def find_for_user_course(db: Database, user_id: str, course_id: str) -> Optional[Dict[str, Any]]:
    return serialize(db.enrollments.find_one({"user_id": user_id, "course_id": course_id}))


def create_enrollment(db: Database, *, user_id: str, course_id: str, ts: datetime) -> Tuple[Dict[str, Any], bool]:
    """
    Insert an active enrollment. Returns (doc, created). The unique
    (user_id, course_id) index turns a concurrent double-enroll into a read of
    the winner's document.
    """
    doc = {
        "user_id": user_id,
        "course_id": course_id,
        "status": "active",
        "enrolled_at": ts,
        "updated_at": ts,
        "completed_at": None,
        "progress": {
            "completed_lessons": [],
            "last_accessed_lesson": None,
            "last_accessed_at": ts,
            "percent": 0,
        },
    }
    try:
        result = db.enrollments.insert_one(doc)
    except DuplicateKeyError:
        return find_for_user_course(db, user_id, course_id), False
    doc["_id"] = result.inserted_id
    return serialize(doc), True


def set_status(db: Database, enrollment_id: str, status: str, ts: datetime) -> Dict[str, Any]:
    if status not in STATUSES:
        raise ValueError("Invalid enrollment status")
    db.enrollments.update_one(
        {"_id": to_object_id(enrollment_id, "Enrollment")},
        {"$set": {"status": status, "updated_at": ts}}
    )
    return require_enrollment(db, enrollment_id)


def toggle_lesson(db: Database, enrollment_id: str, lesson_id: str, completed: bool, ts: datetime) -> Dict[str, Any]:
    op = "$addToSet" if completed else "$pull"
    db.enrollments.update_one(
        {"_id": to_object_id(enrollment_id, "Enrollment")},
        {
            op: {"progress.completed_lessons": lesson_id},
            "$set": {
                "progress.last_accessed_lesson": lesson_id,
                "progress.last_accessed_at": ts,
                "updated_at": ts,
            },
        }
    )
    return require_enrollment(db, enrollment_id)


def touch_lesson(db: Database, enrollment_id: str, lesson_id: str, ts: datetime) -> Dict[str, Any]:
    db.enrollments.update_one(
        {"_id": to_object_id(enrollment_id, "Enrollment")},
        {"$set": {"progress.last_accessed_lesson": lesson_id, "progress.last_accessed_at": ts}}
    )
    return require_enrollment(db, enrollment_id)


def save_progress(db: Database, enrollment_id: str, *, percent: int, status: str,
                  completed_at: Optional[datetime]) -> Dict[str, Any]:
    db.enrollments.update_one(
        {"_id": to_object_id(enrollment_id, "Enrollment")},
        {"$set": {"progress.percent": percent, "status": status, "completed_at": completed_at}}
    )
    return require_enrollment(db, enrollment_id)


def list_for_user(db: Database, user_id: str, status: Optional[str] = None) -> List[Dict[str, Any]]:
    match: Dict[str, Any] = {"user_id": user_id}
    if status:
        match["status"] = status
    docs = db.enrollments.find(match).sort([("progress.last_accessed_at", DESCENDING)])
    return [serialize(d) for d in docs]


def list_for_courses(db: Database, course_ids: List[str]) -> List[Dict[str, Any]]:
    if not course_ids:
        return []
    docs = db.enrollments.find({"course_id": {"$in": course_ids}}).sort([("enrolled_at", DESCENDING)])
    return [serialize(d) for d in docs]


def count_all(db: Database) -> int:
    return db.enrollments.count_documents({})
