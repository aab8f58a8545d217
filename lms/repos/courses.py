import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from pymongo import ASCENDING, DESCENDING
from pymongo.database import Database

from errors import ConflictError, NotFoundError
from repos.helper import after_cursor, page_result, serialize, to_object_id

# ---------------------------
# Helpers
# ---------------------------

def _denormalize(course: Dict[str, Any]) -> Dict[str, Any]:
    lessons = 0
    duration = 0
    for m in course.get("modules", []):
        for l in m.get("lessons", []):
            lessons += 1
            duration += int(l.get("duration", 0) or 0)
    course["lessons_count"] = lessons
    course["total_duration"] = duration
    return course

# ---------------------------
# Indexes
# ---------------------------

def ensure_indexes(db: Database) -> None:
    db.courses.create_index([("status", ASCENDING), ("created_at", DESCENDING)])
    db.courses.create_index([("category", ASCENDING), ("status", ASCENDING)])
    db.courses.create_index([("instructor_id", ASCENDING), ("created_at", DESCENDING)])
    db.courses.create_index([("status", ASCENDING), ("updated_at", DESCENDING)])
    db.courses.create_index([("status", ASCENDING), ("enroll_count", DESCENDING)])

# ---------------------------
# CRUD
# ---------------------------

def insert_course(db: Database, data: Dict[str, Any]) -> Dict[str, Any]:
    now = datetime.utcnow()
    doc = _denormalize({
        **data,
        "modules": data.get("modules", []),
        "instructor_id": str(data["instructor_id"]),
        "enroll_count": 0,
        "revision": 0,
        "created_at": now,
        "updated_at": now,
    })
    result = db.courses.insert_one(doc)
    doc["_id"] = result.inserted_id
    return serialize(doc)

def get_course_by_id(db: Database, course_id: str) -> Optional[Dict[str, Any]]:
    return serialize(db.courses.find_one({"_id": to_object_id(course_id, "Course")}))

def require_course(db: Database, course_id: str) -> Dict[str, Any]:
    doc = get_course_by_id(db, course_id)
    if not doc:
        raise NotFoundError("Course not found")
    return doc

def update_course(db: Database, course_id: str, patch: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Top-level field update. Nested modules go through write_modules."""
    patch = {k: v for k, v in patch.items() if k not in ("modules", "revision", "enroll_count", "_id", "id")}
    patch["updated_at"] = datetime.utcnow()
    res = db.courses.update_one({"_id": to_object_id(course_id, "Course")}, {"$set": patch})
    if res.matched_count == 0:
        return None
    return get_course_by_id(db, course_id)

def delete_course(db: Database, course_id: str) -> bool:
    res = db.courses.delete_one({"_id": to_object_id(course_id, "Course")})
    return res.deleted_count == 1

def write_modules(db: Database, course_id: str, modules: List[Dict[str, Any]], expected_revision: Optional[int]) -> Dict[str, Any]:
    """
    Rewrite the whole modules array, guarded by the revision that was read.
    A concurrent writer bumps the revision first and this write then matches
    nothing.
    """
    oid = to_object_id(course_id, "Course")
    counters = _denormalize({"modules": modules})
    match: Dict[str, Any] = {"_id": oid}
    if expected_revision is None:
        match["revision"] = {"$exists": False}
    else:
        match["revision"] = expected_revision
    res = db.courses.update_one(match, {
        "$set": {
            "modules": modules,
            "lessons_count": counters["lessons_count"],
            "total_duration": counters["total_duration"],
            "updated_at": datetime.utcnow(),
        },
        "$inc": {"revision": 1},
    })
    if res.matched_count == 0:
        if not db.courses.find_one({"_id": oid}, {"_id": 1}):
            raise NotFoundError("Course not found")
        raise ConflictError("Course was modified by someone else, reload and try again")
    return get_course_by_id(db, course_id)

def increment_enroll_count(db: Database, course_id: str, amount: int = 1) -> None:
    db.courses.update_one({"_id": to_object_id(course_id, "Course")}, {"$inc": {"enroll_count": amount}})

# ---------------------------
# Query helpers
# ---------------------------

def _build_match(filters: Dict[str, Any]) -> Dict[str, Any]:
    match: Dict[str, Any] = {}
    for field in ("status", "category", "level", "instructor_id"):
        if filters.get(field):
            match[field] = filters[field]
    if filters.get("search"):
        match["title"] = {"$regex": re.escape(filters["search"]), "$options": "i"}
    return match

# ---------------------------
# Listing
# ---------------------------

def list_courses(db: Database, *, filters: Dict[str, Any], cursor: Optional[str], page_size: int) -> Dict[str, Any]:
    """Forward-only cursor paging on (created_at desc, _id desc), plus a total count."""
    match = _build_match(filters)
    total = db.courses.count_documents(match)

    query = dict(match)
    after = after_cursor(cursor)
    if after:
        query["$and"] = [after]

    docs = list(
        db.courses.find(query, {"modules": 0})
        .sort([("created_at", DESCENDING), ("_id", DESCENDING)])
        .limit(page_size + 1)
    )
    return page_result(docs, total, page_size)

def featured_courses(db: Database, limit: int = 6) -> List[Dict[str, Any]]:
    docs = db.courses.find({"status": "published"}, {"modules": 0}).sort([("updated_at", DESCENDING)]).limit(limit)
    return [serialize(d) for d in docs]

def popular_courses(db: Database, limit: int = 6) -> List[Dict[str, Any]]:
    docs = (
        db.courses.find({"status": "published"}, {"modules": 0})
        .sort([("enroll_count", DESCENDING), ("created_at", DESCENDING)])
        .limit(limit)
    )
    return [serialize(d) for d in docs]

def courses_by_instructor(db: Database, instructor_id: str) -> List[Dict[str, Any]]:
    docs = db.courses.find({"instructor_id": instructor_id}).sort([("created_at", DESCENDING)])
    return [serialize(d) for d in docs]

def courses_by_ids(db: Database, course_ids: List[str]) -> Dict[str, Dict[str, Any]]:
    oids = []
    for cid in course_ids:
        try:
            oids.append(to_object_id(cid, "Course"))
        except NotFoundError:
            continue
    return {str(d["_id"]): serialize(d) for d in db.courses.find({"_id": {"$in": oids}})}

def count_by_status(db: Database) -> Dict[str, int]:
    return {s: db.courses.count_documents({"status": s}) for s in ("draft", "published", "archived")}
