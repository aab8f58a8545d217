import logging
from typing import Any, Dict, List, Optional

from fastapi.concurrency import run_in_threadpool
from pymongo.database import Database

from repos import certificates as certificate_repo
from repos import courses as course_repo
from repos import enrollments as enrollment_repo
from repos import users as users_repo
from services import curriculum
from services.progress import compute_percent, status_for

logger = logging.getLogger(__name__)

NEXT_LESSONS_LIMIT = 3
RECENT_USERS_LIMIT = 5


def _mean_percent(values: List[int]) -> int:
    """Half-up rounded mean, 0 for an empty list."""
    if not values:
        return 0
    n = len(values)
    return (sum(values) * 2 + n) // (2 * n)


def _next_lesson(course: Dict[str, Any], completed: List[str]) -> Optional[Dict[str, Any]]:
    done = set(completed)
    for _, lesson in curriculum.iter_lessons(course.get("modules", [])):
        if lesson["id"] not in done:
            return lesson
    return None

# ---------------------------
# Student
# ---------------------------

async def student_dashboard(db: Database, user: Dict[str, Any]) -> Dict[str, Any]:
    enrollments = await run_in_threadpool(enrollment_repo.list_for_user, db, user["id"])
    enrollments = [e for e in enrollments if e["status"] != "cancelled"]
    courses = await run_in_threadpool(course_repo.courses_by_ids, db, [e["course_id"] for e in enrollments])
    certificates = await run_in_threadpool(certificate_repo.count_for_user, db, user["id"])

    items = []
    next_lessons = []
    for enrollment in enrollments:
        course = courses.get(enrollment["course_id"])
        if not course:
            # course was deleted after enrolling
            continue
        progress = enrollment.get("progress", {})
        completed = progress.get("completed_lessons", [])
        current_ids = curriculum.lesson_ids(course.get("modules", []))
        percent = compute_percent(completed, current_ids)
        items.append({
            "enrollment_id": enrollment["id"],
            "course_id": course["id"],
            "title": course["title"],
            "thumbnail": course.get("thumbnail"),
            "status": status_for(enrollment["status"], percent),
            "progress_percent": percent,
            "completed_count": len(set(completed).intersection(current_ids)),
            "total_lessons": len(current_ids),
            "last_accessed_at": progress.get("last_accessed_at"),
        })
        if percent < 100:
            lesson = _next_lesson(course, completed)
            next_lessons.append({
                "course_id": course["id"],
                "course_title": course["title"],
                "progress_percent": percent,
                "lesson_id": lesson["id"] if lesson else None,
                "lesson_title": lesson["title"] if lesson else None,
                "last_accessed_at": progress.get("last_accessed_at"),
            })

    # enrollments come sorted by last access, most recent first
    return {
        "user_id": user["id"],
        "active_courses": sum(1 for i in items if i["status"] == "active"),
        "completed_courses": sum(1 for i in items if i["status"] == "completed"),
        "certificates": certificates,
        "overall_progress": _mean_percent([i["progress_percent"] for i in items]),
        "courses": items,
        "next_lessons": next_lessons[:NEXT_LESSONS_LIMIT],
    }

# ---------------------------
# Teacher
# ---------------------------

async def teacher_dashboard(db: Database, user: Dict[str, Any]) -> Dict[str, Any]:
    courses = await run_in_threadpool(course_repo.courses_by_instructor, db, user["id"])
    enrollments = await run_in_threadpool(enrollment_repo.list_for_courses, db, [c["id"] for c in courses])

    by_course: Dict[str, List[Dict[str, Any]]] = {}
    for enrollment in enrollments:
        if enrollment["status"] == "cancelled":
            continue
        by_course.setdefault(enrollment["course_id"], []).append(enrollment)

    items = []
    all_percents: List[int] = []
    status_counts = {"draft": 0, "published": 0, "archived": 0}
    for course in courses:
        status_counts[course.get("status", "draft")] = status_counts.get(course.get("status", "draft"), 0) + 1
        students = by_course.get(course["id"], [])
        lesson_ids = curriculum.lesson_ids(course.get("modules", []))
        percents = [compute_percent(e["progress"].get("completed_lessons", []), lesson_ids) for e in students]
        all_percents.extend(percents)
        price = float(course.get("price") or 0)
        items.append({
            "course_id": course["id"],
            "title": course["title"],
            "status": course.get("status", "draft"),
            "price": price,
            "total_students": len(students),
            "active_students": sum(1 for e, p in zip(students, percents) if status_for(e["status"], p) == "active"),
            "revenue": round(price * len(students), 2),
            "average_progress": _mean_percent(percents),
        })

    return {
        "user_id": user["id"],
        "total_courses": len(courses),
        "courses_by_status": status_counts,
        "total_students": sum(i["total_students"] for i in items),
        "active_students": sum(i["active_students"] for i in items),
        "total_revenue": round(sum(i["revenue"] for i in items), 2),
        "average_progress": _mean_percent(all_percents),
        "courses": items,
    }

# ---------------------------
# Admin
# ---------------------------

async def admin_dashboard(db: Database) -> Dict[str, Any]:
    users_by_role = await run_in_threadpool(users_repo.count_by_role, db)
    courses_by_status = await run_in_threadpool(course_repo.count_by_status, db)
    total_enrollments = await run_in_threadpool(enrollment_repo.count_all, db)
    total_certificates = await run_in_threadpool(certificate_repo.count_all, db)
    recent = await run_in_threadpool(users_repo.recent_users, db, RECENT_USERS_LIMIT)
    return {
        "total_users": sum(users_by_role.values()),
        "users_by_role": users_by_role,
        "total_courses": sum(courses_by_status.values()),
        "courses_by_status": courses_by_status,
        "total_enrollments": total_enrollments,
        "total_certificates": total_certificates,
        "recent_users": recent,
    }
