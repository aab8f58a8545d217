# services/enrollment_service.py
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from fastapi.concurrency import run_in_threadpool
from pymongo.database import Database
from redis.asyncio import Redis

from errors import NotFoundError
from repos import courses as course_repo
from repos import enrollments as repo
from repos import users as users_repo
from services import course_service, curriculum
from services.progress import progress_state

logger = logging.getLogger(__name__)


def _assert_owner(enrollment: Dict[str, Any], user: Dict[str, Any], allow_admin: bool = False) -> None:
    if enrollment["user_id"] == user["id"]:
        return
    if allow_admin and user["role"] == "admin":
        return
    raise PermissionError("This enrollment belongs to another user")


async def _recompute(db: Database, enrollment: Dict[str, Any], course: Dict[str, Any], ts: datetime) -> Dict[str, Any]:
    percent, status, completed_at = progress_state(enrollment, curriculum.lesson_ids(course.get("modules", [])), ts)
    return await run_in_threadpool(repo.save_progress, db, enrollment["id"],
                                   percent=percent, status=status, completed_at=completed_at)


async def enroll(db: Database, r: Redis, *, user: Dict[str, Any], course_id: str) -> Tuple[Dict[str, Any], bool]:
    """
    Enroll `user` in a published course. Returns (enrollment, created). An
    existing enrollment is returned as is; a cancelled one is reactivated.
    """
    course = await run_in_threadpool(course_repo.require_course, db, course_id)
    if course.get("status") != "published":
        raise ValueError("Course is not open for enrollment")

    ts = datetime.utcnow()
    existing = await run_in_threadpool(repo.find_for_user_course, db, user["id"], course_id)
    if existing:
        if existing["status"] == "cancelled":
            reactivated = await run_in_threadpool(repo.set_status, db, existing["id"], "active", ts)
            logger.info(f"Enrollment {existing['id']} reactivated")
            return await _recompute(db, reactivated, course, ts), False
        return existing, False

    doc, created = await run_in_threadpool(repo.create_enrollment, db, user_id=user["id"], course_id=course_id, ts=ts)
    if created:
        await run_in_threadpool(course_repo.increment_enroll_count, db, course_id)
        await course_service.invalidate_course_cache(r, course_id)
        logger.info(f"User {user['id']} enrolled in course {course_id}")
    return doc, created


async def get_enrollment(db: Database, enrollment_id: str, user: Dict[str, Any]) -> Dict[str, Any]:
    enrollment = await run_in_threadpool(repo.require_enrollment, db, enrollment_id)
    _assert_owner(enrollment, user, allow_admin=True)
    return enrollment


async def get_for_course(db: Database, *, user: Dict[str, Any], course_id: str) -> Dict[str, Any]:
    enrollment = await run_in_threadpool(repo.find_for_user_course, db, user["id"], course_id)
    if not enrollment:
        raise NotFoundError("Not enrolled in this course")
    return enrollment


async def list_mine(db: Database, *, user: Dict[str, Any], status: Optional[str] = None) -> List[Dict[str, Any]]:
    return await run_in_threadpool(repo.list_for_user, db, user["id"], status)


async def set_lesson_completion(db: Database, *, user: Dict[str, Any], enrollment_id: str,
                                lesson_id: str, completed: bool) -> Dict[str, Any]:
    enrollment = await run_in_threadpool(repo.require_enrollment, db, enrollment_id)
    _assert_owner(enrollment, user)
    if enrollment["status"] == "cancelled":
        raise ValueError("Enrollment is cancelled")

    course = await run_in_threadpool(course_repo.require_course, db, enrollment["course_id"])
    if completed and curriculum.find_lesson(course.get("modules", []), lesson_id) is None:
        raise NotFoundError("Lesson not found in the specified course")

    ts = datetime.utcnow()
    updated = await run_in_threadpool(repo.toggle_lesson, db, enrollment_id, lesson_id, completed, ts)
    result = await _recompute(db, updated, course, ts)
    if result["status"] == "completed" and enrollment["status"] != "completed":
        logger.info(f"Enrollment {enrollment_id} completed course {enrollment['course_id']}")
    return result


async def record_access(db: Database, *, user: Dict[str, Any], enrollment_id: str, lesson_id: str) -> Dict[str, Any]:
    enrollment = await run_in_threadpool(repo.require_enrollment, db, enrollment_id)
    _assert_owner(enrollment, user)
    course = await run_in_threadpool(course_repo.require_course, db, enrollment["course_id"])
    if curriculum.find_lesson(course.get("modules", []), lesson_id) is None:
        raise NotFoundError("Lesson not found in the specified course")
    return await run_in_threadpool(repo.touch_lesson, db, enrollment_id, lesson_id, datetime.utcnow())


async def cancel(db: Database, *, user: Dict[str, Any], enrollment_id: str) -> Dict[str, Any]:
    enrollment = await run_in_threadpool(repo.require_enrollment, db, enrollment_id)
    _assert_owner(enrollment, user, allow_admin=True)
    doc = await run_in_threadpool(repo.set_status, db, enrollment_id, "cancelled", datetime.utcnow())
    logger.info(f"Enrollment {enrollment_id} cancelled")
    return doc


async def course_students(db: Database, *, user: Dict[str, Any], course_id: str) -> List[Dict[str, Any]]:
    course = await run_in_threadpool(course_repo.require_course, db, course_id)
    course_service.assert_can_manage(course, user)
    enrollments = await run_in_threadpool(repo.list_for_courses, db, [course_id])
    out = []
    for enrollment in enrollments:
        student = await run_in_threadpool(users_repo.get_user, db, enrollment["user_id"]) or {}
        out.append({**enrollment, "student_name": student.get("name"), "student_email": student.get("email")})
    return out
