# services/course_service.py
import json
import hashlib
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from redis.asyncio import Redis
from pymongo.database import Database
from fastapi.concurrency import run_in_threadpool

from errors import NotFoundError
from repos import courses as repo
from repos import enrollments as enrollment_repo
from repos.helper import JSONEncoder
from services import curriculum
from services.progress import is_stale, progress_state
from services.memory_cache import memory_cache
from services.cache_stats import hit, miss
from services.cache_keys import (
    COURSES_LIST_PREFIX, course_key, courses_list_key, featured_courses_key, popular_courses_key,
)

logger = logging.getLogger(__name__)

COURSE_TTL = 60 * 5          # 5 minutes cache TTL for individual courses
COURSE_LIST_TTL = 60 * 2     # 2 minutes cache TTL for course lists

SHOWCASE_SIZE = 6


def _filters_key(filters: Dict[str, Any], cursor: Optional[str], page_size: int) -> str:
    """Stable cache key for one page of a filtered course list."""
    payload = {"filters": filters, "cursor": cursor, "page_size": page_size}
    return hashlib.sha1(json.dumps(payload, sort_keys=True).encode()).hexdigest()


def _jsonable(doc: Any) -> Any:
    # Both cache levels hold the same JSON-shaped value
    return json.loads(json.dumps(doc, cls=JSONEncoder))


async def _cached(r: Redis, key: str, ttl: int, namespace: str, loader: Callable[[], Any]) -> Any:
    """L1 (memory) -> L2 (Redis) -> loader, with a per-key lock against stampedes."""
    cached = await memory_cache.get(key)
    if cached is not None:
        await hit(r, namespace)
        return cached

    lock = await memory_cache.get_lock(key)
    async with lock:
        cached = await memory_cache.get(key)
        if cached is not None:
            await hit(r, namespace)
            return cached

        cached_l2 = await r.get(key)
        if cached_l2:
            payload = json.loads(cached_l2)
            await memory_cache.set(key, payload, ttl=ttl)
            await hit(r, namespace)
            return payload

        await miss(r, namespace)
        value = await loader()
        if value is not None:
            value = _jsonable(value)
            await r.set(key, json.dumps(value), ex=ttl)
            await memory_cache.set(key, value, ttl=ttl)
        return value


# ---------------------------
# Permissions
# ---------------------------

def can_manage(course: Dict[str, Any], user: Optional[Dict[str, Any]]) -> bool:
    if not user:
        return False
    return user["role"] == "admin" or course.get("instructor_id") == user["id"]


def assert_can_manage(course: Dict[str, Any], user: Dict[str, Any]) -> None:
    if not can_manage(course, user):
        raise PermissionError("Only the course owner or an admin can change this course")


def is_visible(course: Dict[str, Any], user: Optional[Dict[str, Any]]) -> bool:
    return course.get("status") == "published" or can_manage(course, user)


# ---------------------------
# Reads
# ---------------------------

async def get_course(db: Database, r: Redis, course_id: str) -> Optional[Dict[str, Any]]:
    """Retrieve a course by ID using two-level caching (memory and Redis)."""
    async def load():
        return await run_in_threadpool(repo.get_course_by_id, db, course_id)
    return await _cached(r, course_key(course_id), COURSE_TTL, "courses", load)


async def get_visible_course(db: Database, r: Redis, course_id: str, user: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    course = await get_course(db, r, course_id)
    # drafts and archived courses look missing to everyone but their managers
    if not course or not is_visible(course, user):
        raise NotFoundError("Course not found")
    return course


async def list_courses(db: Database, r: Redis, *, filters: Dict[str, Any], cursor: Optional[str], page_size: int) -> Dict[str, Any]:
    """List courses with filters and cursor pagination, cached per page."""
    key = courses_list_key(_filters_key(filters, cursor, page_size))

    async def load():
        return await run_in_threadpool(repo.list_courses, db, filters=filters, cursor=cursor, page_size=page_size)
    return await _cached(r, key, COURSE_LIST_TTL, "courses_list", load)


async def featured_courses(db: Database, r: Redis) -> List[Dict[str, Any]]:
    async def load():
        return await run_in_threadpool(repo.featured_courses, db, SHOWCASE_SIZE)
    return await _cached(r, featured_courses_key(), COURSE_LIST_TTL, "courses_list", load)


async def popular_courses(db: Database, r: Redis) -> List[Dict[str, Any]]:
    async def load():
        return await run_in_threadpool(repo.popular_courses, db, SHOWCASE_SIZE)
    return await _cached(r, popular_courses_key(), COURSE_LIST_TTL, "courses_list", load)


async def instructor_courses(db: Database, instructor_id: str) -> List[Dict[str, Any]]:
    return await run_in_threadpool(repo.courses_by_instructor, db, instructor_id)


# ---------------------------
# Writes
# ---------------------------

async def create_course(db: Database, r: Redis, data: Dict[str, Any], user: Dict[str, Any]) -> Dict[str, Any]:
    """Create a course owned by `user` and invalidate course lists."""
    data = {**data, "instructor_id": user["id"], "instructor_name": user.get("name")}
    doc = await run_in_threadpool(repo.insert_course, db, data)
    await _invalidate_course_lists(r)
    logger.info(f"Course {doc['id']} created by {user['id']}")
    return doc


async def update_course(db: Database, r: Redis, course_id: str, patch: Dict[str, Any], user: Dict[str, Any]) -> Dict[str, Any]:
    course = await run_in_threadpool(repo.require_course, db, course_id)
    assert_can_manage(course, user)
    doc = await run_in_threadpool(repo.update_course, db, course_id, patch)
    if not doc:
        raise NotFoundError("Course not found")
    await invalidate_course_cache(r, course_id)
    return doc


async def delete_course(db: Database, r: Redis, course_id: str, user: Dict[str, Any]) -> None:
    course = await run_in_threadpool(repo.require_course, db, course_id)
    assert_can_manage(course, user)
    await run_in_threadpool(repo.delete_course, db, course_id)
    await invalidate_course_cache(r, course_id)
    logger.info(f"Course {course_id} deleted by {user['id']}")


async def edit_structure(db: Database, r: Redis, course_id: str, user: Dict[str, Any],
                         change: Callable[[List[Dict[str, Any]]], List[Dict[str, Any]]]) -> Dict[str, Any]:
    """
    Read the course, apply `change` to its modules array and write the whole
    array back under the revision that was read.
    """
    course = await run_in_threadpool(repo.require_course, db, course_id)
    assert_can_manage(course, user)
    modules = change(course.get("modules", []))
    doc = await run_in_threadpool(repo.write_modules, db, course_id, modules, course.get("revision"))
    await _resync_progress(db, doc)
    await invalidate_course_cache(r, course_id)
    return doc


async def _resync_progress(db: Database, course: Dict[str, Any]) -> int:
    """
    Re-derive stored percent and status of the course's enrollments after
    its lessons changed. Returns how many were updated.
    """
    lesson_ids = curriculum.lesson_ids(course.get("modules", []))
    enrollments = await run_in_threadpool(enrollment_repo.list_for_courses, db, [course["id"]])
    ts = datetime.utcnow()
    updated = 0
    for enrollment in enrollments:
        percent, status, completed_at = progress_state(enrollment, lesson_ids, ts)
        if not is_stale(enrollment, percent, status):
            continue
        await run_in_threadpool(enrollment_repo.save_progress, db, enrollment["id"],
                                percent=percent, status=status, completed_at=completed_at)
        updated += 1
    if updated:
        logger.info(f"Recomputed progress of {updated} enrollments in course {course['id']}")
    return updated


async def add_module(db, r, course_id, user, *, title: str, description: str = "") -> Dict[str, Any]:
    return await edit_structure(db, r, course_id, user,
                                lambda mods: curriculum.add_module(mods, title=title, description=description)[0])


async def add_lesson(db, r, course_id, module_id, user, data: Dict[str, Any]) -> Dict[str, Any]:
    return await edit_structure(db, r, course_id, user,
                                lambda mods: curriculum.add_lesson(mods, module_id, data)[0])


async def add_material(db, r, course_id, module_id, lesson_id, user, *, title: str, url: str,
                       type: Optional[str] = None) -> Dict[str, Any]:
    material = curriculum.build_material(title=title, url=url, type=type)
    return await edit_structure(db, r, course_id, user,
                                lambda mods: curriculum.add_material(mods, module_id, lesson_id, material))


# ---------------------------
# Cache maintenance
# ---------------------------

async def invalidate_course_cache(r: Redis, course_id: str) -> None:
    key = course_key(course_id)
    await memory_cache.delete(key)
    await r.delete(key)
    await _invalidate_course_lists(r)


async def _invalidate_course_lists(r: Redis) -> None:
    """Invalidate all cached course lists in both cache levels."""
    cursor = 0
    while True:
        cursor, keys = await r.scan(cursor=cursor, match=f"{COURSES_LIST_PREFIX}*", count=200)
        if keys:
            await r.delete(*keys)
        if cursor == 0:
            break
    await memory_cache.delete_prefix(COURSES_LIST_PREFIX)


async def warm_courses_cache(db: Database, r: Redis, page_size: int = 12) -> int:
    """Pre-warm the first catalog page and the courses on it."""
    page = await list_courses(db, r, filters={"status": "published"}, cursor=None, page_size=page_size)
    await featured_courses(db, r)
    await popular_courses(db, r)
    warmed = 0
    for item in page.get("items", []):
        if await get_course(db, r, item["id"]):
            warmed += 1
    logger.info(f"Warmed {warmed} course caches")
    return warmed
