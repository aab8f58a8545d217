from fastapi import APIRouter, Depends, Query, status
from redis.asyncio import Redis
from pymongo.database import Database
from typing import Any, Dict, List, Optional
from config import settings
from deps import get_db, get_redis
from auth.dependencies import require_role, get_optional_user
from services import course_service
from schemas.course_schema import CourseCreate, CourseUpdate, CoursesPage, CourseOut, CourseSummaryOut, CourseStatus, Level

router = APIRouter(prefix="/courses", tags=["courses"])


def _visible_filters(filters: Dict[str, Any], user: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Narrow list filters to what the caller may see."""
    if user and user["role"] == "admin":
        return filters
    if user and user["role"] == "teacher" and filters.get("status") not in (None, "published"):
        # unpublished courses are listed only for their own instructor
        return {**filters, "instructor_id": user["id"]}
    return {**filters, "status": "published"}


# Route to get paginated list of courses with various filter options
@router.get("", response_model=CoursesPage)
async def list_courses(
    search: Optional[str] = Query(None, description="Case-insensitive title search"),
    category: Optional[str] = None,
    level: Optional[Level] = None,
    instructor_id: Optional[str] = None,
    status_filter: Optional[CourseStatus] = Query(None, alias="status"),
    cursor: Optional[str] = Query(None, description="Opaque cursor from the previous page"),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    db: Database = Depends(get_db),
    r: Redis = Depends(get_redis),
    user: Optional[Dict[str, Any]] = Depends(get_optional_user),
):
    """
    Get a page of courses, newest first.

    Args:
        search: Optional text matched against course titles
        category: Optional category filter
        level: Filter by level (beginner/intermediate/advanced)
        instructor_id: Filter courses by instructor
        status_filter: Course status; anonymous callers and students only get published courses
        cursor: `next_cursor` of the previous page
        page_size: Number of items per page

    Returns:
        CoursesPage with the total count of the filtered query
    """
    filters = {
        **({"search": search} if search else {}),
        **({"category": category} if category else {}),
        **({"level": level} if level else {}),
        **({"instructor_id": instructor_id} if instructor_id else {}),
        **({"status": status_filter} if status_filter else {}),
    }
    filters = _visible_filters(filters, user)
    return await course_service.list_courses(db, r, filters=filters, cursor=cursor, page_size=page_size)

@router.get("/featured", response_model=List[CourseSummaryOut])
async def featured_courses(db: Database = Depends(get_db), r: Redis = Depends(get_redis)):
    return await course_service.featured_courses(db, r)

@router.get("/popular", response_model=List[CourseSummaryOut])
async def popular_courses(db: Database = Depends(get_db), r: Redis = Depends(get_redis)):
    return await course_service.popular_courses(db, r)

@router.get("/mine", response_model=List[CourseSummaryOut])
async def my_courses(db: Database = Depends(get_db), user=Depends(require_role("teacher", "admin"))):
    """Courses taught by the caller, any status."""
    return await course_service.instructor_courses(db, user["id"])

# Route to create a new course
@router.post("", response_model=CourseOut, status_code=status.HTTP_201_CREATED)
async def create_course(payload: CourseCreate, db: Database = Depends(get_db), r: Redis = Depends(get_redis),
                        user=Depends(require_role("teacher", "admin"))):
    """
    Create a new course owned by the caller. Only teachers and admins can create courses.

    Args:
        payload: CourseCreate object containing course details

    Returns:
        Created course object, with an empty curriculum
    """
    return await course_service.create_course(db, r, payload.dict(), user)

# Route to get a specific course by ID
@router.get("/{course_id}", response_model=CourseOut)
async def get_course(course_id: str, db: Database = Depends(get_db), r: Redis = Depends(get_redis),
                     user: Optional[Dict[str, Any]] = Depends(get_optional_user)):
    """
    Get course details by course ID. Drafts and archived courses are only
    visible to their instructor and to admins.
    """
    return await course_service.get_visible_course(db, r, course_id, user)

# Route to update an entire course
@router.put("/{course_id}", response_model=CourseOut)
async def update_course(course_id: str, payload: CourseUpdate,
                        db: Database = Depends(get_db),
                        r: Redis = Depends(get_redis),
                        user=Depends(require_role("teacher", "admin"))):
    """
    Update course fields. Only the course owner or an admin can update.
    The curriculum is edited through the module and lesson routes.
    """
    return await course_service.update_course(db, r, course_id, payload.dict(exclude_unset=True), user)

@router.delete("/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_course(course_id: str, db: Database = Depends(get_db), r: Redis = Depends(get_redis),
                        user=Depends(require_role("teacher", "admin"))):
    await course_service.delete_course(db, r, course_id, user)
