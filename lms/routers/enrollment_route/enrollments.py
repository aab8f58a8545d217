from fastapi import APIRouter, Depends, Query, Response, status
from redis.asyncio import Redis
from pymongo.database import Database
from typing import List, Literal, Optional
from deps import get_db, get_redis
from auth.dependencies import get_current_user, require_role
from services import enrollment_service
from schemas.enrollment_schema import EnrollIn, EnrollmentOut

router = APIRouter(prefix="/enrollments", tags=["enrollments"])


@router.post("", response_model=EnrollmentOut, status_code=status.HTTP_201_CREATED)
async def enroll(payload: EnrollIn, response: Response, db: Database = Depends(get_db),
                 r: Redis = Depends(get_redis), user=Depends(require_role("student"))):
    """Enroll in a published course. Enrolling twice returns the existing enrollment (200)."""
    doc, created = await enrollment_service.enroll(db, r, user=user, course_id=payload.course_id)
    if not created:
        response.status_code = status.HTTP_200_OK
    return doc

@router.get("/me", response_model=List[EnrollmentOut])
async def my_enrollments(status_filter: Optional[Literal["active", "completed", "cancelled"]] = Query(None, alias="status"),
                         db: Database = Depends(get_db), user=Depends(get_current_user)):
    return await enrollment_service.list_mine(db, user=user, status=status_filter)

@router.get("/courses/{course_id}", response_model=EnrollmentOut)
async def enrollment_for_course(course_id: str, db: Database = Depends(get_db), user=Depends(get_current_user)):
    return await enrollment_service.get_for_course(db, user=user, course_id=course_id)

@router.get("/{enrollment_id}", response_model=EnrollmentOut)
async def get_enrollment(enrollment_id: str, db: Database = Depends(get_db), user=Depends(get_current_user)):
    return await enrollment_service.get_enrollment(db, enrollment_id, user)

# ---------------------------
# Progress
# ---------------------------

@router.post("/{enrollment_id}/lessons/{lesson_id}/complete", response_model=EnrollmentOut)
async def complete_lesson(enrollment_id: str, lesson_id: str, db: Database = Depends(get_db),
                          user=Depends(get_current_user)):
    """Mark a lesson done; progress and status are recomputed against the current curriculum."""
    return await enrollment_service.set_lesson_completion(
        db, user=user, enrollment_id=enrollment_id, lesson_id=lesson_id, completed=True)

@router.delete("/{enrollment_id}/lessons/{lesson_id}/complete", response_model=EnrollmentOut)
async def uncomplete_lesson(enrollment_id: str, lesson_id: str, db: Database = Depends(get_db),
                            user=Depends(get_current_user)):
    return await enrollment_service.set_lesson_completion(
        db, user=user, enrollment_id=enrollment_id, lesson_id=lesson_id, completed=False)

@router.post("/{enrollment_id}/lessons/{lesson_id}/access", response_model=EnrollmentOut)
async def record_access(enrollment_id: str, lesson_id: str, db: Database = Depends(get_db),
                        user=Depends(get_current_user)):
    return await enrollment_service.record_access(db, user=user, enrollment_id=enrollment_id, lesson_id=lesson_id)

@router.post("/{enrollment_id}/cancel", response_model=EnrollmentOut)
async def cancel_enrollment(enrollment_id: str, db: Database = Depends(get_db), user=Depends(get_current_user)):
    return await enrollment_service.cancel(db, user=user, enrollment_id=enrollment_id)
