from fastapi import APIRouter, Depends, status
from redis.asyncio import Redis
from pymongo.database import Database
from typing import List
from deps import get_db, get_redis
from auth.dependencies import require_role
from services import course_service, curriculum, enrollment_service
from schemas.course_schema import CourseOut, LessonIn, LessonUpdate, MaterialIn, ModuleIn, ModuleUpdate, ReorderIn
from schemas.enrollment_schema import CourseStudentOut

# Curriculum edits rewrite the whole modules array; a stale write gets a 409.
router = APIRouter(prefix="/courses/{course_id}", tags=["curriculum"])

manager = require_role("teacher", "admin")


# ---------------------------
# Modules
# ---------------------------

@router.post("/modules", response_model=CourseOut, status_code=status.HTTP_201_CREATED)
async def create_module(course_id: str, payload: ModuleIn, db: Database = Depends(get_db),
                        r: Redis = Depends(get_redis), user=Depends(manager)):
    return await course_service.add_module(db, r, course_id, user, title=payload.title, description=payload.description)

# declared before /modules/{module_id} so "order" is not taken for an id
@router.put("/modules/order", response_model=CourseOut)
async def reorder_modules(course_id: str, payload: ReorderIn, db: Database = Depends(get_db),
                          r: Redis = Depends(get_redis), user=Depends(manager)):
    """Reorder with the full list of module ids; renumbers `order` to 0..n-1."""
    return await course_service.edit_structure(
        db, r, course_id, user, lambda mods: curriculum.reorder_modules(mods, payload.ids))

@router.put("/modules/{module_id}", response_model=CourseOut)
async def update_module(course_id: str, module_id: str, patch: ModuleUpdate, db: Database = Depends(get_db),
                        r: Redis = Depends(get_redis), user=Depends(manager)):
    changes = patch.dict(exclude_unset=True)
    return await course_service.edit_structure(
        db, r, course_id, user, lambda mods: curriculum.update_module(mods, module_id, changes))

@router.delete("/modules/{module_id}", response_model=CourseOut)
async def delete_module(course_id: str, module_id: str, db: Database = Depends(get_db),
                        r: Redis = Depends(get_redis), user=Depends(manager)):
    return await course_service.edit_structure(
        db, r, course_id, user, lambda mods: curriculum.remove_module(mods, module_id))

# ---------------------------
# Lessons
# ---------------------------

@router.post("/modules/{module_id}/lessons", response_model=CourseOut, status_code=status.HTTP_201_CREATED)
async def create_lesson(course_id: str, module_id: str, payload: LessonIn, db: Database = Depends(get_db),
                        r: Redis = Depends(get_redis), user=Depends(manager)):
    return await course_service.add_lesson(db, r, course_id, module_id, user, payload.dict())

@router.put("/modules/{module_id}/lessons/order", response_model=CourseOut)
async def reorder_lessons(course_id: str, module_id: str, payload: ReorderIn, db: Database = Depends(get_db),
                          r: Redis = Depends(get_redis), user=Depends(manager)):
    return await course_service.edit_structure(
        db, r, course_id, user, lambda mods: curriculum.reorder_lessons(mods, module_id, payload.ids))

@router.put("/modules/{module_id}/lessons/{lesson_id}", response_model=CourseOut)
async def update_lesson(course_id: str, module_id: str, lesson_id: str, patch: LessonUpdate,
                        db: Database = Depends(get_db), r: Redis = Depends(get_redis), user=Depends(manager)):
    changes = patch.dict(exclude_unset=True)
    return await course_service.edit_structure(
        db, r, course_id, user, lambda mods: curriculum.update_lesson(mods, module_id, lesson_id, changes))

@router.delete("/modules/{module_id}/lessons/{lesson_id}", response_model=CourseOut)
async def delete_lesson(course_id: str, module_id: str, lesson_id: str, db: Database = Depends(get_db),
                        r: Redis = Depends(get_redis), user=Depends(manager)):
    return await course_service.edit_structure(
        db, r, course_id, user, lambda mods: curriculum.remove_lesson(mods, module_id, lesson_id))

# ---------------------------
# Materials
# ---------------------------

@router.post("/modules/{module_id}/lessons/{lesson_id}/materials", response_model=CourseOut,
             status_code=status.HTTP_201_CREATED)
async def add_material(course_id: str, module_id: str, lesson_id: str, payload: MaterialIn,
                       db: Database = Depends(get_db), r: Redis = Depends(get_redis), user=Depends(manager)):
    """Attach a link; Google Drive/Docs links get a file id and a preview URL."""
    return await course_service.add_material(db, r, course_id, module_id, lesson_id, user,
                                             title=payload.title, url=payload.url, type=payload.type)

@router.delete("/modules/{module_id}/lessons/{lesson_id}/materials/{material_id}", response_model=CourseOut)
async def delete_material(course_id: str, module_id: str, lesson_id: str, material_id: str,
                          db: Database = Depends(get_db), r: Redis = Depends(get_redis), user=Depends(manager)):
    return await course_service.edit_structure(
        db, r, course_id, user, lambda mods: curriculum.remove_material(mods, module_id, lesson_id, material_id))

# ---------------------------
# Students
# ---------------------------

@router.get("/students", response_model=List[CourseStudentOut])
async def course_students(course_id: str, db: Database = Depends(get_db), user=Depends(manager)):
    return await enrollment_service.course_students(db, user=user, course_id=course_id)
