from fastapi import APIRouter, Depends
from pymongo.database import Database
from deps import get_db
from auth.dependencies import require_role
from services import dashboard_service
from schemas.dashboard_schema import AdminDashboardOut, StudentDashboardOut, TeacherDashboardOut

router = APIRouter(prefix="/dashboard", tags=["dashboard"])

@router.get("/student", response_model=StudentDashboardOut)
async def student_dashboard(db: Database = Depends(get_db), user=Depends(require_role("student"))):
    """Enrolled courses with progress, totals and the next lessons to take."""
    return await dashboard_service.student_dashboard(db, user)

@router.get("/teacher", response_model=TeacherDashboardOut)
async def teacher_dashboard(db: Database = Depends(get_db), user=Depends(require_role("teacher", "admin"))):
    return await dashboard_service.teacher_dashboard(db, user)

@router.get("/admin", response_model=AdminDashboardOut, dependencies=[Depends(require_role("admin"))])
async def admin_dashboard(db: Database = Depends(get_db)):
    return await dashboard_service.admin_dashboard(db)
