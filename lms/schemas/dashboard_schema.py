from pydantic import BaseModel
from typing import Dict, List, Optional
from datetime import datetime

from schemas.user_schema import UserOut

class StudentCourseItem(BaseModel):
    enrollment_id: str
    course_id: str
    title: str
    thumbnail: Optional[str] = None
    status: str
    progress_percent: int = 0
    completed_count: int = 0
    total_lessons: int = 0
    last_accessed_at: Optional[datetime] = None

class NextLessonItem(BaseModel):
    course_id: str
    course_title: str
    progress_percent: int = 0
    lesson_id: Optional[str] = None
    lesson_title: Optional[str] = None
    last_accessed_at: Optional[datetime] = None

class StudentDashboardOut(BaseModel):
    user_id: str
    active_courses: int
    completed_courses: int
    certificates: int
    overall_progress: int
    courses: List[StudentCourseItem]
    next_lessons: List[NextLessonItem]

class TeacherCourseItem(BaseModel):
    course_id: str
    title: str
    status: str
    price: float = 0.0
    total_students: int = 0
    active_students: int = 0
    revenue: float = 0.0
    average_progress: int = 0

class TeacherDashboardOut(BaseModel):
    user_id: str
    total_courses: int
    courses_by_status: Dict[str, int]
    total_students: int
    active_students: int
    total_revenue: float
    average_progress: int
    courses: List[TeacherCourseItem]

class AdminDashboardOut(BaseModel):
    total_users: int
    users_by_role: Dict[str, int]
    total_courses: int
    courses_by_status: Dict[str, int]
    total_enrollments: int
    total_certificates: int
    recent_users: List[UserOut]
