from pydantic import BaseModel, constr
from typing import List, Optional
from datetime import datetime

ID = constr(strip_whitespace=True, min_length=1)

class EnrollIn(BaseModel):
    course_id: ID

class ProgressOut(BaseModel):
    completed_lessons: List[str] = []
    last_accessed_lesson: Optional[str] = None
    last_accessed_at: Optional[datetime] = None
    percent: int = 0

class EnrollmentOut(BaseModel):
    id: str
    user_id: str
    course_id: str
    status: str
    enrolled_at: datetime
    completed_at: Optional[datetime] = None
    progress: ProgressOut

class CourseStudentOut(EnrollmentOut):
    student_name: Optional[str] = None
    student_email: Optional[str] = None
