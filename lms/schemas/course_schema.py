from pydantic import BaseModel, Field, constr, validator
from typing import List, Optional, Literal
from datetime import datetime

CourseStatus = Literal["draft", "published", "archived"]
Level = Literal["beginner", "intermediate", "advanced"]
LessonType = Literal["video", "text", "quiz"]
MaterialType = Literal["document", "spreadsheet", "presentation", "pdf", "image", "video", "file"]


def _split(value, sep: str):
    # the course form posts free text; split it the way the form intends
    if isinstance(value, str):
        parts = value.split(sep)
        return [p.strip() for p in parts if p.strip()]
    return value


class _CourseFields(BaseModel):
    @validator("tags", pre=True, check_fields=False)
    def split_tags(cls, v):
        return _split(v, ",")

    @validator("prerequisites", "learning_objectives", pre=True, check_fields=False)
    def split_lines(cls, v):
        return _split(v, "\n")

    @validator("certificate_available", pre=True, check_fields=False)
    def checkbox(cls, v):
        if isinstance(v, str):
            return v.strip().lower() in ("on", "true", "1", "yes")
        return v


class CourseCreate(_CourseFields):
    title: constr(strip_whitespace=True, min_length=3)
    description: str = ""
    short_description: str = ""
    category: Optional[str] = None
    subcategory: Optional[str] = None
    price: float = Field(default=0.0, ge=0)
    thumbnail: Optional[str] = None
    status: CourseStatus = "draft"
    level: Optional[Level] = None
    language: Optional[str] = None
    tags: List[str] = []
    prerequisites: List[str] = []
    learning_objectives: List[str] = []
    certificate_available: bool = True
    workload: Optional[int] = Field(default=None, ge=1)
    support_email: Optional[str] = None
    featured: bool = False


class CourseUpdate(_CourseFields):
    title: Optional[constr(strip_whitespace=True, min_length=3)] = None
    description: Optional[str] = None
    short_description: Optional[str] = None
    category: Optional[str] = None
    subcategory: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    thumbnail: Optional[str] = None
    status: Optional[CourseStatus] = None
    level: Optional[Level] = None
    language: Optional[str] = None
    tags: Optional[List[str]] = None
    prerequisites: Optional[List[str]] = None
    learning_objectives: Optional[List[str]] = None
    certificate_available: Optional[bool] = None
    workload: Optional[int] = Field(default=None, ge=1)
    support_email: Optional[str] = None
    featured: Optional[bool] = None


# ---------------------------
# Modules / lessons
# ---------------------------

class ModuleIn(BaseModel):
    title: constr(strip_whitespace=True, min_length=1)
    description: str = ""

class ModuleUpdate(BaseModel):
    title: Optional[constr(strip_whitespace=True, min_length=1)] = None
    description: Optional[str] = None

class LessonIn(BaseModel):
    title: constr(strip_whitespace=True, min_length=1)
    type: LessonType = "text"
    content: str = ""
    duration: int = Field(default=0, ge=0)
    video_url: Optional[str] = None

class LessonUpdate(BaseModel):
    title: Optional[constr(strip_whitespace=True, min_length=1)] = None
    type: Optional[LessonType] = None
    content: Optional[str] = None
    duration: Optional[int] = Field(default=None, ge=0)
    video_url: Optional[str] = None

class MaterialIn(BaseModel):
    title: constr(strip_whitespace=True, min_length=1)
    url: constr(strip_whitespace=True, min_length=1)
    type: Optional[MaterialType] = None

class ReorderIn(BaseModel):
    ids: List[str]

class MaterialOut(BaseModel):
    id: str
    title: str
    type: str
    url: str
    drive_file_id: Optional[str] = None
    preview_url: Optional[str] = None

class LessonOut(BaseModel):
    id: str
    title: str
    type: str
    content: str = ""
    duration: int = 0
    order: int
    video_url: Optional[str] = None
    materials: List[MaterialOut] = []

class ModuleOut(BaseModel):
    id: str
    title: str
    description: str = ""
    order: int
    lessons: List[LessonOut] = []


# ---------------------------
# Output
# ---------------------------

class CourseSummaryOut(BaseModel):
    id: str
    title: str
    description: str = ""
    short_description: str = ""
    category: Optional[str] = None
    subcategory: Optional[str] = None
    price: float = 0.0
    thumbnail: Optional[str] = None
    status: str
    level: Optional[str] = None
    language: Optional[str] = None
    instructor_id: str
    instructor_name: Optional[str] = None
    tags: List[str] = []
    certificate_available: bool = True
    featured: bool = False
    lessons_count: int = 0
    total_duration: int = 0
    enroll_count: int = 0
    created_at: datetime
    updated_at: datetime

class CourseOut(CourseSummaryOut):
    prerequisites: List[str] = []
    learning_objectives: List[str] = []
    workload: Optional[int] = None
    support_email: Optional[str] = None
    modules: List[ModuleOut] = []
    revision: int = 0

class CoursesPage(BaseModel):
    items: List[CourseSummaryOut]
    total: int
    page_size: int
    next_cursor: Optional[str] = None
    has_more: bool = False
