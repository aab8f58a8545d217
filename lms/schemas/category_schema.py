from pydantic import BaseModel, constr
from typing import Optional
from datetime import datetime

class CategoryIn(BaseModel):
    name: constr(strip_whitespace=True, min_length=1)
    description: str = ""

class CategoryUpdate(BaseModel):
    name: Optional[constr(strip_whitespace=True, min_length=1)] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None

class CategoryOut(BaseModel):
    id: str
    name: str
    slug: str
    description: str = ""
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
