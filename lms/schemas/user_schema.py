from pydantic import BaseModel, constr
from typing import List, Optional, Literal
from datetime import datetime

Role = Literal["admin", "teacher", "student"]

class CompleteProfileIn(BaseModel):
    name: constr(strip_whitespace=True, min_length=1)
    role: Role
    bio: str = ""
    phone: str = ""

class ProfileUpdate(BaseModel):
    # no `role`: it is fixed once the profile is completed
    name: Optional[constr(strip_whitespace=True, min_length=1)] = None
    bio: Optional[str] = None
    phone: Optional[str] = None
    photo_url: Optional[str] = None

class AdminUserUpdate(ProfileUpdate):
    status: Optional[Literal["active", "inactive"]] = None

class UserOut(BaseModel):
    id: str
    email: Optional[str] = None
    name: str
    role: Role
    bio: str = ""
    phone: str = ""
    photo_url: Optional[str] = None
    status: Optional[str] = None
    created_at: datetime
    updated_at: datetime

class UsersPage(BaseModel):
    items: List[UserOut]
    total: int
    page_size: int
    next_cursor: Optional[str] = None
    has_more: bool = False

class EmailLookupIn(BaseModel):
    emails: List[str]
