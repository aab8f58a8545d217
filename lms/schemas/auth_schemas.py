# schemas/auth_schemas.py
from typing import Optional
from pydantic import BaseModel, EmailStr, constr

class AccountRegister(BaseModel):
    email: EmailStr
    password: constr(min_length=8)

class AccountOut(BaseModel):
    uid: str
    email: str
    profile_complete: bool = False
    role: Optional[str] = None

class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"

class TokenRefresh(BaseModel):
    refresh_token: str
