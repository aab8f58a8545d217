from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.concurrency import run_in_threadpool
from pymongo.database import Database
import logging

from config import settings
from deps import get_db
from auth.dependencies import get_current_account, get_current_user, require_role
from repos import users as users_repo
from schemas.user_schema import (
    AdminUserUpdate, CompleteProfileIn, EmailLookupIn, ProfileUpdate, Role, UserOut, UsersPage,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


@router.post("/me/profile", response_model=UserOut, status_code=status.HTTP_201_CREATED)
async def complete_profile(
    payload: CompleteProfileIn,
    account: Dict[str, Any] = Depends(get_current_account),
    db: Database = Depends(get_db)
):
    """First-login step: choose a role and a display name."""
    if payload.role == "admin" and (account["email"] or "").lower() not in settings.admin_emails:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin role is not available for this account")
    user = await run_in_threadpool(
        users_repo.create_profile, db,
        uid=account["uid"], email=account["email"], name=payload.name,
        role=payload.role, bio=payload.bio, phone=payload.phone,
    )
    logger.info(f"Profile completed for {account['uid']} as {payload.role}")
    return user

@router.get("/me", response_model=UserOut)
async def get_me(user: Dict[str, Any] = Depends(get_current_user)):
    return user

@router.put("/me", response_model=UserOut)
async def update_me(payload: ProfileUpdate, user: Dict[str, Any] = Depends(get_current_user), db: Database = Depends(get_db)):
    patch = payload.dict(exclude_unset=True)
    return await run_in_threadpool(users_repo.update_user, db, user["id"], patch)

# ---------------------------
# Admin
# ---------------------------

@router.get("", response_model=UsersPage, dependencies=[Depends(require_role("admin"))])
async def list_users(
    role: Optional[Role] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    search: Optional[str] = None,
    cursor: Optional[str] = None,
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    db: Database = Depends(get_db)
):
    return await run_in_threadpool(
        users_repo.list_users, db,
        role=role, status=status_filter, search=search, cursor=cursor, page_size=page_size,
    )

@router.post("/lookup", response_model=List[UserOut], dependencies=[Depends(require_role("admin"))])
async def lookup_by_email(payload: EmailLookupIn, db: Database = Depends(get_db)):
    return await run_in_threadpool(users_repo.get_users_by_email, db, payload.emails)

@router.get("/{uid}", response_model=UserOut, dependencies=[Depends(require_role("admin"))])
async def get_user(uid: str, db: Database = Depends(get_db)):
    user = await run_in_threadpool(users_repo.get_user, db, uid)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user

@router.put("/{uid}", response_model=UserOut)
async def update_user(
    uid: str,
    payload: AdminUserUpdate,
    admin: Dict[str, Any] = Depends(require_role("admin")),
    db: Database = Depends(get_db)
):
    user = await run_in_threadpool(users_repo.update_user, db, uid, payload.dict(exclude_unset=True))
    logger.info(f"User {uid} updated by admin {admin['id']}")
    return user
