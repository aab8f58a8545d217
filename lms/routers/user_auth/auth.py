# routers/auth.py
from typing import Any, Dict
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.concurrency import run_in_threadpool
from fastapi.security import OAuth2PasswordRequestForm
from redis.asyncio import Redis
from pymongo.database import Database
import json
import logging

from config import settings
from deps import get_db, get_redis
from repos import accounts
from repos import users as users_repo
from schemas.auth_schemas import AccountRegister, AccountOut, TokenPair, TokenRefresh
from auth.jwt import REFRESH, create_access_token, create_refresh_token, decode_token, seconds_until_expiry
from auth.dependencies import get_current_account
from services.cache_keys import user_session_key, refresh_tokens_key, blacklisted_jti_key

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

SESSION_TTL = 60 * 60 * 24


def _refresh_ttl() -> int:
    return 60 * 60 * 24 * settings.REFRESH_TOKEN_EXPIRE_DAYS


@router.post("/register", response_model=AccountOut, status_code=status.HTTP_201_CREATED)
async def register_account(payload: AccountRegister, db: Database = Depends(get_db)):
    account = await run_in_threadpool(accounts.create_account, db, payload.email, payload.password)
    logger.info(f"Account registered: {account['uid']}")
    return AccountOut(uid=account["uid"], email=account["email"])

@router.post("/login", response_model=TokenPair)
async def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Database = Depends(get_db),
    r: Redis = Depends(get_redis)
):
    account = await run_in_threadpool(accounts.authenticate, db, form_data.username, form_data.password)
    if not account:
        logger.warning(f"Failed login for {form_data.username}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    uid = account["uid"]
    access_token = create_access_token(uid, account["email"])
    refresh_token = create_refresh_token(uid, account["email"])

    await r.set(user_session_key(uid), json.dumps({"email": account["email"]}), ex=SESSION_TTL)
    await r.set(refresh_tokens_key(uid), refresh_token, ex=_refresh_ttl())

    return TokenPair(access_token=access_token, refresh_token=refresh_token)

@router.post("/refresh", response_model=TokenPair)
async def refresh(payload: TokenRefresh, r: Redis = Depends(get_redis)):
    try:
        decoded = decode_token(payload.refresh_token)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))
    if decoded.get("type") != REFRESH:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid refresh token type")

    uid = decoded["sub"]
    stored_refresh = await r.get(refresh_tokens_key(uid))
    if stored_refresh != payload.refresh_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Refresh token expired or revoked")

    # a refresh keeps the session alive
    await r.set(user_session_key(uid), json.dumps({"email": decoded.get("email")}), ex=SESSION_TTL)
    new_access = create_access_token(uid, decoded.get("email"))
    return TokenPair(access_token=new_access, refresh_token=payload.refresh_token)

@router.delete("/logout")
async def logout(account: Dict[str, Any] = Depends(get_current_account), r: Redis = Depends(get_redis)):
    await r.set(blacklisted_jti_key(account["jti"]), "true", ex=seconds_until_expiry(account))
    await r.delete(user_session_key(account["uid"]), refresh_tokens_key(account["uid"]))
    logger.info(f"Account {account['uid']} logged out")
    return {"message": "Logged out successfully"}

@router.get("/me", response_model=AccountOut)
async def me(account: Dict[str, Any] = Depends(get_current_account), db: Database = Depends(get_db)):
    profile = await run_in_threadpool(users_repo.get_user, db, account["uid"])
    return AccountOut(
        uid=account["uid"],
        email=account["email"],
        profile_complete=profile is not None,
        role=profile["role"] if profile else None,
    )
