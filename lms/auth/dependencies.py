# auth/dependencies.py
from typing import Any, Dict, Optional
from fastapi import Depends, HTTPException, status
from fastapi.concurrency import run_in_threadpool
from fastapi.security import OAuth2PasswordBearer
from redis.asyncio import Redis
from pymongo.database import Database
import logging

from deps import get_redis, get_db
from auth.jwt import ACCESS, decode_token
from repos import users as users_repo
from services.cache_keys import blacklisted_jti_key, user_session_key

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _account_from_token(token: str, r: Redis) -> Dict[str, Any]:
    try:
        payload = decode_token(token)
    except ValueError as e:
        raise _unauthorized(str(e))
    if payload.get("type") != ACCESS:
        raise _unauthorized("Invalid token type")

    if await r.get(blacklisted_jti_key(payload["jti"])):
        raise _unauthorized("Token revoked")
    if not await r.get(user_session_key(payload["sub"])):
        raise _unauthorized("Session expired")

    return {"uid": payload["sub"], "email": payload.get("email"), "jti": payload["jti"], "exp": payload["exp"]}


async def get_current_account(token: str = Depends(oauth2_scheme), r: Redis = Depends(get_redis)) -> Dict[str, Any]:
    """Authenticated account; the user profile may not exist yet."""
    return await _account_from_token(token, r)


async def get_current_user(
    account: Dict[str, Any] = Depends(get_current_account),
    db: Database = Depends(get_db)
) -> Dict[str, Any]:
    user = await run_in_threadpool(users_repo.get_user, db, account["uid"])
    if not user:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Profile not completed")
    if user.get("status") == "inactive":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is inactive")
    return user


async def get_optional_user(
    token: Optional[str] = Depends(optional_oauth2_scheme),
    r: Redis = Depends(get_redis),
    db: Database = Depends(get_db)
) -> Optional[Dict[str, Any]]:
    """The caller's profile when a valid token is sent, else None (public routes)."""
    if not token:
        return None
    try:
        account = await _account_from_token(token, r)
    except HTTPException:
        return None
    user = await run_in_threadpool(users_repo.get_user, db, account["uid"])
    if user and user.get("status") == "inactive":
        return None
    return user


def require_role(*roles: str):
    async def role_checker(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
        if user["role"] not in roles:
            logger.warning(f"User {user['id']} with role {user['role']} denied; needs one of {roles}")
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
        return user
    return role_checker
