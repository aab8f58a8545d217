# repos/accounts.py
from datetime import datetime
from typing import Optional

from passlib.context import CryptContext
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from errors import ConflictError

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

def hash_password(password: str) -> str:
    return pwd_context.hash(password)

def verify_password(password: str, hashed: str) -> bool:
    return pwd_context.verify(password, hashed)

def _normalize_email(email: str) -> str:
    return email.strip().lower()

def create_account(db: Database, email: str, password: str) -> dict:
    """Register credentials. The stringified _id becomes the auth subject id (uid)."""
    email = _normalize_email(email)
    if db.accounts.find_one({"email": email}):
        raise ConflictError("Email already registered")
    account = {"email": email, "hashed_password": hash_password(password), "created_at": datetime.utcnow()}
    try:
        result = db.accounts.insert_one(account)
    except DuplicateKeyError:
        raise ConflictError("Email already registered")
    return {"uid": str(result.inserted_id), "email": email}

def authenticate(db: Database, email: str, password: str) -> Optional[dict]:
    account = db.accounts.find_one({"email": _normalize_email(email)})
    if not account or not verify_password(password, account["hashed_password"]):
        return None
    return {"uid": str(account["_id"]), "email": account["email"]}

def ensure_indexes(db: Database) -> None:
    db.accounts.create_index("email", unique=True)
