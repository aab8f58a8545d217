# repos/users.py
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from pymongo import ASCENDING, DESCENDING
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from errors import ConflictError, NotFoundError
from repos.helper import after_cursor, page_result, serialize

ROLES = ("admin", "teacher", "student")

# Fields a profile form (or an admin) may touch. `role` is deliberately absent:
# it is fixed when the profile is completed.
EDITABLE_FIELDS = ("name", "bio", "phone", "photo_url")


def ensure_indexes(db: Database) -> None:
    db.users.create_index([("role", ASCENDING), ("created_at", DESCENDING)])
    db.users.create_index([("email", ASCENDING)])


def create_profile(db: Database, *, uid: str, email: str, name: str, role: str,
                   bio: str = "", phone: str = "") -> Dict[str, Any]:
    if role not in ROLES:
        raise ValueError("Invalid role")
    now = datetime.utcnow()
    doc: Dict[str, Any] = {
        "_id": uid,
        "email": email,
        "name": name,
        "role": role,
        "bio": bio,
        "phone": phone,
        "photo_url": None,
        "created_at": now,
        "updated_at": now,
    }
    if role == "student":
        doc["status"] = "active"
    try:
        db.users.insert_one(doc)
    except DuplicateKeyError:
        raise ConflictError("Profile already completed")
    return serialize(doc)


def get_user(db: Database, uid: str) -> Optional[Dict[str, Any]]:
    return serialize(db.users.find_one({"_id": uid}))


def update_user(db: Database, uid: str, patch: Dict[str, Any]) -> Dict[str, Any]:
    allowed = {k: v for k, v in patch.items() if k in EDITABLE_FIELDS or k == "status"}
    current = db.users.find_one({"_id": uid})
    if not current:
        raise NotFoundError("User not found")
    if "status" in allowed and current["role"] != "student":
        raise ValueError("Only student accounts carry a status")
    allowed["updated_at"] = datetime.utcnow()
    db.users.update_one({"_id": uid}, {"$set": allowed})
    return get_user(db, uid)


def get_users_by_email(db: Database, emails: List[str]) -> List[Dict[str, Any]]:
    normalized = [e.strip().lower() for e in emails if e.strip()]
    if not normalized:
        return []
    return [serialize(d) for d in db.users.find({"email": {"$in": normalized}})]


def list_users(db: Database, *, role: Optional[str], status: Optional[str], search: Optional[str],
               cursor: Optional[str], page_size: int) -> Dict[str, Any]:
    match: Dict[str, Any] = {}
    if role:
        match["role"] = role
    if status:
        match["status"] = status
    if search:
        pattern = {"$regex": re.escape(search), "$options": "i"}
        match["$and"] = [{"$or": [{"name": pattern}, {"email": pattern}]}]

    # total reflects the filter, not the cursor position
    total = db.users.count_documents(match)

    query = dict(match)
    after = after_cursor(cursor, id_is_object_id=False)
    if after:
        query.setdefault("$and", []).append(after)

    docs = list(
        db.users.find(query)
        .sort([("created_at", DESCENDING), ("_id", DESCENDING)])
        .limit(page_size + 1)
    )
    return page_result(docs, total, page_size)


def recent_users(db: Database, limit: int = 5) -> List[Dict[str, Any]]:
    docs = db.users.find({}).sort([("created_at", DESCENDING), ("_id", DESCENDING)]).limit(limit)
    return [serialize(d) for d in docs]


def count_by_role(db: Database) -> Dict[str, int]:
    return {role: db.users.count_documents({"role": role}) for role in ROLES}
