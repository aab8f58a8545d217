# repos/categories.py
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from pymongo import ASCENDING
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from errors import ConflictError, NotFoundError
from repos.helper import serialize, to_object_id

_WHITESPACE = re.compile(r"\s+")


def slugify(name: str) -> str:
    return _WHITESPACE.sub("-", name.strip().lower())


def ensure_indexes(db: Database) -> None:
    db.categories.create_index([("slug", ASCENDING)], unique=True, name="slug_unique")


def list_categories(db: Database, active_only: bool = False) -> List[Dict[str, Any]]:
    match = {"is_active": True} if active_only else {}
    docs = [serialize(d) for d in db.categories.find(match)]
    return sorted(docs, key=lambda c: c["name"].lower())


def get_category(db: Database, category_id: str) -> Optional[Dict[str, Any]]:
    return serialize(db.categories.find_one({"_id": to_object_id(category_id, "Category")}))


def create_category(db: Database, *, name: str, description: str = "") -> Dict[str, Any]:
    now = datetime.utcnow()
    doc = {
        "name": name.strip(),
        "description": (description or "").strip(),
        "slug": slugify(name),
        "is_active": True,
        "created_at": now,
        "updated_at": now,
    }
    try:
        result = db.categories.insert_one(doc)
    except DuplicateKeyError:
        raise ConflictError(f"Category '{doc['slug']}' already exists")
    doc["_id"] = result.inserted_id
    return serialize(doc)


def update_category(db: Database, category_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
    update: Dict[str, Any] = {"updated_at": datetime.utcnow()}
    if patch.get("name") is not None:
        update["name"] = patch["name"].strip()
        update["slug"] = slugify(patch["name"])
    if patch.get("description") is not None:
        update["description"] = patch["description"].strip()
    if patch.get("is_active") is not None:
        update["is_active"] = bool(patch["is_active"])

    oid = to_object_id(category_id, "Category")
    try:
        res = db.categories.update_one({"_id": oid}, {"$set": update})
    except DuplicateKeyError:
        raise ConflictError(f"Category '{update.get('slug')}' already exists")
    if res.matched_count == 0:
        raise NotFoundError("Category not found")
    return get_category(db, category_id)
