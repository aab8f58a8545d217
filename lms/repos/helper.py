# repos/helper.py
import base64
import json
from datetime import datetime, date
from typing import Any, Dict, Optional, Tuple

from bson import ObjectId
from bson.errors import InvalidId

from errors import NotFoundError


class JSONEncoder(json.JSONEncoder):
    """json encoder that understands Mongo documents (ObjectId, datetime)."""

    def default(self, o: Any) -> Any:
        if isinstance(o, ObjectId):
            return str(o)
        if isinstance(o, (datetime, date)):
            return o.isoformat()
        return super().default(o)


def to_object_id(id_str: str, what: str = "Document") -> ObjectId:
    try:
        return ObjectId(id_str)
    except (InvalidId, TypeError):
        raise NotFoundError(f"{what} not found")


def serialize(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Expose the Mongo _id as a string `id` field."""
    if not doc:
        return None
    doc = dict(doc)
    doc["id"] = str(doc.pop("_id"))
    return doc


# ---------------------------
# Cursor pagination
# ---------------------------

def encode_cursor(created_at: datetime, doc_id: str) -> str:
    raw = json.dumps({"t": created_at.isoformat(), "id": str(doc_id)}).encode()
    return base64.urlsafe_b64encode(raw).decode().rstrip("=")


def decode_cursor(cursor: str) -> Tuple[datetime, str]:
    try:
        padded = cursor + "=" * (-len(cursor) % 4)
        payload = json.loads(base64.urlsafe_b64decode(padded.encode()).decode())
        created_at, doc_id = datetime.fromisoformat(payload["t"]), payload["id"]
    except (ValueError, KeyError, TypeError):
        raise ValueError("Invalid cursor")
    # stored timestamps are naive UTC
    if not isinstance(doc_id, str) or created_at.tzinfo is not None:
        raise ValueError("Invalid cursor")
    return created_at, doc_id


def after_cursor(cursor: Optional[str], id_is_object_id: bool = True) -> Dict[str, Any]:
    """
    Build the match clause for "everything after this cursor" on a
    (created_at desc, _id desc) sort.
    """
    if not cursor:
        return {}
    created_at, doc_id = decode_cursor(cursor)
    if id_is_object_id:
        try:
            doc_id = ObjectId(doc_id)
        except (InvalidId, TypeError):
            raise ValueError("Invalid cursor")
    return {"$or": [
        {"created_at": {"$lt": created_at}},
        {"created_at": created_at, "_id": {"$lt": doc_id}},
    ]}


def page_result(docs, total: int, page_size: int) -> Dict[str, Any]:
    """
    `docs` is the raw query result fetched with limit(page_size + 1) so we can
    tell whether another page follows.
    """
    has_more = len(docs) > page_size
    docs = docs[:page_size]
    next_cursor = None
    if has_more and docs:
        last = docs[-1]
        next_cursor = encode_cursor(last["created_at"], str(last["_id"]))
    return {
        "items": [serialize(d) for d in docs],
        "total": total,
        "page_size": page_size,
        "next_cursor": next_cursor,
        "has_more": has_more,
    }
