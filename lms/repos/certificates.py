# repos/certificates.py
from typing import Any, Dict, List, Optional, Tuple

from pymongo import ASCENDING, DESCENDING
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from repos.helper import serialize, to_object_id


def ensure_indexes(db: Database) -> None:
    db.certificates.create_index([("user_id", ASCENDING), ("course_id", ASCENDING)], unique=True, name="user_course_unique")
    db.certificates.create_index([("certificate_number", ASCENDING)], unique=True, name="number_unique")


def find_for_user_course(db: Database, user_id: str, course_id: str) -> Optional[Dict[str, Any]]:
    return serialize(db.certificates.find_one({"user_id": user_id, "course_id": course_id}))


def insert_certificate(db: Database, doc: Dict[str, Any]) -> Tuple[Dict[str, Any], bool]:
    """
    Certificates are write-once. If another request already inserted one for
    the same (user, course) the existing document wins.
    """
    doc = dict(doc)
    try:
        result = db.certificates.insert_one(doc)
    except DuplicateKeyError:
        existing = find_for_user_course(db, doc["user_id"], doc["course_id"])
        if existing is None:
            # collided on certificate_number, not on the pair
            raise
        return existing, False
    doc["_id"] = result.inserted_id
    return serialize(doc), True


def get_certificate(db: Database, certificate_id: str) -> Optional[Dict[str, Any]]:
    return serialize(db.certificates.find_one({"_id": to_object_id(certificate_id, "Certificate")}))


def get_by_number(db: Database, number: str) -> Optional[Dict[str, Any]]:
    return serialize(db.certificates.find_one({"certificate_number": number.strip().upper()}))


def list_for_user(db: Database, user_id: str) -> List[Dict[str, Any]]:
    docs = db.certificates.find({"user_id": user_id}).sort([("completion_date", DESCENDING)])
    return [serialize(d) for d in docs]


def count_for_user(db: Database, user_id: str) -> int:
    return db.certificates.count_documents({"user_id": user_id})


def count_all(db: Database) -> int:
    return db.certificates.count_documents({})
