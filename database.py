"""
Database helpers

MongoDB connection and small document helpers shared by the API.
Connection settings come from the environment:
- DATABASE_URL  -> MongoDB connection string
- DATABASE_NAME -> database to use
"""
import os
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")

client = None
db = None

if DATABASE_URL and DATABASE_NAME:
    client = MongoClient(DATABASE_URL, serverSelectionTimeoutMS=5000)
    db = client[DATABASE_NAME]
else:
    logger.warning("DATABASE_URL or DATABASE_NAME not set, database is disabled")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_object_id(value: Any) -> Any:
    """Convert a string id to ObjectId, leaving anything else untouched."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return value


def serialize_doc(doc: Optional[dict]) -> Optional[dict]:
    if not doc:
        return doc
    doc = dict(doc)
    _id = doc.pop("_id", None)
    if _id is not None:
        doc["id"] = str(_id)
    return doc


def create_document(collection_name: str, data: Union[BaseModel, dict], using=None) -> str:
    """Insert one document, stamping created_at/updated_at, and return its id."""
    target = using if using is not None else db
    if target is None:
        raise RuntimeError("Database not configured")

    if isinstance(data, BaseModel):
        doc = data.model_dump()
    else:
        doc = dict(data)
    now = utcnow()
    doc.setdefault("created_at", now)
    doc.setdefault("updated_at", now)

    result = target[collection_name].insert_one(doc)
    return str(result.inserted_id)


def get_documents(collection_name: str, filter_dict: Optional[Dict[str, Any]] = None,
                  limit: Optional[int] = None, using=None) -> List[dict]:
    target = using if using is not None else db
    if target is None:
        raise RuntimeError("Database not configured")

    cursor = target[collection_name].find(filter_dict or {})
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def ensure_indexes(using=None) -> None:
    """Unique (user_id, drone_id) pairs for cart and wishlist rows."""
    target = using if using is not None else db
    if target is None:
        return
    for name in ("cart_items", "wishlist_items"):
        target[name].create_index(
            [("user_id", ASCENDING), ("drone_id", ASCENDING)],
            unique=True,
            name="user_drone_unique",
        )
    target["session"].create_index("token", unique=True)
