"""
MongoDB access.

The client is created at import time from DATABASE_URL. When it is not set,
`db` stays None and every endpoint needing the database answers with a 500.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database

import settings
from errors import InternalError

logger = logging.getLogger(__name__)

client: Optional[MongoClient] = None
db: Optional[Database] = None

if settings.DATABASE_URL:
    client = MongoClient(settings.DATABASE_URL)
    db = client[settings.DATABASE_NAME]
else:
    logger.warning("DATABASE_URL is not set; database access is disabled")


def get_db() -> Database:
    if db is None:
        raise InternalError("Database not configured")
    return db


def to_object_id(value: Any) -> Optional[ObjectId]:
    """Parse an id string, returning None when it is not a valid ObjectId."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def create_document(database: Database, collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> ObjectId:
    """Insert a document, stamping created_at/updated_at. Returns the new id."""
    doc = data.model_dump() if isinstance(data, BaseModel) else dict(data)
    now = datetime.now(timezone.utc)
    doc["created_at"] = now
    doc["updated_at"] = now
    result = database[collection_name].insert_one(doc)
    return result.inserted_id


def get_documents(
    database: Database,
    collection_name: str,
    filter_dict: Optional[Dict[str, Any]] = None,
    sort: Optional[List[tuple]] = None,
    limit: Optional[int] = None,
) -> List[Dict[str, Any]]:
    cursor = database[collection_name].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(sort)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def ensure_indexes(database: Database) -> None:
    database["user"].create_index([("email", ASCENDING)], unique=True)
    database["post"].create_index([("creator", ASCENDING), ("created_at", DESCENDING)])
    database["post"].create_index([("category", ASCENDING), ("created_at", DESCENDING)])
    database["post"].create_index([("updated_at", DESCENDING)])
