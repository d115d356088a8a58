"""
Record stores for users and posts on top of pymongo collections.

Ids arrive as strings from the HTTP layer; malformed ones are treated the
same as ids that do not exist.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import Depends
from pymongo import DESCENDING, ReturnDocument
from pymongo.database import Database

from database import create_document, get_db, get_documents, to_object_id
from schemas import Post, User


class UserStore:
    collection_name = "user"

    def __init__(self, db: Database):
        self.db = db
        self.collection = db[self.collection_name]

    def get(self, user_id: Any) -> Optional[Dict[str, Any]]:
        oid = to_object_id(user_id)
        if oid is None:
            return None
        return self.collection.find_one({"_id": oid})

    def get_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        return self.collection.find_one({"email": email.lower()})

    def list(self) -> List[Dict[str, Any]]:
        return get_documents(self.db, self.collection_name, sort=[("created_at", DESCENDING)])

    def create(self, user: User) -> Dict[str, Any]:
        inserted_id = create_document(self.db, self.collection_name, user)
        return self.collection.find_one({"_id": inserted_id})

    def update(self, user_id: Any, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        oid = to_object_id(user_id)
        if oid is None:
            return None
        changes = dict(fields, updated_at=datetime.now(timezone.utc))
        return self.collection.find_one_and_update(
            {"_id": oid}, {"$set": changes}, return_document=ReturnDocument.AFTER
        )

    def increment_post_count(self, user_id: Any, delta: int) -> None:
        """Adjust post_count atomically. A missing user is ignored."""
        oid = to_object_id(user_id)
        if oid is None:
            return
        self.collection.update_one({"_id": oid}, {"$inc": {"post_count": delta}})


class PostStore:
    collection_name = "post"

    def __init__(self, db: Database):
        self.db = db
        self.collection = db[self.collection_name]

    def get(self, post_id: Any) -> Optional[Dict[str, Any]]:
        oid = to_object_id(post_id)
        if oid is None:
            return None
        return self.collection.find_one({"_id": oid})

    def list(self) -> List[Dict[str, Any]]:
        return get_documents(self.db, self.collection_name, sort=[("updated_at", DESCENDING)])

    def list_by_category(self, category: str) -> List[Dict[str, Any]]:
        return get_documents(
            self.db, self.collection_name, {"category": category}, sort=[("created_at", DESCENDING)]
        )

    def list_by_creator(self, user_id: Any) -> List[Dict[str, Any]]:
        oid = to_object_id(user_id)
        if oid is None:
            return []
        return get_documents(
            self.db, self.collection_name, {"creator": oid}, sort=[("created_at", DESCENDING)]
        )

    def create(self, post: Post) -> Dict[str, Any]:
        inserted_id = create_document(self.db, self.collection_name, post)
        return self.collection.find_one({"_id": inserted_id})

    def update(self, post_id: Any, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        oid = to_object_id(post_id)
        if oid is None:
            return None
        changes = dict(fields, updated_at=datetime.now(timezone.utc))
        return self.collection.find_one_and_update(
            {"_id": oid}, {"$set": changes}, return_document=ReturnDocument.AFTER
        )

    def delete(self, post_id: Any) -> bool:
        oid = to_object_id(post_id)
        if oid is None:
            return False
        return self.collection.delete_one({"_id": oid}).deleted_count == 1


def get_user_store(db: Database = Depends(get_db)) -> UserStore:
    return UserStore(db)


def get_post_store(db: Database = Depends(get_db)) -> PostStore:
    return PostStore(db)
