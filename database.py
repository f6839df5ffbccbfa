"""
MongoDB access for the FoodieSpace API

The client is created lazily on first use and shared by every request. Two
collections are used:
- users: registered accounts, roles and favorite review ids
- reviews: food reviews with their moderation status
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database

from errors import InvalidInput
from settings import get_settings

logger = logging.getLogger(__name__)

USERS = "users"
REVIEWS = "reviews"

_client: Optional[MongoClient] = None
_db: Optional[Database] = None
_lock = threading.Lock()


def _create_client() -> MongoClient:
    settings = get_settings()
    return MongoClient(settings.database_url, serverSelectionTimeoutMS=settings.database_timeout_ms)


def sanitize_url(url: str) -> str:
    """Hide the password portion of a connection string for logging."""
    if "://" not in url:
        return url
    scheme, rest = url.split("://", 1)
    if "@" in rest:
        auth, host = rest.split("@", 1)
        if ":" in auth:
            user, _ = auth.split(":", 1)
            return f"{scheme}://{user}:***@{host}"
    return url


def ensure_indexes(database: Database) -> None:
    database[USERS].create_index([("email", ASCENDING)], unique=True)
    database[USERS].create_index([("role", ASCENDING)])
    database[REVIEWS].create_index([("userEmail", ASCENDING)])
    database[REVIEWS].create_index([("status", ASCENDING), ("createdAt", DESCENDING)])


def init_db(client_factory: Optional[Callable[[], MongoClient]] = None) -> Database:
    """Return the shared database handle, connecting on first call.

    Concurrent first callers are serialized on a lock so only one client is
    ever opened.
    """
    global _client, _db
    if _db is not None:
        return _db
    with _lock:
        if _db is None:
            settings = get_settings()
            client = (client_factory or _create_client)()
            database = client[settings.database_name]
            ensure_indexes(database)
            _client = client
            _db = database
            logger.info(
                "Connected to MongoDB %s (database %s)",
                sanitize_url(settings.database_url),
                settings.database_name,
            )
    return _db


def get_db() -> Database:
    """FastAPI dependency returning the shared database handle."""
    return init_db()


def close_db() -> None:
    global _client, _db
    with _lock:
        if _client is not None:
            _client.close()
            logger.info("MongoDB connection closed")
        _client = None
        _db = None


# Helpers

def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_obj_id(id_str: str) -> ObjectId:
    try:
        return ObjectId(id_str)
    except (InvalidId, TypeError):
        raise InvalidInput("Invalid id", detail=f"'{id_str}' is not a valid identifier")


def sanitize(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not doc:
        return doc
    d = {**doc}
    if "_id" in d:
        d["id"] = str(d.pop("_id"))
    return d


def create_document(database: Database, collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> str:
    """Insert a document stamped with ``createdAt``/``updatedAt`` and return its id."""
    if isinstance(data, BaseModel):
        data_dict = data.model_dump()
    else:
        data_dict = dict(data)
    now = utcnow()
    data_dict["createdAt"] = now
    data_dict["updatedAt"] = now
    result = database[collection_name].insert_one(data_dict)
    return str(result.inserted_id)


def get_documents(
    database: Database,
    collection_name: str,
    filter_dict: Optional[Dict[str, Any]] = None,
    limit: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """Return sanitized documents, newest first."""
    cursor = database[collection_name].find(filter_dict or {}).sort("createdAt", DESCENDING)
    if limit:
        cursor = cursor.limit(limit)
    return [sanitize(doc) for doc in cursor]
