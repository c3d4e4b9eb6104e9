"""
MongoDB access helpers.

The client is created lazily on first use so the app can be imported (and the
dependency overridden in tests) without a running database.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import structlog
from bson import ObjectId
from pymongo import MongoClient
from pymongo.database import Database

from config import get_settings

logger = structlog.get_logger(__name__)

_client: Optional[MongoClient] = None


def get_client() -> MongoClient:
    global _client
    if _client is None:
        settings = get_settings()
        _client = MongoClient(settings.DATABASE_URL)
        logger.info("mongo_client_created", database=settings.DATABASE_NAME)
    return _client


def get_db() -> Database:
    """FastAPI dependency returning the application database."""
    return get_client()[get_settings().DATABASE_NAME]


def close_client() -> None:
    global _client
    if _client is not None:
        _client.close()
        _client = None


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def create_document(db: Database, collection_name: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """Insert a document stamped with createdAt/updatedAt and return the stored copy."""
    doc = dict(data)
    stamp = now_utc()
    if not doc.get("createdAt"):
        doc["createdAt"] = stamp
    doc["updatedAt"] = stamp
    result = db[collection_name].insert_one(doc)
    doc["_id"] = result.inserted_id
    return doc


def serialize(value: Any) -> Any:
    """Convert ObjectIds nested anywhere in a document into strings."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {k: serialize(v) for k, v in value.items()}
    if isinstance(value, list):
        return [serialize(v) for v in value]
    return value


def ping(db: Database) -> Dict[str, Any]:
    status: Dict[str, Any] = {"database": "connected", "collections": []}
    try:
        status["collections"] = db.list_collection_names()
    except Exception as e:
        logger.warning("database_ping_failed", error=str(e))
        status["database"] = "unavailable"
    return status
