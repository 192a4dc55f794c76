"""
MongoDB access helpers.

The client is built once from Settings in main.create_app() and the database
handle is passed to every service. Collection names are the lowercase model
names from schemas.py (User -> "user", Cart -> "cart", ...).
"""
from datetime import datetime, timezone
from typing import Any, Dict

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

from config import Settings
from errors import ValidationError
from logger import get_logger

logger = get_logger("database")


def connect(settings: Settings) -> Database:
    client = MongoClient(settings.database_url, tz_aware=True)
    logger.info("Connected to MongoDB database %s", settings.database_name)
    return client[settings.database_name]


def ensure_indexes(db: Database) -> None:
    """Create the uniqueness indexes the services rely on."""
    db["user"].create_index([("email", ASCENDING)], unique=True)
    db["cart"].create_index([("userId", ASCENDING)], unique=True)
    db["wishlist"].create_index([("userId", ASCENDING)], unique=True)
    db["address"].create_index([("userId", ASCENDING)])
    db["order"].create_index([("userId", ASCENDING), ("createdAt", ASCENDING)])


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def create_document(db: Database, collection_name: str, data: Dict[str, Any]) -> str:
    """Insert a document, stamping createdAt/updatedAt, and return its id."""
    doc = dict(data)
    now = utcnow()
    doc.setdefault("createdAt", now)
    doc.setdefault("updatedAt", now)
    result = db[collection_name].insert_one(doc)
    return str(result.inserted_id)


def to_object_id(value: Any, label: str = "ID") -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        raise ValidationError(f"Invalid {label} format")


def is_object_id(value: Any) -> bool:
    return isinstance(value, ObjectId) or ObjectId.is_valid(str(value))


def serialize_doc(value: Any) -> Any:
    """Convert a Mongo document into JSON-friendly data.

    ``_id`` becomes ``id`` and every ObjectId (including nested ones) becomes
    its hex string.
    """
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, list):
        return [serialize_doc(v) for v in value]
    if isinstance(value, dict):
        d = {}
        for key, item in value.items():
            if key == "_id":
                d["id"] = serialize_doc(item)
            else:
                d[key] = serialize_doc(item)
        return d
    return value
