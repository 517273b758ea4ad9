"""
MongoDB access

`db` is None when DATABASE_URL / DATABASE_NAME are not set; request handlers
get the database through `get_db`, which refuses to run without one.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from bson import ObjectId
from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

import config
from errors import DatabaseNotConfigured, ValidationError

logger = logging.getLogger(__name__)

ACCOUNTS = "users_create_account"
APP_CONFIGS = "adminelementscreens"

_client: Optional[MongoClient] = None
db: Optional[Database] = None

if config.DATABASE_URL and config.DATABASE_NAME:
    _client = MongoClient(config.DATABASE_URL)
    db = _client[config.DATABASE_NAME]


def get_db() -> Database:
    if db is None:
        raise DatabaseNotConfigured()
    return db


def now() -> datetime:
    return datetime.now(timezone.utc)


def oid(id_str: Any, message: str = "Invalid id") -> ObjectId:
    if isinstance(id_str, ObjectId):
        return id_str
    if not isinstance(id_str, str) or not ObjectId.is_valid(id_str):
        raise ValidationError(message)
    return ObjectId(id_str)


def ensure_indexes(database: Database) -> None:
    """One account per email inside a tenant."""
    database[ACCOUNTS].create_index(
        [("adminObjectId", ASCENDING), ("email", ASCENDING)],
        unique=True,
        name="tenant_email_unique",
    )
    logger.info("Indexes ensured on %s", ACCOUNTS)


def create_document(collection_name: str, data: Union[BaseModel, dict], database: Optional[Database] = None) -> str:
    """Insert a document stamped with createdAt/updatedAt and return its id."""
    database = database if database is not None else get_db()
    if isinstance(data, BaseModel):
        doc = data.model_dump(by_alias=True)
    else:
        doc = dict(data)
    stamp = now()
    doc.setdefault("createdAt", stamp)
    doc.setdefault("updatedAt", stamp)
    result = database[collection_name].insert_one(doc)
    return str(result.inserted_id)


def serialize(value: Any) -> Any:
    """Make a Mongo document JSON friendly: ObjectIds to str, datetimes to ISO."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        out: Dict[str, Any] = {k: serialize(v) for k, v in value.items()}
        if "_id" in out:
            out["id"] = out.pop("_id")
        return out
    if isinstance(value, (list, tuple)):
        return [serialize(v) for v in value]
    return value
