"""
MongoDB access

A single client is created on first use and cached at module level so that
repeated requests (and serverless cold starts) reuse the same connection
pool. Routes receive the database through ``Depends(get_db)``.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Union

import structlog
from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database

import config

logger = structlog.get_logger(__name__)

if not config.MONGODB_URI:
    raise RuntimeError("Please define MONGODB_URI in the environment")

_cached: Dict[str, Any] = {"client": None, "db": None}


def get_db() -> Database:
    if _cached["db"] is not None:
        return _cached["db"]

    client = MongoClient(config.MONGODB_URI, serverSelectionTimeoutMS=5000)
    _cached["client"] = client
    _cached["db"] = client[config.DATABASE_NAME]
    logger.info("mongodb_connected", database=config.DATABASE_NAME)
    return _cached["db"]


def close_db():
    client = _cached["client"]
    if client is not None:
        client.close()
        logger.info("mongodb_disconnected")
    _cached["client"] = None
    _cached["db"] = None


def create_document(db: Database, collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> str:
    if isinstance(data, BaseModel):
        doc = data.model_dump(by_alias=True, exclude_none=True)
    else:
        doc = dict(data)
    now = datetime.now(timezone.utc)
    doc.setdefault("createdAt", now)
    doc["updatedAt"] = now
    result = db[collection_name].insert_one(doc)
    return str(result.inserted_id)


def ensure_indexes(db: Database):
    products = db["product"]
    products.create_index("slug", unique=True)
    products.create_index("variants.sku")
    products.create_index([("category", ASCENDING), ("isActive", ASCENDING)])
    products.create_index([("isFeatured", ASCENDING), ("isActive", ASCENDING)])
    products.create_index([("isNewArrival", ASCENDING), ("isActive", ASCENDING)])
    products.create_index([("isBestSeller", ASCENDING), ("isActive", ASCENDING)])
    products.create_index([("createdAt", DESCENDING)])

    db["user"].create_index("email", unique=True)
    db["order"].create_index("orderNumber", unique=True)
    db["order"].create_index([("user", ASCENDING), ("createdAt", DESCENDING)])
    db["category"].create_index("slug", unique=True)
    db["category"].create_index([("parentCategory", ASCENDING), ("level", ASCENDING)])
    db["newsletter"].create_index("email", unique=True)
    logger.info("mongodb_indexes_ensured")
