"""MongoDB Client - Connection and Collection Management"""
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, Optional
from pydantic import BaseModel
from pymongo import MongoClient as PyMongoClient
from pymongo.client_session import ClientSession
from pymongo.database import Database
from pymongo.collection import Collection
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import ConnectionFailure

from ..config.settings import settings
from ..utils.logger import get_logger

logger = get_logger(__name__)

# Global client instance
_client: Optional[PyMongoClient] = None
_database: Optional[Database] = None


def get_client() -> PyMongoClient:
    """Get or create MongoDB client"""
    global _client
    if _client is None:
        logger.info(f"Connecting to MongoDB: {settings.mongo_uri}")
        _client = PyMongoClient(
            settings.mongo_uri,
            tz_aware=True,
            serverSelectionTimeoutMS=5000,
            connectTimeoutMS=5000,
            socketTimeoutMS=30000,
        )
        try:
            _client.admin.command("ping")
            logger.info("MongoDB connection successful")
        except ConnectionFailure as e:
            logger.error(f"MongoDB connection failed: {e}")
            _client = None
            raise
    return _client


def get_database() -> Database:
    """Get the application database"""
    global _database
    if _database is None:
        client = get_client()
        _database = client[settings.mongo_db]
        logger.info(f"Using database: {settings.mongo_db}")
    return _database


def get_collection(name: str) -> Collection:
    """Get a collection from the database"""
    return get_database()[name]


def close_connection() -> None:
    """Close MongoDB connection"""
    global _client, _database
    if _client is not None:
        _client.close()
        _client = None
        _database = None
        logger.info("MongoDB connection closed")


@contextmanager
def unit_of_work() -> Iterator[Optional[ClientSession]]:
    """
    Group the writes for one record.

    Yields a session bound to a transaction when transactions are enabled
    (committed on exit, aborted on exception), otherwise None.
    """
    if not settings.mongo_transactions_enabled:
        yield None
        return

    with get_client().start_session() as session:
        with session.start_transaction():
            yield session


def to_document(model: BaseModel, id_field: str) -> Dict[str, Any]:
    """
    Serialise a model for storage.

    Enums become plain strings; datetimes stay native so range queries and
    sorting happen on BSON dates rather than ISO strings.
    """
    doc = model.model_dump(mode="json")
    for key, value in model.model_dump().items():
        if isinstance(value, datetime):
            doc[key] = value
    doc["_id"] = doc[id_field]
    return doc


def create_indexes() -> None:
    """Create all required indexes"""
    db = get_database()
    logger.info("Creating MongoDB indexes...")

    clients = db["clients"]
    clients.create_index("client_id", unique=True)
    clients.create_index("client_code", unique=True)
    clients.create_index([("is_vat_enabled", ASCENDING), ("vat_quarter_group", ASCENDING)])

    users = db["users"]
    users.create_index("user_id", unique=True)
    users.create_index([("role", ASCENDING), ("is_active", ASCENDING), ("created_at", ASCENDING)])

    vat_quarters = db["vat_quarters"]
    vat_quarters.create_index("vat_quarter_id", unique=True)
    vat_quarters.create_index([("client_id", ASCENDING), ("quarter_period", ASCENDING)], unique=True)
    vat_quarters.create_index([
        ("current_stage", ASCENDING),
        ("is_completed", ASCENDING),
        ("quarter_end_date", ASCENDING),
    ])
    vat_quarters.create_index([("current_stage", ASCENDING), ("assigned_user_id", ASCENDING)])
    vat_quarters.create_index([("client_id", ASCENDING), ("created_at", DESCENDING)])

    history = db["vat_workflow_history"]
    history.create_index("history_id", unique=True)
    history.create_index([("vat_quarter_id", ASCENDING), ("stage_changed_at", DESCENDING)])

    activity_logs = db["activity_logs"]
    activity_logs.create_index("activity_log_id", unique=True)
    activity_logs.create_index([("resource_id", ASCENDING), ("timestamp", DESCENDING)])
    activity_logs.create_index("action")

    email_logs = db["email_logs"]
    email_logs.create_index("email_log_id", unique=True)
    email_logs.create_index([("status", ASCENDING), ("created_at", ASCENDING)])
    email_logs.create_index("workflow_id")

    logger.info("MongoDB indexes created successfully")


def health_check() -> Dict[str, Any]:
    """Check MongoDB health"""
    try:
        client = get_client()
        client.admin.command("ping")
        return {
            "status": "healthy",
            "database": settings.mongo_db,
            "connection": "ok"
        }
    except ConnectionFailure as e:
        logger.error(f"MongoDB health check failed: {e}")
        return {
            "status": "unhealthy",
            "database": settings.mongo_db,
            "error": str(e)
        }
