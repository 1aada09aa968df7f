# app/db/mongo.py
import logging
import certifi
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError
from app.core.config import get_settings

logger = logging.getLogger(__name__)

_client: AsyncIOMotorClient | None = None
_db: AsyncIOMotorDatabase | None = None


def get_db() -> AsyncIOMotorDatabase:
    assert _db is not None, "Mongo DB not initialized"
    return _db


def _new_client(uri: str) -> AsyncIOMotorClient:
    kwargs = dict(
        uuidRepresentation="standard",
        serverSelectionTimeoutMS=6000,
        connectTimeoutMS=6000,
    )
    if uri.startswith("mongodb+srv://"):
        # Atlas: explicit CA bundle, containers often ship without one
        kwargs.update(tls=True, tlsCAFile=certifi.where())
    return AsyncIOMotorClient(uri, **kwargs)


async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    await db["inventory"].create_index([("store_id", ASCENDING), ("sku", ASCENDING)], unique=True)
    await db["inventory"].create_index([("store_id", ASCENDING), ("stock", DESCENDING), ("name", ASCENDING)])
    await db["conversations"].create_index([("store_id", ASCENDING), ("updated_at", DESCENDING)])
    await db["conversation_logs"].create_index([("store_id", ASCENDING), ("created_at", DESCENDING)])
    await db["carts"].create_index([("store_id", ASCENDING), ("user_id", ASCENDING), ("created_at", DESCENDING)])


async def connect():
    """
    Create the Motor client and ping once.
    A failed ping does not abort startup: the client stays lazy and the first
    real query retries the connection.
    """
    global _client, _db
    settings = get_settings()

    try:
        _client = _new_client(settings.MONGO_URI)
        _db = _client[settings.MONGO_DB]
        await _client.admin.command("ping")
        logger.info(f"Mongo connected db={settings.MONGO_DB}")
    except PyMongoError as e:
        logger.warning(f"Mongo ping at startup failed, will connect lazily: {e}")
        return

    try:
        await ensure_indexes(_db)
    except PyMongoError as e:
        logger.warning(f"Mongo index creation failed (ignored): {e}")


async def disconnect():
    global _client, _db
    if _client:
        _client.close()
        logger.info("Mongo disconnected")
    _client = None
    _db = None
