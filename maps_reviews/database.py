import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING

from maps_reviews.config import settings

LOGGER = logging.getLogger(__name__)

REVIEW_IDENTITY_INDEX = "target_identity_unique"

_client: AsyncIOMotorClient | None = None
_database: AsyncIOMotorDatabase | None = None


async def ensure_review_indexes(database: AsyncIOMotorDatabase, collection_name: str) -> str:
    """Create the unique ``(target_url, identity)`` key the review upserts rely on.

    Only stable identities are constrained; synthetic ones are inserted as-is.
    """
    return await database[collection_name].create_index(
        [("target_url", ASCENDING), ("identity", ASCENDING)],
        name=REVIEW_IDENTITY_INDEX,
        unique=True,
        partialFilterExpression={"identity_is_stable": True},
    )


async def connect_to_mongo(collection_name: str | None = None) -> AsyncIOMotorDatabase:
    global _client, _database

    if _database is not None:
        return _database

    client = AsyncIOMotorClient(settings.mongo_uri)
    await client.admin.command("ping")
    database = client[settings.db_name]
    await ensure_review_indexes(database, collection_name or settings.reviews_collection)
    LOGGER.info("Connected to MongoDB database %s", settings.db_name)

    _client, _database = client, database
    return database


async def close_mongo_connection() -> None:
    global _client, _database

    if _client is not None:
        _client.close()
    _client, _database = None, None


def get_database() -> AsyncIOMotorDatabase:
    if _database is None:
        raise RuntimeError("MongoDB connection has not been initialized. Call connect_to_mongo() first.")
    return _database
