import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from findriver.core.config import settings

logger = logging.getLogger(__name__)


class MongoDatabase:
    """MongoDB connection manager."""

    client: AsyncIOMotorClient = None
    db: AsyncIOMotorDatabase = None

mongodb = MongoDatabase()

async def connect_to_mongo():
    """Connect to MongoDB."""
    mongodb.client = AsyncIOMotorClient(
        settings.MONGODB_URL,
        tz_aware=True,
        serverSelectionTimeoutMS=settings.MONGODB_TIMEOUT_MS
    )
    mongodb.db = mongodb.client[settings.DATABASE_NAME]

    await create_indexes(mongodb.db)
    logger.info("Connected to MongoDB: %s", settings.DATABASE_NAME)

async def close_mongo_connection():
    """Disconnect from MongoDB."""
    if mongodb.client is not None:
        mongodb.client.close()
    logger.info("Disconnected from MongoDB")

async def create_indexes(db: AsyncIOMotorDatabase):
    """Create database indexes."""
    # Transaction indexes
    await db["transactions"].create_index([("user_id", 1), ("date", -1)])
    await db["transactions"].create_index([("user_id", 1), ("kind", 1), ("date", -1)])

    # Shift indexes
    await db["shifts"].create_index([("user_id", 1), ("state", 1)])
    await db["shifts"].create_index([("user_id", 1), ("started_at", -1)])
    # At most one open shift per user, enforced by the store
    await db["shifts"].create_index(
        "user_id",
        unique=True,
        partialFilterExpression={"state": "open"},
        name="one_open_shift_per_user"
    )
