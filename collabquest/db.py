from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from collabquest.config import get_settings

client: AsyncIOMotorClient | None = None
db: AsyncIOMotorDatabase | None = None


async def connect_db() -> AsyncIOMotorDatabase:
    global client, db
    settings = get_settings()
    client = AsyncIOMotorClient(settings.mongodb_url)
    db = client[settings.mongodb_db]

    # One blob per (session, key); writes upsert into it, last write wins
    await db.app_state.create_index([("session_id", 1), ("key", 1)], unique=True)
    await db.candidate_profiles.create_index("id", unique=True)

    return db


async def close_db() -> None:
    global client
    if client:
        client.close()


def get_db() -> AsyncIOMotorDatabase:
    assert db is not None, "Database not connected. Call connect_db() first."
    return db
