"""
backend/obsada/database.py

Purpose:
    MongoDB connection bootstrap and index management for matches, fouls,
    users, leagues and teams.

Dependencies:
    - motor.motor_asyncio
    - pymongo
    - obsada.config
"""

import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from obsada.config import settings

client: AsyncIOMotorClient = None
db: AsyncIOMotorDatabase = None

logger = logging.getLogger("obsada.database")


async def connect_db() -> None:
    global client, db
    client = AsyncIOMotorClient(
        settings.MONGO_URI,
        maxPoolSize=25,
        minPoolSize=1,
    )
    db = client[settings.MONGO_DB]
    await _ensure_indexes()
    logger.info("Connected to MongoDB database %s", settings.MONGO_DB)


async def close_db() -> None:
    global client
    if client:
        client.close()


async def get_db() -> AsyncIOMotorDatabase:
    return db


async def _ensure_indexes() -> None:
    """Create indexes on startup. Idempotent."""

    # ---- Users ----
    await db.users.create_index("email", unique=True)
    await db.users.create_index("phone_number")
    await db.users.create_index("role")

    # ---- Leagues / Teams ----
    await db.leagues.create_index("created_at")
    await db.teams.create_index([("league_id", 1), ("created_at", 1)])
    await db.teams.create_index([("league_id", 1), ("name", 1)])

    # ---- Matches ----
    # Inbound grade SMS are routed by key; ungraded duplicates are rejected
    # by the match service, the index only serves lookups.
    await db.matches.create_index([("user_readable_key", 1), ("referee_grade", 1)])
    await db.matches.create_index([("league_id", 1), ("match_date", -1)])
    await db.matches.create_index([("match_date", 1), ("home_team_id", 1)])
    await db.matches.create_index([("match_date", 1), ("away_team_id", 1)])
    await db.matches.create_index("referee_id")
    await db.matches.create_index("observer_id")

    # ---- Fouls ----
    await db.fouls.create_index([("match_id", 1), ("minute", 1)])

    # ---- Audit ----
    await db.audit_logs.create_index([("target_id", 1), ("timestamp", -1)])
