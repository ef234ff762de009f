import logging

from argon2 import PasswordHasher

import obsada.database as _db
from obsada.config import settings
from obsada.models.user import Role
from obsada.utils import utcnow

logger = logging.getLogger("obsada.seed")
ph = PasswordHasher()


async def seed_owner_user() -> None:
    """Create the owner account on an empty database if configured via env."""
    if not settings.SEED_OWNER_EMAIL or not settings.SEED_OWNER_PASSWORD:
        logger.debug("SEED_OWNER_EMAIL not set, skipping seed")
        return

    existing_users = await _db.db.users.count_documents({})
    if existing_users > 0:
        logger.info("Seed bootstrap skipped (existing users=%d)", existing_users)
        return

    now = utcnow()
    user_doc = {
        "email": settings.SEED_OWNER_EMAIL,
        "hashed_password": ph.hash(settings.SEED_OWNER_PASSWORD),
        "role": Role.owner.value,
        "phone_number": "",
        "first_name": "Owner",
        "last_name": "",
        "created_at": now,
        "updated_at": now,
    }
    result = await _db.db.users.insert_one(user_doc)
    logger.info("Seed owner created: %s", result.inserted_id)
