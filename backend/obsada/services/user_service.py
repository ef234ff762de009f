"""User lookups and CRUD for officials and administrators."""

import logging
from typing import Iterable, Optional

from bson import ObjectId
from fastapi import HTTPException, status
from pymongo.errors import DuplicateKeyError

import obsada.database as _db
from obsada.models.user import Role, UserCreate, UserInDB, UserUpdate
from obsada.services.auth_service import hash_password
from obsada.utils import utcnow

logger = logging.getLogger("obsada.user_service")


async def get_all() -> list[dict]:
    return await _db.db.users.find({}).sort("last_name", 1).to_list(length=5000)


async def get_all_by_role(role: Role) -> list[dict]:
    return await _db.db.users.find({"role": role.value}).sort("last_name", 1).to_list(length=5000)


async def get_by_email(email: str) -> Optional[dict]:
    return await _db.db.users.find_one({"email": email})


async def get_by_id(user_id: str) -> Optional[dict]:
    return await _db.db.users.find_one({"_id": ObjectId(user_id)})


async def get_by_phone_number(phone_number: str) -> Optional[dict]:
    return await _db.db.users.find_one({"phone_number": phone_number})


async def require_user(user_id: str) -> dict:
    user = await get_by_id(user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")
    return user


async def users_by_ids(user_ids: Iterable[str]) -> dict[str, dict]:
    """Map of user id -> user document, used for match view projection."""
    oids = [ObjectId(uid) for uid in set(user_ids)]
    if not oids:
        return {}
    docs = await _db.db.users.find({"_id": {"$in": oids}}).to_list(length=len(oids))
    return {str(doc["_id"]): doc for doc in docs}


async def create(body: UserCreate) -> dict:
    now = utcnow()
    doc = {
        "email": body.email,
        "hashed_password": hash_password(body.password),
        "role": body.role.value,
        "phone_number": body.phone_number,
        "first_name": body.first_name,
        "last_name": body.last_name,
        "created_at": now,
        "updated_at": now,
    }
    UserInDB.model_validate(doc)
    try:
        result = await _db.db.users.insert_one(doc)
    except DuplicateKeyError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="This email address is already registered.",
        ) from None
    doc["_id"] = result.inserted_id
    logger.info("User created: %s (%s)", doc["_id"], body.role.value)
    return doc


async def update(user_id: str, body: UserUpdate) -> dict:
    user = await require_user(user_id)
    fields = {
        "email": body.email,
        "phone_number": body.phone_number,
        "first_name": body.first_name,
        "last_name": body.last_name,
        "updated_at": utcnow(),
    }
    await _db.db.users.update_one({"_id": user["_id"]}, {"$set": fields})
    return {**user, **fields}


async def remove(user_id: str) -> dict:
    user = await require_user(user_id)
    await _db.db.users.delete_one({"_id": user["_id"]})
    logger.info("User removed: %s", user_id)
    return user
