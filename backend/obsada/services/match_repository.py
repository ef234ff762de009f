"""
backend/obsada/services/match_repository.py

Purpose:
    Persistence access layer for match documents: id/key lookups, the
    same-day team conflict query, listings and field updates.

Dependencies:
    - obsada.database
    - obsada.utils
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from bson import ObjectId

import obsada.database as _db
from obsada.models.match import MatchInDB
from obsada.utils import utcnow


def _oid(match_id: str | ObjectId) -> ObjectId:
    return match_id if isinstance(match_id, ObjectId) else ObjectId(match_id)


class MatchRepository:
    async def find_by_id(self, match_id: str | ObjectId) -> Optional[dict[str, Any]]:
        return await _db.db.matches.find_one({"_id": _oid(match_id)})

    async def find_by_key(self, key: str) -> Optional[dict[str, Any]]:
        """Resolve an inbound SMS key.

        The ungraded match carrying the key wins; otherwise the most recent
        match with that key is returned so the sender learns it was graded.
        """
        match = await _db.db.matches.find_one(
            {"user_readable_key": key, "referee_grade": None},
        )
        if match:
            return match
        return await _db.db.matches.find_one(
            {"user_readable_key": key},
            sort=[("match_date", -1)],
        )

    async def find_ungraded_with_key(
        self,
        key: str,
        exclude_id: Optional[ObjectId] = None,
    ) -> Optional[dict[str, Any]]:
        query: dict[str, Any] = {"user_readable_key": key, "referee_grade": None}
        if exclude_id is not None:
            query["_id"] = {"$ne": exclude_id}
        return await _db.db.matches.find_one(query)

    async def find_conflicting(
        self,
        day_start: datetime,
        day_end: datetime,
        team_ids: list[str],
        exclude_id: Optional[ObjectId] = None,
    ) -> Optional[dict[str, Any]]:
        """Any match in [day_start, day_end] where one of ``team_ids`` plays."""
        query: dict[str, Any] = {
            "match_date": {"$gte": day_start, "$lte": day_end},
            "$or": [
                {"home_team_id": {"$in": team_ids}},
                {"away_team_id": {"$in": team_ids}},
            ],
        }
        if exclude_id is not None:
            query["_id"] = {"$ne": exclude_id}
        return await _db.db.matches.find_one(query)

    async def insert(self, doc: dict[str, Any]) -> dict[str, Any]:
        now = utcnow()
        doc = {**doc, "created_at": now, "updated_at": now}
        MatchInDB.model_validate(doc)
        result = await _db.db.matches.insert_one(doc)
        doc["_id"] = result.inserted_id
        return doc

    async def update_fields(self, match_id: ObjectId, fields: dict[str, Any]) -> None:
        await _db.db.matches.update_one(
            {"_id": _oid(match_id)},
            {"$set": {**fields, "updated_at": utcnow()}},
        )

    async def delete(self, match_id: ObjectId) -> None:
        await _db.db.matches.delete_one({"_id": _oid(match_id)})

    async def list_all(self, limit: int = 1000) -> list[dict[str, Any]]:
        return await _db.db.matches.find({}).sort("match_date", -1).to_list(length=limit)

    async def list_by_league(self, league_id: str, limit: int = 1000) -> list[dict[str, Any]]:
        return await _db.db.matches.find(
            {"league_id": league_id},
        ).sort("match_date", -1).to_list(length=limit)

    async def list_by_league_user(
        self,
        league_id: str,
        user_id: str,
        limit: int = 1000,
    ) -> list[dict[str, Any]]:
        return await _db.db.matches.find(
            {
                "league_id": league_id,
                "$or": [{"referee_id": user_id}, {"observer_id": user_id}],
            },
        ).sort("match_date", -1).to_list(length=limit)


match_repository = MatchRepository()
