"""
backend/obsada/services/foul_service.py

Purpose:
    Per-match foul records kept by observers. Once a match has its overall
    grade, fouls may only change after the overall-grade entry window has
    opened.

Dependencies:
    - obsada.database
    - obsada.services.validators
    - obsada.services.audit_service
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import HTTPException, status

import obsada.database as _db
from obsada.models.fouls import FoulCreate, FoulInDB, FoulUpdate
from obsada.services.audit_service import log_audit
from obsada.services.validators import OVERALL_GRADE_ENTRY_TIME_WINDOW, validate_entry_time
from obsada.utils import utcnow

logger = logging.getLogger("obsada.foul_service")


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Foul not found.")


class FoulRepository:
    async def find_by_id(self, foul_id: str) -> Optional[dict[str, Any]]:
        try:
            oid = ObjectId(foul_id)
        except InvalidId:
            return None
        return await _db.db.fouls.find_one({"_id": oid})

    async def list_by_match(self, match_id: str, limit: int = 500) -> list[dict[str, Any]]:
        return await _db.db.fouls.find({"match_id": match_id}).sort("minute", 1).to_list(length=limit)

    async def insert(self, doc: dict[str, Any]) -> dict[str, Any]:
        now = utcnow()
        doc = {**doc, "created_at": now, "updated_at": now}
        FoulInDB.model_validate(doc)
        result = await _db.db.fouls.insert_one(doc)
        doc["_id"] = result.inserted_id
        return doc

    async def update_fields(self, foul_id: ObjectId, fields: dict[str, Any]) -> None:
        await _db.db.fouls.update_one(
            {"_id": foul_id},
            {"$set": {**fields, "updated_at": utcnow()}},
        )

    async def delete(self, foul_id: ObjectId) -> None:
        await _db.db.fouls.delete_one({"_id": foul_id})

    async def delete_by_match(self, match_id: str) -> int:
        result = await _db.db.fouls.delete_many({"match_id": match_id})
        return result.deleted_count


class FoulService:
    def __init__(self, repository: Optional[FoulRepository] = None):
        self._repo = repository or FoulRepository()

    def validate_foul_entry_time(self, match: dict, now: Optional[datetime] = None) -> None:
        """400 while an overall-graded match is still inside its overall-grade window."""
        if match.get("overall_grade") is not None:
            validate_entry_time(match["match_date"], OVERALL_GRADE_ENTRY_TIME_WINDOW, now)

    def _validate_team(self, match: dict, team_id: str) -> None:
        if team_id not in (match["home_team_id"], match["away_team_id"]):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Team does not play in this match.",
            )

    async def get_by_match(self, match_id: str) -> list[dict]:
        return await self._repo.list_by_match(match_id)

    async def require_foul(self, foul_id: str, match_id: str) -> dict:
        foul = await self._repo.find_by_id(foul_id)
        if not foul or foul["match_id"] != match_id:
            raise _not_found()
        return foul

    async def create(self, match: dict, body: FoulCreate, actor_id: str) -> dict:
        self.validate_foul_entry_time(match)
        self._validate_team(match, body.team_id)

        doc = body.model_dump(mode="json")
        doc.update(match_id=str(match["_id"]), created_by=actor_id)
        foul = await self._repo.insert(doc)

        logger.info("Foul %s recorded for match %s", foul["_id"], match["_id"])
        await log_audit(
            actor_id=actor_id, target_id=str(match["_id"]), action="FOUL_CREATED",
            metadata={"foul_id": str(foul["_id"]), "minute": body.minute},
        )
        return foul

    async def update(self, match: dict, foul_id: str, body: FoulUpdate, actor_id: str) -> dict:
        self.validate_foul_entry_time(match)
        foul = await self.require_foul(foul_id, str(match["_id"]))
        self._validate_team(match, body.team_id)

        fields = body.model_dump(mode="json")
        await self._repo.update_fields(foul["_id"], fields)

        await log_audit(
            actor_id=actor_id, target_id=str(match["_id"]), action="FOUL_UPDATED",
            metadata={"foul_id": foul_id},
        )
        return await self.require_foul(foul_id, str(match["_id"]))

    async def remove(self, match: dict, foul_id: str, actor_id: str) -> dict:
        foul = await self.require_foul(foul_id, str(match["_id"]))
        await self._repo.delete(foul["_id"])

        await log_audit(
            actor_id=actor_id, target_id=str(match["_id"]), action="FOUL_REMOVED",
            metadata={"foul_id": foul_id},
        )
        return foul

    async def remove_for_match(self, match_id: str) -> None:
        removed = await self._repo.delete_by_match(match_id)
        if removed:
            logger.info("Removed %d fouls of match %s", removed, match_id)


foul_service = FoulService()
