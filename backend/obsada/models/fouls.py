"""
backend/obsada/models/fouls.py

Purpose:
    Pydantic models for fouls an observer records against a match while
    assessing the referee's decisions.

Dependencies:
    - pydantic.BaseModel
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class CardType(str, Enum):
    none = "none"
    yellow = "yellow"
    second_yellow = "second_yellow"
    red = "red"


class FoulInDB(BaseModel):
    match_id: str
    minute: int                           # match clock, stoppage time counts on
    team_id: str                          # offending team, home or away of the match
    player: str = ""
    card: CardType = CardType.none
    decision_correct: bool = True         # observer's verdict on the referee's call
    description: str = ""
    created_by: str
    created_at: datetime
    updated_at: datetime


class FoulCreate(BaseModel):
    minute: int = Field(ge=0, le=150)
    team_id: str
    player: str = ""
    card: CardType = CardType.none
    decision_correct: bool = True
    description: str = ""


FoulUpdate = FoulCreate


class FoulResponse(BaseModel):
    id: str
    match_id: str
    minute: int
    team_id: str
    player: str = ""
    card: CardType = CardType.none
    decision_correct: bool = True
    description: str = ""
    created_by: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


def foul_to_response(doc: dict) -> FoulResponse:
    return FoulResponse(
        id=str(doc["_id"]),
        match_id=doc["match_id"],
        minute=doc["minute"],
        team_id=doc["team_id"],
        player=doc.get("player", ""),
        card=doc.get("card", CardType.none.value),
        decision_correct=doc.get("decision_correct", True),
        description=doc.get("description", ""),
        created_by=doc["created_by"],
        created_at=doc.get("created_at"),
        updated_at=doc.get("updated_at"),
    )
