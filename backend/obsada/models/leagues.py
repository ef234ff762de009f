"""
backend/obsada/models/leagues.py

Purpose:
    Pydantic models for leagues, their teams and official rosters. Roster
    order matters: team positions feed the human-readable match key.

Dependencies:
    - pydantic.BaseModel
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class LeagueInDB(BaseModel):
    """League document. Member lists hold user/team ids as strings."""
    name: str
    country: str = ""
    team_ids: List[str] = []
    referee_ids: List[str] = []
    observer_ids: List[str] = []
    admin_ids: List[str] = []
    created_at: datetime


class TeamInDB(BaseModel):
    name: str
    league_id: str
    created_at: datetime


class LeagueCreate(BaseModel):
    name: str = Field(min_length=1)
    country: str = ""


class TeamCreate(BaseModel):
    name: str = Field(min_length=1)


class LeagueResponse(BaseModel):
    id: str
    name: str
    country: str = ""
    team_ids: List[str] = []
    referee_ids: List[str] = []
    observer_ids: List[str] = []
    admin_ids: List[str] = []
    created_at: Optional[datetime] = None


class TeamResponse(BaseModel):
    id: str
    name: str
    league_id: str


def league_to_response(doc: dict) -> LeagueResponse:
    return LeagueResponse(
        id=str(doc["_id"]),
        name=doc["name"],
        country=doc.get("country", ""),
        team_ids=doc.get("team_ids", []),
        referee_ids=doc.get("referee_ids", []),
        observer_ids=doc.get("observer_ids", []),
        admin_ids=doc.get("admin_ids", []),
        created_at=doc.get("created_at"),
    )


def team_to_response(doc: dict) -> TeamResponse:
    return TeamResponse(id=str(doc["_id"]), name=doc["name"], league_id=doc["league_id"])
