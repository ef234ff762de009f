from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from obsada.utils import as_utc, ensure_utc


class MatchInDB(BaseModel):
    """Match document as stored in MongoDB.

    A match is created with a scheduled observer SMS, collects grades and
    report keys after kickoff and is hard-deleted on removal.
    """
    user_readable_key: str                # DDMMYY + league ordinal + home team ordinal
    match_date: datetime                  # kickoff, UTC
    stadium: str
    league_id: str
    home_team_id: str
    away_team_id: str
    referee_id: str
    observer_id: str

    # Gateway id of the pending pre-match SMS, None when nothing is pending
    observer_sms_id: Optional[str] = None

    referee_grade: Optional[float] = None
    referee_grade_date: Optional[datetime] = None
    overall_grade: Optional[str] = None
    overall_grade_date: Optional[datetime] = None
    referee_note: Optional[str] = None

    observer_report_key: Optional[str] = None
    mentor_report_key: Optional[str] = None
    tv_report_key: Optional[str] = None

    created_at: datetime
    updated_at: datetime


class MatchCreate(BaseModel):
    """Request body for scheduling a match. Also used for wholesale updates."""
    match_date: datetime
    stadium: str = Field(min_length=1)
    home_team_id: str
    away_team_id: str
    referee_id: str
    observer_id: str

    @field_validator("match_date")
    @classmethod
    def utc_match_date(cls, v: datetime) -> datetime:
        return ensure_utc(v)


MatchUpdate = MatchCreate


class GradeUpdate(BaseModel):
    referee_grade: float


class OverallGradeUpdate(BaseModel):
    overall_grade: str = Field(min_length=1)


class RefereeNoteUpdate(BaseModel):
    referee_note: Optional[str] = None


class ReportKeyUpdate(BaseModel):
    """Storage key of an uploaded report artifact."""
    key: str = Field(min_length=1)


class GradeMessage(BaseModel):
    """Inbound SMS payload delivered by the gateway webhook."""
    id: str = ""
    msg: str
    phone_number: str

    @field_validator("phone_number")
    @classmethod
    def compact_phone(cls, v: str) -> str:
        return v.replace(" ", "").replace("-", "")


class MatchInfo(BaseModel):
    """Presentational form of a match with officials resolved to names."""
    id: str
    user_readable_key: str
    match_date: datetime
    stadium: str
    home_team_id: str
    away_team_id: str
    referee: str
    observer: str
    league_id: str
    referee_grade: Optional[float] = None
    referee_grade_date: Optional[datetime] = None
    referee_note: Optional[str] = None
    overall_grade: Optional[str] = None
    overall_grade_date: Optional[datetime] = None
    observer_report_key: Optional[str] = None
    mentor_report_key: Optional[str] = None
    tv_report_key: Optional[str] = None


class MatchResponse(BaseModel):
    """Raw match data returned to administrators."""
    id: str
    user_readable_key: str
    match_date: datetime
    stadium: str
    league_id: str
    home_team_id: str
    away_team_id: str
    referee_id: str
    observer_id: str
    observer_sms_id: Optional[str] = None
    referee_grade: Optional[float] = None
    referee_grade_date: Optional[datetime] = None
    overall_grade: Optional[str] = None
    overall_grade_date: Optional[datetime] = None
    referee_note: Optional[str] = None
    observer_report_key: Optional[str] = None
    mentor_report_key: Optional[str] = None
    tv_report_key: Optional[str] = None


def db_to_response(doc: dict) -> MatchResponse:
    """Convert a MongoDB match document to an API response."""
    return MatchResponse(
        id=str(doc["_id"]),
        user_readable_key=doc["user_readable_key"],
        match_date=as_utc(doc["match_date"]),
        stadium=doc.get("stadium", ""),
        league_id=doc["league_id"],
        home_team_id=doc["home_team_id"],
        away_team_id=doc["away_team_id"],
        referee_id=doc["referee_id"],
        observer_id=doc["observer_id"],
        observer_sms_id=doc.get("observer_sms_id"),
        referee_grade=doc.get("referee_grade"),
        referee_grade_date=as_utc(doc.get("referee_grade_date")),
        overall_grade=doc.get("overall_grade"),
        overall_grade_date=as_utc(doc.get("overall_grade_date")),
        referee_note=doc.get("referee_note"),
        observer_report_key=doc.get("observer_report_key"),
        mentor_report_key=doc.get("mentor_report_key"),
        tv_report_key=doc.get("tv_report_key"),
    )
