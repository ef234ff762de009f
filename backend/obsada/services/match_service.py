"""Match service: officiating lifecycle, scheduled → graded → removed.

Owns every match state transition and is the only caller of the SMS
gateway. Side effects are ordered, not atomic:

- create:  schedule SMS, then insert (a failed SMS leaves nothing behind)
- update:  cancel old SMS, clear the stored id, schedule new SMS, persist
- remove:  cancel SMS, notify observer, delete

Grades are window-gated: a first entry is always accepted, a re-entry only
after the window (hours after kickoff) has elapsed.
"""

import logging
from datetime import datetime, time, timedelta
from typing import Any, Optional

from bson import ObjectId
from fastapi import HTTPException, status

from obsada.config import settings
from obsada.models.match import GradeMessage, MatchCreate, MatchInfo, MatchUpdate
from obsada.models.reports import (
    GRADE_FILE_PERMISSIONS,
    REPORT_FIELD_NAMES,
    ActionType,
    ReportType,
)
from obsada.models.user import Role, full_name
from obsada.providers.sms_gateway import SmsGatewayProvider, sms_gateway
from obsada.services.audit_service import SYSTEM_ACTOR, log_audit
from obsada.services.grade_sms_service import (
    GRADE_ENTERED,
    GradeSmsError,
    check_match_gradeable,
    parse_grade_sms,
)
from obsada.services.match_keys import get_user_readable_key
from obsada.services.match_repository import MatchRepository, match_repository
from obsada.services.validators import (
    GRADE_ENTRY_TIME_WINDOW,
    OVERALL_GRADE_ENTRY_TIME_WINDOW,
    validate_entry_time,
)
from obsada.utils import as_utc, ensure_utc, league_tz, utcnow

logger = logging.getLogger("obsada.match_service")

HIDDEN_OBSERVER = "hidden"
MATCH_CANCELED = "Match #{key} has been canceled."


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Match not found.")


def day_bounds(match_date: datetime, tz_name: str) -> tuple[datetime, datetime]:
    """Start and end of the match's calendar day in the league timezone."""
    tz = league_tz(tz_name)
    local_day = ensure_utc(match_date).astimezone(tz).date()
    start = datetime.combine(local_day, time.min, tzinfo=tz)
    end = start + timedelta(days=1) - timedelta(microseconds=1)
    return start, end


class MatchService:
    def __init__(
        self,
        repository: Optional[MatchRepository] = None,
        gateway: Optional[SmsGatewayProvider] = None,
    ):
        self._repo = repository or match_repository
        self._sms = gateway or sms_gateway

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_all_matches(self) -> list[dict]:
        return await self._repo.list_all()

    async def get_by_league(self, league_id: str) -> list[dict]:
        return await self._repo.list_by_league(league_id)

    async def get_user_league_matches(self, league_id: str, user_id: str) -> list[dict]:
        return await self._repo.list_by_league_user(league_id, user_id)

    async def get_by_id(self, match_id: str) -> Optional[dict]:
        return await self._repo.find_by_id(match_id)

    async def require_match(self, match_id: str, league_id: Optional[str] = None) -> dict:
        match = await self._repo.find_by_id(match_id)
        if not match or (league_id is not None and match.get("league_id") != league_id):
            raise _not_found()
        return match

    async def get_by_user_readable_key(self, key: str) -> Optional[dict]:
        return await self._repo.find_by_key(key)

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    async def validate_match(self, body: MatchCreate, existing_id: Optional[ObjectId] = None) -> None:
        """Reject a match against itself or a same-day clash for either team."""
        if body.home_team_id == body.away_team_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Home team same as away team.",
            )

        start, end = day_bounds(body.match_date, settings.LEAGUE_TIMEZONE)
        existing = await self._repo.find_conflicting(
            start, end, [body.home_team_id, body.away_team_id], exclude_id=existing_id,
        )
        if existing:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="One of the teams already has a match at that day.",
            )

    async def _build_key(
        self,
        match_date: datetime,
        league_idx: int,
        home_team_idx: int,
        existing_id: Optional[ObjectId] = None,
    ) -> str:
        try:
            key = get_user_readable_key(match_date, league_idx, home_team_idx)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from None

        # Inbound grade SMS are routed by key; two ungraded matches must not share one.
        clash = await self._repo.find_ungraded_with_key(key, exclude_id=existing_id)
        if clash:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Match key {key} is already used by an ungraded match.",
            )
        return key

    async def create_match(
        self,
        league_id: str,
        body: MatchCreate,
        league_idx: int,
        home_team_idx: int,
        observer_phone_number: str,
        actor_id: str = SYSTEM_ACTOR,
    ) -> dict:
        await self.validate_match(body)
        key = await self._build_key(body.match_date, league_idx, home_team_idx)
        observer_sms_id = await self._sms.schedule(body.match_date, key, observer_phone_number)

        doc = {
            "user_readable_key": key,
            "match_date": body.match_date,
            "stadium": body.stadium,
            "league_id": league_id,
            "home_team_id": body.home_team_id,
            "away_team_id": body.away_team_id,
            "referee_id": body.referee_id,
            "observer_id": body.observer_id,
            "observer_sms_id": observer_sms_id,
            "referee_grade": None,
            "referee_grade_date": None,
            "overall_grade": None,
            "overall_grade_date": None,
            "referee_note": None,
            "observer_report_key": None,
            "mentor_report_key": None,
            "tv_report_key": None,
        }
        try:
            match = await self._repo.insert(doc)
        except Exception:
            logger.error(
                "Match %s not stored; scheduled SMS %s is left pending", key, observer_sms_id,
            )
            raise

        logger.info("Match created: %s (%s)", match["_id"], key)
        await log_audit(
            actor_id=actor_id, target_id=str(match["_id"]), action="MATCH_CREATED",
            metadata={"key": key, "observer_sms_id": observer_sms_id},
        )
        return match

    async def update_match(
        self,
        match_id: str,
        body: MatchUpdate,
        league_idx: int,
        home_team_idx: int,
        observer_phone_number: str,
        actor_id: str = SYSTEM_ACTOR,
    ) -> dict:
        match = await self._repo.find_by_id(match_id)
        if not match:
            raise _not_found()
        oid = match["_id"]

        await self.validate_match(body, existing_id=oid)
        key = await self._build_key(body.match_date, league_idx, home_team_idx, existing_id=oid)

        old_sms_id = match.get("observer_sms_id")
        if old_sms_id:
            await self._sms.cancel(old_sms_id)
            # From here on the record must not point at the cancelled message.
            await self._repo.update_fields(oid, {"observer_sms_id": None})

        observer_sms_id = await self._sms.schedule(body.match_date, key, observer_phone_number)

        fields = {
            "user_readable_key": key,
            "match_date": body.match_date,
            "stadium": body.stadium,
            "home_team_id": body.home_team_id,
            "away_team_id": body.away_team_id,
            "referee_id": body.referee_id,
            "observer_id": body.observer_id,
            "observer_sms_id": observer_sms_id,
        }
        await self._repo.update_fields(oid, fields)
        logger.info("Match updated: %s (%s)", oid, key)
        await log_audit(
            actor_id=actor_id, target_id=str(oid), action="MATCH_UPDATED",
            metadata={
                "before": {"key": match.get("user_readable_key"), "observer_sms_id": old_sms_id},
                "after": {"key": key, "observer_sms_id": observer_sms_id},
            },
        )
        return {**match, **fields}

    async def remove_match(
        self,
        match_id: str,
        observer_phone_number: str,
        actor_id: str = SYSTEM_ACTOR,
    ) -> dict:
        match = await self._repo.find_by_id(match_id)
        if not match:
            raise _not_found()

        if match.get("observer_sms_id"):
            await self._sms.cancel(match["observer_sms_id"])
        await self._sms.send_one_way(
            observer_phone_number, MATCH_CANCELED.format(key=match["user_readable_key"]),
        )
        await self._repo.delete(match["_id"])

        logger.info("Match removed: %s (%s)", match["_id"], match["user_readable_key"])
        await log_audit(
            actor_id=actor_id, target_id=str(match["_id"]), action="MATCH_REMOVED",
            metadata={"key": match["user_readable_key"]},
        )
        return match

    # ------------------------------------------------------------------
    # Grading
    # ------------------------------------------------------------------

    async def update_grade(self, match_id: str, grade: float, actor_id: str = SYSTEM_ACTOR) -> dict:
        match = await self._repo.find_by_id(match_id)
        if not match:
            raise _not_found()
        if match.get("referee_grade") is not None:
            validate_entry_time(match["match_date"], GRADE_ENTRY_TIME_WINDOW)

        fields = {"referee_grade": grade, "referee_grade_date": utcnow()}
        await self._repo.update_fields(match["_id"], fields)
        await log_audit(
            actor_id=actor_id, target_id=str(match["_id"]), action="REFEREE_GRADE_SET",
            metadata={"before": match.get("referee_grade"), "after": grade},
        )
        return {**match, **fields}

    async def update_overall_grade(
        self,
        match_id: str,
        overall_grade: str,
        actor_id: str = SYSTEM_ACTOR,
    ) -> dict:
        match = await self._repo.find_by_id(match_id)
        if not match:
            raise _not_found()
        if match.get("overall_grade") is not None:
            validate_entry_time(match["match_date"], OVERALL_GRADE_ENTRY_TIME_WINDOW)

        fields = {"overall_grade": overall_grade, "overall_grade_date": utcnow()}
        await self._repo.update_fields(match["_id"], fields)
        await log_audit(
            actor_id=actor_id, target_id=str(match["_id"]), action="OVERALL_GRADE_SET",
            metadata={"before": match.get("overall_grade"), "after": overall_grade},
        )
        return {**match, **fields}

    async def update_referee_note(self, match_id: str, note: Optional[str]) -> dict:
        match = await self._repo.find_by_id(match_id)
        if not match:
            raise _not_found()
        await self._repo.update_fields(match["_id"], {"referee_note": note})
        return {**match, "referee_note": note}

    async def update_grade_sms(self, message: GradeMessage, observer: dict) -> None:
        """Grade a match from an inbound SMS. Replies exactly once, never raises
        for bad input: every rejection becomes the reply text."""
        phone_number = observer["phone_number"]

        try:
            parsed = parse_grade_sms(message.msg)
        except GradeSmsError as exc:
            logger.info("Grade SMS %s rejected: %s", message.id, exc.reply)
            await self._sms.send_one_way(phone_number, exc.reply)
            return

        match = await self._repo.find_by_key(parsed.match_key)
        rejection = check_match_gradeable(match)
        if rejection:
            logger.info("Grade SMS %s for %s rejected: %s", message.id, parsed.match_key, rejection)
            await self._sms.send_one_way(phone_number, rejection)
            return

        await self._repo.update_fields(
            match["_id"], {"referee_grade": parsed.grade, "referee_grade_date": utcnow()},
        )
        await log_audit(
            actor_id=str(observer.get("_id", phone_number)), target_id=str(match["_id"]),
            action="REFEREE_GRADE_SMS",
            metadata={"grade": parsed.grade, "max_grade": parsed.max_grade, "sms_id": message.id},
        )
        await self._sms.send_one_way(phone_number, GRADE_ENTERED.format(key=match["user_readable_key"]))

    # ------------------------------------------------------------------
    # Report artifacts
    # ------------------------------------------------------------------

    def validate_user_action(self, user: dict, report_type: ReportType, action: ActionType) -> None:
        try:
            allowed = GRADE_FILE_PERMISSIONS[Role(user.get("role"))][action]
        except ValueError:
            allowed = frozenset()
        if report_type not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="User does not have sufficient permissions.",
            )

    async def update_report_data(self, match_id: str, report_type: ReportType, key: str) -> dict:
        match = await self.require_match(match_id)
        field = REPORT_FIELD_NAMES[report_type]
        await self._repo.update_fields(match["_id"], {field: key})
        return {**match, field: key}

    async def get_key_for_report(self, match_id: str, report_type: ReportType) -> Optional[str]:
        match = await self.require_match(match_id)
        return match.get(REPORT_FIELD_NAMES[report_type])

    async def remove_report(self, match_id: str, report_type: ReportType) -> dict:
        match = await self.require_match(match_id)
        field = REPORT_FIELD_NAMES[report_type]
        await self._repo.update_fields(match["_id"], {field: None})
        return {**match, field: None}

    # ------------------------------------------------------------------
    # Views and guards
    # ------------------------------------------------------------------

    def get_match_info(
        self,
        match: dict,
        referees: dict[str, dict],
        observers: dict[str, dict],
        hide_observer: bool = False,
        now: Optional[datetime] = None,
    ) -> MatchInfo:
        referee = referees.get(match["referee_id"], {})
        observer = observers.get(match["observer_id"], {})
        now = now or utcnow()
        match_date = ensure_utc(match["match_date"])
        match_is_upcoming = match_date > now

        return MatchInfo(
            id=str(match["_id"]),
            user_readable_key=match["user_readable_key"],
            match_date=match_date,
            stadium=match.get("stadium", ""),
            home_team_id=match["home_team_id"],
            away_team_id=match["away_team_id"],
            referee=full_name(referee),
            observer=HIDDEN_OBSERVER if hide_observer and match_is_upcoming else full_name(observer),
            league_id=match["league_id"],
            referee_grade=match.get("referee_grade"),
            referee_grade_date=as_utc(match.get("referee_grade_date")),
            referee_note=match.get("referee_note"),
            overall_grade=match.get("overall_grade"),
            overall_grade_date=as_utc(match.get("overall_grade_date")),
            observer_report_key=match.get("observer_report_key"),
            mentor_report_key=match.get("mentor_report_key"),
            tv_report_key=match.get("tv_report_key"),
        )

    def validate_match_not_upcoming(self, match: dict) -> None:
        if ensure_utc(match["match_date"]) > utcnow():
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Match is upcoming.")

    async def validate_user_league_removal(self, league_id: str, user_id: str) -> None:
        found: list[Any] = await self._repo.list_by_league_user(league_id, user_id, limit=1)
        if found:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="This user is assigned to some matches from this league.",
            )


match_service = MatchService()
