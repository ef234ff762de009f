"""Inbound SMS webhook. The gateway forwards observer grade messages here."""

import logging
import secrets
from typing import Optional

from fastapi import APIRouter, Header, HTTPException, status

from obsada.config import settings
from obsada.models.match import GradeMessage
from obsada.services import user_service
from obsada.services.match_service import match_service

logger = logging.getLogger("obsada.sms")

router = APIRouter(prefix="/api/sms", tags=["sms"])


def _check_token(token: Optional[str]) -> None:
    expected = settings.SMS_WEBHOOK_TOKEN
    if not expected:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found.")
    if not token or not secrets.compare_digest(token, expected):
        logger.warning("Inbound SMS rejected: bad webhook token")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid webhook token.")


@router.post("/grade")
async def receive_grade_sms(
    message: GradeMessage,
    x_webhook_token: Optional[str] = Header(default=None),
):
    _check_token(x_webhook_token)

    observer = await user_service.get_by_phone_number(message.phone_number)
    if not observer:
        logger.info("Inbound SMS %s from unknown number ignored", message.id)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")

    await match_service.update_grade_sms(message, observer)
    return {"status": "ok"}
