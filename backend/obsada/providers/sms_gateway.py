"""
backend/obsada/providers/sms_gateway.py

Purpose:
    Client for the smsplanet.pl SMS gateway: immediate one-way messages,
    scheduled assignment notifications and cancellation of scheduled
    messages.

    Success is HTTP 200 (plus a JSON ``messageId`` for sends). Any other
    outcome raises a 503 so the enclosing match operation aborts.

Dependencies:
    - obsada.providers.http_client
    - obsada.config
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

import httpx
from fastapi import HTTPException, status

from obsada.config import settings
from obsada.providers.http_client import GatewayClient
from obsada.utils import ensure_utc, league_tz

logger = logging.getLogger("obsada.sms_gateway")

SMS_API_DATETIME_FORMAT = "%d-%m-%Y %H:%M:%S"

ASSIGNMENT_TEMPLATE = (
    "Nowa obsada, mecz {key}, {match_date}. "
    "Po zakończeniu spotkania wyślij sms o treści: ID_meczu#ocena/ocena"
)


class InvalidMessageIdError(ValueError):
    """A stored gateway message id is not numeric and cannot be cancelled."""


@dataclass(frozen=True)
class SmsGatewayConfig:
    base_url: str
    api_key: str
    password: str
    number: str        # sender of scheduled assignment notifications
    sender: str        # sender id of one-way replies
    timezone: str = "UTC"
    timeout: float = 15.0

    @classmethod
    def from_settings(cls) -> "SmsGatewayConfig":
        return cls(
            base_url=settings.SMS_API_URL.rstrip("/"),
            api_key=settings.SMS_API_KEY,
            password=settings.SMS_PASSWORD,
            number=settings.SMS_NUMBER,
            sender=settings.SMS_SENDER,
            timezone=settings.LEAGUE_TIMEZONE,
            timeout=settings.SMS_TIMEOUT_SECONDS,
        )


def parse_message_id(message_id: str) -> int:
    """Parse a stored gateway id. Non-numeric ids raise instead of becoming 0."""
    text = str(message_id).strip()
    if not text.isdigit():
        raise InvalidMessageIdError(f"Invalid SMS message id: {message_id!r}")
    return int(text)


def _gateway_error(action: str, resp: Optional[httpx.Response] = None) -> HTTPException:
    detail = f"SMS API error: {action} failed"
    if resp is not None:
        detail += f" (status {resp.status_code})"
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)


class SmsGatewayProvider:
    """SMS gateway client. One attempt per call, no retry."""

    def __init__(self, config: Optional[SmsGatewayConfig] = None):
        self._config = config or SmsGatewayConfig.from_settings()
        self._client = GatewayClient("sms_gateway", timeout=self._config.timeout)

    @property
    def config(self) -> SmsGatewayConfig:
        return self._config

    def _credentials(self) -> dict[str, str]:
        return {"key": self._config.api_key, "password": self._config.password}

    async def _post(self, path: str, params: dict, action: str) -> httpx.Response:
        try:
            resp = await self._client.post(f"{self._config.base_url}{path}", params=params)
        except httpx.HTTPError:
            logger.error("SMS gateway unreachable during %s", action)
            raise _gateway_error(action) from None
        if resp.status_code != status.HTTP_200_OK:
            logger.error("SMS gateway rejected %s: status=%d", action, resp.status_code)
            raise _gateway_error(action, resp)
        return resp

    @staticmethod
    def _message_id(resp: httpx.Response, action: str) -> str:
        try:
            message_id = resp.json()["messageId"]
        except (ValueError, KeyError, TypeError):
            logger.error("SMS gateway response for %s has no messageId", action)
            raise _gateway_error(action, resp) from None
        return str(message_id)

    async def send_one_way(self, recipient: str, message: str) -> None:
        """Send an immediate SMS."""
        params = {
            **self._credentials(),
            "from": self._config.sender,
            "to": recipient,
            "msg": message,
        }
        await self._post("/sms", params, "send")
        logger.info("One-way SMS sent to %s: %s", recipient, message)

    async def schedule(self, match_date: datetime, message_key: str, recipient: str) -> str:
        """Schedule the assignment notification one calendar day before kickoff.

        Returns the gateway message id needed to cancel the notification.
        """
        tz = league_tz(self._config.timezone)
        local_kickoff = ensure_utc(match_date).astimezone(tz)
        send_at = local_kickoff - timedelta(days=1)

        params = {
            **self._credentials(),
            "from": self._config.number,
            "to": recipient,
            "msg": ASSIGNMENT_TEMPLATE.format(
                key=message_key,
                match_date=local_kickoff.strftime(SMS_API_DATETIME_FORMAT),
            ),
            "date": send_at.strftime(SMS_API_DATETIME_FORMAT),
        }
        resp = await self._post("/sms", params, "schedule")
        message_id = self._message_id(resp, "schedule")
        logger.info("Scheduled SMS %s for match %s", message_id, message_key)
        return message_id

    async def cancel(self, message_id: str) -> None:
        """Cancel a scheduled SMS by its gateway id."""
        numeric_id = parse_message_id(message_id)
        params = {**self._credentials(), "messageId": numeric_id}
        await self._post("/cancelMessage", params, "cancel")
        logger.info("Cancelled scheduled SMS %d", numeric_id)

    async def aclose(self) -> None:
        await self._client.aclose()


sms_gateway = SmsGatewayProvider()
