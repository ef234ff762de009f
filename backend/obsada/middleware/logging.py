"""
backend/obsada/middleware/logging.py

Purpose:
    One JSON log line per HTTP request and the process-wide logging setup.

    The request id is taken from an incoming ``X-Request-ID`` (the SMS
    gateway and reverse proxies may set one) or generated, and echoed back
    on the response.
"""

import hashlib
import json
import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("obsada.requests")

REQUEST_ID_HEADER = "X-Request-ID"
_MAX_REQUEST_ID = 32
_QUIET_PATHS = {"/health"}


def _request_id(request: Request) -> str:
    incoming = request.headers.get(REQUEST_ID_HEADER, "").strip()
    if incoming and incoming.isprintable():
        return incoming[:_MAX_REQUEST_ID]
    return uuid.uuid4().hex[:12]


def _client_hash(request: Request):
    if not request.client or not request.client.host:
        return None
    return hashlib.sha256(request.client.host.encode()).hexdigest()[:12]


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = _request_id(request)
        request.state.request_id = request_id
        started = time.perf_counter()

        log_data = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "client_ip_hash": _client_hash(request),
        }
        try:
            response: Response = await call_next(request)
        except Exception:
            log_data.update(status=500, duration_ms=round((time.perf_counter() - started) * 1000, 2))
            logger.error(json.dumps(log_data))
            raise

        log_data.update(
            status=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        if response.status_code >= 500:
            level = logging.ERROR
        elif response.status_code >= 400:
            level = logging.WARNING
        elif request.url.path in _QUIET_PATHS:
            level = logging.DEBUG
        else:
            level = logging.INFO
        logger.log(level, json.dumps(log_data))

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def setup_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
    # httpx logs full request URLs at INFO; SMS gateway URLs carry credentials.
    logging.getLogger("httpx").setLevel(logging.WARNING)
