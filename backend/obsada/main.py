"""
backend/obsada/main.py

Purpose:
    FastAPI application bootstrap: logging, database and SMS gateway
    lifecycle, owner seed, middleware and router wiring.

Dependencies:
    - obsada.database
    - obsada.errors
    - obsada.providers.sms_gateway
    - obsada.seed
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo.errors import PyMongoError

from obsada.config import settings
import obsada.database as _db
from obsada.database import connect_db, close_db
from obsada.errors import register_exception_handlers
from obsada.middleware.logging import StructuredLoggingMiddleware, setup_logging
from obsada.providers.sms_gateway import sms_gateway
from obsada.routers.auth import router as auth_router
from obsada.routers.fouls import router as fouls_router
from obsada.routers.leagues import router as leagues_router
from obsada.routers.matches import router as matches_router
from obsada.routers.sms import router as sms_router
from obsada.routers.users import router as users_router
from obsada.seed import seed_owner_user

logger = logging.getLogger("obsada")


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    await connect_db()
    await seed_owner_user()

    if not settings.SMS_API_KEY:
        logger.warning("SMS_API_KEY not set: scheduling and grading replies will fail")
    if not settings.SMS_WEBHOOK_TOKEN:
        logger.info("Inbound SMS webhook disabled (SMS_WEBHOOK_TOKEN not set)")
    logger.info(
        "Grade windows: match %dh, grade %dh, overall %dh (timezone %s)",
        settings.MATCH_DURATION_HOURS,
        settings.GRADE_ENTRY_WINDOW_HOURS,
        settings.OVERALL_GRADE_ENTRY_WINDOW_HOURS,
        settings.LEAGUE_TIMEZONE,
    )

    yield

    await sms_gateway.aclose()
    await close_db()


app = FastAPI(
    title="Obsada",
    description="Match officiating schedule and referee grading",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)
app.add_middleware(StructuredLoggingMiddleware)

register_exception_handlers(app)

for router in (auth_router, users_router, leagues_router, matches_router, fouls_router, sms_router):
    app.include_router(router)


@app.get("/health")
async def health():
    """Liveness plus a MongoDB ping."""
    try:
        result = await _db.db.command("ping")
        db_ok = result.get("ok") == 1.0
    except PyMongoError:
        db_ok = False

    return {
        "status": "healthy" if db_ok else "degraded",
        "db": "connected" if db_ok else "disconnected",
    }
