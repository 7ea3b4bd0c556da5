"""
Main application entry point - FastAPI app instance and configuration.
Run with: uvicorn app.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.db.base import Base
from app.db.session import engine
from app.routers import assistant, auth, users
from app.services.recent_event_cache import recent_event_cache


logging.getLogger("calendar_ai").setLevel(settings.LOG_LEVEL.upper())
logger = logging.getLogger("calendar_ai.main")


# ---------------------------------------------------------------------------
# LIFESPAN
# ---------------------------------------------------------------------------
# Startup: create the users table, start sweeping expired recent events.
# Shutdown: stop the sweep.
@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    await recent_event_cache.start_cleanup_loop()
    logger.info(f"{settings.APP_NAME} started")
    try:
        yield
    finally:
        await recent_event_cache.stop_cleanup_loop()
        logger.info(f"{settings.APP_NAME} stopped")


app = FastAPI(
    title=settings.APP_NAME,
    debug=settings.DEBUG,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# CORS MIDDLEWARE
# ---------------------------------------------------------------------------
# The web and mobile clients call the API from other origins.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],         # TODO: Restrict to the deployed client origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# REGISTER ROUTERS
# ---------------------------------------------------------------------------
# auth.router: /auth/register, /auth/login
# users.router: /users/me
# assistant.router: /ai/chat, /ai/parse-image, /ai/duplicates/check,
#                   /ai/briefing, /ai/suggestions, /ai/free-slots, /ai/stats
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(assistant.router)


# ---------------------------------------------------------------------------
# HEALTH CHECK ENDPOINT
# ---------------------------------------------------------------------------
@app.get("/health", tags=["health"])
def health_check():
    """
    Liveness probe. Does not touch the database, Gemini or Google Calendar.

    Returns:
        {"status": "ok"}
    """
    return {"status": "ok"}
