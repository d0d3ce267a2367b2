# speechcoach/main.py

"""
FastAPI entrypoint for the speech practice API.

This file is responsible for:
  - Creating the FastAPI app instance.
  - Configuring logging.
  - Enabling CORS so the mobile/web client can call the API.
  - Registering routers and the AppError handler.
  - Attaching the lifespan hook (creates DB tables on startup).
"""

from dotenv import load_dotenv
load_dotenv()  # will read .env in project root

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from speechcoach.core.config import settings
from speechcoach.core.errors import register_error_handlers
from speechcoach.core.logging import configure_logging
from speechcoach.core.version import APP_NAME, APP_VERSION
from speechcoach.api.routers import (
    health,
    eval,
    stt,
    practice,
)
from speechcoach.lifespan import lifespan

# ---------------------------------------------------------------------
# 1. Configure logging (settings.LOG_LEVEL, e.g. "INFO", "DEBUG")
# ---------------------------------------------------------------------
configure_logging(settings.LOG_LEVEL)


# ---------------------------------------------------------------------
# 2. Create FastAPI app instance
# ---------------------------------------------------------------------
app = FastAPI(
    title="Speech Coach API",
    version=APP_VERSION,
    lifespan=lifespan,
)
register_error_handlers(app)


# ---------------------------------------------------------------------
# 3. Configure CORS
# ---------------------------------------------------------------------
# With "*" origins credentials must stay off (browsers reject the combo).
# ---------------------------------------------------------------------
_wildcard = "*" in settings.CORS_ORIGINS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=not _wildcard,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------
# 4. Register Routers
# ---------------------------------------------------------------------
# Final paths:
#   - /health                   (no prefix, good for LB checks)
#   - /api/eval[/audio]         (pronunciation evaluation)
#   - /api/stt[/languages]      (speech-to-text)
#   - /api/practice/...         (practice history)
# ---------------------------------------------------------------------
app.include_router(health.router)
app.include_router(eval.router,     prefix=settings.API_PREFIX)
app.include_router(stt.router,      prefix=settings.API_PREFIX)
app.include_router(practice.router, prefix=settings.API_PREFIX)


@app.get("/", include_in_schema=False)
def root():
    return {
        "ok": True,
        "name": APP_NAME,
        "health": "/health",
        "docs": "/docs",
        "openapi": "/openapi.json",
        "api_prefix": settings.API_PREFIX,
    }
