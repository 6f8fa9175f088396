"""
civicvoice.api.main — FastAPI application entry point
=======================================================

Run with::

    uvicorn civicvoice.api.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

load_dotenv()

from civicvoice import __version__  # noqa: E402
from civicvoice.api.auth import router as auth_router  # noqa: E402
from civicvoice.api.deps import get_engine  # noqa: E402
from civicvoice.api.routes.admin import router as admin_router  # noqa: E402
from civicvoice.api.routes.suggestions import router as suggestions_router  # noqa: E402
from civicvoice.database.engine import init_db  # noqa: E402

logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    """Comma-separated ``CORS_ALLOW_ORIGINS``; empty means same-origin only."""
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    return [origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip()]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle — make sure the store table exists."""
    engine = get_engine()
    init_db(engine)
    logger.info("CivicVoice API started — engine ready (%s)", engine.url.database)
    yield
    logger.info("CivicVoice API shutting down")


app = FastAPI(
    title="CivicVoice API",
    version=__version__,
    lifespan=lifespan,
)

# Session cookies need credentials on cross-origin requests
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router, prefix="/api")
app.include_router(suggestions_router, prefix="/api")
app.include_router(admin_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}
