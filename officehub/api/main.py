"""
officehub.api.main — FastAPI application entry point
=====================================================

Run with::

    uvicorn officehub.api.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

load_dotenv()

from officehub.api.auth import router as auth_router  # noqa: E402
from officehub.api.deps import get_store  # noqa: E402
from officehub.api.routes.offices import router as offices_router  # noqa: E402
from officehub.api.routes.users import router as users_router  # noqa: E402
from officehub.database.engine import init_db  # noqa: E402
from officehub.database.store import SqlStore  # noqa: E402
from officehub.services.exceptions import (  # noqa: E402
    ConflictError,
    ForbiddenError,
    NotFoundError,
)

logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    """Resolve allowed CORS origins from env with safe defaults.

    Priority:
      1) CORS_ALLOW_ORIGINS (comma-separated)
      2) FRONTEND_URL (single origin)
    """
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if raw:
        return [origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip()]

    frontend_url = os.getenv("FRONTEND_URL", "").strip()
    if frontend_url:
        return [frontend_url.rstrip("/")]

    return []


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle — pick the store and make sure tables exist."""
    store = get_store()
    if isinstance(store, SqlStore):
        init_db(store.engine)
    logger.info("OfficeHub API started — store: %s", type(store).__name__)
    yield
    logger.info("OfficeHub API shutting down")


app = FastAPI(
    title="OfficeHub API",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Domain errors → HTTP
# ---------------------------------------------------------------------------
@app.exception_handler(NotFoundError)
async def _not_found(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ConflictError)
async def _conflict(request: Request, exc: ConflictError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(ForbiddenError)
async def _forbidden(request: Request, exc: ForbiddenError):
    return JSONResponse(status_code=403, content={"detail": str(exc)})


# Mount routers
app.include_router(auth_router, prefix="/api")
app.include_router(offices_router, prefix="/api")
app.include_router(users_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}
