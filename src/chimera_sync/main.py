"""
Chimera Sync Backend Application

FastAPI application for the Chimera notes desktop: Google sign-in, plan
quotas, note sync and the AI chat proxy.

Start locally:
    uvicorn chimera_sync.main:app --host 0.0.0.0 --port 4000 --reload
"""

import logging
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import InterfaceError, OperationalError

from chimera_sync.api.ai import router as ai_router
from chimera_sync.api.auth import router as auth_router
from chimera_sync.api.billing import router as billing_router
from chimera_sync.api.notes import router as notes_router
from chimera_sync.core import database
from chimera_sync.core.config import settings
from chimera_sync.core.exceptions import AiUnavailableError, ChimeraError
from chimera_sync.core.logging import setup_logging
from chimera_sync.services.ai import AiProviderClient

# Initialize logging before any log statements
setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
        - Starts the background database probe (does not block startup;
          store-backed routes answer 503 until it succeeds)
        - Creates the shared AI provider client

    Shutdown:
        - Cancels the probe, closes the AI client, disposes the engine
    """
    logger.info("Starting %s...", settings.PROJECT_NAME)
    logger.info("Log Level: %s", settings.LOG_LEVEL)

    database.start_connection_monitor()

    app.state.ai_client = AiProviderClient()
    if not app.state.ai_client.configured:
        logger.warning("AI_API_KEY not set - /ai/chat will answer 503")
    if not settings.GOOGLE_CLIENT_ID:
        logger.warning("GOOGLE_CLIENT_ID not set - every sign-in will be rejected")

    yield  # Application runs here

    logger.info("Shutting down %s...", settings.PROJECT_NAME)
    await database.stop_connection_monitor()
    await app.state.ai_client.aclose()
    await database.dispose_engine()


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Note sync with plan quotas and an AI chat proxy.",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router, prefix="/auth", tags=["Auth"])
app.include_router(billing_router, prefix="/billing", tags=["Billing"])
app.include_router(notes_router, prefix="/notes", tags=["Notes"])
app.include_router(ai_router, prefix="/ai", tags=["AI"])


# ---------------------------------------------------------------------------
# Error handlers
# ---------------------------------------------------------------------------


@app.exception_handler(ChimeraError)
async def chimera_error_handler(request: Request, exc: ChimeraError) -> JSONResponse:
    if isinstance(exc, AiUnavailableError) and exc.last_error is not None:
        logger.warning("AI unavailable, last upstream error: %s", exc.last_error)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info(
        "Rejected body on %s %s: %d errors",
        request.method,
        request.url.path,
        len(exc.errors()),
    )
    return JSONResponse(status_code=400, content={"error": "Invalid request body"})


@app.exception_handler(OperationalError)
@app.exception_handler(InterfaceError)
@app.exception_handler(OSError)
async def store_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Store failure on %s %s: %s", request.method, request.url.path, exc)
    database.mark_unavailable(exc)
    return JSONResponse(status_code=503, content={"error": "Database unavailable"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.get("/health")
async def health_check():
    """
    Health check for load balancers and orchestrators.

    Always 200; ``db`` reports whether the store has answered the probe
    and ``dbError`` the last connection error, if any.
    """
    return {
        "ok": True,
        "db": database.db_state.connected,
        "dbError": database.db_state.error,
        "timestamp": datetime.now(UTC).isoformat(),
    }
