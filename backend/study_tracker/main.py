"""Study Tracker: FastAPI Application Entry Point."""

import logging
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from study_tracker.config import settings
from study_tracker.middleware.rate_limit import limiter
from study_tracker.routers import (
    auth,
    courses,
    assignments,
    worklogs,
    storage,
    schedule,
    tasks,
    shared_courses,
    ai_tools,
    study_session,
    pomodoro,
)
from study_tracker.database import engine, Base
from study_tracker.services.ai_client import ai_provider_name, ai_health_check

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Create all tables on startup
Base.metadata.create_all(bind=engine)

_cors_origins = [o.strip() for o in settings.ALLOWED_ORIGINS.split(",") if o.strip()]

app = FastAPI(
    title="Study Tracker",
    description="Courses, assignments, worklogs and AI study tools for students.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies are client errors like any other: 400, not 422."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = first.get("msg", "Invalid request")
    return JSONResponse(
        status_code=400,
        content={"detail": f"{field}: {message}" if field else message},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# Routers
app.include_router(auth.router)
app.include_router(courses.router)
app.include_router(assignments.router)
app.include_router(worklogs.router)
app.include_router(storage.router)
app.include_router(schedule.router)
app.include_router(tasks.router)
app.include_router(shared_courses.router)
app.include_router(ai_tools.router)
app.include_router(study_session.router)
app.include_router(pomodoro.router)


@app.on_event("startup")
async def on_startup():
    """Create the storage directory and log the AI provider."""
    Path(settings.STORAGE_DIR).mkdir(parents=True, exist_ok=True)

    provider = ai_provider_name()
    if provider == "none":
        logger.warning(
            "AI not configured. Set OCI_CONFIG_FILE, OCI_CONFIG_PROFILE and "
            "ORACLE_GENAI_COMPARTMENT_ID (or ANTHROPIC_API_KEY) in backend/.env "
            "and restart. Visit /api/health/ai to verify."
        )
    else:
        logger.info("AI provider: %s", provider)


@app.get("/")
def root():
    return {
        "name": "Study Tracker API",
        "version": "1.0.0",
        "docs": "/docs",
        "ai_provider": ai_provider_name(),
    }


@app.get("/health")
def health():
    return {"status": "ok", "ai_provider": ai_provider_name()}


@app.get("/api/health/ai")
async def health_ai():
    """Live connectivity test for the configured AI provider.

    Returns:
        provider: which AI is active
        status:   "ok" | "error" | "unconfigured"
        test_reply / error: result of a tiny test call
    """
    return await ai_health_check()
