"""
Entry point for the Taskboard API.

Run locally:
    uvicorn taskboard.main:app --reload

Interactive docs available at:
    http://localhost:8000/docs  (Swagger UI)
    http://localhost:8000/redoc (ReDoc)
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from taskboard.apis.admin import router as admin_router
from taskboard.apis.notifications import router as notifications_router
from taskboard.apis.tasks import router as tasks_router
from taskboard.apis.users import router as users_router
from taskboard.config import settings
from taskboard.container import ServiceContainer
from taskboard.exception_handlers import setup_exception_handlers

API_PREFIX = "/api/v1"

# ── Logging ───────────────────────────────────────────────────────────────────
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
)


# ── Lifespan ──────────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    container = ServiceContainer(settings)
    container.initialize()
    app.state.container = container
    try:
        yield
    finally:
        container.shutdown()


# ── FastAPI app ───────────────────────────────────────────────────────────────
app = FastAPI(
    title="Taskboard API",
    description=(
        "Users, tasks and notifications. All endpoints except registration, login "
        "and public profiles require a valid JWT, sent as the `accessToken` cookie "
        "or as an `Authorization: Bearer` header."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

setup_exception_handlers(app)

# ── Routers ───────────────────────────────────────────────────────────────────
app.include_router(users_router, prefix=API_PREFIX)
app.include_router(tasks_router, prefix=API_PREFIX)
app.include_router(notifications_router, prefix=API_PREFIX)
app.include_router(admin_router, prefix=API_PREFIX)


# ── Health check ──────────────────────────────────────────────────────────────
@app.get("/health", tags=["Health"], summary="Health check")
def health() -> dict:
    """Returns 200 OK when the service is running."""
    return {"status": "ok"}
