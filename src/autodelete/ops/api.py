"""
Operational HTTP API (health and read-only inspection).
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from autodelete import __version__
from autodelete.deletions.scheduler import DeletionScheduler
from autodelete.policies.repository import PolicyStore
from autodelete.shared.database import DatabaseManager
from autodelete.shared.exceptions import StorageError
from autodelete.shared.logging import get_logger

logger = get_logger(__name__)


class PolicyResponse(BaseModel):
    channel_id: str
    server_id: str
    enabled: bool
    delay_minutes: int


class SchedulerResponse(BaseModel):
    running: bool
    pending: int
    inflight: int
    next_fire_at: datetime | None
    scheduled: int
    deleted: int
    failed: int
    cancelled: int
    journal_failures: int


router = APIRouter()


@router.get("/health")
async def health_check(request: Request) -> JSONResponse:
    db: DatabaseManager = request.app.state.db
    try:
        await db.ping()
    except Exception as exc:
        logger.warning("Health check failed", extra={"error": str(exc)})
        return JSONResponse(status_code=503, content={"status": "unhealthy"})
    return JSONResponse(status_code=200, content={"status": "healthy"})


@router.get("/policies/{channel_id}", response_model=PolicyResponse)
async def get_policy(channel_id: str, request: Request) -> PolicyResponse:
    store: PolicyStore = request.app.state.store
    policy = await store.get(channel_id)
    if policy is None:
        raise HTTPException(status_code=404, detail=f"No policy for channel {channel_id}")
    return PolicyResponse(
        channel_id=policy.channel_id,
        server_id=policy.server_id,
        enabled=policy.enabled,
        delay_minutes=policy.delay_minutes,
    )


@router.get("/scheduler", response_model=SchedulerResponse)
async def get_scheduler(request: Request) -> SchedulerResponse:
    scheduler: DeletionScheduler = request.app.state.scheduler
    return SchedulerResponse(
        running=scheduler.running,
        pending=scheduler.pending_count,
        inflight=scheduler.inflight_count,
        next_fire_at=scheduler.next_fire_at,
        **scheduler.stats.as_dict(),
    )


def create_app(
    db: DatabaseManager,
    store: PolicyStore,
    scheduler: DeletionScheduler,
    debug: bool = False,
) -> FastAPI:
    """Create the ops FastAPI application bound to the running bot's components."""
    app = FastAPI(
        title="autodelete-bot ops API",
        version=__version__,
        docs_url="/docs" if debug else None,
        redoc_url=None,
    )
    app.state.db = db
    app.state.store = store
    app.state.scheduler = scheduler

    @app.exception_handler(StorageError)
    async def _storage(_: Request, exc: StorageError) -> JSONResponse:
        return JSONResponse(status_code=503, content={"detail": exc.message, "code": exc.code})

    app.include_router(router)
    return app
