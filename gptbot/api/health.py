"""Health check endpoints."""
from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check() -> dict:
    """Basic health check."""
    return {"status": "ok"}


@router.get("/health/detailed")
async def detailed_health_check(request: Request) -> dict:
    """Health check including the configured storage backend and queue depth."""
    settings = request.app.state.settings
    queue = request.app.state.updates

    return {
        "status": "ok",
        "storage": "datastore" if settings.USE_GCP else "redis",
        "pending_updates": queue.qsize(),
    }
