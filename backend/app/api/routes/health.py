"""Health check endpoints.

- /health: liveness, always 200
- /healthz: storage connectivity, 503 when degraded
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from backend.app.config import Settings, get_settings
from backend.app.db.engine import get_storage
from backend.app.db.repositories import Storage

router = APIRouter()


async def check_storage(storage: Storage) -> tuple[bool, str]:
    """Check storage connectivity.

    Returns:
        (is_ok, status_message)
    """
    try:
        storage.ping()
        return (True, "ok")
    except Exception as e:
        return (False, f"error: {type(e).__name__}")


async def check_ai(settings: Settings) -> tuple[bool, str]:
    """Report whether a real AI provider is configured (informational only)."""
    if settings.ai_integrations_openai_api_key:
        return (True, "configured")
    return (True, "stub")


@router.get("/health")
async def health() -> dict[str, str]:
    """Simple health check for Docker/k8s.

    Returns:
        200 OK always (application is running)
    """
    return {"status": "ok"}


@router.get("/healthz", response_model=None)
async def healthz(
    storage: Annotated[Storage, Depends(get_storage)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> dict[str, Any] | JSONResponse:
    """Health check endpoint.

    Returns:
        200 with component status if storage is reachable
        503 otherwise
    """
    storage_ok, storage_status = await check_storage(storage)
    _, ai_status = await check_ai(settings)

    response_body = {
        "status": "ok" if storage_ok else "degraded",
        "components": {
            "storage": f"{storage.backend}: {storage_status}",
            "ai": ai_status,
        },
    }

    if not storage_ok:
        return JSONResponse(content=response_body, status_code=503)

    return response_body
