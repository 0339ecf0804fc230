"""Health, readiness, and version endpoints."""

from fastapi import APIRouter, Depends

from lifequest.config import get_settings
from lifequest.container import Container
from lifequest.dependencies import get_container

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe: 200 while the process is alive."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(container: Container = Depends(get_container)) -> dict[str, object]:  # noqa: B008
    """Readiness probe: checks the datastore and, when configured, Redis."""
    checks: dict[str, object] = {}

    try:
        checks["datastore"] = "ok" if await container.store.ping() else "error: ping failed"
    except Exception as exc:
        checks["datastore"] = f"error: {exc}"

    if container.redis is not None:
        try:
            await container.redis.ping()
            checks["redis"] = "ok"
        except Exception as exc:
            checks["redis"] = f"error: {exc}"

    checks["generation"] = "live" if container.generator.live else "templates"

    all_ok = all(v in ("ok", "live", "templates") for v in checks.values())
    return {"status": "ready" if all_ok else "degraded", "checks": checks}


@router.get("/version")
async def version() -> dict[str, str]:
    settings = get_settings()
    return {
        "version": settings.app_version,
        "environment": settings.environment,
    }
