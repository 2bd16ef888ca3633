from time import perf_counter

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tezeus.config import Settings, get_settings
from tezeus.dependencies import get_db_session
from tezeus.shared.logging import get_logger

router = APIRouter(tags=["Health"])
logger = get_logger(__name__)


@router.get("/health")
async def health(settings: Settings = Depends(get_settings)):
    """Liveness plus build identity, so a deploy can be checked from the outside."""
    return {
        "status": "ok",
        "service": settings.PROJECT_NAME,
        "version": settings.PROJECT_VERSION,
        "environment": settings.ENVIRONMENT,
    }


@router.get("/_health/db", status_code=status.HTTP_200_OK)
async def health_db(
    db: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_settings),
):
    t0 = perf_counter()
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error("Database health check failed", error=type(e).__name__)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"ok": False, "service": settings.PROJECT_NAME, "checks": {"db": "unreachable"}, "error": type(e).__name__},
        )
    return {"ok": True, "service": settings.PROJECT_NAME, "checks": {"db_select_1_ms": int((perf_counter() - t0) * 1000)}}
