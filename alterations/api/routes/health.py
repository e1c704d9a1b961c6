from fastapi import APIRouter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from alterations.api.deps import SessionDep, SettingsDep
from alterations.core.observability import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.get("/health", summary="Liveness and database check")
def health(session: SessionDep, config: SettingsDep) -> dict[str, str]:
    try:
        session.execute(text("SELECT 1"))
        database = "healthy"
    except SQLAlchemyError as e:
        logger.error("Database health check failed", error=str(e))
        database = "unhealthy"
    return {
        "status": "ok" if database == "healthy" else "degraded",
        "database": database,
        "environment": config.ENVIRONMENT,
    }
