import logging
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from buildersapi.database.session import get_db
from buildersapi.schemas.health import HealthCheckResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(db: Session = Depends(get_db)) -> HealthCheckResponse:
    """Health check endpoint."""
    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Health check database ping failed: {str(e)}")
        return HealthCheckResponse(
            status="degraded",
            database="unavailable",
            system_operational=False,
            error=str(e),
        )

    return HealthCheckResponse(database="ok")
