"""
Health check endpoints
"""
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dreammapper.core.config import get_settings
from dreammapper.core.database import get_db
from dreammapper.core.logging_config import LoggingConfig
from dreammapper.core.ollama_client import OllamaClient, get_ollama_client
from dreammapper.utils.datetime_utils import utc_now

logger = LoggingConfig.get_logger(__name__)
router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """
    Basic health check endpoint

    Returns:
        dict: Health status
    """
    return {
        "status": "healthy",
        "timestamp": utc_now().isoformat(),
        "service": get_settings().app_name,
    }


@router.get("/health/detailed")
async def detailed_health_check(
    db: Session = Depends(get_db),
    client: OllamaClient = Depends(get_ollama_client),
):
    """
    Detailed health check with component status

    The moon service is best-effort and only reported as configured or not.
    """
    settings = get_settings()
    health_status = {
        "status": "healthy",
        "timestamp": utc_now().isoformat(),
        "service": settings.app_name,
        "environment": settings.app_env,
        "components": {},
    }

    try:
        db.execute(text("SELECT 1"))
        health_status["components"]["database"] = {"status": "healthy"}
    except SQLAlchemyError as e:
        health_status["status"] = "unhealthy"
        health_status["components"]["database"] = {
            "status": "unhealthy",
            "message": f"Database connection failed: {e}",
        }

    ollama_ok = await client.health_check()
    health_status["components"]["ollama"] = {
        "status": "healthy" if ollama_ok else "unhealthy",
        "url": client.base_url,
        "model": client.model,
    }
    if not ollama_ok:
        health_status["status"] = "degraded"

    health_status["components"]["moon_api"] = {
        "status": "configured" if settings.moon_credentials_configured else "not_configured",
    }
    return health_status
