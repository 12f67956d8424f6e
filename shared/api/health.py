"""Health check API endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session as DBSession

from config import get_settings
from database import get_db, get_db_manager

router = APIRouter(tags=["health"])


@router.get("/")
def read_root():
    """Health check endpoint."""
    return {
        "status": "ok",
        "service": f"{get_settings().program_name} Mentor Backend",
        "version": "1.0.0"
    }


@router.get("/config/models")
def get_model_config():
    """Models used for each kind of generation."""
    settings = get_settings()
    return {
        "agent": {"provider": "anthropic", "model_id": settings.agent_model},
        "roadmap": {"provider": settings.roadmap_provider, "model_id": settings.roadmap_model},
        "followup": {"provider": settings.followup_provider, "model_id": settings.followup_model},
    }


@router.get("/health/db")
def database_health(db: DBSession = Depends(get_db)):
    """Database health check."""
    try:
        db_manager = get_db_manager()
        is_healthy = db_manager.health_check()

        if is_healthy:
            return {"status": "ok", "database": "connected"}
        else:
            return {"status": "error", "database": "connection_failed"}
    except Exception as e:
        return {"status": "error", "database": f"error: {str(e)}"}
