# app/routers/health.py

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from app.database import get_supabase_admin

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check():
    """Health check endpoint for monitoring."""
    return {
        "status": "healthy",
        "service": "cookie-audit-api",
    }


@router.get("/ready")
async def readiness_check():
    """Readiness check - one cheap query against the database."""
    try:
        get_supabase_admin().table("cookies").select("id").limit(1).execute()
    except Exception as e:
        logger.error(f"Readiness check failed: {e}")
        return JSONResponse(
            {"status": "not_ready", "checks": {"database": "error"}},
            status_code=503,
        )

    return {
        "status": "ready",
        "checks": {
            "database": "ok",
        }
    }
