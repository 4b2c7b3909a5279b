"""
Health check endpoint with storage and remote scorer status.
"""
import logging
from datetime import datetime

from fastapi import APIRouter, Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
def health_check(request: Request):
    """
    Health check endpoint.
    Returns status of the database, the remote scorer and the stats stream.
    """
    state = request.app.state

    database_status = "connected"
    try:
        with state.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Health check database error: {e}")
        database_status = "error"

    return {
        "status": "ok" if database_status == "connected" else "degraded",
        "timestamp": datetime.now().isoformat(),
        "database": database_status,
        "services": {
            "groq_configured": state.analyzer.client.is_configured,
            "groq_model": state.settings.GROQ_MODEL,
            "stats_channels": state.broadcaster.open_channels,
        },
    }
