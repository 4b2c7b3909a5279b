"""
admin.py - Admin API Endpoints

Dashboard analytics, system settings and database housekeeping.
Every route here requires an administrator credential.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel
from sqlmodel import Session

from ...db.repositories import history
from ...db.repositories import settings as settings_repo
from ...db.repositories.maintenance import database_stats, optimize_database
from ...services.security import Identity
from ...services.stats import analytics_snapshot
from ..deps import get_db, require_admin

logger = logging.getLogger(__name__)

router = APIRouter()


class SettingUpdate(BaseModel):
    value: str


@router.get("/news/admin/analytics")
def get_analytics(_admin: Identity = Depends(require_admin), db: Session = Depends(get_db)):
    """Aggregate snapshot for the admin dashboard."""
    return analytics_snapshot(db)


@router.get("/admin/settings")
def list_system_settings(_admin: Identity = Depends(require_admin), db: Session = Depends(get_db)):
    rows = settings_repo.list_settings(db)
    return {
        "success": True,
        "settings": [
            {
                "key": row.setting_key,
                "value": row.setting_value,
                "description": row.description,
                "updated_at": row.updated_at,
            }
            for row in rows
        ],
    }


@router.put("/admin/settings/{key}")
def update_system_setting(
    key: str,
    body: SettingUpdate,
    admin: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if not settings_repo.update_setting(db, key, body.value):
        raise HTTPException(status_code=404, detail="Setting not found")
    logger.info(f"Setting {key} changed by user_id={admin.user_id}")
    return {"success": True, "key": key, "value": body.value}


@router.get("/admin/db-stats")
def get_database_stats(_admin: Identity = Depends(require_admin), db: Session = Depends(get_db)):
    return {"success": True, "stats": database_stats(db)}


@router.delete("/admin/history/cleanup")
def cleanup_history(
    days: int = Query(30, ge=1, description="Delete analyses older than this many days"),
    _admin: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    deleted = history.delete_analyses_older_than(db, days)
    return {"success": True, "deleted": deleted}


@router.post("/admin/maintenance/optimize")
def optimize(request: Request, _admin: Identity = Depends(require_admin)):
    optimized = optimize_database(request.app.state.engine)
    return {"success": True, "optimized": optimized}
