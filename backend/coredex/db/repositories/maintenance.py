"""
Whole-database housekeeping used by the admin panel.
"""
from typing import Dict

from sqlalchemy import func, text
from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from ..models import AnalysisHistory, ApiLog, ChatHistory, SystemSetting, User, UserSession

_COUNTED_TABLES = {
    "users": User,
    "analysis": AnalysisHistory,
    "settings": SystemSetting,
    "logs": ApiLog,
    "sessions": UserSession,
    "chats": ChatHistory,
}


def database_stats(session: Session) -> Dict[str, int]:
    return {
        name: session.exec(select(func.count()).select_from(model)).one()
        for name, model in _COUNTED_TABLES.items()
    }


def optimize_database(engine: Engine) -> bool:
    """Run VACUUM on SQLite. Returns False for other backends, where it is skipped."""
    if engine.dialect.name != "sqlite":
        return False
    # VACUUM cannot run inside a transaction
    with engine.connect().execution_options(isolation_level="AUTOCOMMIT") as conn:
        conn.execute(text("VACUUM"))
    return True
