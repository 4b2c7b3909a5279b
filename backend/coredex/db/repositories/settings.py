from datetime import datetime
from typing import List, Optional

from sqlmodel import Session, select

from ..models import SystemSetting

DEFAULT_SETTINGS = [
    ("system_name", "COREDEX AI News Analyzer", "Name of the application"),
    ("max_analysis_length", "10000", "Maximum character length for analysis"),
    ("analysis_timeout", "30000", "Timeout for analysis requests in milliseconds"),
    ("allow_registration", "true", "Whether new user registration is allowed"),
    ("maintenance_mode", "false", "System maintenance mode"),
    ("version", "2.0.0", "System version"),
]


def seed_default_settings(session: Session) -> int:
    """Insert every default setting that is not present yet. Returns the number inserted."""
    existing = set(session.exec(select(SystemSetting.setting_key)).all())
    inserted = 0
    for key, value, description in DEFAULT_SETTINGS:
        if key in existing:
            continue
        session.add(SystemSetting(setting_key=key, setting_value=value, description=description))
        inserted += 1
    if inserted:
        session.commit()
    return inserted


def get_setting(session: Session, key: str, default: Optional[str] = None) -> Optional[str]:
    row = session.exec(select(SystemSetting).where(SystemSetting.setting_key == key)).first()
    if row is None or row.setting_value is None:
        return default
    return row.setting_value


def get_flag(session: Session, key: str, default: bool = False) -> bool:
    value = get_setting(session, key)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def list_settings(session: Session) -> List[SystemSetting]:
    return list(session.exec(select(SystemSetting).order_by(SystemSetting.setting_key)).all())


def update_setting(session: Session, key: str, value: str) -> bool:
    """Update an existing key. Returns False when the key is unknown."""
    row = session.exec(select(SystemSetting).where(SystemSetting.setting_key == key)).first()
    if row is None:
        return False
    row.setting_value = value
    row.updated_at = datetime.now()
    session.add(row)
    session.commit()
    return True
