"""
engine.py - Storage engine setup

Creates the SQLModel engine for one application instance, creates the
tables and seeds the default administrator and system settings.
"""
import logging
import os

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine, select

from ..config import Settings
from ..services.security import hash_password
from . import models  # noqa: F401  (registers the tables on SQLModel.metadata)
from .models import User
from .repositories.settings import seed_default_settings

logger = logging.getLogger(__name__)


def build_engine(database_url: str) -> Engine:
    """Create an engine; SQLite connections get the same pragmas on every connect."""
    if not database_url.startswith("sqlite"):
        return create_engine(database_url, pool_pre_ping=True)

    path = database_url.split("///", 1)[-1]
    if path and path != ":memory:":
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

    engine = create_engine(database_url, connect_args={"check_same_thread": False})

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragmas(dbapi_connection, _record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA busy_timeout=5000")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


def init_db(engine: Engine, settings: Settings) -> None:
    """Create all tables, then seed the default admin and settings if absent."""
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        _create_default_admin(session, settings)
        inserted = seed_default_settings(session)
        if inserted:
            logger.info(f"Inserted {inserted} default system settings")
    logger.info("Database ready")


def _create_default_admin(session: Session, settings: Settings) -> None:
    email = settings.DEFAULT_ADMIN_EMAIL.strip().lower()
    existing = session.exec(select(User).where(User.email == email)).first()
    if existing:
        return

    admin = User(
        name=settings.DEFAULT_ADMIN_NAME,
        email=email,
        password=hash_password(settings.DEFAULT_ADMIN_PASSWORD, rounds=settings.BCRYPT_ROUNDS),
        role="admin",
    )
    session.add(admin)
    session.commit()
    logger.info(f"Default admin user created: {email}")
    logger.warning("Please change the default admin password immediately")
