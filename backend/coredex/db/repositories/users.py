import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import delete, func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ..models import AnalysisHistory, ChatHistory, User, UserSession

logger = logging.getLogger(__name__)


class EmailAlreadyExists(Exception):
    """Raised when an email is already registered to another user."""


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def public_user(user: User) -> Dict:
    return {"id": user.id, "name": user.name, "email": user.email, "role": user.role}


def get_user(session: Session, user_id: int) -> Optional[User]:
    return session.get(User, user_id)


def get_user_by_email(session: Session, email: str) -> Optional[User]:
    return session.exec(select(User).where(User.email == normalize_email(email))).first()


def email_taken_by_other(session: Session, email: str, user_id: int) -> bool:
    row = session.exec(
        select(User.id).where(User.email == normalize_email(email), User.id != user_id)
    ).first()
    return row is not None


def create_user(session: Session, name: str, email: str, password_hash: str, role: str = "user") -> User:
    email = normalize_email(email)
    if get_user_by_email(session, email) is not None:
        raise EmailAlreadyExists(email)

    user = User(name=name.strip(), email=email, password=password_hash, role=role)
    session.add(user)
    try:
        session.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration of the same email
        session.rollback()
        raise EmailAlreadyExists(email)
    session.refresh(user)
    return user


def touch_last_login(session: Session, user: User) -> None:
    user.last_login = datetime.now()
    session.add(user)
    session.commit()
    session.refresh(user)


def update_profile(session: Session, user: User, name: str, email: str) -> User:
    if email_taken_by_other(session, email, user.id):
        raise EmailAlreadyExists(email)
    user.name = name.strip()
    user.email = normalize_email(email)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def update_user_by_admin(
    session: Session,
    user: User,
    name: str,
    email: str,
    role: str,
    is_active: Optional[bool] = None,
) -> User:
    user.role = role
    if is_active is not None:
        user.is_active = is_active
    return update_profile(session, user, name, email)


def set_password_hash(session: Session, user: User, password_hash: str) -> None:
    user.password = password_hash
    session.add(user)
    session.commit()


def list_users_with_counts(session: Session) -> List[Dict]:
    """Every user with the number of analyses they own, newest account first."""
    statement = (
        select(
            User.id,
            User.name,
            User.email,
            User.role,
            User.created_at,
            User.last_login,
            User.is_active,
            func.count(AnalysisHistory.id).label("analysis_count"),
        )
        .join(AnalysisHistory, AnalysisHistory.user_id == User.id, isouter=True)
        .group_by(User.id)
        .order_by(User.created_at.desc(), User.id.desc())
    )
    rows = session.exec(statement).all()
    return [
        {
            "id": row.id,
            "name": row.name,
            "email": row.email,
            "role": row.role,
            "created_at": row.created_at,
            "last_login": row.last_login,
            "is_active": row.is_active,
            "analysis_count": row.analysis_count,
        }
        for row in rows
    ]


def delete_user_cascade(session: Session, user_id: int) -> Dict[str, int]:
    """
    Delete a user and everything they own in a single transaction.

    Children go first so the user row is never removed while its history
    still references it. Any failure rolls the whole operation back.

    Returns:
        Dict with the number of analyses, chats and sessions removed
    """
    try:
        analyses = session.exec(delete(AnalysisHistory).where(AnalysisHistory.user_id == user_id))
        chats = session.exec(delete(ChatHistory).where(ChatHistory.user_id == user_id))
        sessions = session.exec(delete(UserSession).where(UserSession.user_id == user_id))
        session.exec(delete(User).where(User.id == user_id))
        session.commit()
    except Exception:
        session.rollback()
        logger.exception(f"Cascading delete failed for user {user_id}, rolled back")
        raise

    return {
        "analyses": analyses.rowcount,
        "chats": chats.rowcount,
        "sessions": sessions.rowcount,
    }
