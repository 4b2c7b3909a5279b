from datetime import datetime, timedelta

from sqlalchemy import delete
from sqlmodel import Session

from ..models import UserSession
from ...services.security import generate_session_token


def create_session(session: Session, user_id: int, expire_days: int = 7) -> UserSession:
    row = UserSession(
        user_id=user_id,
        session_token=generate_session_token(),
        expires_at=datetime.now() + timedelta(days=expire_days),
    )
    session.add(row)
    session.commit()
    session.refresh(row)
    return row


def delete_sessions_for_user(session: Session, user_id: int) -> int:
    result = session.exec(delete(UserSession).where(UserSession.user_id == user_id))
    session.commit()
    return result.rowcount
