"""
history.py - History Ledger

Append-only log of analyses and chat turns, scoped per user. Rows are
written once per request and only ever removed, never edited.
"""
import json
import logging
import re
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import delete
from sqlmodel import Session, select

from ..models import AnalysisHistory, ChatHistory
from ...services.security import Identity

logger = logging.getLogger(__name__)

MIN_LIMIT = 1
MAX_LIMIT = 1000
DEFAULT_OWNER_LIMIT = 500
DEFAULT_GLOBAL_LIMIT = 200
RECENT_CHAT_LIMIT = 50

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def clamp_limit(limit: Union[int, str, None], default: int) -> int:
    """
    Clamp a caller-supplied row limit into [1, 1000].

    Query strings are read up to their leading integer ("25rows" is 25);
    a missing or non-numeric limit means the default.
    """
    if isinstance(limit, str):
        match = _LEADING_INT.match(limit)
        limit = int(match.group(1)) if match else None
    if limit is None:
        limit = default
    return min(max(int(limit), MIN_LIMIT), MAX_LIMIT)


def analysis_to_dict(row: AnalysisHistory) -> Dict[str, Any]:
    return {
        "id": row.id,
        "user_id": row.user_id,
        "content": row.content,
        "analysis_data": row.analysis_data,
        "credibility_score": row.credibility_score,
        "result": row.result,
        "created_at": row.created_at,
    }


# ---------------------------------------------------------------------------
# Analyses
# ---------------------------------------------------------------------------

def save_analysis(
    session: Session,
    owner_id: Optional[int],
    content: str,
    record: Dict[str, Any],
) -> Optional[AnalysisHistory]:
    """
    Persist one analysis for its owner.

    Anonymous analyses (no owner) are computed but never stored.

    Args:
        session: Open database session
        owner_id: Id of the owning user, or None
        content: The analysed text
        record: Normalized verdict record (may carry _raw_model)

    Returns:
        The stored row, or None when nothing was stored
    """
    if not owner_id:
        logger.info("Skipping analysis save - user not authenticated")
        return None

    score = record.get("score") or 0
    try:
        score = int(score)
    except (TypeError, ValueError):
        score = 0

    row = AnalysisHistory(
        user_id=owner_id,
        content=content,
        analysis_data=json.dumps(record, ensure_ascii=False, default=str),
        credibility_score=score,
        result=str(record.get("verdict") or record.get("result") or "uncertain"),
    )
    session.add(row)
    session.commit()
    session.refresh(row)
    logger.info(f"Analysis saved id={row.id} for user={owner_id}")
    return row


def list_analyses(session: Session, owner_id: Optional[int], limit: int) -> List[AnalysisHistory]:
    """Newest first; every user's rows when owner_id is None."""
    statement = select(AnalysisHistory)
    if owner_id is not None:
        statement = statement.where(AnalysisHistory.user_id == owner_id)
    statement = statement.order_by(AnalysisHistory.created_at.desc(), AnalysisHistory.id.desc()).limit(limit)
    return list(session.exec(statement).all())


def get_analysis(session: Session, analysis_id: int) -> Optional[AnalysisHistory]:
    return session.get(AnalysisHistory, analysis_id)


def delete_analysis(session: Session, analysis_id: int, identity: Identity) -> bool:
    """Delete one row if the caller owns it or is an administrator."""
    statement = delete(AnalysisHistory).where(AnalysisHistory.id == analysis_id)
    if not identity.is_admin:
        statement = statement.where(AnalysisHistory.user_id == identity.user_id)
    result = session.exec(statement)
    session.commit()
    return result.rowcount > 0


def delete_analyses_older_than(session: Session, days: int = 30) -> int:
    cutoff = datetime.now() - timedelta(days=days)
    result = session.exec(delete(AnalysisHistory).where(AnalysisHistory.created_at < cutoff))
    session.commit()
    logger.info(f"Removed {result.rowcount} analyses older than {days} days")
    return result.rowcount


# ---------------------------------------------------------------------------
# Chat turns
# ---------------------------------------------------------------------------

def save_chat_turn(
    session: Session,
    owner_id: Optional[int],
    session_id: Optional[str],
    message: str,
    reply: str,
) -> ChatHistory:
    row = ChatHistory(user_id=owner_id, session_id=session_id, user_message=message, ai_response=reply)
    session.add(row)
    session.commit()
    session.refresh(row)
    logger.info(f"Chat saved id={row.id} session={session_id}")
    return row


def list_recent_chat_turns(session: Session, limit: int = RECENT_CHAT_LIMIT) -> List[Dict[str, Any]]:
    statement = (
        select(ChatHistory)
        .order_by(ChatHistory.created_at.desc(), ChatHistory.id.desc())
        .limit(limit)
    )
    return [
        {
            "id": row.id,
            "user_message": row.user_message,
            "ai_response": row.ai_response,
            "created_at": row.created_at,
        }
        for row in session.exec(statement).all()
    ]


def _turn_messages(row: ChatHistory) -> List[Dict[str, Any]]:
    return [
        {"sender": "user", "message": row.user_message, "timestamp": row.created_at},
        {"sender": "bot", "message": row.ai_response, "timestamp": row.created_at},
    ]


def get_chat_transcript(session: Session, owner_id: int, session_id: str) -> List[Dict[str, Any]]:
    """One conversation as a flat user/bot message list, oldest first."""
    statement = (
        select(ChatHistory)
        .where(ChatHistory.user_id == owner_id, ChatHistory.session_id == session_id)
        .order_by(ChatHistory.created_at.asc(), ChatHistory.id.asc())
    )
    messages = []
    for row in session.exec(statement).all():
        messages.extend(_turn_messages(row))
    return messages


def group_chat_sessions(session: Session, owner_id: int) -> List[Dict[str, Any]]:
    """
    Group a user's chat turns by conversation key.

    Conversations are ordered by their most recent turn, newest first.
    Inside a conversation the turns keep the newest-first order they
    were read in.
    """
    statement = (
        select(ChatHistory)
        .where(ChatHistory.user_id == owner_id)
        .order_by(ChatHistory.created_at.desc(), ChatHistory.id.desc())
    )

    sessions: Dict[Optional[str], Dict[str, Any]] = {}
    for row in session.exec(statement).all():
        group = sessions.get(row.session_id)
        if group is None:
            group = {"session_id": row.session_id, "messages": [], "created_at": row.created_at}
            sessions[row.session_id] = group
        group["messages"].extend(_turn_messages(row))

    # dicts keep insertion order, and rows arrived newest first
    return list(sessions.values())


def delete_chat_session(session: Session, owner_id: int, session_id: str) -> int:
    result = session.exec(
        delete(ChatHistory).where(ChatHistory.user_id == owner_id, ChatHistory.session_id == session_id)
    )
    session.commit()
    return result.rowcount


def delete_all_chats(session: Session, owner_id: int) -> int:
    result = session.exec(delete(ChatHistory).where(ChatHistory.user_id == owner_id))
    session.commit()
    return result.rowcount
