"""
news.py - News API Endpoints

This module provides the analysis and chat endpoints.
It handles:
1. Credibility analysis of submitted news text
2. The analysis history (owner scoped, or global for anonymous callers)
3. The news assistant chat and its transcripts
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from ...agents.chat_agent import ChatAgent, EmptyMessageError
from ...agents.content_analyzer import ContentAnalyzer, EmptyContentError
from ...db.repositories import history
from ...db.repositories.settings import get_setting
from ...services.security import Identity
from ..deps import get_analyzer, get_chat_agent, get_db, get_optional_identity, require_identity

logger = logging.getLogger(__name__)

router = APIRouter()


class AnalyzeRequest(BaseModel):
    """Request model for the analyze endpoint."""
    content: Optional[str] = None


class ChatRequest(BaseModel):
    """Request model for the chat endpoint."""
    message: Optional[str] = None
    session_id: Optional[str] = None


def _owner_id(identity: Optional[Identity]) -> Optional[int]:
    return identity.user_id if identity else None


def _max_analysis_length(db: Session) -> Optional[int]:
    value = get_setting(db, "max_analysis_length")
    try:
        return int(value) if value else None
    except ValueError:
        logger.warning(f"Ignoring non-numeric max_analysis_length setting: {value!r}")
        return None


@router.post("/news/analyze")
def analyze_news(
    request: AnalyzeRequest,
    identity: Optional[Identity] = Depends(get_optional_identity),
    db: Session = Depends(get_db),
    analyzer: ContentAnalyzer = Depends(get_analyzer),
):
    """
    Analyze news content for credibility.

    Remote scorer failures are answered with the fallback record, so this
    endpoint only errors on bad input or an unexpected server fault.

    Returns:
        {success, source: "groq" | "fallback", analysis}
    """
    content = (request.content or "").strip()
    if not content:
        raise HTTPException(status_code=400, detail="Content required")

    max_length = _max_analysis_length(db)
    if max_length and len(content) > max_length:
        raise HTTPException(status_code=400, detail="Content too long")

    try:
        result = analyzer.analyze(db, content, _owner_id(identity))
    except EmptyContentError:
        raise HTTPException(status_code=400, detail="Content required")
    except Exception:
        logger.exception("Unexpected /news/analyze error")
        db.rollback()
        fallback = {
            "verdict": "uncertain",
            "score": 50,
            "confidence": "Medium",
            "summary": "Server error fallback",
            "reasons": [],
        }
        try:
            history.save_analysis(db, None, content, fallback)
        except SQLAlchemyError as e:
            logger.error(f"Could not record server error fallback: {e}")
        raise HTTPException(status_code=500, detail="Server error")

    return {"success": True, "source": result.source, "analysis": result.analysis}


@router.get("/news/history")
def get_history(
    limit: Optional[str] = Query(None, description="Maximum rows to return (clamped to 1-1000)"),
    identity: Optional[Identity] = Depends(get_optional_identity),
    db: Session = Depends(get_db),
):
    """Recent analyses: the caller's own when signed in, otherwise everyone's."""
    default = history.DEFAULT_OWNER_LIMIT if identity else history.DEFAULT_GLOBAL_LIMIT
    rows = history.list_analyses(db, _owner_id(identity), history.clamp_limit(limit, default))
    return {"success": True, "history": [history.analysis_to_dict(row) for row in rows]}


@router.get("/news/history/{analysis_id}")
def get_history_item(analysis_id: int, db: Session = Depends(get_db)):
    row = history.get_analysis(db, analysis_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Not found")
    return {"success": True, "item": history.analysis_to_dict(row)}


@router.delete("/news/history/{analysis_id}")
def delete_history_item(
    analysis_id: int,
    identity: Identity = Depends(require_identity),
    db: Session = Depends(get_db),
):
    if not history.delete_analysis(db, analysis_id, identity):
        raise HTTPException(status_code=404, detail="Not found or not permitted")
    return {"success": True}


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------

@router.post("/news/chat")
def chat(
    request: ChatRequest,
    identity: Optional[Identity] = Depends(get_optional_identity),
    db: Session = Depends(get_db),
    agent: ChatAgent = Depends(get_chat_agent),
):
    try:
        reply = agent.reply(db, request.message, _owner_id(identity), request.session_id)
    except EmptyMessageError:
        raise HTTPException(status_code=400, detail="Message required")

    if not reply.ok:
        return {"success": False, "error": reply.error, "response": reply.response}
    return {"success": True, "response": reply.response, "source": "groq"}


@router.get("/news/chat/history")
def get_chat_history(
    identity: Optional[Identity] = Depends(get_optional_identity),
    db: Session = Depends(get_db),
):
    """Signed-in callers get their conversations; anonymous callers the latest turns."""
    if identity:
        return {"success": True, "history": history.group_chat_sessions(db, identity.user_id)}
    return {"success": True, "history": history.list_recent_chat_turns(db)}


@router.get("/news/chat/history/{session_id}")
def get_chat_session(
    session_id: str,
    identity: Identity = Depends(require_identity),
    db: Session = Depends(get_db),
):
    return {"success": True, "messages": history.get_chat_transcript(db, identity.user_id, session_id)}


@router.delete("/news/chat/history/{session_id}")
def delete_chat_session(
    session_id: str,
    identity: Identity = Depends(require_identity),
    db: Session = Depends(get_db),
):
    deleted = history.delete_chat_session(db, identity.user_id, session_id)
    return {"success": True, "deleted": deleted}


@router.delete("/news/chat/history")
def clear_chat_history(identity: Identity = Depends(require_identity), db: Session = Depends(get_db)):
    deleted = history.delete_all_chats(db, identity.user_id)
    return {"success": True, "deleted": deleted}
