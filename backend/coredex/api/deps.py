"""
deps.py - Shared FastAPI dependencies

Database sessions, settings and the caller's identity all come from the
application instance (app.state), so every app built by create_app has
its own storage handle.
"""
from typing import Iterator, Optional

from fastapi import Depends, Header, HTTPException, Query, Request
from sqlmodel import Session

from ..agents.chat_agent import ChatAgent
from ..agents.content_analyzer import ContentAnalyzer
from ..config import Settings
from ..services.broadcaster import StatsBroadcaster
from ..services.security import Identity, decode_access_token, extract_token


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_db(request: Request) -> Iterator[Session]:
    with Session(request.app.state.engine) as session:
        yield session


def get_analyzer(request: Request) -> ContentAnalyzer:
    return request.app.state.analyzer


def get_chat_agent(request: Request) -> ChatAgent:
    return request.app.state.chat_agent


def get_broadcaster(request: Request) -> StatsBroadcaster:
    return request.app.state.broadcaster


def identity_from_request(request: Request) -> Optional[Identity]:
    """Decode the bearer credential of a raw request, None when absent or invalid."""
    settings: Settings = request.app.state.settings
    token = extract_token(request.headers.get("authorization"), request.query_params.get("token"))
    if not token:
        return None
    return decode_access_token(token, settings.JWT_SECRET, settings.JWT_ALGORITHM)


def get_optional_identity(
    authorization: Optional[str] = Header(None),
    token: Optional[str] = Query(None),
    settings: Settings = Depends(get_app_settings),
) -> Optional[Identity]:
    """The caller's identity, or None for anonymous callers and bad credentials."""
    raw = extract_token(authorization, token)
    if not raw:
        return None
    return decode_access_token(raw, settings.JWT_SECRET, settings.JWT_ALGORITHM)


def require_identity(
    authorization: Optional[str] = Header(None),
    token: Optional[str] = Query(None),
    settings: Settings = Depends(get_app_settings),
) -> Identity:
    raw = extract_token(authorization, token)
    if not raw:
        raise HTTPException(status_code=401, detail="Missing token")
    identity = decode_access_token(raw, settings.JWT_SECRET, settings.JWT_ALGORITHM)
    if identity is None:
        raise HTTPException(status_code=401, detail="Invalid token")
    return identity


def require_admin(identity: Identity = Depends(require_identity)) -> Identity:
    if not identity.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return identity
