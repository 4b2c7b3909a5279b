"""
Database models definition using SQLModel.
"""
from typing import Optional
from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel
from datetime import datetime

# Timestamps are server-local wall-clock times, stored without an offset
NaiveDateTime = DateTime(timezone=False)


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    email: str = Field(unique=True, index=True)  # always stored lowercase
    password: str  # bcrypt hash
    role: str = Field(default="user")  # user | admin
    created_at: datetime = Field(default_factory=datetime.now, sa_type=NaiveDateTime)
    last_login: Optional[datetime] = Field(default=None, sa_type=NaiveDateTime)
    is_active: bool = Field(default=True)


class UserSession(SQLModel, table=True):
    __tablename__ = "user_sessions"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    session_token: str = Field(unique=True)
    created_at: datetime = Field(default_factory=datetime.now, sa_type=NaiveDateTime)
    expires_at: Optional[datetime] = Field(default=None, sa_type=NaiveDateTime)


class AnalysisHistory(SQLModel, table=True):
    __tablename__ = "analysis_history"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: Optional[int] = Field(default=None, index=True)
    content: str
    content_type: str = Field(default="text")
    analysis_data: Optional[str] = None  # JSON encoded verdict record
    credibility_score: int = Field(default=0)
    result: str = Field(default="uncertain")
    created_at: datetime = Field(default_factory=datetime.now, index=True, sa_type=NaiveDateTime)


class ChatHistory(SQLModel, table=True):
    __tablename__ = "chat_history"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: Optional[int] = Field(default=None, index=True)
    session_id: Optional[str] = Field(default=None, index=True)
    user_message: str
    ai_response: str
    created_at: datetime = Field(default_factory=datetime.now, sa_type=NaiveDateTime)


class SystemSetting(SQLModel, table=True):
    __tablename__ = "system_settings"

    id: Optional[int] = Field(default=None, primary_key=True)
    setting_key: str = Field(unique=True)
    setting_value: Optional[str] = None
    description: Optional[str] = None
    updated_at: datetime = Field(default_factory=datetime.now, sa_type=NaiveDateTime)


class ApiLog(SQLModel, table=True):
    __tablename__ = "api_logs"

    id: Optional[int] = Field(default=None, primary_key=True)
    endpoint: str
    method: str
    user_id: Optional[int] = None
    status_code: Optional[int] = None
    response_time: Optional[int] = None  # milliseconds
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now, sa_type=NaiveDateTime)
