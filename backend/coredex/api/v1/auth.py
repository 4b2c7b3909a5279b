"""
auth.py - Account API Endpoints

Registration, login, profile management and the admin user list.
Every successful login or registration returns a bearer credential and
also records an opaque session row.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from ...config import Settings
from ...db.models import User
from ...db.repositories import sessions as session_repo
from ...db.repositories import users as user_repo
from ...db.repositories.settings import get_flag
from ...services.security import Identity, create_access_token, hash_password, verify_password
from ..deps import get_app_settings, get_db, require_admin, require_identity

logger = logging.getLogger(__name__)

router = APIRouter()

VALID_ROLES = ("user", "admin")
MIN_PASSWORD_LENGTH = 6


class RegisterRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None


class PasswordChange(BaseModel):
    currentPassword: Optional[str] = None
    newPassword: Optional[str] = None


class AdminUserUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None
    is_active: Optional[bool] = None


def _issue_credentials(db: Session, user: User, settings: Settings) -> str:
    """Sign a bearer credential and record a session row (failure is only logged)."""
    token = create_access_token(
        user_repo.public_user(user),
        settings.JWT_SECRET,
        settings.JWT_ALGORITHM,
        settings.TOKEN_EXPIRE_DAYS,
    )
    try:
        session_repo.create_session(db, user.id, settings.SESSION_EXPIRE_DAYS)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Session creation error for user {user.id}: {e}")
    return token


def _load_user(db: Session, user_id: int) -> User:
    user = user_repo.get_user(db, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.post("/auth/register")
def register(
    body: RegisterRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    if not body.name or not body.email or not body.password:
        raise HTTPException(status_code=400, detail="All fields required")
    if not get_flag(db, "allow_registration", default=True):
        raise HTTPException(status_code=403, detail="Registration is disabled")

    try:
        user = user_repo.create_user(
            db, body.name, body.email, hash_password(body.password, rounds=settings.BCRYPT_ROUNDS)
        )
    except user_repo.EmailAlreadyExists:
        raise HTTPException(status_code=400, detail="Email already exists")

    logger.info(f"Registered user id={user.id}")
    token = _issue_credentials(db, user, settings)
    return {"success": True, "token": token, "user": user_repo.public_user(user)}


@router.post("/auth/login")
def login(
    body: LoginRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    if not body.email or not body.password:
        raise HTTPException(status_code=400, detail="All fields required")

    user = user_repo.get_user_by_email(db, body.email)
    if user is None or not verify_password(body.password, user.password):
        raise HTTPException(status_code=400, detail="Invalid credentials")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account disabled")

    user_repo.touch_last_login(db, user)
    token = _issue_credentials(db, user, settings)
    return {"success": True, "token": token, "user": user_repo.public_user(user)}


@router.post("/auth/logout")
def logout(identity: Identity = Depends(require_identity), db: Session = Depends(get_db)):
    try:
        session_repo.delete_sessions_for_user(db, identity.user_id)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Session removal error for user {identity.user_id}: {e}")
    return {"success": True, "message": "Logged out successfully"}


@router.get("/auth/verify")
def verify(identity: Identity = Depends(require_identity)):
    return {"success": True, "user": identity.to_dict()}


@router.get("/auth/profile")
def get_profile(identity: Identity = Depends(require_identity), db: Session = Depends(get_db)):
    user = _load_user(db, identity.user_id)
    return {
        "success": True,
        "user": {
            **user_repo.public_user(user),
            "created_at": user.created_at,
            "last_login": user.last_login,
        },
    }


@router.put("/auth/profile")
def update_profile(
    body: ProfileUpdate,
    identity: Identity = Depends(require_identity),
    db: Session = Depends(get_db),
):
    if not body.name or not body.email:
        raise HTTPException(status_code=400, detail="Name and email required")

    user = _load_user(db, identity.user_id)
    try:
        user = user_repo.update_profile(db, user, body.name, body.email)
    except user_repo.EmailAlreadyExists:
        raise HTTPException(status_code=400, detail="Email already taken")

    return {"success": True, "message": "Profile updated", "user": user_repo.public_user(user)}


@router.put("/auth/change-password")
def change_password(
    body: PasswordChange,
    identity: Identity = Depends(require_identity),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    if not body.currentPassword or not body.newPassword:
        raise HTTPException(status_code=400, detail="Both passwords required")
    if len(body.newPassword) < MIN_PASSWORD_LENGTH:
        raise HTTPException(status_code=400, detail="New password must be at least 6 characters")

    user = _load_user(db, identity.user_id)
    if not verify_password(body.currentPassword, user.password):
        raise HTTPException(status_code=400, detail="Current password incorrect")

    user_repo.set_password_hash(db, user, hash_password(body.newPassword, rounds=settings.BCRYPT_ROUNDS))
    return {"success": True, "message": "Password changed successfully"}


# ---------------------------------------------------------------------------
# Admin user management
# ---------------------------------------------------------------------------

@router.get("/auth/admin/users")
def list_users(_admin: Identity = Depends(require_admin), db: Session = Depends(get_db)):
    return {"success": True, "users": user_repo.list_users_with_counts(db)}


@router.put("/auth/admin/users/{user_id}")
def update_user(
    user_id: int,
    body: AdminUserUpdate,
    _admin: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if not body.name or not body.email or not body.role:
        raise HTTPException(status_code=400, detail="Name, email, and role required")
    if body.role not in VALID_ROLES:
        raise HTTPException(status_code=400, detail="Invalid role")

    user = _load_user(db, user_id)
    try:
        user_repo.update_user_by_admin(db, user, body.name, body.email, body.role, body.is_active)
    except user_repo.EmailAlreadyExists:
        raise HTTPException(status_code=400, detail="Email already taken")

    return {"success": True, "message": "User updated successfully"}


@router.delete("/auth/admin/users/{user_id}")
def delete_user(
    user_id: int,
    admin: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if user_id == admin.user_id:
        raise HTTPException(status_code=400, detail="Cannot delete yourself")

    user = _load_user(db, user_id)
    if user.role == "admin":
        raise HTTPException(status_code=403, detail="Cannot delete admin users")

    removed = user_repo.delete_user_cascade(db, user_id)
    logger.info(f"Admin {admin.user_id} deleted user {user_id}: {removed}")
    return {
        "success": True,
        "message": "User and all associated analysis data deleted successfully",
        "deletedAnalyses": removed["analyses"],
    }
