"""
security.py - Password hashing and bearer credentials

Passwords are hashed with bcrypt. Bearer credentials are HS256 JWTs that
carry the caller's identity and role; they are verified on every request
without touching the session table.
"""
import secrets
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import bcrypt
from jose import JWTError, jwt

# bcrypt only looks at the first 72 bytes of a password
_BCRYPT_MAX_BYTES = 72


@dataclass(frozen=True)
class Identity:
    """The authenticated caller, as asserted by a verified bearer credential."""
    user_id: int
    email: str
    role: str
    name: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.user_id, "email": self.email, "role": self.role, "name": self.name}


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: int = 12) -> str:
    """Return a salted bcrypt hash of the password."""
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    """Check a password against a stored bcrypt hash."""
    if not password or not hashed:
        return False
    try:
        return bcrypt.checkpw(_password_bytes(password), hashed.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


def generate_session_token() -> str:
    return secrets.token_hex(32)


def create_access_token(
    user: Dict[str, Any],
    secret: str,
    algorithm: str = "HS256",
    expire_days: int = 7,
) -> str:
    """
    Sign a bearer credential for a user.

    Args:
        user: Dict with id, email, role and name
        secret: Signing secret
        algorithm: JWT algorithm
        expire_days: Lifetime of the credential

    Returns:
        Encoded JWT string
    """
    payload = {
        "userId": user["id"],
        "email": user["email"],
        "role": user.get("role") or "user",
        "name": user.get("name") or "",
        "exp": int(time.time()) + expire_days * 24 * 60 * 60,
    }
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode_access_token(token: str, secret: str, algorithm: str = "HS256") -> Optional[Identity]:
    """Verify a bearer credential. Returns None when it is invalid or expired."""
    if not token:
        return None
    try:
        claims = jwt.decode(token, secret, algorithms=[algorithm])
    except JWTError:
        return None

    user_id = claims.get("userId", claims.get("id"))
    if user_id is None:
        return None
    try:
        user_id = int(user_id)
    except (TypeError, ValueError):
        return None

    return Identity(
        user_id=user_id,
        email=claims.get("email") or "",
        role=claims.get("role") or "user",
        name=claims.get("name") or "",
    )


def extract_token(authorization: Optional[str], query_token: Optional[str] = None) -> Optional[str]:
    """Pull the raw credential out of an Authorization header or a token query parameter."""
    raw = authorization or query_token
    if not raw:
        return None
    raw = raw.strip()
    if raw.lower().startswith("bearer "):
        return raw[7:].strip() or None
    return raw
