"""
Password hashing and bearer tokens.

A token names the user by email (``sub``) and carries the role granted at
login. Admin routes still check the stored user, so the role claim only
tells the client which console to show.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel, ValidationError

from .config import settings

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")

ROLES = ("admin", "customer")


class AccessClaims(BaseModel):
    sub: str
    role: str = "customer"
    exp: datetime


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # Unknown or malformed hash
        return False


# -------------------------
# Tokens
# -------------------------
def issue_access_token(email: str, role: str, expires_minutes: Optional[int] = None) -> str:
    if role not in ROLES:
        raise ValueError(f"Unknown role {role!r}")
    minutes = settings.ACCESS_TOKEN_EXPIRE_MINUTES if expires_minutes is None else expires_minutes
    claims = {
        "sub": email,
        "role": role,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=minutes),
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def read_access_token(token: str) -> Optional[AccessClaims]:
    """Claims of a valid, unexpired token; None for anything else."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    try:
        return AccessClaims.model_validate(payload)
    except ValidationError:
        return None
