# deps.py
# Dependency injections for routes, authentication, and admin validation.

import logging
from typing import Annotated, AsyncGenerator, Optional

from fastapi import Cookie, Depends, Header, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from . import auth_utils, crud
from .config import settings
from .database import SessionLocal
from .exceptions import LoginForbidden
from .models import Customer, User

log = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token", auto_error=False)


# -----------------------
#  DATABASE DEPENDENCY
# -----------------------
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with SessionLocal() as session:
        yield session

SessionDep = Annotated[AsyncSession, Depends(get_db)]


# ------------------------------------------------
#  TOKEN HANDLING (COOKIE + BEARER SUPPORT)
# ------------------------------------------------
async def get_current_user(
    db: SessionDep,
    cookie_token: Annotated[Optional[str], Cookie(alias="access_token")] = None,
    bearer_token: Annotated[Optional[str], Depends(oauth2_scheme)] = None,
) -> User:
    """
    Accepts authentication from:
    - Cookie: access_token
    - Authorization Header: Bearer <token>
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    # Token priority: Bearer > Cookie
    token = bearer_token or cookie_token
    if token is None:
        log.warning("Authentication failed: No token provided.")
        raise credentials_exception

    claims = auth_utils.read_access_token(token)
    if claims is None:
        log.warning("Authentication failed: Invalid or expired token.")
        raise credentials_exception

    user = await crud.get_user_by_email(db, email=claims.sub)
    if user is None:
        log.warning("Authentication failed: User %s not found.", claims.sub)
        raise credentials_exception
    return user


CurrentUserDep = Annotated[User, Depends(get_current_user)]


# -----------------------
#  CUSTOMER CHECK
# -----------------------
async def get_current_customer(current_user: CurrentUserDep, db: SessionDep) -> Customer:
    customer = await crud.get_customer_by_user(db, current_user.id)
    if customer is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No customer account for this user")
    # Tokens issued before an admin disabled login stop working immediately
    if not current_user.is_admin:
        if customer.status == "blocked":
            raise LoginForbidden("blocked")
        if not customer.can_login:
            raise LoginForbidden("disabled")
    return customer

CurrentCustomerDep = Annotated[Customer, Depends(get_current_customer)]


# -----------------------
#  ADMIN CHECK
# -----------------------
async def get_current_admin_user(current_user: CurrentUserDep) -> User:
    # Admin access: either role admin OR email matches configured admin email
    is_admin = current_user.email == settings.ADMIN_EMAIL or current_user.is_admin
    if not is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not an admin user",
        )
    return current_user

CurrentAdminUserDep = Annotated[User, Depends(get_current_admin_user)]


# -----------------------
#  IDEMPOTENCY HEADER
# -----------------------
def get_idempotency_key(
    idempotency_key: Annotated[Optional[str], Header(alias="Idempotency-Key", max_length=128)] = None,
) -> Optional[str]:
    return idempotency_key.strip() or None if idempotency_key else None

IdempotencyKeyDep = Annotated[Optional[str], Depends(get_idempotency_key)]
