"""
Registration, login and administrator bootstrap.
"""

import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from . import auth_utils, crud, schemas
from .config import settings
from .exceptions import EmailAlreadyRegistered, LoginForbidden, StoreOperationFailed
from .models import User

log = logging.getLogger(__name__)


class AuthService:

    @staticmethod
    async def register(db: AsyncSession, request: schemas.RegisterRequest) -> User:
        if await crud.get_user_by_email(db, request.email) is not None:
            raise EmailAlreadyRegistered()
        try:
            user, customer = await crud.create_user_with_customer(
                db,
                email=request.email,
                password=request.password,
                name=request.name,
                phone=request.phone,
            )
        except IntegrityError:
            await db.rollback()
            raise EmailAlreadyRegistered()
        except SQLAlchemyError as exc:
            await db.rollback()
            log.exception("Registration failed for %s", request.email)
            raise StoreOperationFailed() from exc
        log.info("Registered customer %s with account %s", user.email, customer.account_number)
        return user

    @staticmethod
    async def authenticate(db: AsyncSession, email: str, password: str):
        """
        Check credentials and the customer's login permission.

        Returns None on bad credentials; raises LoginForbidden when the
        credentials are right but the account may not sign in.
        """
        user = await crud.get_user_by_email(db, email)
        if user is None or not auth_utils.verify_password(password, user.hashed_password):
            return None

        customer = await crud.get_customer_by_user(db, user.id)
        if customer is not None and not user.is_admin:
            if not customer.can_login:
                log.warning("Login refused for %s: login disabled", user.email)
                raise LoginForbidden("disabled")
            if customer.status == "blocked":
                log.warning("Login refused for %s: account blocked", user.email)
                raise LoginForbidden("blocked")
        return user

    @staticmethod
    def issue_token(user: User) -> schemas.Token:
        # Configured admin email always gets the admin role claim
        role = "admin" if user.is_admin or user.email == settings.ADMIN_EMAIL else "customer"
        token = auth_utils.issue_access_token(user.email, role)
        return schemas.Token(access_token=token, token_type="bearer", role=role, user_id=user.id, email=user.email)

    @staticmethod
    async def ensure_admin_user(db: AsyncSession) -> User:
        """Ensures the configured admin user exists with a profile and customer record."""
        admin = await crud.get_user_by_email(db, settings.ADMIN_EMAIL)
        if admin is not None:
            if admin.role != "admin":
                admin.role = "admin"
                db.add(admin)
                await db.commit()
            return admin

        admin, _ = await crud.create_user_with_customer(
            db,
            email=settings.ADMIN_EMAIL,
            password=settings.ADMIN_PASSWORD,
            name="Admin",
            role="admin",
        )
        log.info("Created admin user %s", admin.email)
        return admin
