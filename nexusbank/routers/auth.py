"""Registration and login endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordRequestForm

from .. import crud, schemas
from ..auth_service import AuthService
from ..config import settings
from ..database import with_store_timeout
from ..deps import SessionDep

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", response_model=schemas.CustomerMe, status_code=status.HTTP_201_CREATED)
async def register(request: schemas.RegisterRequest, db_session: SessionDep):
    """Create a login together with its profile and a fresh customer account."""
    user = await with_store_timeout(AuthService.register(db_session, request))
    customer = await crud.get_customer_by_user(db_session, user.id)
    profile = await crud.get_profile_by_user(db_session, user.id)
    return schemas.CustomerMe(
        customer=schemas.Customer.model_validate(customer),
        profile=schemas.Profile.model_validate(profile) if profile else None,
    )


@router.post("/token", response_model=schemas.Token)
async def login_for_access_token(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    db_session: SessionDep,
):
    user = await with_store_timeout(
        AuthService.authenticate(db_session, form_data.username.strip(), form_data.password)
    )
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = AuthService.issue_token(user)
    response = JSONResponse(content=token.model_dump(mode="json"))
    response.set_cookie(
        key="access_token",
        value=token.access_token,
        httponly=True,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        samesite="Lax",
        path="/",
    )
    return response
