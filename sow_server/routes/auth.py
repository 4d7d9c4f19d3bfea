"""Authentication endpoints and the bearer-token dependency."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from sqlalchemy.orm import Session

from ..adapters.auth import AuthenticatedUser, AuthError, AuthProvider, AuthUnsupportedError
from ..dependencies import db_session, get_auth_provider


router = APIRouter(prefix="/auth", tags=["auth"])


class RegisterRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    email: str
    password: str
    user_type: str = Field(default="homeowner", pattern="^(homeowner|builder)$")


class LoginRequest(BaseModel):
    email: str
    password: str


class SessionUser(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: UUID
    email: str
    user_type: str


class TokenResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    access_token: str
    token_type: str = "bearer"
    user: SessionUser


def _to_response_model(user: AuthenticatedUser) -> SessionUser:
    return SessionUser(id=UUID(user.user_id), email=user.email, user_type=user.user_type)


def _bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("authorization") or ""
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


@router.post("/register", response_model=SessionUser, response_model_by_alias=True, status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterRequest,
    db: Session = Depends(db_session),
    provider: AuthProvider = Depends(get_auth_provider),
) -> SessionUser:
    try:
        user = provider.register(payload.email, payload.password, payload.user_type, db)
    except AuthUnsupportedError:
        raise HTTPException(status_code=status.HTTP_405_METHOD_NOT_ALLOWED, detail="Registration managed externally")
    except AuthError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return _to_response_model(user)


@router.post("/login", response_model=TokenResponse, response_model_by_alias=True)
def login(
    payload: LoginRequest,
    db: Session = Depends(db_session),
    provider: AuthProvider = Depends(get_auth_provider),
) -> TokenResponse:
    try:
        user = provider.authenticate(payload.email, payload.password, db)
        token = provider.issue_token(user)
    except AuthUnsupportedError:
        raise HTTPException(status_code=status.HTTP_405_METHOD_NOT_ALLOWED, detail="Login managed externally")
    except AuthError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc))
    return TokenResponse(access_token=token, user=_to_response_model(user))


def get_current_user(
    request: Request,
    db: Session = Depends(db_session),
    provider: AuthProvider = Depends(get_auth_provider),
) -> SessionUser:
    token = _bearer_token(request)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    try:
        user = provider.verify(token, db)
    except AuthError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc))
    return _to_response_model(user)


@router.get("/me", response_model=SessionUser, response_model_by_alias=True)
def me(current_user: SessionUser = Depends(get_current_user)) -> SessionUser:
    return current_user
