"""Local email/password authentication provider issuing signed bearer tokens."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from ...db import models
from ...security import PasswordService, TokenService
from .base import AuthenticatedUser, AuthError, AuthProvider


class LocalAuthProvider(AuthProvider):
    def __init__(self, *, tokens: TokenService | None = None) -> None:
        self._passwords = PasswordService()
        self._tokens = tokens or TokenService()

    def register(self, email: str, password: str, user_type: str, db: Session) -> AuthenticatedUser:
        normalized = email.strip().lower()
        if not normalized:
            raise AuthError("Email is required")
        if len(password) < 8:
            raise AuthError("Password must be at least 8 characters")
        existing = db.query(models.User).filter(models.User.email == normalized).one_or_none()
        if existing:
            raise AuthError("Email is already registered")

        user = models.User(
            email=normalized,
            password_hash=self._passwords.hash(password),
            user_type=user_type,
        )
        db.add(user)
        db.flush()
        return _to_authenticated(user)

    def authenticate(self, email: str, password: str, db: Session) -> AuthenticatedUser:
        normalized = email.strip().lower()
        user = db.query(models.User).filter(models.User.email == normalized).one_or_none()
        if not user or not self._passwords.verify(user.password_hash, password):
            raise AuthError("Invalid credentials")
        if self._passwords.needs_rehash(user.password_hash):
            user.password_hash = self._passwords.hash(password)
        return _to_authenticated(user)

    def issue_token(self, user: AuthenticatedUser) -> str:
        return self._tokens.create(user.user_id)

    def verify(self, token: str, db: Session) -> AuthenticatedUser:
        data = self._tokens.parse(token)
        if not data:
            raise AuthError("Invalid or expired token")
        try:
            user_id = UUID(str(data.get("user_id")))
        except ValueError:
            raise AuthError("Invalid token subject")
        user = db.get(models.User, user_id)
        if not user:
            raise AuthError("Unknown user")
        return _to_authenticated(user)


def _to_authenticated(user: models.User) -> AuthenticatedUser:
    return AuthenticatedUser(user_id=str(user.id), email=user.email, user_type=user.user_type)
