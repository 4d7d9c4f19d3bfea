"""Base authentication provider definitions."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import Session


@dataclass
class AuthenticatedUser:
    user_id: str
    email: str
    user_type: str = "homeowner"


class AuthError(RuntimeError):
    """Raised when credentials are missing, invalid or expired."""


class AuthUnsupportedError(AuthError):
    """Raised when an operation is not supported by the provider."""


class AuthProvider:
    """Abstract base for authentication providers."""

    def register(self, email: str, password: str, user_type: str, db: Session) -> AuthenticatedUser:
        raise AuthUnsupportedError("Registration not supported")

    def authenticate(self, email: str, password: str, db: Session) -> AuthenticatedUser:
        raise AuthUnsupportedError("Login not supported")

    def issue_token(self, user: AuthenticatedUser) -> str:
        raise AuthUnsupportedError("Token issuance not supported")

    def verify(self, token: str, db: Session) -> AuthenticatedUser:
        raise AuthError("Unable to verify token")
