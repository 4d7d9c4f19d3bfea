"""Supabase JWT-backed authentication provider."""

from __future__ import annotations

import time
from typing import Dict, Tuple
from uuid import UUID

import httpx
from sqlalchemy.orm import Session

from ...core.config import SUPABASE_ANON_KEY, SUPABASE_URL
from ...db import models
from .base import AuthenticatedUser, AuthError, AuthProvider, AuthUnsupportedError


# Cache verified tokens for 5 minutes to avoid hitting Supabase API on every request
_TOKEN_CACHE: Dict[str, Tuple[dict, float]] = {}
_TOKEN_CACHE_TTL = 300


class SupabaseAuthProvider(AuthProvider):
    """Delegates token verification to Supabase Auth."""

    def __init__(self, *, url: str | None = None, anon_key: str | None = None) -> None:
        supabase_url = url or SUPABASE_URL
        supabase_anon = anon_key or SUPABASE_ANON_KEY
        if not supabase_url or not supabase_anon:
            raise AuthError("Supabase credentials are not configured")

        self._client = httpx.Client(
            base_url=f"{supabase_url.rstrip('/')}/auth/v1",
            headers={"apikey": supabase_anon},
            timeout=10.0,
        )

    # Registration, login and token issuance are handled by Supabase clients
    def register(self, email: str, password: str, user_type: str, db: Session) -> AuthenticatedUser:  # pragma: no cover
        raise AuthUnsupportedError("Registration is managed by Supabase")

    def authenticate(self, email: str, password: str, db: Session) -> AuthenticatedUser:  # pragma: no cover
        raise AuthUnsupportedError("Login is managed by Supabase")

    def issue_token(self, user: AuthenticatedUser) -> str:  # pragma: no cover
        raise AuthUnsupportedError("Tokens are issued by Supabase")

    def verify(self, token: str, db: Session) -> AuthenticatedUser:
        data = self._cached(token)
        if data is None:
            data = self._fetch_user(token)
            now = time.time()
            _TOKEN_CACHE[token] = (data, now)
            if len(_TOKEN_CACHE) > 100:
                expired = [k for k, (_, t) in _TOKEN_CACHE.items() if now - t >= _TOKEN_CACHE_TTL]
                for k in expired:
                    del _TOKEN_CACHE[k]

        user_id = data.get("id")
        email = data.get("email")
        if not email or not user_id:
            raise AuthError("Supabase user is missing an id or email")

        try:
            uuid = UUID(user_id)
        except ValueError:
            raise AuthError("Supabase returned invalid user id")

        user_type = (data.get("user_metadata") or {}).get("userType") or "homeowner"
        user = db.get(models.User, uuid)
        if not user:
            user = models.User(id=uuid, email=email, password_hash="supabase", user_type=user_type)
            db.add(user)
            db.flush()

        return AuthenticatedUser(user_id=str(user.id), email=user.email, user_type=user.user_type)

    def _cached(self, token: str) -> dict | None:
        entry = _TOKEN_CACHE.get(token)
        if entry is None:
            return None
        data, cached_at = entry
        if time.time() - cached_at >= _TOKEN_CACHE_TTL:
            del _TOKEN_CACHE[token]
            return None
        return data

    def _fetch_user(self, token: str) -> dict:
        try:
            response = self._client.get("/user", headers={"authorization": f"Bearer {token}"})
        except httpx.HTTPError as exc:  # pragma: no cover - network failure
            raise AuthError(f"Supabase request failed: {exc}") from exc
        if response.status_code >= 400:
            raise AuthError("Invalid or expired token")
        return response.json()
