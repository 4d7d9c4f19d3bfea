"""Signed bearer tokens using itsdangerous."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from ..core.config import ACCESS_TOKEN_MAX_AGE, SESSION_SECRET


class TokenService:
    def __init__(self, *, secret: str = SESSION_SECRET, max_age: int = ACCESS_TOKEN_MAX_AGE) -> None:
        self.serializer = URLSafeTimedSerializer(secret_key=secret, salt="sow-access-token")
        self.max_age = max_age

    def create(self, user_id: str) -> str:
        payload = {
            "user_id": user_id,
            "issued_at": datetime.utcnow().isoformat(),
        }
        return self.serializer.dumps(payload)

    def parse(self, token: str) -> Optional[dict]:
        try:
            data = self.serializer.loads(token, max_age=self.max_age)
        except (SignatureExpired, BadSignature):
            return None
        return data if isinstance(data, dict) else None
