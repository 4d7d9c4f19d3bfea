"""Supabase storage backend implementation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import httpx

from .base import StorageBackend, StorageError, StorageObject


@dataclass
class _SupabaseConfig:
    url: str
    bucket: str
    service_role_key: str


class SupabaseStorageBackend(StorageBackend):
    """Interact with Supabase Storage using the service role key."""

    def __init__(self, *, url: str, bucket: str, service_role_key: str, timeout: float = 60.0) -> None:
        if not url:
            raise StorageError("SUPABASE_URL is not configured")
        if not service_role_key:
            raise StorageError("SUPABASE_SERVICE_ROLE_KEY is not configured")
        if not bucket:
            raise StorageError("SUPABASE_BUCKET is not configured")

        self._config = _SupabaseConfig(url=url.rstrip("/"), bucket=bucket, service_role_key=service_role_key)
        self._client = httpx.Client(
            base_url=f"{self._config.url}/storage/v1",
            headers={
                "Authorization": f"Bearer {self._config.service_role_key}",
                "apikey": self._config.service_role_key,
            },
            timeout=timeout,
        )

    def close(self) -> None:  # pragma: no cover - convenience helper
        self._client.close()

    # ------------------------------------------------------------------
    # StorageBackend interface
    # ------------------------------------------------------------------
    def put_bytes(self, key: str, data: bytes, content_type: Optional[str] = None) -> StorageObject:
        headers = {"content-type": content_type} if content_type else None
        response = self._request(
            "POST",
            f"/object/{self._config.bucket}/{key}",
            content=data,
            headers=headers,
            params={"upsert": "true"},
        )
        if response.status_code >= 400:
            raise StorageError(f"Failed to upload '{key}': {response.status_code} {response.text}")
        return StorageObject(key=key, size=len(data), content_type=content_type)

    def get_bytes(self, key: str, max_bytes: Optional[int] = None) -> bytes:
        headers = {"Range": f"bytes=0-{max_bytes - 1}"} if max_bytes else None
        response = self._request("GET", f"/object/{self._config.bucket}/{key}", headers=headers)
        if response.status_code == 404:
            raise FileNotFoundError(key)
        if response.status_code >= 400:
            raise StorageError(f"Failed to download '{key}': {response.status_code} {response.text}")
        content = response.content
        # Servers may ignore the Range header and send the whole object
        if max_bytes is not None:
            content = content[:max_bytes]
        return content

    def delete(self, key: str) -> None:
        payload = {"prefixes": [key]}
        response = self._request("DELETE", f"/object/{self._config.bucket}", json=payload)
        if response.status_code >= 400:
            raise StorageError(f"Failed to delete '{key}': {response.status_code} {response.text}")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            return self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise StorageError(f"Supabase storage request failed: {exc}") from exc
