"""Supabase Storage object store (REST API over aiohttp)."""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any
from urllib.parse import quote

import aiohttp

from stowage.interfaces import ObjectStore
from stowage.models.config import SupabaseStorageConfig
from stowage.models.storage import StoreAck, StoredObjectInfo
from stowage.plugins.registry import PluginType, plugin

logger = logging.getLogger(__name__)

_LIST_PAGE_SIZE = 100


@plugin(plugin_type=PluginType.STORAGE, name="supabase")
class SupabaseObjectStore(ObjectStore):
    """Supabase Storage backend.

    Uploads use `x-upsert: true` so retried writes overwrite the same object
    instead of failing on a duplicate key.
    """

    config_cls = SupabaseStorageConfig

    @classmethod
    def create(cls, config: SupabaseStorageConfig) -> ObjectStore:
        return cls(config)

    def __init__(self, config: SupabaseStorageConfig) -> None:
        base_url = os.getenv(config.url_env)
        api_key = os.getenv(config.key_env)
        if not base_url:
            raise ValueError(f"Supabase URL not found in env: {config.url_env}")
        if not api_key:
            raise ValueError(f"Supabase API key not found in env: {config.key_env}")

        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout_s = float(config.request_timeout_s)
        self._session: aiohttp.ClientSession | None = None
        self._shutdown_called = False

        logger.info("SupabaseObjectStore initialized: url=%s", self._base_url)

    async def put(self, container: str, path: str, data: bytes, content_type: str) -> StoreAck:
        self._ensure_open()
        session = await self._get_session()
        url = f"{self._storage_url}/object/{quote(container)}/{_quote_path(path)}"
        headers = self._headers(
            {"Content-Type": content_type, "x-upsert": "true", "cache-control": "3600"}
        )
        try:
            async with session.post(url, data=data, headers=headers) as response:
                await _raise_for_status(response, "upload")
                await response.read()
        except asyncio.TimeoutError as exc:
            raise asyncio.TimeoutError("Supabase storage upload timed out") from exc
        return StoreAck(
            container=container,
            path=path,
            storage_uri=f"supabase:{container}/{path}",
        )

    async def create_signed_url(self, container: str, path: str, ttl_s: int) -> str:
        self._ensure_open()
        session = await self._get_session()
        url = f"{self._storage_url}/object/sign/{quote(container)}/{_quote_path(path)}"
        async with session.post(url, json={"expiresIn": ttl_s}, headers=self._headers()) as response:
            await _raise_for_status(response, "sign")
            payload = await response.json()

        signed: str | None = None
        if isinstance(payload, dict):
            signed = payload.get("signedURL") or payload.get("signedUrl")
        if not signed:
            raise RuntimeError(f"Supabase storage sign returned no URL for {container}/{path}")
        if signed.startswith("http://") or signed.startswith("https://"):
            return str(signed)
        return f"{self._storage_url}{signed}"

    async def remove(self, container: str, paths: list[str]) -> None:
        self._ensure_open()
        if not paths:
            return
        session = await self._get_session()
        url = f"{self._storage_url}/object/{quote(container)}"
        async with session.delete(url, json={"prefixes": paths}, headers=self._headers()) as response:
            await _raise_for_status(response, "remove")
            await response.read()

    async def list(
        self, container: str, prefix: str, search: str | None = None
    ) -> list[StoredObjectInfo]:
        self._ensure_open()
        session = await self._get_session()
        url = f"{self._storage_url}/object/list/{quote(container)}"
        body: dict[str, Any] = {"prefix": prefix, "limit": _LIST_PAGE_SIZE, "offset": 0}
        if search:
            body["search"] = search
        async with session.post(url, json=body, headers=self._headers()) as response:
            await _raise_for_status(response, "list")
            rows = await response.json()

        found: list[StoredObjectInfo] = []
        for row in rows or []:
            metadata = row.get("metadata") or {}
            size = metadata.get("size")
            found.append(
                StoredObjectInfo(name=str(row.get("name", "")), size=int(size) if size else None)
            )
        return found

    async def download(self, container: str, path: str) -> bytes:
        self._ensure_open()
        session = await self._get_session()
        url = f"{self._storage_url}/object/authenticated/{quote(container)}/{_quote_path(path)}"
        async with session.get(url, headers=self._headers()) as response:
            await _raise_for_status(response, "download")
            return await response.read()

    async def ping(self) -> bool:
        if self._shutdown_called:
            return False
        session = await self._get_session()
        try:
            async with session.get(f"{self._storage_url}/bucket", headers=self._headers()) as response:
                if response.status >= 400:
                    return False
                await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.warning("Supabase storage ping failed: %s", exc)
            return False
        return True

    async def shutdown(self, timeout: float | None = None) -> None:
        """Cleanup resources - close HTTP session."""
        _ = timeout
        if self._shutdown_called:
            return
        self._shutdown_called = True
        if self._session and not self._session.closed:
            await self._session.close()

    @property
    def _storage_url(self) -> str:
        return f"{self._base_url}/storage/v1"

    def _headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers = {"Authorization": f"Bearer {self._api_key}", "apikey": self._api_key}
        if extra:
            headers.update(extra)
        return headers

    def _ensure_open(self) -> None:
        if self._shutdown_called:
            raise RuntimeError("Object store has been shut down")

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self._timeout_s)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session


def _quote_path(path: str) -> str:
    return quote(path.lstrip("/"), safe="/")


async def _raise_for_status(response: aiohttp.ClientResponse, operation: str) -> None:
    if response.status >= 400:
        details = await response.text()
        raise RuntimeError(
            f"Supabase storage {operation} failed: HTTP {response.status}: {details}"
        )
