"""Local filesystem object store."""

from __future__ import annotations

import asyncio
import logging
import os
import secrets
from pathlib import Path, PurePosixPath
from urllib.parse import quote

from stowage.interfaces import ObjectStore
from stowage.models.config import LocalStorageConfig
from stowage.models.storage import StoreAck, StoredObjectInfo
from stowage.plugins.registry import PluginType, plugin
from stowage.signing import sign_object_url, verify_object_signature

logger = logging.getLogger(__name__)


@plugin(plugin_type=PluginType.STORAGE, name="local")
class LocalObjectStore(ObjectStore):
    """Local object store for development and tests.

    Objects live under root/<container>/<path>. Signed URLs carry `expires` and
    an HMAC `signature`; the secret comes from `signing_key_env`.
    """

    config_cls = LocalStorageConfig

    @classmethod
    def create(cls, config: LocalStorageConfig) -> ObjectStore:
        return cls(config)

    def __init__(self, config: LocalStorageConfig) -> None:
        self.root = Path(config.root).expanduser().resolve()
        self.root.mkdir(parents=True, exist_ok=True)
        self._base_url = (config.base_url or f"file://{self.root}").rstrip("/")

        secret = os.getenv(config.signing_key_env)
        if not secret:
            logger.warning(
                "Signing key not found in env: %s (using a per-process key)",
                config.signing_key_env,
            )
            secret = secrets.token_urlsafe(32)
        self._secret = secret
        self._shutdown_called = False

    async def put(self, container: str, path: str, data: bytes, content_type: str) -> StoreAck:
        self._ensure_open()
        dest = self._full_path(container, path)
        dest.parent.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(dest.write_bytes, data)
        logger.debug("Stored %d bytes at %s (%s)", len(data), dest, content_type)
        return StoreAck(container=container, path=path, storage_uri=f"local:{dest}")

    async def create_signed_url(self, container: str, path: str, ttl_s: int) -> str:
        self._ensure_open()
        dest = self._full_path(container, path)
        if not await asyncio.to_thread(dest.is_file):
            raise FileNotFoundError(f"Object not found: {container}/{path}")
        signed = sign_object_url(
            secret=self._secret, object_key=f"{container}/{path}", ttl_s=ttl_s
        )
        return f"{self._base_url}/{quote(container)}/{quote(path)}?{signed.as_query()}"

    def verify_signed_query(self, container: str, path: str, query: str) -> bool:
        """Check the query string of a URL from `create_signed_url`.

        Raises:
            SignatureError: If the signature is invalid or expired
        """
        verify_object_signature(
            secret=self._secret, object_key=f"{container}/{path}", query=query
        )
        return True

    async def remove(self, container: str, paths: list[str]) -> None:
        self._ensure_open()
        for path in paths:
            await asyncio.to_thread(self._full_path(container, path).unlink, True)

    async def list(
        self, container: str, prefix: str, search: str | None = None
    ) -> list[StoredObjectInfo]:
        self._ensure_open()
        directory = self._full_path(container, prefix) if prefix.strip("/") else self.root / container
        return await asyncio.to_thread(self._scan, directory, search)

    async def download(self, container: str, path: str) -> bytes:
        self._ensure_open()
        return await asyncio.to_thread(self._full_path(container, path).read_bytes)

    async def ping(self) -> bool:
        return self.root.exists() and self.root.is_dir()

    async def shutdown(self, timeout: float | None = None) -> None:
        _ = timeout
        self._shutdown_called = True

    def _ensure_open(self) -> None:
        if self._shutdown_called:
            raise RuntimeError("Object store has been shut down")

    @staticmethod
    def _scan(directory: Path, search: str | None) -> list[StoredObjectInfo]:
        if not directory.is_dir():
            return []
        found: list[StoredObjectInfo] = []
        for entry in sorted(directory.iterdir()):
            if not entry.is_file():
                continue
            if search and search not in entry.name:
                continue
            found.append(StoredObjectInfo(name=entry.name, size=entry.stat().st_size))
        return found

    def _full_path(self, container: str, path: str) -> Path:
        cleaned = str(path).lstrip("/")
        if not container or "/" in container or container in (".", ".."):
            raise ValueError(f"Invalid container: {container}")
        if not cleaned or "\\" in cleaned:
            raise ValueError(f"Invalid path: {path}")
        parts = PurePosixPath(cleaned)
        if parts.is_absolute() or ".." in parts.parts:
            raise ValueError(f"Invalid path: {path}")
        return self.root.joinpath(container, *parts.parts)
