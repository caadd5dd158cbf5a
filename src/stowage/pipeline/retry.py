"""Bounded-retry object store upload."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from stowage.errors import TransferFailed
from stowage.interfaces import ObjectStore
from stowage.models.config import RetryConfig
from stowage.models.storage import StoreAck
from stowage.models.upload import ProgressSink

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


def next_delay(attempt: int, config: RetryConfig | None = None) -> float:
    """Backoff in seconds after a failed zero-based attempt."""
    cfg = config or RetryConfig()
    delay_ms = min(cfg.base_delay_ms * (2**attempt), cfg.max_delay_ms)
    return delay_ms / 1000.0


def notify_progress(sink: ProgressSink | None, fraction: float) -> None:
    """Invoke a progress callback, ignoring anything it raises."""
    if sink is None:
        return
    try:
        sink(fraction)
    except Exception as exc:
        logger.debug("Progress callback raised (ignored): %s", exc)


class RetryUploader:
    """Writes one buffer to one path, retrying with exponential backoff."""

    def __init__(
        self,
        store: ObjectStore,
        config: RetryConfig | None = None,
        *,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._store = store
        self._config = config or RetryConfig()
        self._sleep = sleep

    async def upload_with_retry(
        self,
        container: str,
        path: str,
        data: bytes,
        content_type: str,
        max_attempts: int | None = None,
        on_progress: ProgressSink | None = None,
        *,
        owner_id: str | None = None,
    ) -> StoreAck:
        """Upload data, returning the store ack.

        Raises:
            TransferFailed: After max_attempts failed writes, chained to the last error
        """
        attempts_allowed = max(1, int(max_attempts or self._config.max_attempts))
        attempt = 0
        while True:
            notify_progress(on_progress, (attempt + 0.5) / attempts_allowed)
            try:
                ack = await self._store.put(container, path, data, content_type)
            except Exception as exc:
                if attempt < attempts_allowed - 1:
                    delay = next_delay(attempt, self._config)
                    logger.warning(
                        "Upload attempt %d/%d failed for %s/%s: %s (retrying in %.1fs)",
                        attempt + 1,
                        attempts_allowed,
                        container,
                        path,
                        exc,
                        delay,
                    )
                    await self._sleep(delay)
                    attempt += 1
                    continue
                logger.error(
                    "Upload failed after %d attempts for %s/%s: %s",
                    attempts_allowed,
                    container,
                    path,
                    exc,
                    exc_info=exc,
                )
                raise TransferFailed(owner_id, path, attempts_allowed, exc) from exc
            notify_progress(on_progress, 1.0)
            logger.info(
                "Uploaded %d bytes to %s/%s (attempt %d)",
                len(data),
                container,
                path,
                attempt + 1,
            )
            return ack
