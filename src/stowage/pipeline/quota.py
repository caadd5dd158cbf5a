"""Per-owner storage quota checks."""

from __future__ import annotations

import logging

from stowage.errors import QuotaExceeded, QuotaUnavailable
from stowage.interfaces import UsageLedger
from stowage.models.config import QuotaConfig
from stowage.models.upload import QuotaDecision, QuotaSnapshot
from stowage.units import MB, format_bytes, format_mb

logger = logging.getLogger(__name__)


def _mb_label(num_bytes: int) -> str:
    return f"{num_bytes / MB:g}"


def evaluate_quota(
    snapshot: QuotaSnapshot,
    candidate_bytes: int,
    max_object_bytes: int,
    warning_threshold_percent: float,
) -> QuotaDecision:
    """Decide whether candidate_bytes fits the owner's remaining quota.

    The per-object ceiling is checked before the total ceiling.
    """
    if candidate_bytes > max_object_bytes:
        return QuotaDecision(
            allowed=False,
            snapshot=snapshot,
            candidate_bytes=candidate_bytes,
            deficit_bytes=candidate_bytes - max_object_bytes,
            message=(
                f"File is too large ({format_mb(candidate_bytes)} MB). "
                f"Maximum file size is {_mb_label(max_object_bytes)} MB."
            ),
        )

    ceiling = snapshot.ceiling_bytes
    after = snapshot.current_bytes + candidate_bytes
    if after > ceiling:
        return QuotaDecision(
            allowed=False,
            snapshot=snapshot,
            candidate_bytes=candidate_bytes,
            deficit_bytes=after - ceiling,
            message=(
                f"Not enough storage space. File size: {format_mb(candidate_bytes)} MB, "
                f"Available: {format_mb(snapshot.available_bytes)} MB. "
                f"You've used {format_bytes(snapshot.current_bytes)} of {_mb_label(ceiling)} MB."
            ),
        )

    warning: str | None = None
    used_percent = after / ceiling * 100 if ceiling else 100.0
    if used_percent >= warning_threshold_percent:
        remaining = ceiling - after
        warning = (
            f"After this upload, you'll have {format_mb(remaining)} MB remaining "
            f"({100 - used_percent:.0f}% free)."
        )

    return QuotaDecision(
        allowed=True,
        snapshot=snapshot,
        candidate_bytes=candidate_bytes,
        warning=warning,
    )


class QuotaGuard:
    """Reads live usage from the ledger and applies QuotaConfig.

    No locking: two concurrent uploads may both pass against the same snapshot.
    """

    def __init__(self, ledger: UsageLedger, config: QuotaConfig) -> None:
        self._ledger = ledger
        self._config = config

    async def snapshot(self, owner_id: str) -> QuotaSnapshot:
        current = await self._ledger.total_bytes(owner_id)
        return QuotaSnapshot(
            owner_id=owner_id,
            current_bytes=current,
            ceiling_bytes=self._config.max_total_bytes,
        )

    async def check(
        self, owner_id: str, candidate_bytes: int
    ) -> QuotaDecision | QuotaExceeded | QuotaUnavailable:
        """Return the decision if allowed, else a typed error value."""
        try:
            snapshot = await self.snapshot(owner_id)
        except Exception as exc:
            logger.error("Usage ledger read failed for %s: %s", owner_id, exc, exc_info=exc)
            return QuotaUnavailable(owner_id, exc)

        decision = evaluate_quota(
            snapshot,
            candidate_bytes,
            max_object_bytes=self._config.max_object_bytes,
            warning_threshold_percent=self._config.warning_threshold_percent,
        )
        if not decision.allowed:
            logger.info(
                "Quota rejected %d bytes for %s (deficit %d)",
                candidate_bytes,
                owner_id,
                decision.deficit_bytes,
            )
            return QuotaExceeded(owner_id, decision.message or "", decision.deficit_bytes)
        if decision.warning:
            logger.warning("Storage nearly full for %s: %s", owner_id, decision.warning)
        return decision
