"""Usage ledger plugins."""

from __future__ import annotations

from stowage.interfaces import UsageLedger
from stowage.models.config import LedgerConfig
from stowage.plugins.registry import PluginType, load_plugin


def load_ledger_plugin(config: LedgerConfig) -> UsageLedger:
    """Instantiate the configured usage ledger backend.

    Raises:
        ValueError: If the backend is unknown or its config is invalid
    """
    return load_plugin(PluginType.LEDGER, config.backend, config.config)


__all__ = ["load_ledger_plugin"]
