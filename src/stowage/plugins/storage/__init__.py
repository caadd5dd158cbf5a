"""Object store plugins."""

from __future__ import annotations

from stowage.interfaces import ObjectStore
from stowage.models.config import StorageConfig
from stowage.plugins.registry import PluginType, load_plugin


def load_storage_plugin(config: StorageConfig) -> ObjectStore:
    """Instantiate the configured object store backend.

    Raises:
        ValueError: If the backend is unknown or its config is invalid
    """
    return load_plugin(PluginType.STORAGE, config.backend, config.config)


__all__ = ["load_storage_plugin"]
