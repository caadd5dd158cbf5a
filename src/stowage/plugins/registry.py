"""Plugin registry for object stores and usage ledgers.

A backend registers itself with `@plugin(PluginType.STORAGE, "name")`. Each
backend class carries a pydantic `config_cls` for its section of the config
file and a `create(config)` factory.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any, Protocol, cast

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class PluginType(str, Enum):
    """Kinds of pluggable backend. Values double as subpackage names."""

    STORAGE = "storage"
    LEDGER = "ledger"


class BackendPlugin(Protocol):
    config_cls: type[BaseModel]

    @classmethod
    def create(cls, config: Any) -> Any: ...


class PluginRegistry:
    """Name to backend class mapping for one plugin type."""

    def __init__(self, plugin_type: PluginType) -> None:
        self.plugin_type = plugin_type
        self._backends: dict[str, type[BackendPlugin]] = {}

    def register(self, name: str, backend_cls: type[BackendPlugin]) -> None:
        existing = self._backends.get(name)
        if existing is not None:
            raise ValueError(
                f"{self.plugin_type.value} plugin '{name}' is already registered "
                f"by {existing.__module__}.{existing.__qualname__}."
            )
        self._backends[name] = backend_cls
        logger.debug("Registered %s plugin: %s", self.plugin_type.value, name)

    def resolve(self, name: str) -> type[BackendPlugin]:
        try:
            return self._backends[name]
        except KeyError:
            raise ValueError(
                f"Unknown {self.plugin_type.value} plugin: '{name}'. "
                f"Available: {', '.join(self.names())}"
            ) from None

    def validate(self, name: str, section: Mapping[str, Any]) -> BaseModel:
        """Validate a backend config section.

        Raises:
            ValueError: If the name is unknown
            ValidationError: If the section does not fit the backend's config_cls
        """
        return self.resolve(name).config_cls.model_validate(dict(section))

    def load(self, name: str, section: Mapping[str, Any]) -> Any:
        backend_cls = self.resolve(name)
        return backend_cls.create(self.validate(name, section))

    def names(self) -> list[str]:
        return sorted(self._backends)


_REGISTRIES = {plugin_type: PluginRegistry(plugin_type) for plugin_type in PluginType}


def plugin(plugin_type: PluginType, name: str) -> Callable[[type], type]:
    """Class decorator registering a backend under name."""

    def decorator(cls: type) -> type:
        for required in ("config_cls", "create"):
            if not hasattr(cls, required):
                raise TypeError(f"Plugin class {cls.__name__} must define '{required}'")
        _REGISTRIES[plugin_type].register(name, cast(type[BackendPlugin], cls))
        cast(Any, cls).__plugin_name__ = name
        return cls

    return decorator


def _section(config: Mapping[str, Any] | BaseModel) -> Mapping[str, Any]:
    if isinstance(config, BaseModel):
        return config.model_dump()
    return config


def load_plugin(plugin_type: PluginType, name: str, config: Mapping[str, Any] | BaseModel) -> Any:
    """Validate config and instantiate the named backend."""
    return _REGISTRIES[plugin_type].load(name, _section(config))


def validate_plugin(
    plugin_type: PluginType, name: str, config: Mapping[str, Any] | BaseModel
) -> BaseModel:
    """Validate config for the named backend without instantiating it."""
    return _REGISTRIES[plugin_type].validate(name, _section(config))


def get_plugin_names(plugin_type: PluginType) -> list[str]:
    return _REGISTRIES[plugin_type].names()
