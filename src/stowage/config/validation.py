"""Plugin-level config validation."""

from __future__ import annotations

from pydantic import ValidationError

from stowage.config.loader import ConfigError, ConfigErrorCode, format_validation_error
from stowage.models.config import Config
from stowage.plugins.registry import PluginType, get_plugin_names, validate_plugin


def validate_plugin_names(config: Config) -> None:
    """Ensure configured backends are registered plugins.

    Raises:
        ConfigError: If a backend name is unknown
    """
    errors: list[str] = []
    checks = (
        (PluginType.STORAGE, "storage.backend", config.storage.backend),
        (PluginType.LEDGER, "ledger.backend", config.ledger.backend),
    )
    for plugin_type, field, name in checks:
        available = get_plugin_names(plugin_type)
        if name not in available:
            errors.append(f"{field}: unknown backend '{name}' (available: {', '.join(available)})")
    if errors:
        raise ConfigError(
            "Invalid plugin names:\n  " + "\n  ".join(errors),
            code=ConfigErrorCode.PLUGIN_NAMES_INVALID,
        )


def validate_plugin_configs(config: Config) -> None:
    """Validate backend-specific config sections against plugin models.

    Raises:
        ConfigError: If a plugin config section is invalid
    """
    checks = (
        (PluginType.STORAGE, config.storage.backend, config.storage.config),
        (PluginType.LEDGER, config.ledger.backend, config.ledger.config),
    )
    for plugin_type, name, section in checks:
        try:
            validate_plugin(plugin_type, name, section)
        except ValidationError as e:
            raise ConfigError(
                f"{plugin_type.value} '{name}': {format_validation_error(e)}",
                code=ConfigErrorCode.PLUGIN_CONFIG_INVALID,
                cause=e,
            ) from e


def validate_config(config: Config) -> None:
    """Run all registry-backed validation checks."""
    validate_plugin_names(config)
    validate_plugin_configs(config)
