"""YAML config loading for Stowage."""

from __future__ import annotations

import logging
import os
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from stowage.models.config import Config
from stowage.units import format_mb

logger = logging.getLogger(__name__)


class ConfigErrorCode(str, Enum):
    """Stable config error codes."""

    FILE_NOT_FOUND = "CONFIG_FILE_NOT_FOUND"
    YAML_INVALID = "CONFIG_YAML_INVALID"
    EMPTY_FILE = "CONFIG_EMPTY_FILE"
    ROOT_NOT_MAPPING = "CONFIG_ROOT_NOT_MAPPING"
    VALIDATION_FAILED = "CONFIG_VALIDATION_FAILED"
    PLUGIN_NAMES_INVALID = "CONFIG_PLUGIN_NAMES_INVALID"
    PLUGIN_CONFIG_INVALID = "CONFIG_PLUGIN_CONFIG_INVALID"
    ENV_VAR_MISSING = "CONFIG_ENV_VAR_MISSING"
    UNKNOWN = "CONFIG_UNKNOWN"


class ConfigError(Exception):
    """Raised when a config file or section cannot be turned into a Config."""

    def __init__(
        self,
        message: str,
        *,
        code: ConfigErrorCode = ConfigErrorCode.UNKNOWN,
        path: Path | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.path = path
        self.__cause__ = cause


def load_config(path: Path) -> Config:
    """Read a YAML config file and validate it, including backend sections.

    Raises:
        ConfigError: With a code describing which step failed
    """
    return _build_config(_read_mapping(path), path)


def load_config_from_dict(data: dict[str, Any]) -> Config:
    """Validate an in-memory config mapping (tests, embedding)."""
    return _build_config(data, None)


def _read_mapping(path: Path) -> dict[str, Any]:
    if not path.is_file():
        raise ConfigError(
            f"Config file not found: {path}",
            code=ConfigErrorCode.FILE_NOT_FOUND,
            path=path,
        )
    try:
        raw = yaml.safe_load(path.read_text())
    except yaml.YAMLError as exc:
        raise ConfigError(
            f"Invalid YAML in {path}: {exc}",
            code=ConfigErrorCode.YAML_INVALID,
            path=path,
            cause=exc,
        ) from exc

    match raw:
        case None:
            raise ConfigError(
                f"Config file is empty: {path}", code=ConfigErrorCode.EMPTY_FILE, path=path
            )
        case dict():
            return raw
        case _:
            raise ConfigError(
                f"Config must be a YAML mapping, got {type(raw).__name__}",
                code=ConfigErrorCode.ROOT_NOT_MAPPING,
                path=path,
            )


def _build_config(raw: dict[str, Any], path: Path | None) -> Config:
    try:
        config = Config.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(
            format_validation_error(exc, path),
            code=ConfigErrorCode.VALIDATION_FAILED,
            path=path,
            cause=exc,
        ) from exc

    # Backend names are only known after plugin discovery.
    from stowage.config.validation import validate_config
    from stowage.plugins import discover_all_plugins

    discover_all_plugins()
    validate_config(config)
    _warn_on_limit_mismatch(config)
    return config


def _warn_on_limit_mismatch(config: Config) -> None:
    """Files between the two limits pass validation and then fail the quota check."""
    accepted = config.validation.max_bytes
    per_object = config.quota.max_object_bytes
    if accepted > per_object:
        logger.warning(
            "validation.max_bytes (%s MB) exceeds quota.max_object_bytes (%s MB)",
            format_mb(accepted),
            format_mb(per_object),
        )


def resolve_env_var(env_var_name: str, required: bool = True) -> str | None:
    """Look up a secret referenced by a `*_env` config field.

    Raises:
        ConfigError: If required and not set
    """
    value = os.environ.get(env_var_name)
    if value is None and required:
        raise ConfigError(
            f"Required environment variable not set: {env_var_name}",
            code=ConfigErrorCode.ENV_VAR_MISSING,
        )
    return value


def format_validation_error(e: ValidationError, path: Path | None = None) -> str:
    """One line per pydantic error, prefixed with the file when known."""
    header = f"Config validation failed ({path}):" if path else "Config validation failed:"
    lines = []
    for err in e.errors():
        loc = ".".join(str(part) for part in err["loc"]) or "<root>"
        lines.append(f"  {loc}: {err['msg']}")
    return "\n".join([header, *lines])
