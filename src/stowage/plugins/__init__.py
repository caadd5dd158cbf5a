"""Backend discovery.

Built-in backends live in one subpackage per PluginType. Third-party backends
register through the `stowage.plugins` entry point group; importing a module
is enough because registration happens in the `@plugin` decorator.
"""

import importlib
import logging
import pkgutil

from stowage.plugins.registry import PluginType
from stowage.plugins.utils import iter_entry_points

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "stowage.plugins"


def _import_builtin(plugin_type: PluginType) -> None:
    package_name = f"{__name__}.{plugin_type.value}"
    package = importlib.import_module(package_name)
    for module in pkgutil.iter_modules(package.__path__):
        if module.name.startswith("_"):
            continue
        try:
            importlib.import_module(f"{package_name}.{module.name}")
        except Exception as exc:
            logger.error(
                "Failed to import built-in %s backend %s: %s",
                plugin_type.value,
                module.name,
                exc,
                exc_info=True,
            )


def _import_external() -> list[str]:
    loaded: list[str] = []
    for point in iter_entry_points(ENTRY_POINT_GROUP):
        try:
            importlib.import_module(point.module)
        except Exception as exc:
            logger.error(
                "Failed to load external plugin %s from %s: %s",
                point.name,
                point.module,
                exc,
                exc_info=True,
            )
            continue
        loaded.append(point.name)
    return loaded


def discover_all_plugins() -> list[str]:
    """Import built-in and external backends.

    Returns:
        Names of the external entry points that imported cleanly
    """
    for plugin_type in PluginType:
        _import_builtin(plugin_type)
    external = _import_external()
    if external:
        logger.info("Loaded external plugins: %s", ", ".join(external))
    return external


__all__ = ["ENTRY_POINT_GROUP", "discover_all_plugins"]
