from .config_loader import (
    ConverterSettings,
    get_config_path,
    get_config_value,
    get_settings,
    load_unified_config,
    reload_configs,
    resolve_config_file,
)

__all__ = [
    "ConverterSettings",
    "get_config_path",
    "get_config_value",
    "get_settings",
    "load_unified_config",
    "reload_configs",
    "resolve_config_file",
]
