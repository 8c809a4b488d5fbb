"""Configuration loader.

Reads ``uiloom.yaml`` from the config directory (``UILOOM_CONFIG_DIR`` or
the bundled ``uiloom/config``), validates it into pydantic models, and
caches the result. ``reload_configs()`` clears the cache so the next read
picks up changes.
"""

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "uiloom.yaml"
_BUNDLED_CONFIG_DIR = Path(__file__).resolve().parent.parent.parent / "config"


class ConverterConfig(BaseModel):
    """Generator-wide settings."""
    ir_version: str = Field("1.0.0", description="IR version stamped on parsed documents")
    indent: str = Field("  ", description="Indent unit for generated source")
    component_module: str = Field("react-native", description="Default component import module")
    unauthorized_route: str = Field("/unauthorized", description="Guard rejection target")


class MappingsConfig(BaseModel):
    """Where the widget mapping tables live."""
    default_file: str = "widget_mappings.yaml"
    extra_files: List[str] = Field(default_factory=list)


class StateConfig(BaseModel):
    """Default target idiom per framework and state pattern."""
    defaults: Dict[str, Dict[str, str]] = Field(default_factory=lambda: {
        "componentModel": {
            "local": "useState",
            "reducer": "useReducer",
            "externalStore": "storeHook",
            "contextDerived": "contextHook",
        },
        "widgetTree": {
            "local": "setState",
            "reducer": "bloc",
            "externalStore": "riverpod",
            "contextDerived": "inheritedLookup",
        },
    })


class TransitionDefaults(BaseModel):
    type: str = "platformDefault"
    duration: int = 300
    easing: str = "easeInOut"


class NavigationConfig(BaseModel):
    default_transition: TransitionDefaults = Field(default_factory=TransitionDefaults)


class EngineConfig(BaseModel):
    max_workers: int = Field(4, ge=1)


class ConverterSettings(BaseModel):
    """Validated view of ``uiloom.yaml``."""
    converter: ConverterConfig = Field(default_factory=ConverterConfig)
    mappings: MappingsConfig = Field(default_factory=MappingsConfig)
    state: StateConfig = Field(default_factory=StateConfig)
    navigation: NavigationConfig = Field(default_factory=NavigationConfig)
    engine: EngineConfig = Field(default_factory=EngineConfig)


def get_config_path() -> Path:
    """Return the directory holding ``uiloom.yaml``."""
    override = os.environ.get("UILOOM_CONFIG_DIR")
    if override:
        return Path(override)
    return _BUNDLED_CONFIG_DIR


@lru_cache(maxsize=1)
def load_unified_config() -> Dict[str, Any]:
    """Load the raw YAML config as a dict. Missing file yields ``{}``."""
    config_file = get_config_path() / CONFIG_FILE_NAME
    if not config_file.exists():
        logger.warning(f"{CONFIG_FILE_NAME} not found at {config_file}, using defaults")
        return {}

    with open(config_file, "r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}

    logger.debug(f"Loaded config from {config_file}")
    return config


@lru_cache(maxsize=1)
def get_settings() -> ConverterSettings:
    """Return validated settings (cached)."""
    return ConverterSettings.model_validate(load_unified_config())


def get_config_value(dotted_key: str, default: Any = None) -> Any:
    """Look up a raw config value by dotted key, e.g. ``"engine.max_workers"``."""
    node: Any = load_unified_config()
    for part in dotted_key.split("."):
        if not isinstance(node, dict) or part not in node:
            return default
        node = node[part]
    return node


def resolve_config_file(name: str) -> Path:
    """Resolve a file name from config relative to the config directory."""
    path = Path(name)
    if path.is_absolute():
        return path
    return get_config_path() / path


def reload_configs() -> None:
    """Clear config caches so the next read goes back to disk."""
    load_unified_config.cache_clear()
    get_settings.cache_clear()
    logger.info("Configuration caches cleared")
