from .registry import (
    MappingEntry,
    MappingFileError,
    MappingRegistry,
    PropTransform,
    get_registry,
    load_registry,
    reload_registry,
)
from .transforms import Direction, TransformError

__all__ = [
    "Direction",
    "MappingEntry",
    "MappingFileError",
    "MappingRegistry",
    "PropTransform",
    "TransformError",
    "get_registry",
    "load_registry",
    "reload_registry",
]
