# Lazy imports so `from uiloom.core.ir.models import Element` does not
# pull in tree-sitter, the mapping table and every converter.

__all__ = [
    # Conversion
    "convert",
    "convert_file",
    "convert_many",
    "ConversionRequest",
    # Stages
    "parse",
    "generate",
    "validate",
    # Schema
    "to_schema",
    "from_schema",
    # Mapping table
    "get_registry",
    "reload_registry",
]

_IMPORT_MAP = {
    "convert": ".engine",
    "convert_file": ".engine",
    "convert_many": ".engine",
    "ConversionRequest": ".engine",
    "parse": ".parsers",
    "generate": ".generators",
    "validate": ".ir.validator",
    "to_schema": ".ir.serialization",
    "from_schema": ".ir.serialization",
    "get_registry": ".mapping",
    "reload_registry": ".mapping",
}


def __getattr__(name):
    if name in _IMPORT_MAP:
        import importlib
        module = importlib.import_module(_IMPORT_MAP[name], __package__)
        return getattr(module, name)
    raise AttributeError(f"module 'uiloom.core' has no attribute {name}")
