"""uiloom source parsers.

Public API:
    parse(text, framework, source_file, registry) -> Result[IRDocument]
    parse_component(text, source_file, registry) -> Result[IRDocument]
    parse_widget_tree(text, source_file, registry) -> Result[IRDocument]
    detect_framework(file_path) -> str | None

Parser modules are imported lazily: the state, navigation and animation
converters import the syntax helpers in this package, and the parsers
import those converters.
"""

import os
from typing import TYPE_CHECKING, Optional

from ..constants import FRAMEWORK_COMPONENT_MODEL, FRAMEWORK_WIDGET_TREE, SOURCE_EXTENSIONS, SUPPORTED_FRAMEWORKS

if TYPE_CHECKING:
    from ..ir.errors import Result
    from ..ir.models import IRDocument
    from ..mapping import MappingRegistry
    from .base import BaseSourceParser

__all__ = [
    "detect_framework",
    "get_parser",
    "parse",
    "parse_component",
    "parse_widget_tree",
]


def detect_framework(file_path: str) -> Optional[str]:
    """Framework tag for a file extension, or ``None`` if unsupported."""
    _, ext = os.path.splitext(file_path)
    return SOURCE_EXTENSIONS.get(ext.lower())


def get_parser(framework: str, registry: Optional["MappingRegistry"] = None) -> "BaseSourceParser":
    """Build a parser for ``framework`` bound to ``registry``.

    A new instance per call, so each conversion keeps the registry
    snapshot it started with.

    Raises:
        ValueError: If the framework is not supported
    """
    if framework == FRAMEWORK_COMPONENT_MODEL:
        from .component_parser import ComponentModelParser
        return ComponentModelParser(registry)
    if framework == FRAMEWORK_WIDGET_TREE:
        from .widget_tree_parser import WidgetTreeParser
        return WidgetTreeParser(registry)
    raise ValueError(
        f"Unsupported framework: {framework}. "
        f"Supported: {[FRAMEWORK_COMPONENT_MODEL, FRAMEWORK_WIDGET_TREE]}"
    )


def parse(
    text: str,
    framework: str,
    source_file: str = "<memory>",
    registry: Optional["MappingRegistry"] = None,
) -> "Result[IRDocument]":
    """Parse source text of ``framework`` into an IR document result.

    An unsupported framework is a failed result, not an exception.
    """
    if framework not in SUPPORTED_FRAMEWORKS:
        from ..ir.errors import ParseError, Result
        return Result.failure(ParseError(f"unsupported framework: {framework}", 1, 1, source_file))
    return get_parser(framework, registry).parse_source(text, source_file)


def parse_component(
    text: str, source_file: str = "<memory>", registry: Optional["MappingRegistry"] = None
) -> "Result[IRDocument]":
    return parse(text, FRAMEWORK_COMPONENT_MODEL, source_file, registry)


def parse_widget_tree(
    text: str, source_file: str = "<memory>", registry: Optional["MappingRegistry"] = None
) -> "Result[IRDocument]":
    return parse(text, FRAMEWORK_WIDGET_TREE, source_file, registry)
