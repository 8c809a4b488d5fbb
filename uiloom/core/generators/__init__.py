"""uiloom target generators.

Public API:
    generate(doc, framework, registry) -> Result[str]
    generate_component(doc, registry) -> Result[str]
    generate_widget_tree(doc, registry) -> Result[str]

Generator modules are imported lazily for the same reason as the parsers:
the converters they call import ``literals`` from this package.
"""

from typing import TYPE_CHECKING, Optional

from ..constants import FRAMEWORK_COMPONENT_MODEL, FRAMEWORK_WIDGET_TREE, SUPPORTED_FRAMEWORKS

if TYPE_CHECKING:
    from ..ir.errors import Result
    from ..ir.models import IRDocument
    from ..mapping import MappingRegistry
    from .base import BaseGenerator

__all__ = [
    "generate",
    "generate_component",
    "generate_widget_tree",
    "get_generator",
]


def get_generator(framework: str, registry: Optional["MappingRegistry"] = None) -> "BaseGenerator":
    """Build a generator for ``framework`` bound to ``registry``.

    Raises:
        ValueError: If the framework is not supported
    """
    if framework == FRAMEWORK_COMPONENT_MODEL:
        from .component_generator import ComponentModelGenerator
        return ComponentModelGenerator(registry)
    if framework == FRAMEWORK_WIDGET_TREE:
        from .widget_tree_generator import WidgetTreeGenerator
        return WidgetTreeGenerator(registry)
    raise ValueError(
        f"Unsupported framework: {framework}. "
        f"Supported: {[FRAMEWORK_COMPONENT_MODEL, FRAMEWORK_WIDGET_TREE]}"
    )


def generate(
    doc: "IRDocument", framework: str, registry: Optional["MappingRegistry"] = None
) -> "Result[str]":
    """Render ``doc`` as ``framework`` source.

    Each call gets a fresh emission context; nothing carries over from
    earlier calls. An unsupported framework is a failed result.
    """
    if framework not in SUPPORTED_FRAMEWORKS:
        from ..ir.errors import GenerationError, Result
        file_path = doc.metadata.source_file if doc.metadata is not None else "<memory>"
        return Result.failure(GenerationError(f"unsupported framework: {framework}", "root", file_path))
    return get_generator(framework, registry).generate(doc)


def generate_component(doc: "IRDocument", registry: Optional["MappingRegistry"] = None) -> "Result[str]":
    return generate(doc, FRAMEWORK_COMPONENT_MODEL, registry)


def generate_widget_tree(doc: "IRDocument", registry: Optional["MappingRegistry"] = None) -> "Result[str]":
    return generate(doc, FRAMEWORK_WIDGET_TREE, registry)
