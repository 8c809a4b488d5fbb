"""Structural validation of IR documents.

Structural problems are fatal and come back as errors. Unknown widgets and
unresolved props come back as warnings on an otherwise successful result
so unmapped coverage stays visible without aborting a conversion.
"""

import logging
from typing import List, Optional, Set

from ..constants import COMMON_PROPS
from ..mapping.registry import MappingEntry, MappingRegistry, get_registry
from .errors import Result, ValidationError, ValidationErrorKind
from .models import (
    IR_NODE_TYPES,
    Element,
    Expression,
    ExpressionSlot,
    IRDocument,
    Literal,
    LiteralKind,
    TextLiteral,
    child_path,
    literal_matches_kind,
    unreachable,
)

logger = logging.getLogger(__name__)


class _Checker:
    """Single-use walker collecting errors and warnings for one document."""

    def __init__(self, registry: MappingRegistry, file_path: str):
        self.registry = registry
        self.file_path = file_path
        self.errors: List[ValidationError] = []
        self.warnings: List[ValidationError] = []
        self._seen: Set[int] = set()

    def _add(self, kind: ValidationErrorKind, path: str, message: str) -> None:
        err = ValidationError(kind, path, message, self.file_path)
        (self.errors if err.fatal else self.warnings).append(err)

    def structural(self, path: str, message: str) -> None:
        self._add(ValidationErrorKind.STRUCTURAL, path, message)

    def check_node(self, node: object, path: str) -> None:
        if not isinstance(node, IR_NODE_TYPES):
            self.structural(path, f"not an IR node: {type(node).__name__}")
            return

        if id(node) in self._seen and isinstance(node, Element):
            self.structural(path, "node is shared by more than one parent")
            return
        self._seen.add(id(node))

        if isinstance(node, Element):
            self.check_element(node, path)
        elif isinstance(node, TextLiteral):
            if not isinstance(node.value, str):
                self.structural(path, "TextLiteral value must be a string")
        elif isinstance(node, ExpressionSlot):
            if not isinstance(node.source_text, str):
                self.structural(path, "ExpressionSlot source must be a string")
        else:
            unreachable(node)

    def check_element(self, node: Element, path: str) -> None:
        entry: Optional[MappingEntry] = None
        if node.is_placeholder:
            if not node.original_type:
                self.structural(path, "unknown placeholder without original_type")
            else:
                self._add(
                    ValidationErrorKind.UNKNOWN_WIDGET, path,
                    f"'{node.original_type}' has no mapping and is kept as a placeholder",
                )
        else:
            entry = self.registry.get(node.widget_type) or self.registry.resolve_forward(
                node.widget_type
            )
            if entry is None:
                self._add(
                    ValidationErrorKind.UNKNOWN_WIDGET, path,
                    f"widget type '{node.widget_type}' is not in the mapping registry",
                )

        for name, value in node.props.items():
            self.check_prop(name, value, f"{path}.props.{name}", entry)

        if entry is not None:
            self.check_arity(node, entry, path)

        for i, child in enumerate(node.children):
            self.check_node(child, child_path(path, i))

    def check_prop(
        self, name: str, value: object, path: str, entry: Optional[MappingEntry]
    ) -> None:
        if isinstance(value, Literal):
            if not isinstance(value.kind, LiteralKind) or not literal_matches_kind(value):
                self.structural(path, f"literal value {value.value!r} does not match kind")
        elif isinstance(value, Expression):
            if not isinstance(value.source_text, str):
                self.structural(path, "expression source must be a string")
        else:
            self.structural(path, f"untagged prop value: {type(value).__name__}")
            return

        if entry is not None and name not in COMMON_PROPS and entry.find_prop(name) is None:
            self._add(
                ValidationErrorKind.UNRESOLVED_PROP, path,
                f"{entry.source_widget_name} does not declare prop '{name}'",
            )

    def check_arity(self, node: Element, entry: MappingEntry, path: str) -> None:
        elements = [c for c in node.children if isinstance(c, Element)]
        has_text = any(not isinstance(c, Element) for c in node.children)

        if entry.arity == "leaf":
            if elements or (has_text and entry.text_children == "none"):
                self.structural(path, f"{node.widget_type} is a leaf and cannot have children")
        elif entry.arity == "single":
            count = len(elements) + (1 if has_text else 0)
            if count > 1:
                self.structural(path, f"{node.widget_type} accepts a single child, got {count}")


def validate(
    doc: IRDocument, registry: Optional[MappingRegistry] = None
) -> Result[IRDocument]:
    """Check an IR document's structural invariants."""
    registry = registry or get_registry()
    file_path = getattr(getattr(doc, "metadata", None), "source_file", "<memory>")
    checker = _Checker(registry, file_path)

    root = getattr(doc, "root", None)
    if root is None:
        checker.structural("root", "document has no root node")
    else:
        checker.check_node(root, "root")

    if checker.errors:
        logger.debug("Validation failed for %s: %d error(s)", file_path, len(checker.errors))
        return Result.failure(*checker.errors, warnings=checker.warnings)
    return Result.success(doc, checker.warnings)
