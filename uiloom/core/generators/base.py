"""Base interface for framework-specific generators.

Each ``generate`` call builds a fresh ``EmissionContext`` and drops it
when the call returns, so imports and warnings never leak between
conversions. The context also pins the registry snapshot and settings
the call started with.
"""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set

from ..config import ConverterSettings, get_settings
from ..constants import MARKUP_EXPRESSION_KEY, UNCONVERTED_PREFIX, UNKNOWN_WIDGET
from ..ir.errors import GenerationFailure, Result, ValidationError, ValidationErrorKind
from ..ir.models import Element, ExpressionSlot, IRDocument, walk
from ..mapping import MappingEntry, MappingRegistry, get_registry

logger = logging.getLogger(__name__)

_JS_IMPORT_RE = re.compile(
    r"^import\s+(?:(?P<default>[A-Za-z_$][\w$]*)\s*,?\s*)?(?:\{(?P<named>[^}]*)\}\s*)?"
    r"from\s+['\"](?P<module>[^'\"]+)['\"]\s*;?$",
    re.DOTALL,
)
_DART_IMPORT_RE = re.compile(r"^import\s+['\"](?P<module>[^'\"]+)['\"]\s*;$")


@dataclass
class EmissionContext:
    """Per-call generation state."""

    framework: str
    registry: MappingRegistry
    settings: ConverterSettings
    file_path: str = "<memory>"
    imports: Dict[str, Set[str]] = field(default_factory=dict)
    default_imports: Dict[str, str] = field(default_factory=dict)
    raw_imports: Set[str] = field(default_factory=set)
    # Module-level source generated while emitting the tree (route helpers).
    declarations: List[str] = field(default_factory=list)
    warnings: List[object] = field(default_factory=list)

    @property
    def indent(self) -> str:
        return self.settings.converter.indent

    def add_import(self, module: str, *names: str) -> None:
        self.imports.setdefault(module, set()).update(names)

    def merge_imports(self, imports: Dict[str, Set[str]]) -> None:
        for module, names in imports.items():
            self.add_import(module, *names)

    def unknown_widget(self, path: str, original_type: Optional[str]) -> None:
        message = f"unmapped widget '{original_type}' emitted as a placeholder"
        logger.warning(f"{self.file_path}: {path}: {message}")
        self.warnings.append(ValidationError(ValidationErrorKind.UNKNOWN_WIDGET, path, message, self.file_path))

    def take_import(self, text: str) -> bool:
        """Fold a source import statement into the import table.

        Returns ``False`` when ``text`` is not an import. Imports that do
        not fit the table are kept as written.
        """
        stripped = text.strip()
        if not stripped.startswith("import "):
            return False
        m = _JS_IMPORT_RE.match(stripped)
        if m and (m.group("default") or m.group("named") is not None):
            module = m.group("module")
            if m.group("default"):
                self.default_imports[module] = m.group("default")
            names = [n.strip() for n in (m.group("named") or "").split(",") if n.strip()]
            self.add_import(module, *names)
            return True
        m = _DART_IMPORT_RE.match(stripped)
        if m:
            self.add_import(m.group("module"))
            return True
        self.raw_imports.add(stripped)
        return True


class BaseGenerator(ABC):
    """Abstract base for generators.

    Subclasses implement:
    - get_framework(): returns the target framework tag
    - emit_document(): renders a validated document with the context
    """

    def __init__(self, registry: Optional[MappingRegistry] = None):
        self.registry = registry or get_registry()

    @abstractmethod
    def get_framework(self) -> str:
        ...

    @abstractmethod
    def emit_document(self, doc: IRDocument, ctx: EmissionContext) -> str:
        """Render ``doc``. Raises ``GenerationFailure`` for unrepresentable IR."""
        ...

    def generate(self, doc: IRDocument) -> Result[str]:
        file_path = doc.metadata.source_file if doc.metadata is not None else "<memory>"
        ctx = EmissionContext(
            framework=self.get_framework(),
            registry=self.registry,
            settings=get_settings(),
            file_path=file_path,
        )
        if not isinstance(doc.root, Element):
            error = GenerationFailure("root must be an element", "root").to_error(file_path)
            return Result.failure(error)
        try:
            text = self.emit_document(doc, ctx)
        except GenerationFailure as e:
            logger.debug(f"Generation failed for {file_path}: {e}")
            return Result.failure(e.to_error(file_path), warnings=ctx.warnings)
        return Result.success(text, ctx.warnings)


# =============================================================================
# Shared helpers
# =============================================================================


def indent_block(text: str, prefix: str) -> str:
    return "\n".join(prefix + line if line else line for line in text.split("\n"))


def unconverted(text: str) -> str:
    """Source from the other framework, kept as comment lines."""
    return "\n".join(f"// {UNCONVERTED_PREFIX} {line}".rstrip() for line in text.split("\n"))


def carried(slots: Iterable[ExpressionSlot], same_framework: bool) -> List[str]:
    """Opaque source slots as emitted text: verbatim or as comments."""
    out = []
    for slot in slots:
        if same_framework or slot.source_text.lstrip().startswith("//"):
            out.append(slot.source_text)
        else:
            out.append(unconverted(slot.source_text))
    return out


def collect_bindings(root: Element):
    """State bindings from every element, root first."""
    bindings = []
    for _, node in walk(root):
        if isinstance(node, Element):
            bindings.extend(node.state_bindings)
    return bindings


def root_markup_expression(root: Element) -> Optional[str]:
    """Source text of a root that holds its markup as one expression, else ``None``."""
    if not root.metadata.get(MARKUP_EXPRESSION_KEY):
        return None
    if len(root.children) != 1 or not isinstance(root.children[0], ExpressionSlot):
        return None
    return root.children[0].source_text


def entry_for(ctx: EmissionContext, element: Element) -> Optional[MappingEntry]:
    """The mapping record for ``element``, or ``None`` when it renders as a placeholder."""
    if element.widget_type == UNKNOWN_WIDGET:
        return None
    return ctx.registry.get(element.widget_type) or ctx.registry.resolve_forward(element.widget_type)


def check_arity(entry: MappingEntry, element: Element, path: str) -> None:
    if entry.arity == "leaf" and element.children:
        raise GenerationFailure(f"{entry.source_widget_name} cannot have children", path)
    if entry.arity == "single" and len(element.children) > 1:
        raise GenerationFailure(
            f"{entry.source_widget_name} takes a single child, got {len(element.children)}", path
        )
