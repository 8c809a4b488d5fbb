"""Base interface for framework-specific source parsers.

Defines the Strategy base class both parsers implement. Shared logic
(reading files, turning syntax exceptions into ``ParseError`` records,
stamping document metadata) lives here; framework-specific lowering is
delegated.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from ..config import get_settings
from ..ir.errors import ParseError, Result, SourceSyntaxError
from ..ir.models import DocumentMetadata, ExpressionSlot, IRDocument, IRNode
from ..mapping import MappingRegistry, get_registry

logger = logging.getLogger(__name__)


@dataclass
class ParsedComponent:
    """What a framework parser extracts before metadata is stamped on."""

    root: IRNode
    component_name: Optional[str] = None
    prelude: List[str] = field(default_factory=list)
    members: List[str] = field(default_factory=list)
    declarations: List[str] = field(default_factory=list)
    warnings: List[object] = field(default_factory=list)


class BaseSourceParser(ABC):
    """Abstract base for source parsers.

    Subclasses implement:
    - get_framework(): returns the framework tag
    - parse_component(): lowers source text into a ``ParsedComponent``
    """

    def __init__(self, registry: Optional[MappingRegistry] = None):
        self.registry = registry or get_registry()

    @abstractmethod
    def get_framework(self) -> str:
        """Return the framework tag (e.g. 'componentModel')."""
        ...

    @abstractmethod
    def parse_component(self, text: str, file_path: str) -> ParsedComponent:
        """Lower source text into IR.

        Raises ``SourceSyntaxError`` on malformed input.
        """
        ...

    def parse_file(self, file_path: str) -> Result[IRDocument]:
        """Read and parse a file."""
        try:
            with open(file_path, "r", encoding="utf-8", errors="replace") as f:
                text = f.read()
        except OSError as e:
            return Result.failure(ParseError(str(e), 0, 0, file_path))
        return self.parse_source(text, file_path)

    def parse_source(self, text: str, file_path: str = "<memory>") -> Result[IRDocument]:
        """Parse source text into an ``IRDocument`` result."""
        try:
            parsed = self.parse_component(text, file_path)
        except SourceSyntaxError as e:
            logger.debug(f"Syntax error in {file_path}: {e}")
            return Result.failure(e.to_error(file_path))

        doc = IRDocument(
            version=get_settings().converter.ir_version,
            metadata=DocumentMetadata(
                source_framework=self.get_framework(),
                source_file=file_path,
                generated_at=time.time(),
                component_name=parsed.component_name,
                prelude=tuple(ExpressionSlot(s) for s in parsed.prelude),
                members=tuple(ExpressionSlot(s) for s in parsed.members),
                declarations=tuple(ExpressionSlot(s) for s in parsed.declarations),
            ),
            root=parsed.root,
        )
        return Result.success(doc, parsed.warnings)


def dedent_slice(text: str, column: int) -> str:
    """Normalise a source slice that started at 1-based ``column``.

    The first line of a slice carries no indentation; later lines are
    shifted left by the indentation the first line had.
    """
    shift = column - 1
    lines = text.split("\n")
    out = [lines[0]]
    for line in lines[1:]:
        prefix = len(line) - len(line.lstrip(" "))
        out.append(line[min(prefix, shift):])
    return "\n".join(out).rstrip()


def component_name_from_path(file_path: str) -> Optional[str]:
    """``lib/user_card.dart`` -> ``UserCard``; ``<memory>`` -> ``None``."""
    if file_path.startswith("<"):
        return None
    stem = Path(file_path).stem
    words = [w for w in stem.replace("-", "_").split("_") if w]
    return "".join(w[0].upper() + w[1:] for w in words) or None
