"""Widget mapping registry.

Loads the declarative mapping table (``widget_mappings.yaml`` plus any
extra files named in config) into an immutable ``MappingRegistry``
snapshot with forward and backward indexes built once.

Conversions capture a snapshot at their start with ``get_registry()`` and
use it for the whole call. ``reload_registry()`` builds a fresh snapshot
and swaps the module reference under a lock, so an in-flight conversion
never sees a half-updated table.
"""

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

import yaml
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from ..config import get_settings, resolve_config_file
from ..constants import COMMON_PROPS
from ..ir.errors import ValidationError, ValidationErrorKind
from ..ir.models import PropValue
from .transforms import TRANSFORMS, Direction, TransformError, apply_transform

logger = logging.getLogger(__name__)

ARITIES = ("leaf", "single", "multi")
TEXT_CHILDREN_MODES = ("positional", "wrap", "none")
CHILD_SLOTS = ("child", "children", "none")  # or any other named single-child argument


class MappingFileError(ValueError):
    """A mapping table that cannot be loaded."""


# =============================================================================
# Record schema (validated on load)
# =============================================================================


class PropRecord(BaseModel):
    target: str = Field(..., description="Target path, e.g. 'style.color' or '@0'")
    transform: str = Field("identity", description="Value transform name")
    aliases: List[str] = Field(default_factory=list)
    target_aliases: List[str] = Field(default_factory=list, description="Extra widget-tree paths read back as this prop")
    style: bool = Field(False, description="Lives in the component-model style object")
    values: Dict[str, str] = Field(default_factory=dict)


class LayoutRecord(BaseModel):
    prop: str
    default: str
    widgets: Dict[str, str]


class MappingRecord(BaseModel):
    source: str = Field(..., description="IR / component-model widget name")
    target: str = Field(..., description="Widget-tree constructor name")
    aliases: List[str] = Field(default_factory=list)
    target_aliases: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    imports: Dict[str, List[str]] = Field(default_factory=dict)
    arity: str = "multi"
    text_children: str = "none"
    child_slot: str = "children"
    groups: Dict[str, str] = Field(default_factory=dict)
    layout: Optional[LayoutRecord] = None
    props: Dict[str, PropRecord] = Field(default_factory=dict)


# =============================================================================
# Frozen snapshot types
# =============================================================================


@dataclass(frozen=True)
class PropTransform:
    name: str
    target_path: str
    value_transform: str = "identity"
    aliases: Tuple[str, ...] = ()
    target_aliases: Tuple[str, ...] = ()
    style: bool = False
    values: Mapping[str, str] = field(default_factory=dict)

    @property
    def positional_index(self) -> Optional[int]:
        if self.target_path.startswith("@"):
            return int(self.target_path[1:])
        return None


@dataclass(frozen=True)
class LayoutSpec:
    prop: str
    default: str
    widgets: Mapping[str, str]


@dataclass(frozen=True)
class MappingEntry:
    source_widget_name: str
    target_widget_name: str
    prop_transforms: Mapping[str, PropTransform]
    imports_required: Mapping[str, Tuple[str, ...]]
    aliases: Tuple[str, ...] = ()
    target_aliases: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)
    arity: str = "multi"
    text_children: str = "none"
    child_slot: str = "children"
    groups: Mapping[str, str] = field(default_factory=dict)
    layout: Optional[LayoutSpec] = None

    def find_prop(self, name: str) -> Optional[PropTransform]:
        """Find a prop transform by IR name or component-model alias."""
        pt = self.prop_transforms.get(name)
        if pt is not None:
            return pt
        for pt in self.prop_transforms.values():
            if name in pt.aliases:
                return pt
        return None

    def find_target(self, target_path: str) -> Optional[PropTransform]:
        for pt in self.prop_transforms.values():
            if pt.target_path == target_path:
                return pt
        for pt in self.prop_transforms.values():
            if target_path in pt.target_aliases:
                return pt
        return None

    @property
    def single_slot(self) -> Optional[str]:
        """Named argument holding one child widget (``child``, ``body``), or ``None``."""
        if self.child_slot in ("children", "none"):
            return None
        return self.child_slot

    def style_props(self) -> Tuple[str, ...]:
        return tuple(n for n, pt in self.prop_transforms.items() if pt.style)

    def imports_for(self, framework: str) -> Tuple[str, ...]:
        return tuple(self.imports_required.get(framework, ()))


def _freeze(record: MappingRecord) -> MappingEntry:
    for name, prop in record.props.items():
        if prop.transform not in TRANSFORMS:
            raise MappingFileError(
                f"{record.source}.{name}: unknown transform {prop.transform!r}"
            )
    if record.arity not in ARITIES:
        raise MappingFileError(f"{record.source}: arity must be one of {ARITIES}")
    if record.text_children not in TEXT_CHILDREN_MODES:
        raise MappingFileError(
            f"{record.source}: text_children must be one of {TEXT_CHILDREN_MODES}"
        )
    if record.child_slot not in CHILD_SLOTS and not record.child_slot.isidentifier():
        raise MappingFileError(
            f"{record.source}: child_slot must be one of {CHILD_SLOTS} or an argument name"
        )

    props = {
        name: PropTransform(
            name=name,
            target_path=prop.target,
            value_transform=prop.transform,
            aliases=tuple(prop.aliases),
            target_aliases=tuple(prop.target_aliases),
            style=prop.style,
            values=MappingProxyType(dict(prop.values)),
        )
        for name, prop in record.props.items()
    }
    layout = None
    if record.layout is not None:
        layout = LayoutSpec(
            prop=record.layout.prop,
            default=record.layout.default,
            widgets=MappingProxyType(dict(record.layout.widgets)),
        )
    return MappingEntry(
        source_widget_name=record.source,
        target_widget_name=record.target,
        prop_transforms=MappingProxyType(props),
        imports_required=MappingProxyType(
            {fw: tuple(mods) for fw, mods in record.imports.items()}
        ),
        aliases=tuple(record.aliases),
        target_aliases=MappingProxyType(
            {k: MappingProxyType(dict(v or {})) for k, v in record.target_aliases.items()}
        ),
        arity=record.arity,
        text_children=record.text_children,
        child_slot=record.child_slot,
        groups=MappingProxyType(dict(record.groups)),
        layout=layout,
    )


# =============================================================================
# Registry snapshot
# =============================================================================


class MappingRegistry:
    """Immutable, shareable view of the mapping table."""

    def __init__(self, entries: Iterable[MappingEntry], sources: Tuple[str, ...] = ()):
        by_source: Dict[str, MappingEntry] = {}
        for entry in entries:
            by_source[entry.source_widget_name] = entry

        forward: Dict[str, MappingEntry] = {}
        backward: Dict[str, MappingEntry] = {}
        for entry in by_source.values():
            for name in (entry.source_widget_name,) + entry.aliases:
                forward[name] = entry
            for name in entry.target_aliases:
                backward.setdefault(name, entry)
        # Primary targets win over target aliases.
        for entry in by_source.values():
            backward[entry.target_widget_name] = entry

        self._entries = MappingProxyType(by_source)
        self._forward = MappingProxyType(forward)
        self._backward = MappingProxyType(backward)
        self.sources = sources

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: str) -> bool:
        return name in self._entries

    @property
    def entries(self) -> Tuple[MappingEntry, ...]:
        return tuple(self._entries.values())

    def get(self, ir_name: str) -> Optional[MappingEntry]:
        """Entry for a canonical IR widget name."""
        return self._entries.get(ir_name)

    def resolve_forward(self, component_name: str) -> Optional[MappingEntry]:
        """Entry for a component-model tag (canonical name or alias)."""
        return self._forward.get(component_name)

    def resolve_backward(self, widget_name: str) -> Optional[MappingEntry]:
        """Entry for a widget-tree constructor.

        Tries the full dotted name (``Image.network``) then the head name.
        """
        entry = self._backward.get(widget_name)
        if entry is None and "." in widget_name:
            entry = self._backward.get(widget_name.split(".", 1)[0])
        return entry

    def transform_prop(
        self,
        entry: MappingEntry,
        prop_name: str,
        value: PropValue,
        direction: Union[Direction, str],
        issues: Optional[List[ValidationError]] = None,
        path: str = "root",
    ) -> Tuple[str, PropValue]:
        """Map one prop across the table.

        ``FORWARD`` takes an IR prop name and returns the target path;
        ``BACKWARD`` takes a target path and returns the IR prop name. An
        unresolvable name or value passes through unchanged and records an
        ``unresolvedProp`` warning in ``issues``.
        """
        direction = Direction(direction)
        if direction is Direction.FORWARD:
            pt = entry.find_prop(prop_name)
        else:
            pt = entry.find_target(prop_name)

        if pt is None:
            if prop_name not in COMMON_PROPS and issues is not None:
                issues.append(ValidationError(
                    ValidationErrorKind.UNRESOLVED_PROP,
                    path,
                    f"{entry.source_widget_name} has no mapping for prop '{prop_name}'",
                ))
            return prop_name, value

        out_name = pt.target_path if direction is Direction.FORWARD else pt.name
        try:
            out_value = apply_transform(pt.value_transform, value, direction, pt.values)
        except TransformError as e:
            logger.debug("Prop %s.%s passed through: %s", entry.source_widget_name, prop_name, e)
            if issues is not None:
                issues.append(ValidationError(
                    ValidationErrorKind.UNRESOLVED_PROP,
                    path,
                    f"{entry.source_widget_name}.{pt.name}: {e}",
                ))
            return out_name, value
        return out_name, out_value


# =============================================================================
# Loading and snapshot publication
# =============================================================================


def _read_records(path: Path) -> List[MappingRecord]:
    if not path.exists():
        raise MappingFileError(f"Mapping file not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    raw = data.get("mappings", []) if isinstance(data, dict) else data
    if not isinstance(raw, list):
        raise MappingFileError(f"{path}: 'mappings' must be a list")

    records = []
    for i, item in enumerate(raw):
        try:
            records.append(MappingRecord.model_validate(item))
        except PydanticValidationError as e:
            raise MappingFileError(f"{path}: record {i} is invalid: {e}") from e
    return records


def load_registry(path: Optional[Union[str, Path]] = None) -> MappingRegistry:
    """Build a registry snapshot.

    With ``path`` only that file is read. Otherwise the configured default
    file is read and each configured extra file is merged on top (a record
    with the same ``source`` replaces the earlier one).
    """
    if path is not None:
        files = [Path(path)]
    else:
        settings = get_settings().mappings
        files = [resolve_config_file(settings.default_file)]
        files.extend(resolve_config_file(extra) for extra in settings.extra_files)

    entries: List[MappingEntry] = []
    for file in files:
        entries.extend(_freeze(record) for record in _read_records(file))

    registry = MappingRegistry(entries, sources=tuple(str(f) for f in files))
    logger.info(f"Loaded mapping registry: {len(registry)} widgets from {len(files)} file(s)")
    return registry


_registry: Optional[MappingRegistry] = None
_registry_lock = threading.Lock()


def get_registry() -> MappingRegistry:
    """Return the current snapshot, loading the default table on first use."""
    global _registry
    registry = _registry
    if registry is not None:
        return registry
    with _registry_lock:
        if _registry is None:
            _registry = load_registry()
        return _registry


def reload_registry(path: Optional[Union[str, Path]] = None) -> MappingRegistry:
    """Build a new snapshot and publish it for subsequent conversions."""
    global _registry
    fresh = load_registry(path)
    with _registry_lock:
        _registry = fresh
    logger.info("Mapping registry swapped (%d widgets)", len(fresh))
    return fresh
