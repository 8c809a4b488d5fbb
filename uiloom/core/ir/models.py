"""IR data models.

Defines the framework-neutral intermediate representation shared by both
parsers and both generators. These are pure data containers -- no parsing
or generation logic.

Every type is a frozen dataclass and every sequence is a tuple, so a
document is never mutated after a parser builds it. Transforms return new
documents (see ``with_root`` / ``replace_node``).

``IRNode`` and ``PropValue`` are closed unions. Consumers match each variant
explicitly and call ``unreachable()`` for anything else.
"""

import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Iterator, Optional, Tuple, Union

from ..constants import IR_VERSION, UNKNOWN_WIDGET


# ── Prop values ──────────────────────────────────────────────────────


class LiteralKind(str, Enum):
    """Kinds of compile-time constant prop values."""
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    NULL = "null"
    ARRAY = "array"
    OBJECT = "object"


@dataclass(frozen=True)
class Literal:
    """A constant written in the source as literal syntax.

    Arrays and objects hold plain Python values and are only literals when
    every member is itself constant.
    """
    kind: LiteralKind
    value: Any


@dataclass(frozen=True)
class Expression:
    """Anything that was not a constant literal, kept as exact source text."""
    source_text: str


PropValue = Union[Literal, Expression]


def literal(value: Any) -> Literal:
    """Build a correctly tagged ``Literal`` from a plain Python value."""
    if value is None:
        return Literal(LiteralKind.NULL, None)
    if isinstance(value, bool):
        return Literal(LiteralKind.BOOLEAN, value)
    if isinstance(value, (int, float)):
        return Literal(LiteralKind.NUMBER, value)
    if isinstance(value, str):
        return Literal(LiteralKind.STRING, value)
    if isinstance(value, (list, tuple)):
        return Literal(LiteralKind.ARRAY, list(value))
    if isinstance(value, dict):
        return Literal(LiteralKind.OBJECT, dict(value))
    raise TypeError(f"Not a literal value: {value!r}")


def literal_matches_kind(lit: Literal) -> bool:
    """Check a literal's Python value agrees with its kind tag."""
    value = lit.value
    if lit.kind is LiteralKind.NULL:
        return value is None
    if lit.kind is LiteralKind.BOOLEAN:
        return isinstance(value, bool)
    if lit.kind is LiteralKind.NUMBER:
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if lit.kind is LiteralKind.STRING:
        return isinstance(value, str)
    if lit.kind is LiteralKind.ARRAY:
        return isinstance(value, list)
    if lit.kind is LiteralKind.OBJECT:
        return isinstance(value, dict)
    return False


# ── State ────────────────────────────────────────────────────────────


class StatePattern(str, Enum):
    """Framework-neutral state idioms."""
    LOCAL = "local"
    REDUCER = "reducer"
    EXTERNAL_STORE = "externalStore"
    CONTEXT_DERIVED = "contextDerived"


@dataclass(frozen=True)
class StateTransition:
    """A named trigger and the mutation it applies (source text)."""
    trigger: str
    mutation_expression: str


@dataclass(frozen=True)
class StateBinding:
    """One state declaration site lifted out of a component."""
    pattern: StatePattern
    name: str
    initial_value: Optional[PropValue] = None
    transitions: Tuple[StateTransition, ...] = ()
    setter: Optional[str] = None  # "setCount" | "dispatch" | None
    type_hint: Optional[str] = None  # "int", "CounterState", "ThemeData"
    source_idiom: Optional[str] = None  # "useState" | "setState" | "bloc" | ...
    reducer: Optional[str] = None  # reducer function name for the reducer pattern
    source_hook: Optional[str] = None  # hook or accessor callee as written: "useStore", "useContext"


# ── Animation ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Keyframe:
    offset: float  # 0.0 .. 1.0
    value: Any
    easing: Optional[str] = None


@dataclass(frozen=True)
class PropertyTween:
    """Tween of one animatable property (opacity, scale, rotate, x, ...)."""
    property: str
    begin: Any = None
    end: Any = None
    keyframes: Tuple[Keyframe, ...] = ()


@dataclass(frozen=True)
class TweenSegment:
    """One weighted piece of a lowered keyframe sequence."""
    begin: Any
    end: Any
    weight: float
    curve: str = "linear"


@dataclass(frozen=True)
class GestureSpec:
    """A gesture descriptor: kind plus handler source text and constraints."""
    kind: str  # "tap" | "longPress" | "drag" | "pinch" | "rotate"
    handler: Optional[str] = None
    axis: Optional[str] = None  # "x" | "y" for drag locks
    threshold: Optional[float] = None


@dataclass(frozen=True)
class AnimationSpec:
    tweens: Tuple[PropertyTween, ...] = ()
    duration_ms: int = 300
    delay_ms: int = 0
    easing: str = "easeInOut"
    repeat: bool = False
    gestures: Tuple[GestureSpec, ...] = ()


# ── Nodes ────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class TextLiteral:
    value: str


@dataclass(frozen=True)
class ExpressionSlot:
    """Opaque passthrough for anything not structurally recognized."""
    source_text: str


@dataclass(frozen=True)
class Element:
    """A widget/component instance.

    ``original_type`` is only set on the ``unknown`` placeholder and keeps
    the verbatim tag it stands for. ``metadata`` carries converter output
    that is kept out of the tree shape (e.g. ``"routes"``).
    """
    widget_type: str
    props: Dict[str, PropValue] = field(default_factory=dict)
    children: Tuple["IRNode", ...] = ()
    state_bindings: Tuple[StateBinding, ...] = ()
    animation_spec: Optional[AnimationSpec] = None
    original_type: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_placeholder(self) -> bool:
        return self.widget_type == UNKNOWN_WIDGET


IRNode = Union[Element, TextLiteral, ExpressionSlot]

IR_NODE_TYPES = (Element, TextLiteral, ExpressionSlot)
PROP_VALUE_TYPES = (Literal, Expression)


def placeholder(original_type: str, props: Optional[Dict[str, PropValue]] = None,
                children: Tuple[IRNode, ...] = ()) -> Element:
    """Build the explicit ``unknown`` element for an unmapped tag."""
    return Element(
        widget_type=UNKNOWN_WIDGET,
        props=dict(props or {}),
        children=tuple(children),
        original_type=original_type,
    )


# ── Document ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class DocumentMetadata:
    source_framework: str
    source_file: str = "<memory>"
    generated_at: float = field(default_factory=time.time)
    component_name: Optional[str] = None
    # Opaque source kept verbatim: statements before the returned markup,
    # class-level members, and module-level declarations.
    prelude: Tuple[ExpressionSlot, ...] = ()
    members: Tuple[ExpressionSlot, ...] = ()
    declarations: Tuple[ExpressionSlot, ...] = ()


@dataclass(frozen=True)
class IRDocument:
    """Complete parse output for one component."""
    metadata: DocumentMetadata
    root: Optional[IRNode]
    version: str = IR_VERSION

    def with_root(self, root: IRNode) -> "IRDocument":
        return replace(self, root=root)


# ── Traversal helpers ────────────────────────────────────────────────


def unreachable(value: Any) -> "NoReturn":  # noqa: F821
    """Fail loudly on a value outside a closed union."""
    raise TypeError(f"Unhandled IR variant: {type(value).__name__}")


def child_path(parent_path: str, index: int) -> str:
    return f"{parent_path}.children[{index}]"


def node_path(*indexes: int) -> str:
    """Format a path from child indexes, e.g. ``node_path(0, 1)``."""
    path = "root"
    for index in indexes:
        path = child_path(path, index)
    return path


def walk(node: IRNode, path: str = "root") -> Iterator[Tuple[str, IRNode]]:
    """Yield ``(path, node)`` pairs depth-first, parents before children."""
    yield path, node
    if isinstance(node, Element):
        for i, child in enumerate(node.children):
            yield from walk(child, child_path(path, i))
    elif isinstance(node, (TextLiteral, ExpressionSlot)):
        return
    else:
        unreachable(node)


def replace_node(node: IRNode, path: str, new_node: IRNode, current: str = "root") -> IRNode:
    """Return a copy of ``node`` with the node at ``path`` swapped out."""
    if current == path:
        return new_node
    if isinstance(node, Element):
        prefix = current + ".children["
        if not path.startswith(prefix):
            return node
        children = tuple(
            replace_node(child, path, new_node, child_path(current, i))
            for i, child in enumerate(node.children)
        )
        return replace(node, children=children)
    return node
