"""JSON-compatible schema for IR documents.

``to_schema`` produces the payload a rendering client builds a live tree
from; ``from_schema`` reads it back. Element metadata holding dataclasses
(route schemas) is flattened to plain dicts and is not re-hydrated.
"""

import dataclasses
from enum import Enum
from typing import Any, Dict, Optional

from .models import (
    AnimationSpec,
    DocumentMetadata,
    Element,
    Expression,
    ExpressionSlot,
    GestureSpec,
    IRDocument,
    IRNode,
    Keyframe,
    Literal,
    LiteralKind,
    PropertyTween,
    PropValue,
    StateBinding,
    StatePattern,
    StateTransition,
    TextLiteral,
    unreachable,
)


def _plain(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: _plain(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _plain(v) for k, v in value.items()}
    return value


def prop_to_schema(value: PropValue) -> Dict[str, Any]:
    if isinstance(value, Literal):
        return {"kind": value.kind.value, "value": value.value}
    if isinstance(value, Expression):
        return {"kind": "expression", "source": value.source_text}
    unreachable(value)


def prop_from_schema(data: Dict[str, Any]) -> PropValue:
    if data["kind"] == "expression":
        return Expression(data["source"])
    return Literal(LiteralKind(data["kind"]), data.get("value"))


def node_to_schema(node: IRNode) -> Dict[str, Any]:
    if isinstance(node, Element):
        out: Dict[str, Any] = {
            "type": "element",
            "widgetType": node.widget_type,
            "props": {k: prop_to_schema(v) for k, v in node.props.items()},
            "children": [node_to_schema(c) for c in node.children],
        }
        if node.original_type:
            out["originalType"] = node.original_type
        if node.state_bindings:
            out["stateBindings"] = [_plain(b) for b in node.state_bindings]
            for raw, binding in zip(out["stateBindings"], node.state_bindings):
                if binding.initial_value is not None:
                    raw["initial_value"] = prop_to_schema(binding.initial_value)
        if node.animation_spec is not None:
            out["animation"] = _plain(node.animation_spec)
        if node.metadata:
            out["metadata"] = _plain(node.metadata)
        return out
    if isinstance(node, TextLiteral):
        return {"type": "text", "value": node.value}
    if isinstance(node, ExpressionSlot):
        return {"type": "expression", "source": node.source_text}
    unreachable(node)


def _binding_from_schema(data: Dict[str, Any]) -> StateBinding:
    initial = data.get("initial_value")
    return StateBinding(
        pattern=StatePattern(data["pattern"]),
        name=data["name"],
        initial_value=prop_from_schema(initial) if initial else None,
        transitions=tuple(StateTransition(**t) for t in data.get("transitions", ())),
        setter=data.get("setter"),
        type_hint=data.get("type_hint"),
        source_idiom=data.get("source_idiom"),
        reducer=data.get("reducer"),
        source_hook=data.get("source_hook"),
    )


def _animation_from_schema(data: Dict[str, Any]) -> AnimationSpec:
    tweens = tuple(
        PropertyTween(
            property=t["property"],
            begin=t.get("begin"),
            end=t.get("end"),
            keyframes=tuple(Keyframe(**k) for k in t.get("keyframes", ())),
        )
        for t in data.get("tweens", ())
    )
    return AnimationSpec(
        tweens=tweens,
        duration_ms=data.get("duration_ms", 300),
        delay_ms=data.get("delay_ms", 0),
        easing=data.get("easing", "easeInOut"),
        repeat=data.get("repeat", False),
        gestures=tuple(GestureSpec(**g) for g in data.get("gestures", ())),
    )


def node_from_schema(data: Dict[str, Any]) -> IRNode:
    kind = data.get("type")
    if kind == "text":
        return TextLiteral(data["value"])
    if kind == "expression":
        return ExpressionSlot(data["source"])
    if kind != "element":
        raise ValueError(f"Unknown node type in schema: {kind!r}")

    animation: Optional[AnimationSpec] = None
    if data.get("animation"):
        animation = _animation_from_schema(data["animation"])
    return Element(
        widget_type=data["widgetType"],
        props={k: prop_from_schema(v) for k, v in data.get("props", {}).items()},
        children=tuple(node_from_schema(c) for c in data.get("children", ())),
        state_bindings=tuple(_binding_from_schema(b) for b in data.get("stateBindings", ())),
        animation_spec=animation,
        original_type=data.get("originalType"),
        metadata=dict(data.get("metadata", {})),
    )


def to_schema(doc: IRDocument) -> Dict[str, Any]:
    """Convert a document into JSON-compatible primitives."""
    meta = doc.metadata
    return {
        "version": doc.version,
        "metadata": {
            "sourceFramework": meta.source_framework,
            "sourceFile": meta.source_file,
            "generatedAt": meta.generated_at,
            "componentName": meta.component_name,
            "prelude": [slot.source_text for slot in meta.prelude],
            "members": [slot.source_text for slot in meta.members],
            "declarations": [slot.source_text for slot in meta.declarations],
        },
        "root": node_to_schema(doc.root) if doc.root is not None else None,
    }


def from_schema(data: Dict[str, Any]) -> IRDocument:
    """Rebuild a document from ``to_schema`` output."""
    meta = data.get("metadata", {})
    root = data.get("root")
    return IRDocument(
        version=data.get("version", "1.0.0"),
        metadata=DocumentMetadata(
            source_framework=meta["sourceFramework"],
            source_file=meta.get("sourceFile", "<memory>"),
            generated_at=meta.get("generatedAt", 0.0),
            component_name=meta.get("componentName"),
            prelude=tuple(ExpressionSlot(s) for s in meta.get("prelude", ())),
            members=tuple(ExpressionSlot(s) for s in meta.get("members", ())),
            declarations=tuple(ExpressionSlot(s) for s in meta.get("declarations", ())),
        ),
        root=node_from_schema(root) if root is not None else None,
    )
