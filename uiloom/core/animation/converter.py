"""Animation and gesture conversion.

Component-model side: ``motion.*`` props (``initial``, ``animate``,
``transition``, gesture handlers). Widget-tree side: explicit
``TweenAnimationBuilder`` wrappers (one per animated property), implicit
``Animated*`` widgets, and one ``GestureDetector``.

Durations are milliseconds in the IR. Easing names are stored in the
component-model vocabulary and mapped to ``Curves.*`` through a fixed table;
names outside the table pass through unchanged.
"""

import logging
import re
from dataclasses import replace
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from ..constants import FRAMEWORK_COMPONENT_MODEL, FRAMEWORK_WIDGET_TREE
from ..generators.literals import dart_value, js_key, js_value
from ..ir.models import (
    AnimationSpec,
    Expression,
    GestureSpec,
    Keyframe,
    Literal,
    LiteralKind,
    PropValue,
    PropertyTween,
    TweenSegment,
    literal,
)
from ..mapping.transforms import Direction, TransformError, color, format_number
from ..parsers.dart_syntax import DartCall, DartFunction, DartList, DartNode, to_prop_value

logger = logging.getLogger(__name__)

MOTION_TAG_PREFIX = "motion."
MOTION_WRAPPER = "motion.div"
MOTION_MODULE = "framer-motion"

ANIMATION_PROPS = frozenset({
    "initial", "animate", "transition",
    "onTap", "onLongPress", "onDrag", "drag", "dragThreshold", "onPinch", "onRotate",
})

GESTURE_PROPS = {
    "onTap": "tap",
    "onLongPress": "longPress",
    "onDrag": "drag",
    "onPinch": "pinch",
    "onRotate": "rotate",
}

ANIMATABLE = ("opacity", "scale", "rotate", "x", "y", "backgroundColor", "color", "width", "height")
COLOR_PROPERTIES = frozenset({"backgroundColor", "color"})

EASING_TO_CURVE = {
    "linear": "linear",
    "easeIn": "easeIn",
    "easeOut": "easeOut",
    "easeInOut": "easeInOut",
    "circIn": "easeInCirc",
    "circOut": "easeOutCirc",
    "circInOut": "easeInOutCirc",
    "backIn": "easeInBack",
    "backOut": "easeOutBack",
    "backInOut": "easeInOutBack",
}
CURVE_TO_EASING = {v: k for k, v in EASING_TO_CURVE.items()}

DEG_TO_RAD = "0.017453292519943295"
REPEAT_MARKER = "/* animation: repeat */"

WIDGET_WRAPPERS = frozenset({
    "TweenAnimationBuilder", "AnimatedOpacity", "AnimatedScale", "AnimatedRotation",
    "AnimatedSlide", "GestureDetector",
})


def curve_name(easing: str) -> str:
    return EASING_TO_CURVE.get(easing, easing)


def easing_name(curve: str) -> str:
    curve = curve.strip()
    if curve.startswith("Curves."):
        curve = curve[len("Curves."):]
    return CURVE_TO_EASING.get(curve, curve)


# =============================================================================
# Keyframes
# =============================================================================


def even_offsets(count: int) -> List[float]:
    if count <= 1:
        return [0.0] * count
    return [i / (count - 1) for i in range(count)]


def lower_keyframes(keyframes: Sequence[Keyframe]) -> Tuple[TweenSegment, ...]:
    """Weighted segments between consecutive keyframes.

    A segment's weight is its offset gap in percent; its curve is the easing
    of the keyframe it ends on.
    """
    frames = sorted(keyframes, key=lambda k: k.offset)
    segments = []
    for a, b in zip(frames, frames[1:]):
        weight = round((b.offset - a.offset) * 100, 6)
        if weight <= 0:
            continue
        segments.append(TweenSegment(a.value, b.value, weight, b.easing or "linear"))
    return tuple(segments)


def raise_segments(segments: Sequence[TweenSegment]) -> Tuple[Keyframe, ...]:
    """Inverse of ``lower_keyframes``."""
    if not segments:
        return ()
    total = sum(s.weight for s in segments)
    frames = [Keyframe(0.0, segments[0].begin)]
    acc = 0.0
    for seg in segments:
        acc += seg.weight
        easing = None if seg.curve == "linear" else seg.curve
        frames.append(Keyframe(round(acc / total, 6), seg.end, easing))
    return tuple(frames)


# =============================================================================
# Component model: parsing
# =============================================================================


def _object(value: Optional[PropValue]) -> Optional[Dict[str, Any]]:
    if value is None:
        return {}
    if isinstance(value, Literal) and value.kind is LiteralKind.OBJECT:
        return value.value
    return None


def _keyframes(values: List[Any], times: Optional[List[Any]], ease: Any) -> Tuple[Keyframe, ...]:
    if times is None or len(times) != len(values):
        offsets = even_offsets(len(values))
    else:
        offsets = [float(t) for t in times]
    easings: List[Optional[str]] = [None] * len(values)
    if isinstance(ease, list):
        for i, name in enumerate(ease[:len(values) - 1]):
            easings[i + 1] = None if name == "linear" else str(name)
    return tuple(Keyframe(o, v, e) for o, v, e in zip(offsets, values, easings))


def split_motion_props(props: Mapping[str, PropValue]) -> Tuple[Dict[str, PropValue], Dict[str, PropValue]]:
    """``(animation props, other props)``."""
    anim = {k: v for k, v in props.items() if k in ANIMATION_PROPS}
    rest = {k: v for k, v in props.items() if k not in ANIMATION_PROPS}
    return anim, rest


def parse_motion_props(props: Mapping[str, PropValue]) -> Optional[AnimationSpec]:
    """Spec for ``motion.*`` props, or ``None`` when they are not constant."""
    initial = _object(props.get("initial"))
    animate = _object(props.get("animate"))
    if initial is None or animate is None:
        logger.debug("motion props are not constant objects; kept as plain props")
        return None
    animate = dict(animate)
    transition = _object(props.get("transition"))
    if transition is None:
        return None
    transition = dict(transition)
    if isinstance(animate.get("transition"), dict):
        transition.update(animate.pop("transition"))

    tweens = []
    for prop, end in animate.items():
        per_prop = transition.get(prop) if isinstance(transition.get(prop), dict) else {}
        if isinstance(end, list):
            times = per_prop.get("times", transition.get("times"))
            ease = per_prop.get("ease", transition.get("ease"))
            frames = _keyframes(end, times, ease)
            begin = frames[0].value if frames else None
            last = frames[-1].value if frames else None
            tweens.append(PropertyTween(prop, begin, last, frames))
        else:
            tweens.append(PropertyTween(prop, initial.get(prop), end))

    duration = transition.get("duration", 0.3)
    delay = transition.get("delay", 0)
    ease = transition.get("ease", "easeInOut")
    repeat = transition.get("repeat", 0)
    gestures = _parse_motion_gestures(props)

    if not tweens and not gestures:
        return None
    return AnimationSpec(
        tweens=tuple(tweens),
        duration_ms=int(round(float(duration) * 1000)),
        delay_ms=int(round(float(delay) * 1000)),
        easing=ease if isinstance(ease, str) else "easeInOut",
        repeat=repeat is True or (isinstance(repeat, (int, float)) and repeat > 0),
        gestures=gestures,
    )


def _handler_text(value: Optional[PropValue]) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, Expression):
        return value.source_text
    return js_value(value.value)


def _parse_motion_gestures(props: Mapping[str, PropValue]) -> Tuple[GestureSpec, ...]:
    gestures = []
    drag = props.get("drag")
    axis = None
    if isinstance(drag, Literal) and drag.value in ("x", "y"):
        axis = drag.value
    threshold = props.get("dragThreshold")
    threshold_value = None
    if isinstance(threshold, Literal) and isinstance(threshold.value, (int, float)):
        threshold_value = float(threshold.value)

    for prop, kind in GESTURE_PROPS.items():
        if prop in props:
            gesture = GestureSpec(kind, _handler_text(props[prop]))
            if kind == "drag":
                gesture = replace(gesture, axis=axis, threshold=threshold_value)
            gestures.append(gesture)
    if drag is not None and "onDrag" not in props:
        gestures.append(GestureSpec("drag", None, axis, threshold_value))
    return tuple(gestures)


# =============================================================================
# Widget tree: parsing
# =============================================================================

_DURATION_RE = re.compile(r"Duration\(\s*milliseconds:\s*(\d+)\s*\)")
_SECONDS_RE = re.compile(r"Duration\(\s*seconds:\s*(\d+)\s*\)")
_INTERVAL_RE = re.compile(
    r"^Interval\(\s*([\d.]+)\s*,\s*([\d.]+)\s*(?:,\s*curve:\s*(Curves\.\w+)\s*)?\)$"
)
_SEQUENCE_ITEM_RE = re.compile(
    r"TweenSequenceItem\(\s*tween:\s*Tween<double>\(\s*begin:\s*(-?[\d.]+)\s*,\s*end:\s*(-?[\d.]+)\s*\)"
    r"(?:\.chain\(\s*CurveTween\(\s*curve:\s*Curves\.(\w+)\s*\)\s*\))?\s*,\s*weight:\s*([\d.]+)\s*\)"
)
_ROTATION_HANDLER_RE = re.compile(r"^\(details\)\s*=>\s*\((.+)\)\(details\.rotation\)$", re.DOTALL)
_EMPTY_HANDLER_RE = re.compile(r"^\(_\)\s*\{\s*\}$")

# property -> (builder callee, argument, template around the animated value)
_BUILDERS: Dict[str, Tuple[str, str, str]] = {
    "opacity": ("Opacity", "opacity", "{v}"),
    "scale": ("Transform.scale", "scale", "{v}"),
    "rotate": ("Transform.rotate", "angle", "{v} * " + DEG_TO_RAD),
    "x": ("Transform.translate", "offset", "Offset({v}, 0.0)"),
    "y": ("Transform.translate", "offset", "Offset(0.0, {v})"),
    "width": ("SizedBox", "width", "{v}"),
    "height": ("SizedBox", "height", "{v}"),
    "backgroundColor": ("ColoredBox", "color", "{v} ?? Colors.transparent"),
    "color": ("DefaultTextStyle.merge", "style", "TextStyle(color: {v})"),
}


def _number(node: Optional[DartNode]) -> Any:
    if node is None:
        return None
    value = to_prop_value(node)
    return value.value if isinstance(value, Literal) else None


def _color_value(node: Optional[DartNode]) -> Any:
    if node is None:
        return None
    value = to_prop_value(node)
    try:
        back = color(value, Direction.BACKWARD, {})
    except TransformError:
        return None
    return back.value if isinstance(back, Literal) else None


def _timing(call: DartCall) -> Dict[str, Any]:
    """Duration, delay, easing and repeat flag of one wrapper call."""
    out: Dict[str, Any] = {}
    duration = call.named("duration")
    if duration is not None:
        m = _DURATION_RE.search(duration.text)
        s = _SECONDS_RE.search(duration.text)
        if m:
            out["duration_ms"] = int(m.group(1))
        elif s:
            out["duration_ms"] = int(s.group(1)) * 1000
    curve = call.named("curve")
    if curve is not None:
        m = _INTERVAL_RE.match(curve.text)
        if m:
            total = out.get("duration_ms", 300)
            start = float(m.group(1))
            out["delay_ms"] = int(round(start * total))
            out["duration_ms"] = total - out["delay_ms"]
            if m.group(3):
                out["easing"] = easing_name(m.group(3))
        else:
            out["easing"] = easing_name(curve.text)
    if any(REPEAT_MARKER in c for c in call.leading_comments):
        out["repeat"] = True
    return out


def _builder_tween(call: DartCall) -> Optional[PropertyTween]:
    """Tween described by a ``TweenAnimationBuilder`` we know how to read."""
    builder = call.named("builder")
    tween = call.named("tween")
    if not isinstance(builder, DartFunction) or not isinstance(builder.body, DartCall):
        return None
    if not isinstance(tween, DartCall):
        return None
    value_name = builder.params[1] if len(builder.params) > 1 else "value"
    body = builder.body

    for prop, (callee, arg, template) in _BUILDERS.items():
        if body.callee != callee or body.named(arg) is None:
            continue
        pattern = re.escape(template).replace(re.escape("{v}"), "(.+)")
        m = re.match(f"^{pattern}$", body.named(arg).text, re.DOTALL)
        if m is None:
            continue
        inner = m.group(1).strip()
        if prop in COLOR_PROPERTIES:
            if inner != value_name:
                continue
            return PropertyTween(prop, _color_value(tween.named("begin")), _color_value(tween.named("end")))
        if inner == value_name:
            return PropertyTween(prop, _number(tween.named("begin")), _number(tween.named("end")))
        if inner.startswith("TweenSequence") and inner.endswith(f".transform({value_name})"):
            segments = [
                TweenSegment(float(b), float(e), float(w), c or "linear")
                for b, e, c, w in _SEQUENCE_ITEM_RE.findall(inner)
            ]
            frames = tuple(
                replace(k, easing=easing_name(k.easing) if k.easing else None)
                for k in raise_segments(segments)
            )
            if not frames:
                return None
            return PropertyTween(prop, frames[0].value, frames[-1].value, frames)
    return None


def _implicit_tweens(call: DartCall) -> Optional[List[PropertyTween]]:
    name = call.callee
    if name == "AnimatedOpacity":
        return [PropertyTween("opacity", None, _number(call.named("opacity")))]
    if name == "AnimatedScale":
        return [PropertyTween("scale", None, _number(call.named("scale")))]
    if name == "AnimatedRotation":
        turns = _number(call.named("turns"))
        return [PropertyTween("rotate", None, turns * 360 if isinstance(turns, (int, float)) else None)]
    if name == "AnimatedSlide":
        offset = call.named("offset")
        if isinstance(offset, DartCall) and len(offset.positional) == 2:
            return [PropertyTween("x", None, _number(offset.positional[0])),
                    PropertyTween("y", None, _number(offset.positional[1]))]
        return None
    return None


def _detector_gestures(call: DartCall, warnings: Optional[List[str]]) -> List[GestureSpec]:
    gestures = []
    for arg in call.args:
        if arg.name is None or arg.name == "child":
            continue
        text = arg.value.text
        handler = None if _EMPTY_HANDLER_RE.match(text) else text
        if arg.name == "onTap":
            gestures.append(GestureSpec("tap", handler))
        elif arg.name == "onLongPress":
            gestures.append(GestureSpec("longPress", handler))
        elif arg.name == "onPanUpdate":
            gestures.append(GestureSpec("drag", handler))
        elif arg.name == "onHorizontalDragUpdate":
            gestures.append(GestureSpec("drag", handler, axis="x"))
        elif arg.name == "onVerticalDragUpdate":
            gestures.append(GestureSpec("drag", handler, axis="y"))
        elif arg.name == "onScaleUpdate":
            m = _ROTATION_HANDLER_RE.match(text)
            if m:
                gestures.append(GestureSpec("rotate", m.group(1).strip()))
            else:
                gestures.append(GestureSpec("pinch", handler))
        elif warnings is not None:
            warnings.append(f"GestureDetector.{arg.name} has no gesture equivalent; dropped")
    return gestures


def parse_widget_wrappers(
    call: DartCall, warnings: Optional[List[str]] = None
) -> Optional[Tuple[AnimationSpec, Optional[DartNode]]]:
    """Collapse a chain of animation/gesture wrappers onto its child.

    Returns the merged spec and the innermost child node, or ``None`` when
    ``call`` is not a wrapper we can read.
    """
    tweens: List[PropertyTween] = []
    gestures: List[GestureSpec] = []
    timing: Dict[str, Any] = {}
    node: Optional[DartNode] = call

    while isinstance(node, DartCall) and node.callee in WIDGET_WRAPPERS:
        if node.callee == "GestureDetector":
            gestures.extend(_detector_gestures(node, warnings))
        elif node.callee == "TweenAnimationBuilder":
            tween = _builder_tween(node)
            if tween is None:
                break
            tweens.append(tween)
            for key, value in _timing(node).items():
                timing.setdefault(key, value)
        else:
            implicit = _implicit_tweens(node)
            if implicit is None:
                break
            tweens.extend(implicit)
            for key, value in _timing(node).items():
                timing.setdefault(key, value)
        node = node.named("child")

    if node is call:
        return None
    spec = AnimationSpec(
        tweens=tuple(tweens),
        duration_ms=timing.get("duration_ms", 300),
        delay_ms=timing.get("delay_ms", 0),
        easing=timing.get("easing", "easeInOut"),
        repeat=timing.get("repeat", False),
        gestures=tuple(gestures),
    )
    logger.debug("Collapsed %d tween(s) and %d gesture(s) from %s", len(tweens), len(gestures), call.callee)
    return spec, node


def parse_animation(
    source: Union[Mapping[str, PropValue], DartCall], framework: str
) -> Optional[AnimationSpec]:
    """Animation spec from ``motion.*`` props or a widget-tree wrapper call."""
    if framework == FRAMEWORK_COMPONENT_MODEL:
        return parse_motion_props(source)
    if framework == FRAMEWORK_WIDGET_TREE:
        parsed = parse_widget_wrappers(source)
        return parsed[0] if parsed is not None else None
    raise ValueError(f"Unsupported framework: {framework}")


# =============================================================================
# Generation
# =============================================================================


def _seconds(ms: int) -> Any:
    value = ms / 1000
    return int(value) if value.is_integer() else value


def _js_object(items: Sequence[Tuple[str, str]]) -> str:
    if not items:
        return "{}"
    return "{ " + ", ".join(f"{js_key(k)}: {v}" for k, v in items) + " }"


def _motion_attributes(spec: AnimationSpec) -> List[str]:
    initial = []
    animate = []
    transition: List[Tuple[str, str]] = [("duration", js_value(_seconds(spec.duration_ms)))]
    if spec.delay_ms:
        transition.append(("delay", js_value(_seconds(spec.delay_ms))))
    transition.append(("ease", js_value(spec.easing)))
    if spec.repeat:
        transition.append(("repeat", "Infinity"))

    shared_times = None
    keyed = [t for t in spec.tweens if t.keyframes]
    offsets = {tuple(k.offset for k in t.keyframes) for t in keyed}
    if len(offsets) == 1 and not any(k.easing for t in keyed for k in t.keyframes):
        shared_times = list(next(iter(offsets)))
        if shared_times != even_offsets(len(shared_times)):
            transition.append(("times", js_value(shared_times)))

    for tween in spec.tweens:
        if tween.keyframes:
            animate.append((tween.property, js_value([k.value for k in tween.keyframes])))
            if shared_times is None:
                per_prop = [("times", js_value([k.offset for k in tween.keyframes]))]
                eases = [k.easing or "linear" for k in tween.keyframes[1:]]
                if any(e != "linear" for e in eases):
                    per_prop.append(("ease", js_value(eases)))
                transition.append((tween.property, _js_object(per_prop)))
            continue
        if tween.begin is not None:
            initial.append((tween.property, js_value(tween.begin)))
        animate.append((tween.property, js_value(tween.end)))

    attrs = []
    if initial:
        attrs.append(f"initial={{{_js_object(initial)}}}")
    if animate:
        attrs.append(f"animate={{{_js_object(animate)}}}")
    if spec.tweens:
        attrs.append(f"transition={{{_js_object(transition)}}}")

    for gesture in spec.gestures:
        prop = next(p for p, k in GESTURE_PROPS.items() if k == gesture.kind)
        if gesture.kind == "drag":
            attrs.append(f'drag="{gesture.axis}"' if gesture.axis else "drag")
            if gesture.threshold is not None:
                attrs.append(f"dragThreshold={{{format_number(gesture.threshold)}}}")
        if gesture.handler is not None:
            attrs.append(f"{prop}={{{gesture.handler}}}")
    return attrs


def _generate_motion(spec: AnimationSpec, child_text: str, indent: str) -> str:
    attrs = " ".join(_motion_attributes(spec))
    body = "\n".join(indent + line if line else line for line in child_text.split("\n"))
    return f"<{MOTION_WRAPPER} {attrs}>\n{body}\n</{MOTION_WRAPPER}>"


def _dart_number(value: Any) -> str:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return dart_value(value)
    return dart_value(float(value))


def _dart_color(value: Any) -> str:
    if value is None:
        return "null"
    try:
        out = color(literal(value), Direction.FORWARD, {})
    except TransformError:
        return "null"
    return out.source_text if isinstance(out, Expression) else dart_value(value)


def _curve_text(spec: AnimationSpec) -> Tuple[int, str]:
    """Total duration and the ``curve:`` text (an ``Interval`` when delayed)."""
    curve = f"Curves.{curve_name(spec.easing)}"
    if not spec.delay_ms:
        return spec.duration_ms, curve
    total = spec.delay_ms + spec.duration_ms
    start = format_number(round(spec.delay_ms / total, 6) * 1.0)
    return total, f"Interval({start}, 1.0, curve: {curve})"


def _sequence_text(keyframes: Sequence[Keyframe]) -> str:
    items = []
    for seg in lower_keyframes(keyframes):
        tween = f"Tween<double>(begin: {_dart_number(seg.begin)}, end: {_dart_number(seg.end)})"
        if seg.curve != "linear":
            tween += f".chain(CurveTween(curve: Curves.{curve_name(seg.curve)}))"
        items.append(f"TweenSequenceItem(tween: {tween}, weight: {format_number(float(seg.weight))})")
    return f"TweenSequence<double>([{', '.join(items)}])"


def _tween_builder(tween: PropertyTween, spec: AnimationSpec, child: str,
                   indent: str, warnings: Optional[List[str]]) -> Optional[str]:
    if tween.property not in _BUILDERS:
        if warnings is not None:
            warnings.append(f"animated property '{tween.property}' has no widget-tree equivalent; dropped")
        return None
    callee, arg, template = _BUILDERS[tween.property]
    total, curve = _curve_text(spec)

    if tween.property in COLOR_PROPERTIES:
        if tween.keyframes and warnings is not None:
            warnings.append(f"color keyframes on '{tween.property}' reduced to first and last values")
        type_arg = "Color?"
        tween_text = f"ColorTween(begin: {_dart_color(tween.begin)}, end: {_dart_color(tween.end)})"
        animated = "value"
    elif tween.keyframes:
        type_arg = "double"
        tween_text = "Tween<double>(begin: 0.0, end: 1.0)"
        animated = f"{_sequence_text(tween.keyframes)}.transform(value)"
    else:
        type_arg = "double"
        begin = tween.begin if tween.begin is not None else tween.end
        tween_text = f"Tween<double>(begin: {_dart_number(begin)}, end: {_dart_number(tween.end)})"
        animated = "value"

    value_text = template.replace("{v}", animated)
    lines = [f"TweenAnimationBuilder<{type_arg}>("]
    if spec.repeat:
        lines[0] += f"{REPEAT_MARKER}"
    lines += [
        f"{indent}tween: {tween_text},",
        f"{indent}duration: const Duration(milliseconds: {total}),",
        f"{indent}curve: {curve},",
        f"{indent}builder: (context, value, child) => {callee}({arg}: {value_text}, child: child),",
        f"{indent}child: {_indent_tail(child, indent)},",
        ")",
    ]
    return "\n".join(lines)


def _indent_tail(text: str, indent: str) -> str:
    """Indent every line but the first (the first continues an existing line)."""
    lines = text.split("\n")
    return "\n".join([lines[0]] + [indent + line if line else line for line in lines[1:]])


def _gesture_detector(spec: AnimationSpec, child: str, indent: str,
                      warnings: Optional[List[str]]) -> str:
    args = []
    kinds = {g.kind for g in spec.gestures}
    for g in spec.gestures:
        handler = g.handler
        if g.kind == "tap":
            args.append(f"onTap: {handler or '() {}'}")
        elif g.kind == "longPress":
            args.append(f"onLongPress: {handler or '() {}'}")
        elif g.kind == "drag":
            name = {"x": "onHorizontalDragUpdate", "y": "onVerticalDragUpdate"}.get(g.axis or "", "onPanUpdate")
            args.append(f"{name}: {handler or '(_) {}'}")
            if g.threshold is not None:
                logger.debug("Drag threshold %s has no GestureDetector equivalent", g.threshold)
                if warnings is not None:
                    warnings.append(f"drag threshold {format_number(g.threshold)} dropped")
        elif g.kind == "pinch":
            args.append(f"onScaleUpdate: {handler or '(_) {}'}")
        elif g.kind == "rotate":
            if "pinch" in kinds:
                if warnings is not None:
                    warnings.append("rotate gesture shares onScaleUpdate with pinch; dropped")
                continue
            args.append(f"onScaleUpdate: (details) => ({handler or '(_) {}'})(details.rotation)")
    lines = ["GestureDetector("]
    lines += [f"{indent}{a}," for a in args]
    lines += [f"{indent}child: {_indent_tail(child, indent)},", ")"]
    return "\n".join(lines)


def generate_animation(
    spec: AnimationSpec,
    framework: str,
    child_text: str,
    indent: str = "  ",
    warnings: Optional[List[str]] = None,
) -> str:
    """Wrap generated ``child_text`` in the target's animation idiom."""
    if framework == FRAMEWORK_COMPONENT_MODEL:
        return _generate_motion(spec, child_text, indent)
    if framework != FRAMEWORK_WIDGET_TREE:
        raise ValueError(f"Unsupported framework: {framework}")

    text = child_text
    for tween in reversed(spec.tweens):
        wrapped = _tween_builder(tween, spec, text, indent, warnings)
        if wrapped is not None:
            text = wrapped
    if spec.gestures:
        text = _gesture_detector(spec, text, indent, warnings)
    return text
