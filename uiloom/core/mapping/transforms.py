"""Prop value transforms.

Each transform converts a ``PropValue`` between the component-model
encoding and the widget-tree encoding. Forward output uses ``Literal`` for
values the widget-tree generator prints as literal syntax and
``Expression`` for constructor text (``EdgeInsets.all(16)``).

``Expression`` inputs pass through forward untouched, except that
``image_source`` unwraps a ``{ uri: x }`` object. Backward,
only constant constructor syntax turns back into a ``Literal``; anything
else stays an ``Expression``.
"""

import re
from enum import Enum
from typing import Any, Callable, Dict, Optional, Union

from ..ir.models import Expression, Literal, LiteralKind, PropValue, literal


class Direction(str, Enum):
    FORWARD = "forward"  # IR / component model -> widget tree
    BACKWARD = "backward"  # widget tree -> IR


class TransformError(ValueError):
    """A literal value the transform has no encoding for."""


NAMED_COLORS = {
    "white": "Colors.white",
    "black": "Colors.black",
    "red": "Colors.red",
    "green": "Colors.green",
    "blue": "Colors.blue",
    "yellow": "Colors.yellow",
    "orange": "Colors.orange",
    "purple": "Colors.purple",
    "pink": "Colors.pink",
    "grey": "Colors.grey",
    "gray": "Colors.grey",
    "teal": "Colors.teal",
    "cyan": "Colors.cyan",
    "amber": "Colors.amber",
    "indigo": "Colors.indigo",
    "brown": "Colors.brown",
    "transparent": "Colors.transparent",
}
_COLOR_NAMES_BACK = {v: k for k, v in NAMED_COLORS.items() if k != "gray"}

_NUM = r"-?\d+(?:\.\d+)?"
_HEX_COLOR_RE = re.compile(r"^#([0-9a-fA-F]{3}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")
_RGBA_RE = re.compile(
    rf"^rgba?\(\s*({_NUM})\s*,\s*({_NUM})\s*,\s*({_NUM})\s*(?:,\s*({_NUM})\s*)?\)$"
)
_DART_COLOR_RE = re.compile(r"^Color\(\s*0x([0-9a-fA-F]{8})\s*\)$")
_DART_RGBO_RE = re.compile(
    rf"^Color\.fromRGBO\(\s*({_NUM})\s*,\s*({_NUM})\s*,\s*({_NUM})\s*,\s*({_NUM})\s*\)$"
)
_INSETS_ALL_RE = re.compile(rf"^EdgeInsets\.all\(\s*({_NUM})\s*\)$")
_INSETS_LTRB_RE = re.compile(
    rf"^EdgeInsets\.fromLTRB\(\s*({_NUM})\s*,\s*({_NUM})\s*,\s*({_NUM})\s*,\s*({_NUM})\s*\)$"
)
_INSETS_SYMMETRIC_RE = re.compile(r"^EdgeInsets\.symmetric\((.*)\)$", re.DOTALL)
_NAMED_ARG_RE = re.compile(rf"(\w+)\s*:\s*({_NUM})")
_RADIUS_RE = re.compile(
    rf"^BorderRadius\.(?:circular\(\s*({_NUM})\s*\)|all\(\s*Radius\.circular\(\s*({_NUM})\s*\)\s*\))$"
)


def parse_number(text: str) -> Union[int, float]:
    """Parse numeric source text, keeping ints as ints."""
    if re.fullmatch(r"-?\d+", text):
        return int(text)
    return float(text)


def format_number(value: Union[int, float]) -> str:
    if isinstance(value, float) and value.is_integer() and abs(value) < 1e15:
        return f"{value:.1f}"
    return repr(value)


def _strip_const(text: str) -> str:
    text = text.strip()
    if text.startswith("const "):
        return text[len("const "):].strip()
    return text


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def enum_key(value: Any) -> str:
    """Normalise a literal value into a ``values`` table key."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _enum_value(key: str) -> Any:
    if key == "true":
        return True
    if key == "false":
        return False
    return key


# ── identity / event ─────────────────────────────────────────────────


def identity(value: PropValue, direction: Direction, values: Dict[str, str]) -> PropValue:
    return value


# ── color ────────────────────────────────────────────────────────────


def color(value: PropValue, direction: Direction, values: Dict[str, str]) -> PropValue:
    if direction is Direction.FORWARD:
        if isinstance(value, Expression):
            return value
        if value.kind is not LiteralKind.STRING:
            raise TransformError(f"color expects a string, got {value.kind.value}")
        return Expression(_css_to_dart_color(value.value.strip()))

    text = value.source_text if isinstance(value, Expression) else None
    if text is None:
        return value
    css = _dart_to_css_color(_strip_const(text))
    return literal(css) if css is not None else value


def _css_to_dart_color(css: str) -> str:
    lowered = css.lower()
    if lowered in NAMED_COLORS:
        return NAMED_COLORS[lowered]

    match = _HEX_COLOR_RE.match(css)
    if match:
        digits = match.group(1).upper()
        if len(digits) == 3:
            digits = "".join(c * 2 for c in digits)
        if len(digits) == 6:
            argb = "FF" + digits
        else:
            argb = digits[6:] + digits[:6]
        return f"Color(0x{argb})"

    match = _RGBA_RE.match(lowered)
    if match:
        r, g, b, a = match.groups()
        return f"Color.fromRGBO({r}, {g}, {b}, {a if a is not None else '1.0'})"

    raise TransformError(f"unrecognised color {css!r}")


def _dart_to_css_color(text: str) -> Optional[str]:
    if text in _COLOR_NAMES_BACK:
        return _COLOR_NAMES_BACK[text]

    match = _DART_COLOR_RE.match(text)
    if match:
        argb = match.group(1).lower()
        alpha, rgb = argb[:2], argb[2:]
        return f"#{rgb}" if alpha == "ff" else f"#{rgb}{alpha}"

    match = _DART_RGBO_RE.match(text)
    if match:
        return "rgba({}, {}, {}, {})".format(*match.groups())
    return None


# ── edge insets ──────────────────────────────────────────────────────


def edge_insets(value: PropValue, direction: Direction, values: Dict[str, str]) -> PropValue:
    if direction is Direction.FORWARD:
        if isinstance(value, Expression):
            return value
        return Expression(_insets_to_dart(value))

    if isinstance(value, Literal):
        return value
    text = _strip_const(value.source_text)
    if text == "EdgeInsets.zero":
        return literal(0)

    match = _INSETS_ALL_RE.match(text)
    if match:
        return literal(parse_number(match.group(1)))

    match = _INSETS_LTRB_RE.match(text)
    if match:
        left, top, right, bottom = (parse_number(g) for g in match.groups())
        return literal([top, right, bottom, left])

    match = _INSETS_SYMMETRIC_RE.match(text)
    if match:
        named = {k: parse_number(v) for k, v in _NAMED_ARG_RE.findall(match.group(1))}
        return literal([named.get("vertical", 0), named.get("horizontal", 0)])
    return value


def _insets_to_dart(value: Literal) -> str:
    if _is_number(value.value):
        return f"EdgeInsets.all({value.value})"
    if value.kind is LiteralKind.ARRAY and all(_is_number(v) for v in value.value):
        items = value.value
        if len(items) == 1:
            return f"EdgeInsets.all({items[0]})"
        if len(items) == 2:
            return f"EdgeInsets.symmetric(vertical: {items[0]}, horizontal: {items[1]})"
        if len(items) == 4:
            top, right, bottom, left = items
            return f"EdgeInsets.fromLTRB({left}, {top}, {right}, {bottom})"
    raise TransformError(f"cannot express {value.value!r} as edge insets")


# ── border radius ────────────────────────────────────────────────────


def border_radius(value: PropValue, direction: Direction, values: Dict[str, str]) -> PropValue:
    if direction is Direction.FORWARD:
        if isinstance(value, Expression):
            return value
        if not _is_number(value.value):
            raise TransformError(f"border radius expects a number, got {value.value!r}")
        return Expression(f"BorderRadius.circular({value.value})")

    if isinstance(value, Literal):
        return value
    match = _RADIUS_RE.match(_strip_const(value.source_text))
    if match:
        return literal(parse_number(match.group(1) or match.group(2)))
    return value


# ── image source ─────────────────────────────────────────────────

_URI_OBJECT_RE = re.compile(r"^\{\s*uri\s*:\s*(.+?)\s*,?\s*\}$", re.DOTALL)


def image_source(value: PropValue, direction: Direction, values: Dict[str, str]) -> PropValue:
    """``{ uri: x }`` on the component side, the bare ``x`` on the widget-tree side."""
    if direction is Direction.FORWARD:
        if isinstance(value, Expression):
            match = _URI_OBJECT_RE.match(value.source_text.strip())
            return Expression(match.group(1)) if match else value
        if value.kind is LiteralKind.STRING:
            return value
        if value.kind is LiteralKind.OBJECT and "uri" in value.value:
            return literal(value.value["uri"])
        raise TransformError(f"image source expects a uri, got {value.value!r}")

    if isinstance(value, Expression):
        return Expression(f"{{ uri: {value.source_text} }}")
    return literal({"uri": value.value})


# ── enum ─────────────────────────────────────────────────────────────


def enum(value: PropValue, direction: Direction, values: Dict[str, str]) -> PropValue:
    if direction is Direction.FORWARD:
        if isinstance(value, Expression):
            return value
        key = enum_key(value.value)
        if key not in values:
            raise TransformError(f"no keyword mapping for {value.value!r}")
        return Expression(values[key])

    if isinstance(value, Literal):
        return value
    reverse = {v: k for k, v in values.items()}
    key = reverse.get(_strip_const(value.source_text))
    return literal(_enum_value(key)) if key is not None else value


TransformFn = Callable[[PropValue, Direction, Dict[str, str]], PropValue]

TRANSFORMS: Dict[str, TransformFn] = {
    "identity": identity,
    "event": identity,
    "color": color,
    "edge_insets": edge_insets,
    "border_radius": border_radius,
    "enum": enum,
    "image_source": image_source,
}


def apply_transform(
    name: str, value: PropValue, direction: Direction, values: Dict[str, str]
) -> PropValue:
    """Run the named transform. Raises ``TransformError`` on a bad literal."""
    try:
        fn = TRANSFORMS[name]
    except KeyError:
        raise TransformError(f"unknown transform {name!r}") from None
    return fn(value, direction, values)

