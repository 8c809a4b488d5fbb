"""Literal syntax for both targets.

Shared by the generators, the state converter, the animation converter
and the navigation converter, so a value prints the same way wherever it
ends up.
"""

import json
import math
import re
from typing import Any

from ..ir.models import Expression, Literal, PropValue, unreachable
from ..mapping.transforms import format_number

_JS_IDENT_RE = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")


# ── component model (JS/TSX) ─────────────────────────────────────────


def js_string(value: str) -> str:
    return json.dumps(value, ensure_ascii=False)


def js_key(key: str) -> str:
    return key if _JS_IDENT_RE.match(key) else js_string(key)


def js_value(value: Any) -> str:
    """Plain Python value as JS literal syntax."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, str):
        return js_string(value)
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(js_value(v) for v in value) + "]"
    if isinstance(value, dict):
        if not value:
            return "{}"
        return "{ " + ", ".join(f"{js_key(str(k))}: {js_value(v)}" for k, v in value.items()) + " }"
    raise TypeError(f"No JS syntax for {value!r}")


def js_prop(value: PropValue) -> str:
    if isinstance(value, Literal):
        return js_value(value.value)
    if isinstance(value, Expression):
        return value.source_text
    unreachable(value)


# ── widget tree (Dart) ───────────────────────────────────────────────


def dart_string(value: str) -> str:
    escaped = (
        value.replace("\\", "\\\\")
        .replace("'", "\\'")
        .replace("$", "\\$")
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )
    return f"'{escaped}'"


def dart_value(value: Any) -> str:
    """Plain Python value as Dart literal syntax."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and math.isinf(value):
        return "double.infinity" if value > 0 else "double.negativeInfinity"
    if isinstance(value, float):
        return format_number(value)
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        return dart_string(value)
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(dart_value(v) for v in value) + "]"
    if isinstance(value, dict):
        return "{" + ", ".join(f"{dart_string(str(k))}: {dart_value(v)}" for k, v in value.items()) + "}"
    raise TypeError(f"No Dart syntax for {value!r}")


def dart_prop(value: PropValue) -> str:
    if isinstance(value, Literal):
        return dart_value(value.value)
    if isinstance(value, Expression):
        return value.source_text
    unreachable(value)
