"""Component-model (TSX) generator.

Renders an IR document as one function component module::

    import { Text, View } from "react-native";
    import { useState } from "react";

    export default function Counter() {
      const [count, setCount] = useState(0);
      return (
        <View>...</View>
      );
    }

Imports are collected while the tree is emitted and written last, sorted
by module with the names of each statement sorted too.
"""

import logging
import re
from dataclasses import replace
from typing import List, Optional

from ..animation import converter as animation_converter
from ..constants import (
    DEFAULT_COMPONENT_NAME,
    FRAMEWORK_COMPONENT_MODEL,
    UNMAPPED_ATTRIBUTE,
    UNMAPPED_COMMENT_PREFIX,
)
from ..ir.errors import GenerationFailure
from ..ir.models import (
    Element,
    Expression,
    ExpressionSlot,
    IRDocument,
    IRNode,
    Literal,
    PropValue,
    TextLiteral,
    child_path,
)
from ..mapping import MappingEntry
from ..navigation import converter as navigation_converter
from ..navigation.models import RouteSchema
from ..state import converter as state_converter
from .base import (
    BaseGenerator,
    EmissionContext,
    carried,
    check_arity,
    collect_bindings,
    entry_for,
    indent_block,
    root_markup_expression,
)
from .literals import js_key, js_prop, js_string, js_value

logger = logging.getLogger(__name__)

# Attribute strings are not escaped in JSX; anything these would break
# goes through an expression container instead.
_PLAIN_ATTRIBUTE_RE = re.compile(r'^[^"&\n]*$')
_PLAIN_TEXT_RE = re.compile(r"^[^{}<>&\n]*$")
_INLINE_ATTRIBUTES = 72


class ComponentModelGenerator(BaseGenerator):
    """IR -> function component source."""

    def get_framework(self) -> str:
        return FRAMEWORK_COMPONENT_MODEL

    def emit_document(self, doc: IRDocument, ctx: EmissionContext) -> str:
        meta = doc.metadata
        same = meta.source_framework == FRAMEWORK_COMPONENT_MODEL
        indent = ctx.indent

        fragments = state_converter.expand_all(collect_bindings(doc.root), ctx.framework)
        for frag in fragments:
            ctx.merge_imports(frag.imports)

        markup = root_markup_expression(doc.root)
        if markup is None:
            markup = self.emit_element(ctx, doc.root, "root")

        declarations: List[str] = []
        for slot in meta.declarations:
            if same and ctx.take_import(slot.source_text):
                continue
            if not same and slot.source_text.lstrip().startswith("import "):
                logger.debug(f"Dropping {meta.source_framework} import: {slot.source_text.strip()}")
                continue
            declarations.extend(carried([slot], same))
        for frag in fragments:
            declarations.extend(frag.declarations)
        declarations.extend(d for d in ctx.declarations if d not in declarations)

        name = meta.component_name or DEFAULT_COMPONENT_NAME
        params = doc.root.metadata.get("params") if same else None
        body: List[str] = []
        for frag in fragments:
            body.extend(frag.build_locals)
        # Class members have no place in a function component.
        body.extend(carried(meta.members, False))
        body.extend(carried(meta.prelude, same))
        body.append("return (\n" + indent_block(markup, indent) + "\n);")

        component = "\n".join(
            [f"export default function {name}{params or '()'} {{"]
            + [indent_block(b, indent) for b in body]
            + ["}"]
        )

        parts = []
        imports = self.import_lines(ctx)
        if imports:
            parts.append("\n".join(imports))
        parts.extend(declarations)
        parts.append(component)
        return "\n\n".join(parts) + "\n"

    def import_lines(self, ctx: EmissionContext) -> List[str]:
        lines = []
        for module in sorted(set(ctx.imports) | set(ctx.default_imports)):
            clause = []
            if module in ctx.default_imports:
                clause.append(ctx.default_imports[module])
            names = sorted(ctx.imports.get(module, ()))
            if names:
                clause.append("{ " + ", ".join(names) + " }")
            if clause:
                lines.append(f"import {', '.join(clause)} from {js_string(module)};")
            else:
                lines.append(f"import {js_string(module)};")
        lines.extend(sorted(ctx.raw_imports))
        return lines

    # ── elements ─────────────────────────────────────────────────────

    def emit_element(self, ctx: EmissionContext, element: Element, path: str) -> str:
        if element.animation_spec is not None:
            inner = self.emit_element(ctx, replace(element, animation_spec=None), path)
            ctx.add_import(animation_converter.MOTION_MODULE, "motion")
            return animation_converter.generate_animation(
                element.animation_spec, ctx.framework, inner, ctx.indent, ctx.warnings
            )
        if element.widget_type == "Router":
            return self._router(ctx, element, path)
        entry = entry_for(ctx, element)
        if entry is None:
            return self._placeholder(ctx, element, path)

        check_arity(entry, element, path)
        tag = entry.source_widget_name
        for module in entry.imports_for(ctx.framework) or (ctx.settings.converter.component_module,):
            ctx.add_import(module, tag)

        attributes = self._attributes(entry, element.props)
        inline = not any(isinstance(c, Element) for c in element.children)
        children = [
            self._child(ctx, child, child_path(path, i), inline) for i, child in enumerate(element.children)
        ]
        return self._tag(ctx, tag, attributes, children, inline)

    def _placeholder(self, ctx: EmissionContext, element: Element, path: str) -> str:
        original = element.original_type or element.widget_type
        ctx.unknown_widget(path, original)
        attributes = [f"{UNMAPPED_ATTRIBUTE}={js_string(original)}"]
        attributes += [_attribute(name, value) for name, value in element.props.items()]
        children = [f"{{/* {UNMAPPED_COMMENT_PREFIX} {original} */}}"]
        children += [self._child(ctx, child, child_path(path, i), False) for i, child in enumerate(element.children)]
        return self._tag(ctx, "div", attributes, children, inline=False)

    def _router(self, ctx: EmissionContext, element: Element, path: str) -> str:
        schema = element.metadata.get("routes") or RouteSchema(routes=())
        frag = navigation_converter.emit_routes(schema, ctx.framework, ctx.indent, ctx.warnings)
        ctx.merge_imports(frag.imports)
        ctx.declarations.extend(frag.declarations)
        lines = frag.markup.split("\n")
        children = [
            indent_block(self._child(ctx, child, child_path(path, i), False), ctx.indent)
            for i, child in enumerate(element.children)
        ]
        return "\n".join(lines[:1] + children + lines[1:])

    def _attributes(self, entry: MappingEntry, props) -> List[str]:
        attributes = []
        style_items = []
        style_value: Optional[PropValue] = None
        for name, value in props.items():
            if name.startswith("..."):
                attributes.append(f"{{{name}}}")
                continue
            if name == "style":
                style_value = value
                continue
            pt = entry.find_prop(name)
            if pt is not None and pt.style:
                style_items.append(f"{js_key(name)}: {js_prop(value)}")
                continue
            attributes.append(_attribute(name, value))

        if style_items:
            style_object = "{ " + ", ".join(style_items) + " }"
            if style_value is not None:
                attributes.append(f"style={{[{js_prop(style_value)}, {style_object}]}}")
            else:
                attributes.append(f"style={{{style_object}}}")
        elif style_value is not None:
            attributes.append(_attribute("style", style_value))
        return attributes

    def _child(self, ctx: EmissionContext, node: IRNode, path: str, inline: bool) -> str:
        if isinstance(node, Element):
            return self.emit_element(ctx, node, path)
        if isinstance(node, TextLiteral):
            return _text(node.value, inline)
        if isinstance(node, ExpressionSlot):
            return f"{{{node.source_text}}}"
        raise GenerationFailure(f"cannot emit {type(node).__name__}", path)

    def _tag(self, ctx: EmissionContext, tag: str, attributes: List[str],
             children: List[str], inline: bool) -> str:
        indent = ctx.indent
        if len(" ".join(attributes)) > _INLINE_ATTRIBUTES or any("\n" in a for a in attributes):
            opening = f"<{tag}\n" + "\n".join(indent_block(a, indent) for a in attributes) + "\n"
            self_close = "/>"
        else:
            opening = f"<{tag}" + "".join(" " + a for a in attributes)
            self_close = " />"

        if not children:
            return opening + self_close
        if inline:
            return f"{opening}>{''.join(children)}</{tag}>"
        lines = [opening + ">"]
        lines.extend(indent_block(child, indent) for child in children)
        lines.append(f"</{tag}>")
        return "\n".join(lines)


# ── helpers ──────────────────────────────────────────────────────────


def _attribute(name: str, value: PropValue) -> str:
    if isinstance(value, Literal):
        if value.value is True:
            return name
        if isinstance(value.value, str) and _PLAIN_ATTRIBUTE_RE.match(value.value):
            return f'{name}="{value.value}"'
        return f"{name}={{{js_value(value.value)}}}"
    if isinstance(value, Expression):
        return f"{name}={{{value.source_text}}}"
    raise GenerationFailure(f"prop '{name}' has no value", "root")


def _text(value: str, inline: bool) -> str:
    """JSX text, or a string container when the raw text would not survive."""
    if _PLAIN_TEXT_RE.match(value) and (inline or (value and value == value.strip())):
        return value
    return f"{{{js_string(value)}}}"
