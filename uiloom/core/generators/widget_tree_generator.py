"""Widget-tree (Dart/Flutter) generator.

Renders an IR document as one widget class. The class shape follows the
state the tree needs: a ``StatelessWidget`` by default, a
``StatefulWidget`` with its ``State`` class for ``setState`` bindings,
and the Riverpod consumer variants when a binding reads a provider.

Props travel through ``transform_prop(..., FORWARD)`` and land by target
path: ``@N`` is a positional argument, ``group.name`` a named argument of
the group constructor (``decoration: BoxDecoration(...)``), and
``layout``/``layout.*`` pick and configure the ``Column``/``Row`` that
holds several children under a single ``child`` slot.
"""

import logging
import re
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Sequence, Tuple

from ..animation import converter as animation_converter
from ..constants import (
    DEFAULT_COMPONENT_NAME,
    FRAMEWORK_WIDGET_TREE,
    TEXT_CHILD_TARGET,
    UNCONVERTED_PREFIX,
    UNMAPPED_COMMENT_PREFIX,
)
from ..ir.errors import GenerationFailure
from ..ir.models import (
    Element,
    ExpressionSlot,
    IRDocument,
    IRNode,
    Literal,
    PropValue,
    TextLiteral,
    child_path,
)
from ..mapping import Direction, MappingEntry
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
from .literals import dart_prop, dart_string, js_value

logger = logging.getLogger(__name__)

MATERIAL_IMPORT = "package:flutter/material.dart"
_INLINE_CALL = 60


@dataclass
class _Args:
    """Constructor arguments of one widget, sorted by where they go."""

    positional: Dict[int, str] = field(default_factory=dict)
    named: List[Tuple[str, str]] = field(default_factory=list)
    groups: Dict[str, List[Tuple[str, str]]] = field(default_factory=dict)
    layout: Optional[str] = None
    layout_args: List[Tuple[str, str]] = field(default_factory=list)
    comments: List[str] = field(default_factory=list)
    text: Optional[PropValue] = None

    def render(self, entry: MappingEntry, trailing: Sequence[str] = ()) -> List[str]:
        out = [self.positional[i] for i in sorted(self.positional)]
        named = [f"{name}: {value}" for name, value in self.named]
        for group, items in self.groups.items():
            named.append(f"{group}: {call(entry.groups[group], [f'{k}: {v}' for k, v in items])}")
        named.extend(trailing)
        if self.comments:
            # A comment rides on a neighbouring argument; it never gets its own comma.
            note = " ".join(self.comments)
            if named:
                named[0] = f"{note} {named[0]}"
            elif out:
                out[-1] = f"{out[-1]} {note}"
            else:
                out.append(note)
        return out + named


class WidgetTreeGenerator(BaseGenerator):
    """IR -> Flutter widget class source."""

    def get_framework(self) -> str:
        return FRAMEWORK_WIDGET_TREE

    def emit_document(self, doc: IRDocument, ctx: EmissionContext) -> str:
        meta = doc.metadata
        same = meta.source_framework == FRAMEWORK_WIDGET_TREE
        indent = ctx.indent
        ctx.add_import(MATERIAL_IMPORT)

        fragments = state_converter.expand_all(collect_bindings(doc.root), ctx.framework)
        for frag in fragments:
            ctx.merge_imports(frag.imports)

        if root_markup_expression(doc.root) is not None:
            raise GenerationFailure("root markup is a single expression with no widget form", "root")
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

        build_body: List[str] = []
        for frag in fragments:
            build_body.extend(frag.build_locals)
        build_body.extend(carried(meta.prelude, same))
        build_body.append(f"return {markup};")

        members: List[str] = []
        for frag in fragments:
            members.extend(frag.members)
        members.extend(carried(meta.members, same))

        hosts = {frag.host for frag in fragments}
        name = meta.component_name or DEFAULT_COMPONENT_NAME
        classes = self._classes(
            name, members, build_body, indent,
            stateful="stateful" in hosts, consumer="consumer" in hosts,
        )

        parts = ["\n".join(self.import_lines(ctx))]
        parts.extend(declarations)
        parts.extend(classes)
        return "\n\n".join(parts) + "\n"

    def import_lines(self, ctx: EmissionContext) -> List[str]:
        lines = [f"import '{module}';" for module in sorted(ctx.imports)]
        lines.extend(sorted(ctx.raw_imports))
        return lines

    # ── class shape ──────────────────────────────────────────────────

    def _classes(self, name: str, members: List[str], build_body: List[str], indent: str,
                 stateful: bool, consumer: bool) -> List[str]:
        build_params = "BuildContext context"
        if consumer and not stateful:
            build_params += ", WidgetRef ref"
        build = "\n".join(
            ["@override", f"Widget build({build_params}) {{"]
            + [indent_block(line, indent) for line in build_body]
            + ["}"]
        )

        widget_members = [m for m in members if _is_constructor(m, name)]
        if not widget_members:
            widget_members.append(f"const {name}({{super.key}});")

        if not stateful:
            base = "ConsumerWidget" if consumer else "StatelessWidget"
            body = widget_members + [m for m in members if m not in widget_members] + [build]
            return [_class(f"class {name} extends {base}", body, indent)]

        # Widget configuration stays on the widget; everything else moves
        # to the State class.
        widget_members += [m for m in members if m.startswith("final ") and m not in widget_members]
        host_members = [m for m in members if m not in widget_members]
        widget_base, state_base = ("ConsumerStatefulWidget", "ConsumerState") if consumer else ("StatefulWidget", "State")
        state_name = f"_{name}State"
        create_state = f"@override\n{state_base}<{name}> createState() => {state_name}();"
        return [
            _class(f"class {name} extends {widget_base}", widget_members + [create_state], indent),
            _class(f"class {state_name} extends {state_base}<{name}>", host_members + [build], indent),
        ]

    # ── elements ─────────────────────────────────────────────────────

    def emit_element(self, ctx: EmissionContext, element: Element, path: str) -> str:
        if element.animation_spec is not None:
            inner = self.emit_element(ctx, replace(element, animation_spec=None), path)
            return animation_converter.generate_animation(
                element.animation_spec, ctx.framework, inner, ctx.indent, ctx.warnings
            )
        if element.widget_type == "Router":
            return self._router(ctx, element, path)
        entry = entry_for(ctx, element)
        if entry is None:
            return self._placeholder(ctx, element, path)

        check_arity(entry, element, path)
        for module in entry.imports_for(ctx.framework):
            ctx.add_import(module)

        args = self._args(ctx, entry, element, path)
        text, widgets = _split_children(entry, element)
        if args.text is not None and not text and not widgets:
            text = [_text_node(args.text)]
        slot = self._slot(ctx, entry, element, args, text, widgets, path)

        if entry.layout is not None and slot is not None and slot[0] == "layout":
            layout_call = slot[1]
            if not args.render(entry):
                return layout_call
            return call(entry.target_widget_name, args.render(entry, [f"child: {layout_call}"]), ctx.indent)

        trailing = [f"{slot[0]}: {slot[1]}"] if slot is not None else []
        return call(entry.target_widget_name, args.render(entry, trailing), ctx.indent)

    def _args(self, ctx: EmissionContext, entry: MappingEntry, element: Element, path: str) -> _Args:
        args = _Args()
        for name, value in element.props.items():
            if name.startswith("..."):
                args.comments.append(f"/* {UNCONVERTED_PREFIX} {{{name}}} */")
                continue
            if name == "key":
                args.named.append(("key", f"ValueKey({dart_prop(value)})"))
                continue
            target, mapped = ctx.registry.transform_prop(
                entry, name, value, Direction.FORWARD, ctx.warnings, path
            )
            text = dart_prop(mapped)

            if target == TEXT_CHILD_TARGET:
                args.text = mapped
            elif target.startswith("@"):
                args.positional[int(target[1:])] = text
            elif target == "layout":
                args.layout = mapped.value if isinstance(mapped, Literal) else None
            elif target.startswith("layout."):
                args.layout_args.append((target[len("layout."):], text))
            elif "." in target and target.split(".", 1)[0] in entry.groups:
                group, sub = target.split(".", 1)
                args.groups.setdefault(group, []).append((sub, text))
            else:
                args.named.append((target, text))
        return args

    def _slot(self, ctx: EmissionContext, entry: MappingEntry, element: Element, args: _Args,
              text: List[IRNode], widgets: List[IRNode], path: str) -> Optional[Tuple[str, str]]:
        indent = ctx.indent

        if text and entry.text_children == "positional":
            args.positional[0] = dart_text(text)
            return None
        if text and entry.text_children == "wrap":
            return entry.single_slot or "child", call("Text", [dart_text(text)], indent)
        if text:
            # A text run where a widget is expected becomes a Text widget.
            ctx.add_import(MATERIAL_IMPORT)
            widgets = [_TextRun(text)]

        if widgets and entry.child_slot == "none":
            raise GenerationFailure(f"{entry.target_widget_name} takes no widget children", path)

        items = [self._child(ctx, child, child_path(path, i)) for i, child in enumerate(widgets)]
        if entry.child_slot == "children":
            return "children", list_literal(items, indent)
        if entry.single_slot is None:
            return None

        layout_needed = (
            len(items) > 1 or args.layout is not None or bool(args.layout_args)
        )
        if entry.layout is not None and layout_needed:
            key = str(args.layout) if args.layout is not None else entry.layout.default
            widget = entry.layout.widgets.get(key)
            if widget is None:
                logger.warning(f"{ctx.file_path}: {path}: unknown layout '{key}', using {entry.layout.default}")
                widget = entry.layout.widgets[entry.layout.default]
            layout_args = [f"{k}: {v}" for k, v in args.layout_args]
            return "layout", call(widget, layout_args + [f"children: {list_literal(items, indent)}"], indent)
        if len(items) > 1:
            return entry.single_slot, call("Column", [f"children: {list_literal(items, indent)}"], indent)
        if items:
            return entry.single_slot, items[0]
        return None

    def _child(self, ctx: EmissionContext, node, path: str) -> str:
        if isinstance(node, _TextRun):
            return call("Text", [dart_text(node.nodes)], ctx.indent)
        if isinstance(node, Element):
            return self.emit_element(ctx, node, path)
        if isinstance(node, TextLiteral):
            return call("Text", [dart_text([node])], ctx.indent)
        if isinstance(node, ExpressionSlot):
            return node.source_text
        raise GenerationFailure(f"cannot emit {type(node).__name__}", path)

    def _placeholder(self, ctx: EmissionContext, element: Element, path: str) -> str:
        original = element.original_type or element.widget_type
        ctx.unknown_widget(path, original)
        items = [self._child(ctx, child, child_path(path, i)) for i, child in enumerate(element.children)]
        marker = f"/* {UNMAPPED_COMMENT_PREFIX} {_placeholder_signature(original, element.props, path)} */"
        if not items:
            return f"Container({marker})"
        if len(items) == 1:
            child = items[0]
        else:
            child = call("Column", [f"children: {list_literal(items, ctx.indent)}"], ctx.indent)
        return "Container(\n" + indent_block(f"{marker}\nchild: {child},", ctx.indent) + "\n)"

    def _router(self, ctx: EmissionContext, element: Element, path: str) -> str:
        schema = element.metadata.get("routes") or RouteSchema(routes=())
        frag = navigation_converter.emit_routes(schema, ctx.framework, ctx.indent, ctx.warnings)
        ctx.merge_imports(frag.imports)
        ctx.declarations.extend(frag.declarations)
        if element.children:
            message = f"{path}: {len(element.children)} child widget(s) beside the route tree dropped"
            logger.warning(f"{ctx.file_path}: {message}")
            ctx.warnings.append(message)
        return frag.markup


# =============================================================================
# Helpers
# =============================================================================


@dataclass
class _TextRun:
    nodes: List[IRNode]


def dart_text(nodes: List[IRNode]) -> str:
    """A Dart string literal for text runs, interpolating expressions."""
    out = []
    for node in nodes:
        if isinstance(node, TextLiteral):
            out.append(dart_string(node.value)[1:-1])
        elif isinstance(node, ExpressionSlot):
            out.append(f"${{{node.source_text}}}")
    return "'" + "".join(out) + "'"


def call(callee: str, args: List[str], indent: str = "  ") -> str:
    """A constructor call, on one line when it is short."""
    if not args:
        return f"{callee}()"
    inline = f"{callee}({', '.join(args)})"
    if len(inline) <= _INLINE_CALL and "\n" not in inline:
        return inline
    body = "\n".join(indent_block(a if _is_comment(a) else f"{a},", indent) for a in args)
    return f"{callee}(\n{body}\n)"


def _is_comment(text: str) -> bool:
    return text.startswith("/*") and text.endswith("*/") and text.count("*/") == 1


_DART_NAME_RE = re.compile(r"^[A-Za-z_]\w*$")


def _placeholder_signature(original: str, props: Dict[str, PropValue], path: str) -> str:
    """``Name(prop: value, ...)`` for the marker comment, or the bare name without props."""
    args = []
    for name, value in props.items():
        text = dart_prop(value)
        if not _DART_NAME_RE.match(name) or "*/" in text:
            logger.debug(f"Dropping prop {name} of unmapped {original} at {path}")
            continue
        args.append(f"{name}: {text}")
    if not args:
        return original
    return f"{original}({', '.join(args)})"


def list_literal(items: List[str], indent: str = "  ") -> str:
    if not items:
        return "[]"
    body = "\n".join(indent_block(f"{item},", indent) for item in items)
    return f"[\n{body}\n]"


def _class(header: str, members: List[str], indent: str) -> str:
    body = "\n\n".join(indent_block(m, indent) for m in members)
    return f"{header} {{\n{body}\n}}"


def _is_constructor(member: str, name: str) -> bool:
    text = member.lstrip()
    return text.startswith(f"const {name}(") or text.startswith(f"{name}(")


def _text_node(value: PropValue) -> IRNode:
    if isinstance(value, Literal):
        return TextLiteral(value.value if isinstance(value.value, str) else js_value(value.value))
    return ExpressionSlot(value.source_text)


def _split_children(entry: MappingEntry, element: Element) -> Tuple[List[IRNode], List[IRNode]]:
    """``(text run, widget children)``; one of the two is always empty."""
    children = list(element.children)
    if not children or any(isinstance(c, Element) for c in children):
        return [], children
    if entry.text_children != "none" or any(isinstance(c, TextLiteral) for c in children):
        return children, []
    return [], children
