"""Widget-tree (Dart/Flutter) parser.

Does NOT use tree-sitter (no pip-installable Dart grammar exists); works
on the token stream and structural nodes from ``dart_syntax``.

Finds the widget class (``StatelessWidget``, ``StatefulWidget``,
``ConsumerWidget`` or ``ConsumerStatefulWidget``), its ``State`` class
when there is one, and the expression ``build`` returns. A file holding
just a widget expression is accepted too.
"""

import logging
import re
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Sequence, Set, Tuple

from ..animation import converter as animation_converter
from ..constants import FRAMEWORK_WIDGET_TREE, UNMAPPED_COMMENT_PREFIX
from ..ir.errors import SourceSyntaxError
from ..ir.models import (
    Element,
    ExpressionSlot,
    IRNode,
    PropValue,
    TextLiteral,
    literal,
    placeholder,
)
from ..mapping import Direction, MappingEntry
from ..navigation import route_parser
from ..state import converter as state_converter
from .base import BaseSourceParser, ParsedComponent, dedent_slice
from .dart_syntax import DartCall, DartList, DartMember, DartNode, DartString, DartSyntax, Interpolation, to_prop_value

logger = logging.getLogger(__name__)

WIDGET_BASES = frozenset({"StatelessWidget", "StatefulWidget", "ConsumerWidget", "ConsumerStatefulWidget"})
STATE_BASES = frozenset({"State", "ConsumerState"})
ROUTER_CALLEES = frozenset({"MaterialApp", "MaterialApp.router", "GoRouter"})

_PLACEHOLDER_RE = re.compile(rf"/\*\s*{re.escape(UNMAPPED_COMMENT_PREFIX)}\s*(.+?)\s*\*/", re.DOTALL)
_TRIVIAL_CONSTRUCTOR_PARAMS = ("", "{super.key}", "{super.key,}", "{Key?key}")


@dataclass
class _Lowering:
    """Per-parse state threaded through widget lowering."""

    syntax: DartSyntax
    file_path: str
    declarations: Sequence[DartMember] = ()
    consumed: Set[str] = field(default_factory=set)
    routes_found: bool = False
    warnings: List[object] = field(default_factory=list)


class WidgetTreeParser(BaseSourceParser):
    """Hand-written widget-tree parser.

    Lowers nested constructor calls through ``resolve_backward``. Values
    are classified literal vs expression, then mapped with
    ``transform_prop(..., BACKWARD)``.
    """

    def get_framework(self) -> str:
        return FRAMEWORK_WIDGET_TREE

    def parse_component(self, text: str, file_path: str) -> ParsedComponent:
        syntax = DartSyntax(text)
        declarations = syntax.split_members(0, len(syntax))
        classes = syntax.classes(declarations)

        widget = next((c for c in classes.values() if c.super_name in WIDGET_BASES), None)
        if widget is None:
            return self._parse_expression(syntax, file_path)

        state_class = None
        if widget.super_name in ("StatefulWidget", "ConsumerStatefulWidget"):
            state_class = next(
                (c for c in classes.values()
                 if c.super_name in STATE_BASES and c.super_type_args == widget.name),
                None,
            )
        host = state_class or widget
        host_members = syntax.split_members(*host.body)
        build = next((m for m in host_members if m.kind == "method" and m.name == "build"), None)
        returned = syntax.returned_expression(build) if build is not None else None
        if returned is None:
            raise syntax.error_at(host.start, f"no build method returning a widget in {host.name}")

        statements = self._build_statements(syntax, build)
        all_members = list(host_members)
        closers = [host.body[1]]
        if state_class is not None:
            all_members = syntax.split_members(*widget.body) + all_members
            closers.insert(0, widget.body[1])
        members = [
            m for m in all_members
            if m is not build and m.name != "createState" and not _trivial_constructor(syntax, m, widget.name)
        ]

        scan = state_converter.detect_widget_state(syntax, state_class, members, statements, declarations)

        ctx = _Lowering(syntax=syntax, file_path=file_path, declarations=declarations)
        root = self._lower_root(ctx, syntax.parse_expression(*returned))
        if scan.bindings:
            root = replace(root, state_bindings=tuple(scan.bindings))

        skip = {widget.name} | scan.consumed_declarations | ctx.consumed
        if state_class is not None:
            skip.add(state_class.name)
        if ctx.routes_found:
            skip |= route_parser.HELPER_DECLARATIONS[FRAMEWORK_WIDGET_TREE]

        logger.debug(
            "Parsed widget %s from %s: %d binding(s), %d member(s)",
            widget.name, file_path, len(scan.bindings), len(scan.members),
        )
        kept_members = {(m.start, m.end) for m in scan.members}
        kept_declarations = {
            (m.start, m.end) for m in declarations if m.kind == "directive" or m.name not in skip
        }
        return ParsedComponent(
            root=root,
            component_name=widget.name,
            prelude=_prelude(syntax, build, set(scan.build_statements)),
            members=_items(syntax, all_members, kept_members, closers),
            declarations=_items(syntax, declarations, kept_declarations, [len(syntax)]),
            warnings=ctx.warnings,
        )

    def _parse_expression(self, syntax: DartSyntax, file_path: str) -> ParsedComponent:
        """A file that is just a widget expression."""
        end = len(syntax)
        if end == 0:
            raise SourceSyntaxError("no widget class or expression found", 1, 1)
        if syntax.is_punct(end - 1, ";"):
            end -= 1
        node = syntax.parse_expression(0, end)
        if not isinstance(node, DartCall):
            raise syntax.error_at(0, "no widget class or expression found")
        ctx = _Lowering(syntax=syntax, file_path=file_path)
        return ParsedComponent(root=self._lower_root(ctx, node), warnings=ctx.warnings)

    @staticmethod
    def _build_statements(syntax: DartSyntax, build: DartMember) -> List[Tuple[int, int]]:
        if build.body is None:
            return []
        statements = syntax.split_statements(*build.body)
        returns = [i for i, (s, _) in enumerate(statements) if syntax.is_ident(s, "return")]
        if returns:
            statements = statements[:returns[-1]] + statements[returns[-1] + 1:]
        return statements

    # ── lowering ─────────────────────────────────────────────────────

    def _lower_root(self, ctx: _Lowering, node: DartNode) -> Element:
        nodes = self._lower(ctx, node, "root")
        if len(nodes) == 1 and isinstance(nodes[0], Element):
            return nodes[0]
        return Element(widget_type="View", children=tuple(nodes))

    def _lower(self, ctx: _Lowering, node: Optional[DartNode], path: str) -> List[IRNode]:
        if node is None:
            return []
        if isinstance(node, DartList):
            out: List[IRNode] = []
            for item in node.items:
                out.extend(self._lower(ctx, item, f"{path}.children[{len(out)}]"))
            return out
        if not isinstance(node, DartCall) or not node.callee[:1].isupper():
            return [ExpressionSlot(node.text)]

        callee = node.callee
        if callee in animation_converter.WIDGET_WRAPPERS:
            lowered = self._lower_animation(ctx, node, path)
            if lowered is not None:
                return [lowered]

        if callee in ROUTER_CALLEES:
            lowered = self._lower_router(ctx, node, path)
            if lowered is not None:
                return lowered

        if callee == "Container":
            marker = _placeholder_marker(node)
            if marker is not None:
                name, props = marker
                return [placeholder(name, props, tuple(self._slot_children(ctx, node, path)))]

        entry = self.registry.resolve_backward(callee)
        if entry is None:
            logger.warning(f"Unmapped widget {callee} at {path} in {ctx.file_path}")
            return [self._unmapped(ctx, node, path)]
        return [self._lower_mapped(ctx, entry, node, path)]

    def _lower_animation(self, ctx: _Lowering, call: DartCall, path: str) -> Optional[Element]:
        parsed = animation_converter.parse_widget_wrappers(call, ctx.warnings)
        if parsed is None:
            return None
        spec, inner = parsed
        children = self._lower(ctx, inner, path)
        if len(children) == 1 and isinstance(children[0], Element) and children[0].animation_spec is None:
            return replace(children[0], animation_spec=spec)
        return Element(widget_type="View", children=tuple(children), animation_spec=spec)

    def _lower_router(self, ctx: _Lowering, call: DartCall, path: str) -> Optional[List[IRNode]]:
        if call.callee == "MaterialApp" and call.named("routes") is None and call.named("routerConfig") is None:
            # A plain app shell; its home screen is the tree.
            logger.debug("MaterialApp without routes at %s; lowering home", path)
            return self._lower(ctx, call.named("home"), path) or None

        schema, consumed = route_parser.routes_from_dart(ctx.syntax, call, ctx.declarations)
        ctx.consumed.update(consumed)
        ctx.routes_found = True
        for warning in schema.warnings:
            logger.warning(f"{ctx.file_path}: {warning}")
            ctx.warnings.append(warning)
        return [Element(widget_type="Router", metadata={"routes": schema})]

    def _unmapped(self, ctx: _Lowering, call: DartCall, path: str) -> Element:
        props: Dict[str, PropValue] = {}
        children: List[IRNode] = []
        for i, arg in enumerate(call.args):
            if arg.name in ("child", "children"):
                children.extend(self._lower(ctx, arg.value, path))
            else:
                props[arg.name or f"arg{i}"] = to_prop_value(arg.value)
        return placeholder(call.callee, props, tuple(children))

    def _slot_children(self, ctx: _Lowering, call: DartCall, path: str) -> List[IRNode]:
        children: List[IRNode] = []
        for name in ("child", "children"):
            node = call.named(name)
            if _plain_column(node):
                node = node.named("children")
            children.extend(self._lower(ctx, node, path))
        return children

    def _lower_mapped(self, ctx: _Lowering, entry: MappingEntry, call: DartCall, path: str) -> Element:
        props: Dict[str, PropValue] = {k: literal(v) for k, v in entry.target_aliases.get(call.callee, {}).items()}
        children: List[IRNode] = []
        layout_widgets = set(entry.layout.widgets.values()) if entry.layout is not None else set()
        prefix = "layout." if call.callee in layout_widgets else ""
        positional = 0

        for arg in call.args:
            if arg.name is None:
                index = positional
                positional += 1
                if index == 0 and entry.text_children == "positional":
                    children.extend(_text_children(arg.value))
                    continue
                self._set_prop(ctx, entry, props, f"@{index}", to_prop_value(arg.value), path)
                continue

            if arg.name in ("child", "children") or arg.name == entry.single_slot:
                child_call = arg.value
                if (arg.name == entry.single_slot and isinstance(child_call, DartCall)
                        and child_call.callee in layout_widgets and not prefix):
                    merged = self._lower_mapped(ctx, entry, child_call, path)
                    props.update(merged.props)
                    children.extend(merged.children)
                    continue
                if arg.name == entry.single_slot and entry.arity == "multi" and _plain_column(child_call):
                    children.extend(self._lower(ctx, child_call.named("children"), path))
                    continue
                children.extend(self._lower(ctx, child_call, path))
                continue

            if arg.name == "key" and _key_value(arg.value) is not None:
                props["key"] = to_prop_value(_key_value(arg.value))
                continue

            group = entry.groups.get(arg.name)
            if group is not None and isinstance(arg.value, DartCall) and arg.value.callee == group:
                for sub in arg.value.args:
                    if sub.name is not None:
                        self._set_prop(ctx, entry, props, f"{arg.name}.{sub.name}", to_prop_value(sub.value), path)
                continue

            self._set_prop(ctx, entry, props, prefix + arg.name, to_prop_value(arg.value), path)

        if entry.text_children == "wrap" and len(children) == 1:
            only = children[0]
            if isinstance(only, Element) and only.widget_type == "Text" and not only.props \
                    and not only.state_bindings and only.animation_spec is None \
                    and all(isinstance(c, TextLiteral) for c in only.children):
                children = list(only.children)

        return Element(widget_type=entry.source_widget_name, props=props, children=tuple(children))

    def _set_prop(self, ctx: _Lowering, entry: MappingEntry, props: Dict[str, PropValue],
                  target_path: str, value: PropValue, path: str) -> None:
        name, mapped = self.registry.transform_prop(entry, target_path, value, Direction.BACKWARD, ctx.warnings, path)
        props[name] = mapped


# =============================================================================
# Helpers
# =============================================================================


def _slice(syntax: DartSyntax, start: int, end: int) -> str:
    return dedent_slice(syntax.text(start, end), syntax.toks[start].column)


def _comments(syntax: DartSyntax, index: int) -> List[Tuple[str, int]]:
    return [(dedent_slice(text, column), gap) for text, column, gap in syntax.comment_blocks(index)]


def _items(syntax: DartSyntax, members: Sequence[DartMember], kept: Set[Tuple[int, int]],
           closers: Sequence[int]) -> List[str]:
    """Kept members as source slices, with the comments around them.

    A comment block directly above a kept member stays attached to it;
    other blocks, and those of dropped members, become items of their own.
    """
    items: List[str] = []
    for member in members:
        blocks = _comments(syntax, member.start)
        if (member.start, member.end) not in kept:
            items.extend(text for text, _ in blocks)
            continue
        text = _slice(syntax, member.start, member.end)
        if blocks and blocks[-1][1] == 0:
            text = blocks.pop()[0] + "\n" + text
        items.extend(t for t, _ in blocks)
        items.append(text)
    for index in closers:
        items.extend(text for text, _ in _comments(syntax, index))
    return items


def _prelude(syntax: DartSyntax, build: DartMember, kept: Set[Tuple[int, int]]) -> List[str]:
    """Build statements before the returned tree, comments included."""
    if build.body is None:
        return []
    out: List[str] = []
    for s, e in syntax.split_statements(*build.body):
        comments = [text for text, _ in _comments(syntax, s)]
        if (s, e) in kept:
            out.append("\n".join(comments + [_slice(syntax, s, e)]))
        else:
            out.extend(comments)
    out.extend(text for text, _ in _comments(syntax, build.body[1]))
    return out


def _text_children(node: DartNode) -> List[IRNode]:
    """Text children from the positional argument of a ``Text``-like widget."""
    if not isinstance(node, DartString):
        return [ExpressionSlot(node.text)]
    out: List[IRNode] = []
    for part in node.parts:
        if isinstance(part, Interpolation):
            out.append(ExpressionSlot(part.source_text))
        elif part:
            out.append(TextLiteral(part))
    return out


def _key_value(node: DartNode) -> Optional[DartNode]:
    """The value inside ``ValueKey(v)`` or ``Key(v)``."""
    if isinstance(node, DartCall) and node.callee in ("ValueKey", "Key") and len(node.args) == 1 \
            and node.args[0].name is None:
        return node.args[0].value
    return None


def _placeholder_marker(call: DartCall) -> Optional[Tuple[str, Dict[str, PropValue]]]:
    """Widget name and props from an ``unmapped widget: Name(prop: value)`` comment."""
    for comment in call.leading_comments:
        m = _PLACEHOLDER_RE.search(comment)
        if not m:
            continue
        text = m.group(1)
        if "(" not in text:
            return text, {}
        name = text[:text.index("(")].strip()
        try:
            syntax = DartSyntax(text)
            node = syntax.parse_expression(0, len(syntax))
        except SourceSyntaxError as e:
            logger.warning(f"Unreadable props on unmapped {name}: {e}")
            return name, {}
        if not isinstance(node, DartCall):
            return name, {}
        props = {arg.name: to_prop_value(arg.value) for arg in node.args if arg.name is not None}
        return name, props
    return None


def _trivial_constructor(syntax: DartSyntax, member: DartMember, widget_name: str) -> bool:
    """A key-only constructor that generation recreates."""
    if member.kind != "constructor" or member.name != widget_name or member.body or member.arrow:
        return False
    params = syntax.text(*member.params).replace(" ", "") if member.params else ""
    return params in _TRIVIAL_CONSTRUCTOR_PARAMS and ":" not in member.text.split(")", 1)[-1]


def _plain_column(node: Optional[DartNode]) -> bool:
    """``Column(children: [...])`` with nothing else, as generation emits for a child slot."""
    return (isinstance(node, DartCall) and node.callee == "Column"
            and [a.name for a in node.args] == ["children"])
