"""Component-model (TSX/JSX) parser using tree-sitter.

Finds the component whose markup is the document root, lifts its state
declarations through the state converter and lowers the returned JSX
into IR elements. Router trees are handed to the navigation converter
and ``motion.*`` wrappers to the animation converter.
"""

import html
import logging
import re
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Set, Tuple

import tree_sitter

from ..animation import converter as animation_converter
from ..constants import (
    FRAMEWORK_COMPONENT_MODEL,
    MARKUP_EXPRESSION_KEY,
    UNMAPPED_ATTRIBUTE,
)
from ..ir.errors import SourceSyntaxError
from ..ir.models import (
    Element,
    Expression,
    ExpressionSlot,
    IRNode,
    Literal,
    PropValue,
    StateBinding,
    StatePattern,
    TextLiteral,
    literal,
    placeholder,
)
from ..navigation import route_parser
from ..state import converter as state_converter
from .base import BaseSourceParser, ParsedComponent, component_name_from_path, dedent_slice
from .tsx_utils import (
    FUNCTION_TYPES,
    TsxSource,
    attribute_parts,
    classify,
    clean_jsx_text,
    container_expression,
    contains_jsx,
    is_jsx,
    jsx_attributes,
    jsx_children,
    jsx_tag_name,
    object_key,
    unwrap_parens,
)

logger = logging.getLogger(__name__)

_CLASS_BASES = ("Component", "PureComponent", "React.Component", "React.PureComponent")
_TEXT_NODE_TYPES = ("jsx_text", "html_character_reference")

# Candidate ranks, lowest wins.
_RANK_DEFAULT_EXPORT = 0
_RANK_NAMED_EXPORT = 1
_RANK_COMPONENT = 2
_RANK_EXPRESSION = 3


@dataclass
class _Candidate:
    rank: int
    statement: tree_sitter.Node
    name: Optional[str] = None
    function: Optional[tree_sitter.Node] = None
    cls: Optional[tree_sitter.Node] = None
    jsx: Optional[tree_sitter.Node] = None
    # ``export default Name;`` statement pointing at this component
    default_ref: Optional[tree_sitter.Node] = None


@dataclass
class _Lowering:
    """Per-parse state threaded through JSX lowering."""

    src: TsxSource
    file_path: str
    routes_found: bool = False
    guards: Optional[tuple] = None
    rewrites: Dict[str, str] = field(default_factory=dict)
    warnings: List[object] = field(default_factory=list)


class ComponentModelParser(BaseSourceParser):
    """tree-sitter based TSX parser.

    Root selection order:
    - ``export default`` function, arrow function or class component
    - named export
    - first top-level capitalised component
    - top-level JSX expression statement
    """

    def get_framework(self) -> str:
        return FRAMEWORK_COMPONENT_MODEL

    def parse_component(self, text: str, file_path: str) -> ParsedComponent:
        src = TsxSource(text)
        src.check_syntax()

        candidate = self._select_root(src)
        if candidate is None:
            raise SourceSyntaxError("no JSX root expression found", 1, 1)

        state = _Lowering(src=src, file_path=file_path)
        bindings: List[StateBinding] = []
        prelude: List[str] = []
        members: List[str] = []
        params: Optional[str] = None

        if candidate.function is not None:
            statements, jsx = _function_root(candidate.function)
            bindings, rest = state_converter.lift_component_state(statements, src)
            prelude = [_slice(src, s) for s in rest]
            params = _function_params(src, candidate.function)
        elif candidate.cls is not None:
            render, class_members, comments = _class_parts(src, candidate.cls)
            statements, jsx = _function_root(render)
            bindings, rest = state_converter.lift_class_state(class_members, src)
            state.rewrites = _class_rewrites(src, bindings, class_members, rest)
            prelude = [_rewrite(state, _slice(src, s)) for s in statements]
            members = [_slice(src, m) for m in sorted(rest + comments, key=lambda n: n.start_byte)]
        else:
            jsx = candidate.jsx

        root = self._lower_root(state, jsx)
        declarations, bindings = self._declarations(src, candidate, bindings, state.routes_found)
        if bindings:
            root = replace(root, state_bindings=tuple(bindings))
        if params:
            root = replace(root, metadata={**root.metadata, "params": params})

        name = candidate.name or component_name_from_path(file_path)
        logger.debug(
            f"Parsed component {name or '<anonymous>'} from {file_path}: "
            f"{len(bindings)} binding(s), {len(prelude)} prelude statement(s)"
        )
        return ParsedComponent(
            root=root,
            component_name=name,
            prelude=prelude,
            members=members,
            declarations=declarations,
            warnings=state.warnings,
        )

    # ── root selection ───────────────────────────────────────────────

    def _select_root(self, src: TsxSource) -> Optional[_Candidate]:
        candidates: List[_Candidate] = []
        by_name: Dict[str, _Candidate] = {}
        default_refs: List[Tuple[tree_sitter.Node, str]] = []

        for stmt in src.root.named_children:
            if stmt.type == "export_statement":
                is_default = any(c.type == "default" for c in stmt.children)
                rank = _RANK_DEFAULT_EXPORT if is_default else _RANK_NAMED_EXPORT
                inner = stmt.child_by_field_name("declaration") or stmt.child_by_field_name("value")
                if inner is None:
                    continue
                if is_default and inner.type == "identifier":
                    default_refs.append((stmt, src.node_text(inner)))
                    continue
                found = _component_candidate(src, inner, rank, stmt, anonymous_ok=is_default)
                if found is not None:
                    candidates.append(found)
            elif stmt.type == "expression_statement":
                expr = unwrap_parens(stmt.named_children[0]) if stmt.named_children else None
                if is_jsx(expr):
                    candidates.append(_Candidate(_RANK_EXPRESSION, stmt, jsx=expr))
            else:
                found = _component_candidate(src, stmt, _RANK_COMPONENT, stmt, anonymous_ok=False)
                if found is not None:
                    candidates.append(found)
                    by_name.setdefault(found.name, found)

        for stmt, name in default_refs:
            target = by_name.get(name)
            if target is not None:
                target.rank = _RANK_DEFAULT_EXPORT
                target.default_ref = stmt
        if not candidates:
            return None
        return min(candidates, key=lambda c: c.rank)

    # ── declarations ─────────────────────────────────────────────────

    def _declarations(
        self,
        src: TsxSource,
        candidate: _Candidate,
        bindings: List[StateBinding],
        routes_found: bool,
    ) -> Tuple[List[str], List[StateBinding]]:
        """Top-level statements other than the root, minus what gets regenerated."""
        skip: Set[str] = set()
        if routes_found:
            skip |= route_parser.HELPER_DECLARATIONS[FRAMEWORK_COMPONENT_MODEL]

        top = {}
        for stmt in src.root.named_children:
            name = _declared_name(src, stmt)
            if name:
                top[name] = stmt

        updated = []
        for binding in bindings:
            reducer = top.get(binding.reducer or "")
            if binding.pattern is StatePattern.REDUCER and reducer is not None:
                inlined = state_converter.inline_reducer(binding, src.node_text(reducer))
                if inlined is not None:
                    logger.debug("Reducer %s folded into %s transitions", binding.reducer, binding.name)
                    skip.add(binding.reducer)
                    binding = inlined
            updated.append(binding)

        out: List[str] = []
        comments: List[tree_sitter.Node] = []
        for stmt in src.root.named_children:
            if stmt.type == "comment":
                if comments and stmt.start_point[0] > comments[-1].end_point[0] + 1:
                    out.append(_slice_range(src, comments[0], comments[-1]))
                    comments = []
                comments.append(stmt)
                continue
            dropped = (
                stmt == candidate.statement or stmt == candidate.default_ref
                or _declared_name(src, stmt) in skip
            )
            first = stmt
            if comments:
                # A comment block directly above a kept statement stays with it.
                if not dropped and stmt.start_point[0] == comments[-1].end_point[0] + 1:
                    first = comments[0]
                else:
                    out.append(_slice_range(src, comments[0], comments[-1]))
                comments = []
            if not dropped:
                out.append(_slice_range(src, first, stmt))
        if comments:
            out.append(_slice_range(src, comments[0], comments[-1]))
        return out, updated

    # ── JSX lowering ─────────────────────────────────────────────────

    def _lower_root(self, state: _Lowering, jsx: tree_sitter.Node) -> Element:
        jsx = unwrap_parens(jsx)
        if not is_jsx(jsx):
            # Conditional or computed markup stays one opaque expression.
            logger.debug(f"Root of {state.file_path} is a {jsx.type}; kept as an expression")
            return Element(
                widget_type="View",
                children=(ExpressionSlot(state.src.node_text(jsx)),),
                metadata={MARKUP_EXPRESSION_KEY: True},
            )
        nodes = self._lower(state, jsx, "root")
        if len(nodes) == 1 and isinstance(nodes[0], Element):
            return nodes[0]
        # A multi-child fragment at the root needs a container.
        return Element(widget_type="View", children=tuple(nodes))

    def _lower(self, state: _Lowering, node: tree_sitter.Node, path: str) -> List[IRNode]:
        src = state.src
        tag = jsx_tag_name(src, node)
        if tag is None:
            return self._lower_children(state, node, path)

        if tag in route_parser.ROUTER_TAGS:
            return [self._lower_router(state, node, tag, path)]

        props = self._props(state, node)
        children = tuple(self._lower_children(state, node, path))

        if tag.startswith(animation_converter.MOTION_TAG_PREFIX):
            return [self._lower_motion(state, tag, props, children, path)]

        unmapped = props.get(UNMAPPED_ATTRIBUTE)
        if tag == "div" and isinstance(unmapped, Literal) and isinstance(unmapped.value, str):
            rest = {k: v for k, v in props.items() if k != UNMAPPED_ATTRIBUTE}
            return [placeholder(unmapped.value, rest, children)]

        entry = self.registry.resolve_forward(tag)
        if entry is not None:
            return [Element(widget_type=entry.source_widget_name, props=props, children=children)]

        logger.warning(f"Unmapped component <{tag}> at {path} in {state.file_path}")
        return [placeholder(tag, props, children)]

    def _lower_router(self, state: _Lowering, node: tree_sitter.Node, tag: str, path: str) -> Element:
        src = state.src
        if state.guards is None:
            state.guards = route_parser.find_jsx_guards(src)
        schema = route_parser.routes_from_jsx(src, node, state.guards)
        state.routes_found = True
        for warning in schema.warnings:
            logger.warning(f"{state.file_path}: {warning}")
            state.warnings.append(warning)

        children: List[IRNode] = []
        if tag != "Routes":
            for child in jsx_children(node):
                if is_jsx(child) and jsx_tag_name(src, child) == "Routes":
                    continue
                if child.type in ("jsx_element", "jsx_self_closing_element"):
                    children.extend(self._lower(state, child, path))
        return Element(widget_type="Router", children=tuple(children), metadata={"routes": schema})

    def _lower_motion(self, state: _Lowering, tag: str, props: Dict[str, PropValue],
                      children: Tuple[IRNode, ...], path: str) -> Element:
        anim, rest = animation_converter.split_motion_props(props)
        spec = animation_converter.parse_motion_props(anim)
        if spec is None:
            logger.warning(f"Non-constant motion props on <{tag}> at {path}; kept as placeholder")
            return placeholder(tag, props, children)

        elements = [c for c in children if isinstance(c, Element)]
        if not rest and len(children) == 1 and len(elements) == 1 and elements[0].animation_spec is None:
            return replace(elements[0], animation_spec=spec)

        entry = self.registry.resolve_forward(tag[len(animation_converter.MOTION_TAG_PREFIX):])
        widget = entry.source_widget_name if entry is not None else "View"
        return Element(widget_type=widget, props=rest, children=children, animation_spec=spec)

    def _props(self, state: _Lowering, node: tree_sitter.Node) -> Dict[str, PropValue]:
        src = state.src
        props: Dict[str, PropValue] = {}
        for attr in jsx_attributes(node):
            if attr.type == "jsx_expression":
                inner = container_expression(attr)
                if inner is not None:
                    text = _rewrite(state, src.node_text(inner))
                    props[text] = Expression(text[3:] if text.startswith("...") else text)
                continue

            name, value = attribute_parts(src, attr)
            if value is None:
                props[name] = literal(True)
            elif value.type == "string":
                props[name] = literal(html.unescape(src.node_text(value)[1:-1]))
            elif value.type == "jsx_expression":
                inner = container_expression(value)
                if inner is None:
                    continue
                inner = unwrap_parens(inner)
                if name == "style" and inner.type == "object" and _flat_object(inner):
                    for pair in inner.named_children:
                        if pair.type == "pair":
                            key = object_key(src, pair.child_by_field_name("key"))
                            if key is not None:
                                props[key] = self._value(state, pair.child_by_field_name("value"))
                    continue
                props[name] = self._value(state, inner)
            else:
                props[name] = Expression(_rewrite(state, src.node_text(value)))
        return props

    def _value(self, state: _Lowering, node: tree_sitter.Node) -> PropValue:
        value = classify(state.src, node)
        if isinstance(value, Expression) and state.rewrites:
            return Expression(_rewrite(state, value.source_text))
        return value

    def _lower_children(self, state: _Lowering, node: tree_sitter.Node, path: str) -> List[IRNode]:
        src = state.src
        out: List[IRNode] = []
        text_run: List[str] = []

        def flush():
            if text_run:
                text = clean_jsx_text("".join(text_run))
                text_run.clear()
                if text:
                    out.append(TextLiteral(text))

        for child in jsx_children(node):
            if child.type in _TEXT_NODE_TYPES:
                text_run.append(src.node_text(child))
                continue
            flush()
            if child.type == "jsx_expression":
                inner = container_expression(child)
                if inner is None:
                    continue
                value = classify(src, inner)
                if isinstance(value, Literal) and isinstance(value.value, str):
                    out.append(TextLiteral(value.value))
                else:
                    out.append(ExpressionSlot(_rewrite(state, src.node_text(inner))))
            elif child.type in ("jsx_element", "jsx_self_closing_element"):
                child_path = f"{path}.children[{len(out)}]"
                out.extend(self._lower(state, child, child_path))
        flush()
        return _merge_text(out)


# =============================================================================
# Helpers
# =============================================================================


def _slice(src: TsxSource, node: tree_sitter.Node) -> str:
    return dedent_slice(src.node_text(node), src.position(node)[1])


def _slice_range(src: TsxSource, first: tree_sitter.Node, last: tree_sitter.Node) -> str:
    text = src.source[first.start_byte:last.end_byte].decode("utf-8")
    return dedent_slice(text, src.position(first)[1])


def _merge_text(nodes: List[IRNode]) -> List[IRNode]:
    merged: List[IRNode] = []
    for node in nodes:
        if isinstance(node, TextLiteral) and merged and isinstance(merged[-1], TextLiteral):
            merged[-1] = TextLiteral(merged[-1].value + node.value)
        else:
            merged.append(node)
    return merged


def _flat_object(node: tree_sitter.Node) -> bool:
    """True when every member of an object literal is a plain ``key: value`` pair."""
    members = [c for c in node.named_children if c.type != "comment"]
    return all(c.type == "pair" for c in members)


def _component_function(node: Optional[tree_sitter.Node]) -> Optional[tree_sitter.Node]:
    """The function in ``() => ...`` or a wrapper call like ``memo(() => ...)``."""
    node = unwrap_parens(node)
    if node is None:
        return None
    if node.type in FUNCTION_TYPES:
        return node
    if node.type == "call_expression":
        args = node.child_by_field_name("arguments")
        first = args.named_children[0] if args is not None and args.named_children else None
        return _component_function(first)
    return None


def _component_candidate(
    src: TsxSource,
    node: tree_sitter.Node,
    rank: int,
    statement: tree_sitter.Node,
    anonymous_ok: bool,
) -> Optional[_Candidate]:
    name_node = node.child_by_field_name("name")
    name = src.node_text(name_node) if name_node is not None else None

    if node.type in ("class_declaration", "class"):
        if not _is_class_component(src, node):
            return None
        render, _, _ = _class_parts(src, node)
        if render is None or _function_root(render)[1] is None:
            return None
        return _Candidate(rank, statement, name, cls=node)

    if node.type in ("lexical_declaration", "variable_declaration"):
        declarators = [c for c in node.named_children if c.type == "variable_declarator"]
        if len(declarators) != 1:
            return None
        name_node = declarators[0].child_by_field_name("name")
        name = src.node_text(name_node) if name_node is not None else None
        function = _component_function(declarators[0].child_by_field_name("value"))
    else:
        function = _component_function(node)

    if function is None or _function_root(function)[1] is None:
        return None
    if name is None and not anonymous_ok:
        return None
    if name is not None and not name[:1].isupper():
        return None
    return _Candidate(rank, statement, name, function=function)


def _function_root(fn: Optional[tree_sitter.Node]) -> Tuple[List[tree_sitter.Node], Optional[tree_sitter.Node]]:
    """``(body statements except the markup return, returned JSX)``."""
    if fn is None:
        return [], None
    body = fn.child_by_field_name("body")
    if body is None:
        return [], None
    if body.type != "statement_block":
        expr = unwrap_parens(body)
        return ([], expr) if contains_jsx(expr) else ([], None)

    statements = list(body.named_children)
    for stmt in reversed(statements):
        if stmt.type != "return_statement" or not stmt.named_children:
            continue
        expr = unwrap_parens(stmt.named_children[0])
        if contains_jsx(expr):
            return [s for s in statements if s != stmt], expr
    return statements, None


def _function_params(src: TsxSource, fn: tree_sitter.Node) -> Optional[str]:
    params = fn.child_by_field_name("parameters") or fn.child_by_field_name("parameter")
    if params is None:
        return None
    text = src.node_text(params).strip()
    if text in ("", "()"):
        return None
    return text if text.startswith("(") else f"({text})"


def _is_class_component(src: TsxSource, node: tree_sitter.Node) -> bool:
    for child in node.children:
        if child.type == "class_heritage":
            text = src.node_text(child).replace("extends", "", 1).strip()
            base = text.split("<", 1)[0].strip()
            return base in _CLASS_BASES
    return False


def _class_parts(
    src: TsxSource, node: tree_sitter.Node
) -> Tuple[Optional[tree_sitter.Node], List[tree_sitter.Node], List[tree_sitter.Node]]:
    """``(render method, other members, comments)`` of a class component."""
    body = node.child_by_field_name("body")
    render = None
    members = []
    comments = []
    for member in body.named_children if body is not None else []:
        if member.type == "comment":
            comments.append(member)
            continue
        name = member.child_by_field_name("name")
        if member.type == "method_definition" and src.node_text(name) == "render":
            render = member
        else:
            members.append(member)
    return render, members, comments


def _class_rewrites(
    src: TsxSource,
    bindings: List[StateBinding],
    members: List[tree_sitter.Node],
    rest: List[tree_sitter.Node],
) -> Dict[str, str]:
    """Member accesses that become plain names once the class is gone."""
    rewrites = {f"this.state.{b.name}": b.name for b in bindings}
    kept = {src.node_text(m.child_by_field_name("name")) for m in rest}
    for member in members:
        name = src.node_text(member.child_by_field_name("name"))
        if name and name not in kept:
            rewrites[f"this.{name}"] = name
    rewrites["this.props"] = "props"
    return rewrites


def _rewrite(state: _Lowering, text: str) -> str:
    for old in sorted(state.rewrites, key=len, reverse=True):
        text = re.sub(rf"(?<![\w$.]){re.escape(old)}(?![\w$])", state.rewrites[old], text)
    return text


def _declared_name(src: TsxSource, stmt: tree_sitter.Node) -> Optional[str]:
    node = stmt
    if node.type == "export_statement":
        node = node.child_by_field_name("declaration") or node
    if node.type in ("function_declaration", "class_declaration", "generator_function_declaration"):
        name = node.child_by_field_name("name")
        return src.node_text(name) if name is not None else None
    if node.type in ("lexical_declaration", "variable_declaration"):
        declarators = [c for c in node.named_children if c.type == "variable_declarator"]
        if len(declarators) == 1:
            return src.node_text(declarators[0].child_by_field_name("name"))
    return None
