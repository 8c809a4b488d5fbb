"""tree-sitter helpers for component-model (TSX/JSX) source.

Wraps the TSX grammar from ``tree_sitter_typescript`` and provides the
literal-vs-expression classification shared by the component parser, the
state converter, and the navigation converter.
"""

import html
import logging
import re
from typing import Any, Iterator, List, Optional, Tuple

import tree_sitter
import tree_sitter_typescript

from ..ir.errors import SourceSyntaxError
from ..ir.models import Expression, Literal, PropValue, literal

logger = logging.getLogger(__name__)

_TSX_LANGUAGE = tree_sitter.Language(tree_sitter_typescript.language_tsx())

_NOT_LITERAL = object()

JSX_ELEMENT_TYPES = ("jsx_element", "jsx_self_closing_element")
FUNCTION_TYPES = ("function_declaration", "function_expression", "arrow_function", "function")

_ESCAPE_RE = re.compile(r"\\(u\{[0-9a-fA-F]+\}|u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|.)", re.DOTALL)
_SIMPLE_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "b": "\b", "f": "\f", "v": "\v", "0": "\0"}


class TsxSource:
    """A parsed TSX document: tree plus the bytes its offsets refer to."""

    def __init__(self, text: str):
        self.text = text
        self.source = text.encode("utf-8")
        parser = tree_sitter.Parser(_TSX_LANGUAGE)
        self.tree = parser.parse(self.source)

    @property
    def root(self) -> tree_sitter.Node:
        return self.tree.root_node

    def node_text(self, node: Optional[tree_sitter.Node]) -> str:
        if node is None:
            return ""
        return self.source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")

    def position(self, node: tree_sitter.Node) -> Tuple[int, int]:
        """1-based line and character column of ``node``."""
        row = node.start_point[0]
        line_start = self.source.rfind(b"\n", 0, node.start_byte) + 1
        column = len(self.source[line_start:node.start_byte].decode("utf-8", errors="replace"))
        return row + 1, column + 1

    def check_syntax(self) -> None:
        """Raise ``SourceSyntaxError`` at the first ERROR or missing node or mismatched tag."""
        if not self.root.has_error:
            self.check_tags()
            return
        bad = first_error_node(self.root)
        if bad is None:
            raise SourceSyntaxError("syntax error", 1, 1)
        line, column = self.position(bad)
        if bad.is_missing:
            message = f"missing '{bad.type}'"
        else:
            snippet = self.node_text(bad).strip().splitlines()
            message = f"unexpected '{snippet[0][:40]}'" if snippet else "syntax error"
        raise SourceSyntaxError(message, line, column)

    def check_tags(self) -> None:
        """Raise ``SourceSyntaxError`` at the first closing tag that does not match its opening tag.

        The grammar accepts ``<Text>hi</Txt>`` without an ERROR node.
        """
        for node in walk_nodes(self.root):
            if node.type != "jsx_element":
                continue
            tags = {c.type: c for c in node.named_children if c.type in ("jsx_opening_element", "jsx_closing_element")}
            opening = tags.get("jsx_opening_element")
            closing = tags.get("jsx_closing_element")
            if opening is None or closing is None:
                continue
            open_name = self._tag_text(opening)
            close_name = self._tag_text(closing)
            if open_name != close_name:
                line, column = self.position(closing)
                raise SourceSyntaxError(
                    f"closing tag </{close_name}> does not match <{open_name}>", line, column
                )

    def _tag_text(self, tag: tree_sitter.Node) -> str:
        name = tag.child_by_field_name("name")
        # Fragments have no name.
        return "".join(self.node_text(name).split()) if name is not None else ""


def first_error_node(node: tree_sitter.Node) -> Optional[tree_sitter.Node]:
    """Depth-first search for the first ERROR or missing node."""
    if node.type == "ERROR" or node.is_missing:
        return node
    for child in node.children:
        if child.has_error or child.is_missing or child.type == "ERROR":
            found = first_error_node(child)
            if found is not None:
                return found
    return None


def walk_nodes(node: tree_sitter.Node) -> Iterator[tree_sitter.Node]:
    yield node
    for child in node.children:
        yield from walk_nodes(child)


def unwrap_parens(node: Optional[tree_sitter.Node]) -> Optional[tree_sitter.Node]:
    while node is not None and node.type == "parenthesized_expression":
        inner = [c for c in node.named_children if c.type != "comment"]
        if len(inner) != 1:
            return node
        node = inner[0]
    return node


def is_jsx(node: Optional[tree_sitter.Node]) -> bool:
    node = unwrap_parens(node)
    return node is not None and node.type in JSX_ELEMENT_TYPES


def contains_jsx(node: Optional[tree_sitter.Node]) -> bool:
    """True for an expression with markup anywhere inside (ternaries, ``map`` calls)."""
    if node is None:
        return False
    return any(n.type in JSX_ELEMENT_TYPES for n in walk_nodes(node))


def jsx_tag_name(src: TsxSource, node: tree_sitter.Node) -> Optional[str]:
    """Tag name of a JSX element; ``None`` for a fragment."""
    opening = node if node.type == "jsx_self_closing_element" else node.child_by_field_name("open_tag")
    if opening is None:
        opening = next((c for c in node.children if c.type == "jsx_opening_element"), None)
    if opening is None:
        return None
    name = opening.child_by_field_name("name")
    return src.node_text(name).replace(" ", "") if name is not None else None


def jsx_attributes(node: tree_sitter.Node) -> List[tree_sitter.Node]:
    opening = node if node.type == "jsx_self_closing_element" else next(
        (c for c in node.children if c.type == "jsx_opening_element"), None
    )
    if opening is None:
        return []
    return [c for c in opening.named_children if c.type in ("jsx_attribute", "jsx_expression")]


def jsx_children(node: tree_sitter.Node) -> List[tree_sitter.Node]:
    if node.type == "jsx_self_closing_element":
        return []
    return [
        c for c in node.children
        if c.type not in ("jsx_opening_element", "jsx_closing_element")
    ]


def attribute_parts(
    src: TsxSource, attr: tree_sitter.Node
) -> Tuple[str, Optional[tree_sitter.Node]]:
    """``(name, value_node)`` for a ``jsx_attribute``; value ``None`` for shorthand."""
    named = attr.named_children
    name = src.node_text(named[0]) if named else ""
    value = named[1] if len(named) > 1 else None
    return name, value


def container_expression(node: tree_sitter.Node) -> Optional[tree_sitter.Node]:
    """The expression inside a ``jsx_expression`` container (``None`` if only comments)."""
    for child in node.named_children:
        if child.type != "comment":
            return child
    return None


# ---------------------------------------------------------------------------
# Literal classification
# ---------------------------------------------------------------------------


def decode_string(src: TsxSource, node: tree_sitter.Node) -> str:
    """Value of a ``string`` node with JS escapes resolved."""
    raw = src.node_text(node)[1:-1]

    def repl(m: "re.Match[str]") -> str:
        esc = m.group(1)
        if esc.startswith("u{"):
            return chr(int(esc[2:-1], 16))
        if esc.startswith("u") and len(esc) == 5:
            return chr(int(esc[1:], 16))
        if esc.startswith("x") and len(esc) == 3:
            return chr(int(esc[1:], 16))
        if esc == "\n":
            return ""
        return _SIMPLE_ESCAPES.get(esc, esc)

    return _ESCAPE_RE.sub(repl, raw)


def parse_js_number(text: str) -> Any:
    text = text.replace("_", "")
    lowered = text.lower()
    if lowered.startswith("0x"):
        return int(lowered, 16)
    if lowered.startswith("0b"):
        return int(lowered, 2)
    if lowered.startswith("0o"):
        return int(lowered, 8)
    if re.fullmatch(r"\d+", text):
        return int(text)
    return float(text)


def _constant_value(src: TsxSource, node: tree_sitter.Node) -> Any:
    """Python value of a constant expression, or ``_NOT_LITERAL``."""
    node = unwrap_parens(node)
    kind = node.type
    if kind == "string":
        return decode_string(src, node)
    if kind == "template_string":
        if any(c.type == "template_substitution" for c in node.named_children):
            return _NOT_LITERAL
        return src.node_text(node)[1:-1]
    if kind == "number":
        return parse_js_number(src.node_text(node))
    if kind == "true":
        return True
    if kind == "false":
        return False
    if kind == "null":
        return None
    if kind == "identifier" and src.node_text(node) == "Infinity":
        return float("inf")
    if kind == "unary_expression":
        operator = node.child_by_field_name("operator")
        argument = node.child_by_field_name("argument")
        if operator is not None and src.node_text(operator) == "-" and argument is not None \
                and argument.type == "number":
            return -parse_js_number(src.node_text(argument))
        return _NOT_LITERAL
    if kind == "array":
        items = []
        for child in node.named_children:
            if child.type == "comment":
                continue
            value = _constant_value(src, child)
            if value is _NOT_LITERAL:
                return _NOT_LITERAL
            items.append(value)
        return items
    if kind == "object":
        out = {}
        for child in node.named_children:
            if child.type == "comment":
                continue
            if child.type != "pair":
                return _NOT_LITERAL
            key = object_key(src, child.child_by_field_name("key"))
            if key is None:
                return _NOT_LITERAL
            value = _constant_value(src, child.child_by_field_name("value"))
            if value is _NOT_LITERAL:
                return _NOT_LITERAL
            out[key] = value
        return out
    return _NOT_LITERAL


def object_key(src: TsxSource, key: Optional[tree_sitter.Node]) -> Optional[str]:
    if key is None:
        return None
    if key.type in ("property_identifier", "identifier"):
        return src.node_text(key)
    if key.type == "string":
        return decode_string(src, key)
    if key.type == "number":
        return src.node_text(key)
    return None


def classify(src: TsxSource, node: tree_sitter.Node) -> PropValue:
    """``Literal`` for constant syntax, otherwise ``Expression`` with the exact text."""
    value = _constant_value(src, node)
    if value is _NOT_LITERAL:
        return Expression(src.node_text(node))
    return literal(value)


def is_literal(value: PropValue) -> bool:
    return isinstance(value, Literal)


# ---------------------------------------------------------------------------
# JSX text
# ---------------------------------------------------------------------------


def clean_jsx_text(raw: str) -> str:
    """Apply React's whitespace rules to a JSX text run.

    Lines are trimmed where they meet a line break, whitespace-only lines
    vanish, and the surviving lines are joined with single spaces.
    """
    lines = re.split(r"\r\n|\n|\r", raw)
    last_non_empty = -1
    for i, line in enumerate(lines):
        if line.strip(" \t"):
            last_non_empty = i

    out = []
    for i, line in enumerate(lines):
        trimmed = line.replace("\t", " ")
        if i != 0:
            trimmed = trimmed.lstrip(" ")
        if i != len(lines) - 1:
            trimmed = trimmed.rstrip(" ")
        if trimmed:
            if i != last_non_empty:
                trimmed += " "
            out.append(trimmed)
    return html.unescape("".join(out))
