"""Widget-tree (Dart) lexer and structural parser.

Hand-written. There is no pip-installable tree-sitter grammar for Dart, so
this follows the same route as a line-oriented regex parser would, but at
token level: it recognises the shapes the converters care about (classes,
members, statements, constructor calls, list/map literals, strings with
interpolation, closures) and keeps everything else as exact source slices.

All positions reported in ``SourceSyntaxError`` are 1-based.
"""

import bisect
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple, Union

from ..ir.errors import SourceSyntaxError
from ..ir.models import Expression, PropValue, literal

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------


class TokenKind(str, Enum):
    IDENT = "ident"
    NUMBER = "number"
    STRING = "string"
    COMMENT = "comment"
    PUNCT = "punct"


@dataclass(frozen=True)
class Interpolation:
    """``$name`` or ``${expr}`` inside a string; ``source_text`` is the expr."""
    source_text: str


StringPart = Union[str, Interpolation]


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    text: str
    start: int
    end: int
    line: int
    column: int
    parts: Tuple[StringPart, ...] = ()


_PUNCTUATORS = sorted([
    "...", "??=", "~/=", "<<=", "?..",
    "=>", "==", "!=", "<=", ">=", "&&", "||", "??", "?.", "..", "++", "--",
    "+=", "-=", "*=", "/=", "%=", "&=", "|=", "^=", "<<", "~/",
], key=len, reverse=True)

_OPENERS = {"(": ")", "[": "]", "{": "}"}
_CLOSERS = {v: k for k, v in _OPENERS.items()}

_IDENT_START_RE = re.compile(r"[A-Za-z_$]")
_IDENT_RE = re.compile(r"[A-Za-z_$][A-Za-z0-9_$]*")
_NUMBER_RE = re.compile(r"0[xX][0-9a-fA-F]+|\d+(?:\.\d+)?(?:[eE][+-]?\d+)?")
_INTERP_IDENT_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "b": "\b", "f": "\f", "v": "\v", "0": "\0"}


class DartLexer:
    """Tokenizer with bracket balancing."""

    def __init__(self, source: str):
        self.source = source
        self._line_starts = [0] + [m.end() for m in re.finditer(r"\n", source)]

    def position(self, offset: int) -> Tuple[int, int]:
        line = bisect.bisect_right(self._line_starts, offset)
        return line, offset - self._line_starts[line - 1] + 1

    def error(self, message: str, offset: int) -> SourceSyntaxError:
        line, column = self.position(offset)
        return SourceSyntaxError(message, line, column)

    def _token(self, kind: TokenKind, start: int, end: int,
               parts: Tuple[StringPart, ...] = ()) -> Token:
        line, column = self.position(start)
        return Token(kind, self.source[start:end], start, end, line, column, parts)

    def tokenize(self) -> List[Token]:
        src = self.source
        tokens: List[Token] = []
        stack: List[Token] = []
        i = 0
        n = len(src)

        while i < n:
            ch = src[i]
            if ch.isspace():
                i += 1
                continue

            if src.startswith("//", i):
                end = src.find("\n", i)
                end = n if end == -1 else end
                tokens.append(self._token(TokenKind.COMMENT, i, end))
                i = end
                continue

            if src.startswith("/*", i):
                end = self._skip_block_comment(i)
                tokens.append(self._token(TokenKind.COMMENT, i, end))
                i = end
                continue

            if ch in "'\"" or (ch in "rR" and i + 1 < n and src[i + 1] in "'\""):
                end, parts = self._scan_string(i)
                tokens.append(self._token(TokenKind.STRING, i, end, tuple(parts)))
                i = end
                continue

            if _IDENT_START_RE.match(ch):
                m = _IDENT_RE.match(src, i)
                tokens.append(self._token(TokenKind.IDENT, i, m.end()))
                i = m.end()
                continue

            if ch.isdigit():
                m = _NUMBER_RE.match(src, i)
                tokens.append(self._token(TokenKind.NUMBER, i, m.end()))
                i = m.end()
                continue

            punct = next((p for p in _PUNCTUATORS if src.startswith(p, i)), ch)
            tok = self._token(TokenKind.PUNCT, i, i + len(punct))
            if punct in _OPENERS:
                stack.append(tok)
            elif punct in _CLOSERS:
                if not stack or stack[-1].text != _CLOSERS[punct]:
                    raise SourceSyntaxError(f"unbalanced '{punct}'", tok.line, tok.column)
                stack.pop()
            tokens.append(tok)
            i += len(punct)

        if stack:
            opener = stack[-1]
            raise SourceSyntaxError(f"unclosed '{opener.text}'", opener.line, opener.column)
        return tokens

    def _skip_block_comment(self, start: int) -> int:
        depth = 0
        i = start
        n = len(self.source)
        while i < n:
            if self.source.startswith("/*", i):
                depth += 1
                i += 2
            elif self.source.startswith("*/", i):
                depth -= 1
                i += 2
                if depth == 0:
                    return i
            else:
                i += 1
        raise self.error("unterminated block comment", start)

    def _scan_string(self, start: int) -> Tuple[int, List[StringPart]]:
        src = self.source
        i = start
        raw = src[i] in "rR"
        if raw:
            i += 1
        quote = src[i]
        delim = quote * 3 if src.startswith(quote * 3, i) else quote
        i += len(delim)
        parts: List[StringPart] = []
        buf: List[str] = []

        def flush() -> None:
            if buf:
                parts.append("".join(buf))
                buf.clear()

        while True:
            if i >= len(src):
                raise self.error("unterminated string literal", start)
            if src.startswith(delim, i):
                flush()
                return i + len(delim), parts
            ch = src[i]
            if ch == "\n" and len(delim) == 1:
                raise self.error("unterminated string literal", start)
            if ch == "\\" and not raw:
                i = self._scan_escape(i, buf)
                continue
            if ch == "$" and not raw:
                if src.startswith("${", i):
                    end = self._skip_interpolation(i + 2)
                    flush()
                    parts.append(Interpolation(src[i + 2:end - 1].strip()))
                    i = end
                    continue
                m = _INTERP_IDENT_RE.match(src, i + 1)
                if m:
                    flush()
                    parts.append(Interpolation(m.group(0)))
                    i = m.end()
                    continue
            buf.append(ch)
            i += 1

    def _scan_escape(self, i: int, buf: List[str]) -> int:
        src = self.source
        if i + 1 >= len(src):
            raise self.error("unterminated string literal", i)
        nxt = src[i + 1]
        if nxt == "u":
            if src.startswith("{", i + 2):
                end = src.find("}", i + 3)
                if end == -1:
                    raise self.error("malformed unicode escape", i)
                buf.append(chr(int(src[i + 3:end], 16)))
                return end + 1
            buf.append(chr(int(src[i + 2:i + 6], 16)))
            return i + 6
        if nxt == "x":
            buf.append(chr(int(src[i + 2:i + 4], 16)))
            return i + 4
        buf.append(_ESCAPES.get(nxt, nxt))
        return i + 2

    def _skip_interpolation(self, i: int) -> int:
        """Return the offset just past the ``}`` closing ``${``."""
        depth = 1
        src = self.source
        while i < len(src):
            ch = src[i]
            if ch in "'\"":
                i, _ = self._scan_string(i)
                continue
            if ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return i + 1
            i += 1
        raise self.error("unterminated string interpolation", i)


# ---------------------------------------------------------------------------
# Structural nodes
# ---------------------------------------------------------------------------


@dataclass
class DartNode:
    start: int  # token index, inclusive
    end: int  # token index, exclusive
    text: str
    line: int = 1
    column: int = 1


@dataclass
class DartArg:
    name: Optional[str]
    value: DartNode


@dataclass
class DartCall(DartNode):
    callee: str = ""
    type_args: str = ""
    args: List[DartArg] = field(default_factory=list)
    leading_comments: List[str] = field(default_factory=list)

    def named(self, name: str) -> Optional[DartNode]:
        for arg in self.args:
            if arg.name == name:
                return arg.value
        return None

    @property
    def positional(self) -> List[DartNode]:
        return [a.value for a in self.args if a.name is None]


@dataclass
class DartString(DartNode):
    parts: Tuple[StringPart, ...] = ()

    @property
    def has_interpolation(self) -> bool:
        return any(isinstance(p, Interpolation) for p in self.parts)

    @property
    def value(self) -> str:
        return "".join(p for p in self.parts if isinstance(p, str))


@dataclass
class DartLiteral(DartNode):
    value: Union[int, float, bool, None] = None


@dataclass
class DartList(DartNode):
    items: List[DartNode] = field(default_factory=list)


@dataclass
class DartMap(DartNode):
    entries: List[Tuple[DartNode, DartNode]] = field(default_factory=list)


@dataclass
class DartFunction(DartNode):
    params: List[str] = field(default_factory=list)
    body: Optional[DartNode] = None  # arrow body
    block: Optional[Tuple[int, int]] = None  # token range inside the braces


@dataclass
class DartExpr(DartNode):
    pass


@dataclass
class DartMember:
    kind: str  # field | method | getter | constructor | class | directive | other
    name: str
    start: int
    end: int
    text: str
    type_text: str = ""
    modifiers: Tuple[str, ...] = ()
    annotations: Tuple[str, ...] = ()
    superclass: str = ""
    initializer: Optional[Tuple[int, int]] = None
    params: Optional[Tuple[int, int]] = None
    body: Optional[Tuple[int, int]] = None  # inside braces
    arrow: Optional[Tuple[int, int]] = None  # expression after "=>"

    @property
    def super_name(self) -> str:
        return self.superclass.split("<", 1)[0].strip()

    @property
    def super_type_args(self) -> str:
        if "<" not in self.superclass:
            return ""
        return self.superclass[self.superclass.index("<") + 1:self.superclass.rindex(">")].strip()


_MODIFIERS = frozenset({
    "static", "final", "const", "late", "var", "external", "abstract", "covariant",
    "factory", "async",
})
_STATEMENT_BLOCK_KEYWORDS = frozenset({"if", "for", "while", "switch", "try", "do", "else"})
_BLOCK_CONTINUATIONS = frozenset({"else", "catch", "finally", "on", "while"})


class DartSyntax:
    """Structural view over a token stream.

    ``toks`` excludes comments; ``comments_before[i]`` lists the comment
    texts immediately preceding ``toks[i]`` and ``comment_tokens[i]`` the
    comment tokens themselves.
    """

    def __init__(self, source: str, tokens: Optional[Sequence[Token]] = None):
        self.source = source
        self.lexer = DartLexer(source)
        all_tokens = list(tokens) if tokens is not None else self.lexer.tokenize()

        self.toks: List[Token] = []
        self.comments_before: Dict[int, List[str]] = {}
        self.comment_tokens: Dict[int, List[Token]] = {}
        pending: List[Token] = []
        for tok in all_tokens:
            if tok.kind is TokenKind.COMMENT:
                pending.append(tok)
                continue
            if pending:
                self._attach_comments(pending)
                pending = []
            self.toks.append(tok)
        if pending:
            self._attach_comments(pending)

        self.match: Dict[int, int] = {}
        stack: List[int] = []
        for i, tok in enumerate(self.toks):
            if tok.kind is not TokenKind.PUNCT:
                continue
            if tok.text in _OPENERS:
                stack.append(i)
            elif tok.text in _CLOSERS:
                j = stack.pop()
                self.match[i] = j
                self.match[j] = i

    # -- helpers ----------------------------------------------------------

    def _attach_comments(self, comments: List[Token]) -> None:
        self.comments_before[len(self.toks)] = [c.text for c in comments]
        self.comment_tokens[len(self.toks)] = comments

    def comment_blocks(self, i: int) -> List[Tuple[str, int, int]]:
        """Comments before ``toks[i]`` as blocks of adjacent lines.

        Each block is ``(text, column, gap)``: the raw source, the 1-based
        column it starts at, and the number of lines between the block and
        what follows it (0 when directly above).
        """
        blocks: List[List[Token]] = []
        for tok in self.comment_tokens.get(i, ()):
            if blocks:
                last = blocks[-1][-1]
                if tok.line <= last.line + last.text.count("\n") + 1:
                    blocks[-1].append(tok)
                    continue
            blocks.append([tok])

        next_line = self.toks[i].line if i < len(self.toks) else None
        out = []
        for block in blocks:
            first, last = block[0], block[-1]
            text = self.source[first.start:last.end]
            end_line = last.line + last.text.count("\n")
            gap = next_line - end_line - 1 if next_line is not None else 1
            out.append((text, first.column, gap))
        return out

    def __len__(self) -> int:
        return len(self.toks)

    def text(self, start: int, end: int) -> str:
        """Exact source text covering tokens ``[start, end)``."""
        if start >= end:
            return ""
        return self.source[self.toks[start].start:self.toks[end - 1].end]

    def is_punct(self, i: int, text: str) -> bool:
        return i < len(self.toks) and self.toks[i].kind is TokenKind.PUNCT and self.toks[i].text == text

    def is_ident(self, i: int, text: Optional[str] = None) -> bool:
        if i >= len(self.toks) or self.toks[i].kind is not TokenKind.IDENT:
            return False
        return text is None or self.toks[i].text == text

    def error_at(self, i: int, message: str) -> SourceSyntaxError:
        tok = self.toks[min(i, len(self.toks) - 1)] if self.toks else None
        if tok is None:
            return SourceSyntaxError(message, 1, 1)
        return SourceSyntaxError(message, tok.line, tok.column)

    def skip_group(self, i: int) -> int:
        """Index after the bracket group opening at ``i``."""
        return self.match[i] + 1

    def split_top_level(self, start: int, end: int, sep: str = ",") -> List[Tuple[int, int]]:
        """Split ``[start, end)`` on ``sep`` outside brackets; drops empties."""
        ranges: List[Tuple[int, int]] = []
        seg_start = start
        i = start
        while i < end:
            tok = self.toks[i]
            if tok.kind is TokenKind.PUNCT and tok.text in _OPENERS:
                i = self.skip_group(i)
                continue
            if tok.kind is TokenKind.PUNCT and tok.text == sep:
                if i > seg_start:
                    ranges.append((seg_start, i))
                seg_start = i + 1
            i += 1
        if end > seg_start:
            ranges.append((seg_start, end))
        return ranges

    def find_top_level(self, start: int, end: int, text: str) -> int:
        """Index of the first top-level punctuator ``text``, or -1."""
        i = start
        while i < end:
            tok = self.toks[i]
            if tok.kind is TokenKind.PUNCT and tok.text == text:
                return i
            if tok.kind is TokenKind.PUNCT and tok.text in _OPENERS:
                i = self.skip_group(i)
                continue
            i += 1
        return -1

    def _skip_type_args(self, i: int, end: int) -> int:
        """Skip a ``<...>`` group starting at ``i`` (generics are not tracked by the lexer)."""
        depth = 0
        while i < end:
            text = self.toks[i].text
            if text == "<":
                depth += 1
            elif text == ">":
                depth -= 1
                if depth == 0:
                    return i + 1
            elif text in _OPENERS:
                i = self.skip_group(i)
                continue
            elif text in (";", "=>", "{"):
                return -1
            i += 1
        return -1

    # -- expressions ------------------------------------------------------

    def _node_kwargs(self, start: int, end: int) -> Dict[str, object]:
        tok = self.toks[start] if start < len(self.toks) else None
        return {
            "start": start,
            "end": end,
            "text": self.text(start, end),
            "line": tok.line if tok else 1,
            "column": tok.column if tok else 1,
        }

    def parse_expression(self, start: int, end: int) -> DartNode:
        """Classify the token range ``[start, end)`` structurally."""
        if start >= end:
            raise self.error_at(start, "expected an expression")
        kw = self._node_kwargs(start, end)
        first = self.toks[start]

        # Prefixes that do not change the shape.
        i = start
        while i < end and self.is_ident(i) and self.toks[i].text in ("const", "new"):
            i += 1
        if i < end and i > start:
            inner = self.parse_expression(i, end)
            inner.start, inner.text = start, kw["text"]
            inner.line, inner.column = kw["line"], kw["column"]
            return inner

        if all(t.kind is TokenKind.STRING for t in self.toks[start:end]):
            parts: List[StringPart] = []
            for tok in self.toks[start:end]:
                parts.extend(tok.parts)
            return DartString(parts=tuple(_merge_parts(parts)), **kw)

        if end - start == 1:
            if first.kind is TokenKind.NUMBER:
                return DartLiteral(value=_parse_number(first.text), **kw)
            if first.kind is TokenKind.IDENT and first.text in ("true", "false", "null"):
                value = {"true": True, "false": False, "null": None}[first.text]
                return DartLiteral(value=value, **kw)

        if end - start == 2 and first.text == "-" and self.toks[start + 1].kind is TokenKind.NUMBER:
            return DartLiteral(value=-_parse_number(self.toks[start + 1].text), **kw)

        # Optional type arguments before a collection literal: <Widget>[...]
        j = start
        if first.text == "<":
            j = self._skip_type_args(start, end)
            if j == -1:
                return DartExpr(**kw)

        if self.is_punct(j, "[") and self.match[j] == end - 1:
            items = [self.parse_expression(s, e) for s, e in self.split_top_level(j + 1, end - 1)]
            return DartList(items=items, **kw)

        if self.is_punct(j, "{") and self.match[j] == end - 1:
            entries = []
            for s, e in self.split_top_level(j + 1, end - 1):
                colon = self.find_top_level(s, e, ":")
                if colon == -1:
                    return DartExpr(**kw)  # set literal
                entries.append((self.parse_expression(s, colon), self.parse_expression(colon + 1, e)))
            return DartMap(entries=entries, **kw)

        if first.text == "(" and self.match[start] + 1 < end:
            after = self.match[start] + 1
            if self.is_punct(after, "=>"):
                params = self.param_names(start + 1, self.match[start])
                body = self.parse_expression(after + 1, end)
                return DartFunction(params=params, body=body, **kw)
            if self.is_punct(after, "{") and self.match[after] == end - 1:
                params = self.param_names(start + 1, self.match[start])
                return DartFunction(params=params, block=(after + 1, end - 1), **kw)

        call = self._try_call(start, end, kw)
        if call is not None:
            return call
        return DartExpr(**kw)

    def param_names(self, start: int, end: int) -> List[str]:
        names = []
        for s, e in self.split_top_level(start, end):
            idents = [t.text for t in self.toks[s:e] if t.kind is TokenKind.IDENT
                      and t.text not in ("required", "final")]
            if idents:
                names.append(idents[-1])
        return names

    def _try_call(self, start: int, end: int, kw: Dict[str, object]) -> Optional[DartCall]:
        """``Name(.name)*<T>?(args)`` spanning the whole range."""
        i = start
        if not self.is_ident(i):
            return None
        names = [self.toks[i].text]
        i += 1
        while self.is_punct(i, ".") and self.is_ident(i + 1):
            names.append(self.toks[i + 1].text)
            i += 2
        type_args = ""
        if self.is_punct(i, "<"):
            j = self._skip_type_args(i, end)
            if j == -1:
                return None
            type_args = self.text(i + 1, j - 1)
            i = j
        if not self.is_punct(i, "(") or self.match[i] != end - 1:
            return None

        open_idx, close_idx = i, end - 1
        args: List[DartArg] = []
        for s, e in self.split_top_level(open_idx + 1, close_idx):
            if self.is_ident(s) and self.is_punct(s + 1, ":"):
                args.append(DartArg(self.toks[s].text, self.parse_expression(s + 2, e)))
            else:
                args.append(DartArg(None, self.parse_expression(s, e)))
        comments = list(self.comments_before.get(open_idx + 1, []))
        return DartCall(
            callee=".".join(names), type_args=type_args, args=args,
            leading_comments=comments, **kw,
        )

    # -- declarations -----------------------------------------------------

    def split_members(self, start: int, end: int) -> List[DartMember]:
        """Split a class body or compilation unit into declarations."""
        members: List[DartMember] = []
        i = start
        while i < end:
            member_start = i
            annotations: List[str] = []
            while self.is_punct(i, "@") and self.is_ident(i + 1):
                j = i + 2
                while self.is_punct(j, ".") and self.is_ident(j + 1):
                    j += 2
                if self.is_punct(j, "("):
                    j = self.skip_group(j)
                annotations.append(self.text(i, j))
                i = j
            decl_start = i
            member_end = self._member_end(i, end)
            members.append(self._classify_member(member_start, decl_start, member_end, annotations))
            i = member_end
        return members

    def _member_end(self, i: int, end: int) -> int:
        seen_eq = False
        while i < end:
            tok = self.toks[i]
            text = tok.text if tok.kind is TokenKind.PUNCT else None
            if text == ";":
                return i + 1
            if text in ("=", "=>"):
                seen_eq = True
            elif text in ("(", "["):
                i = self.skip_group(i)
                continue
            elif text == "{":
                close = self.match[i]
                if not seen_eq:
                    return close + 1
                i = close + 1
                continue
            i += 1
        return end

    def _classify_member(self, start: int, decl_start: int, end: int,
                         annotations: List[str]) -> DartMember:
        text = self.text(start, end)
        base = {"start": start, "end": end, "text": text, "annotations": tuple(annotations)}
        if decl_start >= end:
            return DartMember(kind="other", name="", **base)

        i = decl_start
        modifiers: List[str] = []
        while self.is_ident(i) and self.toks[i].text in _MODIFIERS:
            modifiers.append(self.toks[i].text)
            i += 1

        head = self.toks[i].text if i < end else ""
        if head in ("import", "export", "library", "part"):
            return DartMember(kind="directive", name=head, **base)

        if head in ("class", "mixin", "enum"):
            name = self.toks[i + 1].text
            brace = self.find_top_level(i, end, "{")
            superclass = ""
            j = i + 2
            while j < brace:
                if self.is_ident(j, "extends"):
                    k = j + 1
                    while k < brace and not (self.is_ident(k) and self.toks[k].text in ("with", "implements")):
                        k += 1
                    superclass = self.text(j + 1, k)
                    break
                j += 1
            return DartMember(kind="class", name=name, superclass=superclass,
                              modifiers=tuple(modifiers), body=(brace + 1, end - 1), **base)

        eq = self.find_top_level(i, end, "=")
        arrow = self.find_top_level(i, end, "=>")
        paren = self.find_top_level(i, end, "(")
        limit = min(x for x in (eq, arrow, end) if x != -1)

        # Getter: Type get name => ... / { ... }
        for k in range(i, limit):
            if self.is_ident(k, "get") and self.is_ident(k + 1):
                return DartMember(
                    kind="getter", name=self.toks[k + 1].text, type_text=self.text(i, k),
                    modifiers=tuple(modifiers), **base,
                    **self._callable_ranges(k + 2, end),
                )

        if paren != -1 and paren < limit:
            name_end = paren
            name_start = paren - 1
            while name_start - 2 >= i and self.is_punct(name_start - 1, ".") and self.is_ident(name_start - 2):
                name_start -= 2
            name = self.text(name_start, name_end).replace(" ", "")
            kind = "method"
            if name_start == i and (name[:1].isupper() or "." in name):
                kind = "constructor"
            ranges = self._callable_ranges(self.skip_group(paren), end)
            return DartMember(
                kind=kind, name=name, type_text=self.text(i, name_start),
                modifiers=tuple(modifiers), params=(paren + 1, self.match[paren]),
                **base, **ranges,
            )

        # Field: [modifiers] [Type] name [= initializer];
        decl_end = eq if eq != -1 else end - (1 if self.is_punct(end - 1, ";") else 0)
        first_decl = self.split_top_level(i, decl_end)
        name_idx = first_decl[0][1] - 1 if first_decl else i
        name = self.toks[name_idx].text if name_idx < end else ""
        initializer = None
        if eq != -1:
            init_end = end - 1 if self.is_punct(end - 1, ";") else end
            initializer = (eq + 1, init_end)
        return DartMember(
            kind="field", name=name, type_text=self.text(i, name_idx),
            modifiers=tuple(modifiers), initializer=initializer, **base,
        )

    def _callable_ranges(self, i: int, end: int) -> Dict[str, Optional[Tuple[int, int]]]:
        """Body or arrow ranges after a parameter list (skips initializer lists)."""
        j = i
        while j < end:
            if self.is_punct(j, "=>"):
                stop = end - 1 if self.is_punct(end - 1, ";") else end
                return {"arrow": (j + 1, stop), "body": None}
            if self.is_punct(j, "{"):
                return {"body": (j + 1, self.match[j]), "arrow": None}
            if self.is_punct(j, ";"):
                break
            if self.toks[j].text in ("(", "["):
                j = self.skip_group(j)
                continue
            j += 1
        return {"body": None, "arrow": None}

    def split_statements(self, start: int, end: int) -> List[Tuple[int, int]]:
        """Split a block body into top-level statements."""
        stmts: List[Tuple[int, int]] = []
        i = start
        while i < end:
            s = i
            while i < end:
                tok = self.toks[i]
                if tok.kind is TokenKind.PUNCT and tok.text == ";":
                    i += 1
                    break
                if tok.kind is TokenKind.PUNCT and tok.text == "{":
                    close = self.match[i]
                    block_stmt = (
                        self.toks[s].text in _STATEMENT_BLOCK_KEYWORDS
                        or (i > s and self.is_punct(i - 1, ")") and not self._has_assignment(s, i))
                    )
                    i = close + 1
                    if block_stmt and not (self.is_ident(i) and self.toks[i].text in _BLOCK_CONTINUATIONS):
                        break
                    continue
                if tok.kind is TokenKind.PUNCT and tok.text in ("(", "["):
                    i = self.skip_group(i)
                    continue
                i += 1
            stmts.append((s, i))
        return stmts

    def _has_assignment(self, start: int, end: int) -> bool:
        return self.find_top_level(start, end, "=") != -1 or self.find_top_level(start, end, "=>") != -1

    def returned_expression(self, member: DartMember) -> Optional[Tuple[int, int]]:
        """Range of the value a method returns (arrow body or last ``return``)."""
        if member.arrow is not None:
            return member.arrow
        if member.body is None:
            return None
        found = None
        for s, e in self.split_statements(*member.body):
            if self.is_ident(s, "return"):
                stop = e - 1 if self.is_punct(e - 1, ";") else e
                found = (s + 1, stop)
        return found

    def classes(self, members: Sequence[DartMember]) -> Dict[str, DartMember]:
        return {m.name: m for m in members if m.kind == "class"}


def _merge_parts(parts: List[StringPart]) -> List[StringPart]:
    merged: List[StringPart] = []
    for part in parts:
        if isinstance(part, str) and merged and isinstance(merged[-1], str):
            merged[-1] = merged[-1] + part
        else:
            merged.append(part)
    return merged


def _parse_number(text: str) -> Union[int, float]:
    if text.lower().startswith("0x"):
        return int(text, 16)
    if re.fullmatch(r"\d+", text):
        return int(text)
    return float(text)


def parse_source(source: str) -> DartSyntax:
    """Tokenize ``source`` and return its structural view."""
    return DartSyntax(source)


_NOT_CONSTANT = object()


def _constant(node: DartNode) -> object:
    if isinstance(node, DartLiteral):
        return node.value
    if isinstance(node, DartString):
        return _NOT_CONSTANT if node.has_interpolation else node.value
    if isinstance(node, DartList):
        items = [_constant(item) for item in node.items]
        return _NOT_CONSTANT if any(v is _NOT_CONSTANT for v in items) else items
    if isinstance(node, DartMap):
        out = {}
        for key, value in node.entries:
            k, v = _constant(key), _constant(value)
            if not isinstance(k, str) or v is _NOT_CONSTANT:
                return _NOT_CONSTANT
            out[k] = v
        return out
    return _NOT_CONSTANT


def to_prop_value(node: DartNode) -> PropValue:
    """``Literal`` for constant syntax, otherwise ``Expression`` with the exact text."""
    value = _constant(node)
    if value is _NOT_CONSTANT:
        return Expression(node.text)
    return literal(value)
