"""State-pattern conversion.

Lifts state declarations out of component sources into ``StateBinding``
records and expands bindings into the idiom a target framework uses.

Every binding is handled on its own: a component mixing several idioms
produces one binding per declaration site, and expansion never merges
bindings. Custom hooks and idioms not recognised here are left where
they are, as opaque source.

Mutations are carried in one canonical form, ``name = expression``.
``x++``, ``x += y`` and ``setX(v)`` are rewritten into it on the way in;
reducer and store actions that are not assignments keep their action
text verbatim.
"""

import logging
import re
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Sequence, Set, Tuple

import tree_sitter

from ..config import get_settings
from ..constants import FRAMEWORK_COMPONENT_MODEL, FRAMEWORK_WIDGET_TREE, UNCONVERTED_PREFIX
from ..generators.literals import dart_prop, js_prop
from ..ir.errors import GenerationFailure
from ..ir.models import (
    Expression,
    Literal,
    LiteralKind,
    PropValue,
    StateBinding,
    StatePattern,
    StateTransition,
)
from ..parsers.dart_syntax import DartCall, DartFunction, DartMember, DartSyntax, to_prop_value
from ..parsers.tsx_utils import FUNCTION_TYPES, TsxSource, classify, object_key, unwrap_parens

logger = logging.getLogger(__name__)

IDIOMS: Dict[str, Tuple[str, ...]] = {
    FRAMEWORK_COMPONENT_MODEL: ("useState", "useReducer", "storeHook", "contextHook"),
    FRAMEWORK_WIDGET_TREE: ("setState", "bloc", "riverpod", "inheritedLookup"),
}

_STORE_HOOKS = frozenset({"useSelector", "useStore", "useAppSelector"})
_DISPATCH_HOOKS = frozenset({"useDispatch", "useAppDispatch"})


# =============================================================================
# Names and mutations
# =============================================================================


def capitalize(name: str) -> str:
    """``count`` -> ``Count``; a leading underscore is kept."""
    core = name.lstrip("_")
    lead = name[:len(name) - len(core)]
    return lead + core[:1].upper() + core[1:]


def setter_name(name: str) -> str:
    """``count`` -> ``setCount``, ``_count`` -> ``_setCount``."""
    core = name.lstrip("_")
    lead = name[:len(name) - len(core)]
    return f"{lead}set{core[:1].upper()}{core[1:]}"


def lower_first(name: str) -> str:
    return name[:1].lower() + name[1:]


def rename_identifier(text: str, old: str, new: str) -> str:
    """Rename a free identifier (member accesses like ``a.old`` are left)."""
    if old == new:
        return text
    return re.sub(rf"(?<![\w$.]){re.escape(old)}(?![\w$])", new, text)


_INCDEC_RE = re.compile(r"^(?:([A-Za-z_$][\w$]*)\s*(\+\+|--)|(\+\+|--)\s*([A-Za-z_$][\w$]*))$")
_COMPOUND_RE = re.compile(r"^([A-Za-z_$][\w$]*)\s*(\+|-|\*|/|%|~/|\?\?)=\s*(.+)$", re.DOTALL)
_ASSIGN_RE = re.compile(r"^([A-Za-z_$][\w$]*)\s*=(?![=>])\s*(.+)$", re.DOTALL)
_SIMPLE_OPERAND_RE = re.compile(r"^(?:[\w$.]+|-?\d+(?:\.\d+)?)$")
_UNCONVERTED_RE = re.compile(rf"//\s*{re.escape(UNCONVERTED_PREFIX)}\s*(.+?)\s*$", re.MULTILINE)


def normalize_mutation(statement: str) -> Optional[Tuple[str, str]]:
    """``(name, "name = rhs")`` for an assignment-like statement, else ``None``."""
    text = statement.strip().rstrip(";").strip()
    m = _INCDEC_RE.match(text)
    if m:
        name = m.group(1) or m.group(4)
        op = (m.group(2) or m.group(3))[0]
        return name, f"{name} = {name} {op} 1"
    m = _COMPOUND_RE.match(text)
    if m:
        name, op, rhs = m.group(1), m.group(2), m.group(3).strip()
        if not _SIMPLE_OPERAND_RE.match(rhs):
            rhs = f"({rhs})"
        return name, f"{name} = {name} {op} {rhs}"
    m = _ASSIGN_RE.match(text)
    if m:
        return m.group(1), f"{m.group(1)} = {m.group(2).strip()}"
    return None


def split_assignment(mutation: str) -> Optional[Tuple[str, str]]:
    """``("count", "count + 1")`` for ``"count = count + 1"``."""
    m = _ASSIGN_RE.match(mutation.strip())
    if m is None:
        return None
    return m.group(1), m.group(2).strip()


def unconverted_text(source: str) -> Optional[str]:
    """Payload of an ``// Unconverted: ...`` marker comment, if any."""
    m = _UNCONVERTED_RE.search(source)
    return m.group(1) if m else None


def _store_action(name: str, rhs: str) -> str:
    return f"{{ type: '{name}/set', payload: {rhs} }}"


_STORE_ACTION_RE = re.compile(
    r"^\{\s*type:\s*['\"]([\w$]+)/set['\"]\s*,\s*payload:\s*(.+?)\s*\}$", re.DOTALL
)


# =============================================================================
# Types
# =============================================================================

_TS_TO_DART = {"string": "String", "boolean": "bool", "any": "dynamic", "unknown": "Object?"}
_DART_TO_TS = {"int": "number", "double": "number", "num": "number", "String": "string",
               "bool": "boolean", "dynamic": "any"}


def dart_type(binding: StateBinding) -> Optional[str]:
    """Dart type for a binding's value, from its hint or its initial literal."""
    hint = binding.type_hint
    initial = binding.initial_value
    if hint:
        if hint == "number":
            is_float = isinstance(initial, Literal) and isinstance(initial.value, float)
            return "double" if is_float else "int"
        if hint.endswith("[]"):
            inner = replace(binding, type_hint=hint[:-2], initial_value=None)
            return f"List<{dart_type(inner) or 'dynamic'}>"
        return _TS_TO_DART.get(hint, hint)
    if isinstance(initial, Literal):
        value = initial.value
        if initial.kind is LiteralKind.BOOLEAN:
            return "bool"
        if initial.kind is LiteralKind.NUMBER:
            return "double" if isinstance(value, float) else "int"
        if initial.kind is LiteralKind.STRING:
            return "String"
        if initial.kind is LiteralKind.ARRAY:
            return "List"
        if initial.kind is LiteralKind.OBJECT:
            return "Map<String, dynamic>"
    return None


def ts_type(binding: StateBinding) -> Optional[str]:
    hint = binding.type_hint
    if not hint:
        return None
    if hint.startswith("List<") and hint.endswith(">"):
        inner = replace(binding, type_hint=hint[5:-1])
        return f"{ts_type(inner) or 'any'}[]"
    return _DART_TO_TS.get(hint, hint)


def context_type(hint: Optional[str], name: str) -> str:
    """Neutral context name: ``ThemeContext`` -> ``Theme``."""
    base = hint or capitalize(name)
    if base.endswith("Context") and len(base) > len("Context"):
        return base[:-len("Context")]
    return base


# =============================================================================
# Component model: detection
# =============================================================================


def _call_args(call: tree_sitter.Node) -> List[tree_sitter.Node]:
    args = call.child_by_field_name("arguments")
    if args is None:
        return []
    return [c for c in args.named_children if c.type != "comment"]


def _hook(src: TsxSource, value: Optional[tree_sitter.Node]) -> Optional[Tuple[str, tree_sitter.Node]]:
    value = unwrap_parens(value)
    if value is None or value.type != "call_expression":
        return None
    fn = value.child_by_field_name("function")
    name = src.node_text(fn)
    if name.startswith("React."):
        name = name[len("React."):]
    if "." in name:
        return None
    return name, value


def _type_args(src: TsxSource, call: tree_sitter.Node) -> Optional[str]:
    node = call.child_by_field_name("type_arguments")
    if node is None:
        return None
    return src.node_text(node).strip()[1:-1].strip() or None


def _single_declarator(node: tree_sitter.Node) -> Optional[tree_sitter.Node]:
    if node.type not in ("lexical_declaration", "variable_declaration"):
        return None
    declarators = [c for c in node.named_children if c.type == "variable_declarator"]
    return declarators[0] if len(declarators) == 1 else None


def _pattern_names(src: TsxSource, node: tree_sitter.Node) -> List[str]:
    return [src.node_text(c) for c in node.named_children if c.type == "identifier"]


def detect_component_state(node: tree_sitter.Node, src: TsxSource) -> Optional[StateBinding]:
    """Binding declared by one component-body statement, or ``None``.

    Recognises ``useState``, ``useReducer``, store selector hooks and
    ``useContext``. Anything else, custom hooks included, is not guessed.
    """
    decl = _single_declarator(node)
    if decl is None:
        return None
    target = decl.child_by_field_name("name")
    hook = _hook(src, decl.child_by_field_name("value"))
    if target is None or hook is None:
        return None
    hook_name, call = hook
    args = _call_args(call)

    if hook_name == "useState" and target.type == "array_pattern":
        names = _pattern_names(src, target)
        if not 1 <= len(names) <= 2:
            return None
        return StateBinding(
            pattern=StatePattern.LOCAL,
            name=names[0],
            initial_value=classify(src, args[0]) if args else None,
            setter=names[1] if len(names) > 1 else None,
            type_hint=_type_args(src, call),
            source_idiom="useState",
        )

    if hook_name == "useReducer" and target.type == "array_pattern":
        names = _pattern_names(src, target)
        if not args or not 1 <= len(names) <= 2:
            return None
        return StateBinding(
            pattern=StatePattern.REDUCER,
            name=names[0],
            initial_value=classify(src, args[1]) if len(args) > 1 else None,
            setter=names[1] if len(names) > 1 else None,
            type_hint=_type_args(src, call),
            source_idiom="useReducer",
            reducer=src.node_text(args[0]),
        )

    if hook_name in _STORE_HOOKS and target.type == "identifier":
        return StateBinding(
            pattern=StatePattern.EXTERNAL_STORE,
            name=src.node_text(target),
            initial_value=Expression(src.node_text(args[0])) if args else None,
            type_hint=_type_args(src, call),
            source_idiom="storeHook",
            source_hook=hook_name,
        )

    if hook_name == "useContext" and target.type == "identifier" and args:
        return StateBinding(
            pattern=StatePattern.CONTEXT_DERIVED,
            name=src.node_text(target),
            initial_value=Expression(src.node_text(args[0])),
            type_hint=context_type(src.node_text(args[0]), src.node_text(target)),
            source_idiom="contextHook",
            source_hook=hook_name,
        )

    if hook_name.startswith("use") and hook_name not in _DISPATCH_HOOKS:
        logger.debug("Hook %s is not a known state idiom; kept verbatim", hook_name)
    return None


def _dispatch_name(node: tree_sitter.Node, src: TsxSource) -> Optional[str]:
    decl = _single_declarator(node)
    if decl is None:
        return None
    target = decl.child_by_field_name("name")
    hook = _hook(src, decl.child_by_field_name("value"))
    if target is None or target.type != "identifier" or hook is None:
        return None
    return src.node_text(target) if hook[0] in _DISPATCH_HOOKS else None


def _function_body_call(src: TsxSource, fn: tree_sitter.Node) -> Optional[tree_sitter.Node]:
    """The single call a zero-parameter function consists of."""
    params = fn.child_by_field_name("parameters")
    if fn.child_by_field_name("parameter") is not None:
        return None
    if params is not None and [c for c in params.named_children if c.type != "comment"]:
        return None
    body = fn.child_by_field_name("body")
    if body is None:
        return None
    if body.type == "statement_block":
        stmts = [c for c in body.named_children if c.type != "comment"]
        if len(stmts) != 1 or stmts[0].type != "expression_statement":
            return None
        body = stmts[0].named_children[0] if stmts[0].named_children else None
    body = unwrap_parens(body)
    if body is None or body.type != "call_expression":
        return None
    return body


def _handler(node: tree_sitter.Node, src: TsxSource) -> Optional[Tuple[str, tree_sitter.Node]]:
    """``(trigger, call)`` for ``const t = () => f(x)`` / ``function t() { f(x); }``."""
    if node.type == "function_declaration":
        name = node.child_by_field_name("name")
        call = _function_body_call(src, node)
        return (src.node_text(name), call) if name is not None and call is not None else None

    decl = _single_declarator(node)
    if decl is None:
        return None
    name = decl.child_by_field_name("name")
    value = unwrap_parens(decl.child_by_field_name("value"))
    if name is None or name.type != "identifier" or value is None or value.type not in FUNCTION_TYPES:
        return None
    call = _function_body_call(src, value)
    return (src.node_text(name), call) if call is not None else None


def _updater_mutation(src: TsxSource, name: str, arg: tree_sitter.Node) -> str:
    """``setX(v)`` -> ``x = v``; ``setX(p => p + 1)`` -> ``x = x + 1``."""
    fn = unwrap_parens(arg)
    if fn is not None and fn.type == "arrow_function":
        param = fn.child_by_field_name("parameter")
        if param is None:
            params = fn.child_by_field_name("parameters")
            idents = [c for c in (params.named_children if params else []) if c.type != "comment"]
            param = idents[0] if len(idents) == 1 else None
            if param is not None and param.type == "required_parameter":
                param = param.child_by_field_name("pattern")
        body = fn.child_by_field_name("body")
        if param is not None and body is not None and body.type != "statement_block":
            rhs = src.node_text(unwrap_parens(body))
            return f"{name} = {rename_identifier(rhs, src.node_text(param), name)}"
    return f"{name} = {src.node_text(arg)}"


def collect_component_transitions(
    bindings: Sequence[StateBinding], statements: Sequence[tree_sitter.Node], src: TsxSource
) -> Tuple[List[StateBinding], Set[Tuple[int, int]]]:
    """Attach handlers that only call a setter or ``dispatch`` as transitions.

    Returns the updated bindings and the ``(start, end)`` byte spans of the
    statements that were consumed.
    """
    updated = list(bindings)
    consumed: Set[Tuple[int, int]] = set()
    for stmt in statements:
        handler = _handler(stmt, src)
        if handler is None:
            continue
        trigger, call = handler
        callee = src.node_text(call.child_by_field_name("function"))
        args = _call_args(call)
        if len(args) != 1:
            continue
        for i, binding in enumerate(updated):
            if binding.setter != callee:
                continue
            if binding.pattern is StatePattern.LOCAL:
                mutation = _updater_mutation(src, binding.name, args[0])
            else:
                mutation = src.node_text(args[0])
                m = _STORE_ACTION_RE.match(mutation)
                if binding.pattern is StatePattern.EXTERNAL_STORE and m and m.group(1) == binding.name:
                    mutation = f"{binding.name} = {m.group(2)}"
            transition = StateTransition(trigger, mutation)
            updated[i] = replace(binding, transitions=binding.transitions + (transition,))
            consumed.add((stmt.start_byte, stmt.end_byte))
            logger.debug("Transition %s attached to %s", trigger, binding.name)
            break
    return updated, consumed


def lift_component_state(
    statements: Sequence[tree_sitter.Node], src: TsxSource
) -> Tuple[List[StateBinding], List[tree_sitter.Node]]:
    """Split function-component statements into bindings and the rest."""
    bindings: List[StateBinding] = []
    lifted: Set[Tuple[int, int]] = set()
    dispatchers: List[Tuple[str, tree_sitter.Node]] = []

    for stmt in statements:
        binding = detect_component_state(stmt, src)
        if binding is not None:
            bindings.append(binding)
            lifted.add((stmt.start_byte, stmt.end_byte))
            continue
        name = _dispatch_name(stmt, src)
        if name is not None:
            dispatchers.append((name, stmt))

    stores = [i for i, b in enumerate(bindings) if b.pattern is StatePattern.EXTERNAL_STORE]
    if dispatchers and stores:
        name, stmt = dispatchers[0]
        for i in stores:
            bindings[i] = replace(bindings[i], setter=bindings[i].setter or name)
        lifted.add((stmt.start_byte, stmt.end_byte))

    rest = [s for s in statements if (s.start_byte, s.end_byte) not in lifted]
    bindings, consumed = collect_component_transitions(bindings, rest, src)
    rest = [s for s in rest if (s.start_byte, s.end_byte) not in consumed]
    return bindings, rest


_CASE_RE = re.compile(r"case\s+['\"]([\w$]+)['\"]\s*:\s*return\s+(.+?);", re.DOTALL)
_DEFAULT_RE = re.compile(r"default\s*:\s*return\s+state\s*;")
_ACTION_TYPE_RE = re.compile(r"^\{\s*type:\s*['\"]([\w$]+)['\"]\s*\}$")


def inline_reducer(binding: StateBinding, reducer_source: str) -> Optional[StateBinding]:
    """Fold ``dispatch({ type })`` transitions into assignments.

    Only applies when the reducer is a plain ``switch`` whose cases are
    exactly the dispatched action types and each case returns the next
    state. Returns ``None`` when the reducer has to stay as written.
    """
    cases = dict(_CASE_RE.findall(reducer_source))
    if not cases or not _DEFAULT_RE.search(reducer_source):
        return None
    if reducer_source.count("return") != len(cases) + 1:
        return None
    transitions = []
    used = set()
    for t in binding.transitions:
        m = _ACTION_TYPE_RE.match(t.mutation_expression.strip())
        if m is None or m.group(1) not in cases:
            return None
        used.add(m.group(1))
        rhs = rename_identifier(cases[m.group(1)].strip(), "state", binding.name)
        transitions.append(StateTransition(t.trigger, f"{binding.name} = {rhs}"))
    if used != set(cases):
        return None
    return replace(binding, transitions=tuple(transitions))


# ── class components ─────────────────────────────────────────────────


def _state_object_bindings(src: TsxSource, obj: tree_sitter.Node) -> List[StateBinding]:
    bindings = []
    for pair in obj.named_children:
        if pair.type != "pair":
            continue
        key = object_key(src, pair.child_by_field_name("key"))
        value = pair.child_by_field_name("value")
        if key is None or value is None:
            continue
        bindings.append(StateBinding(
            pattern=StatePattern.LOCAL,
            name=key,
            initial_value=classify(src, value),
            setter="setState",
            source_idiom="classState",
        ))
    return bindings


def _this_state_assignment(src: TsxSource, stmt: tree_sitter.Node) -> Optional[tree_sitter.Node]:
    if stmt.type != "expression_statement" or not stmt.named_children:
        return None
    expr = stmt.named_children[0]
    if expr.type != "assignment_expression":
        return None
    left = expr.child_by_field_name("left")
    right = unwrap_parens(expr.child_by_field_name("right"))
    if src.node_text(left).replace(" ", "") == "this.state" and right is not None and right.type == "object":
        return right
    return None


def _class_set_state(src: TsxSource, member: tree_sitter.Node) -> Optional[Tuple[str, str]]:
    """``(key, value text)`` when a class method body is one ``this.setState({k: v})``."""
    if member.type == "method_definition":
        fn = member
    else:
        fn = unwrap_parens(member.child_by_field_name("value"))
        if fn is None or fn.type not in FUNCTION_TYPES:
            return None
    call = _function_body_call(src, fn)
    if call is None or src.node_text(call.child_by_field_name("function")).replace(" ", "") != "this.setState":
        return None
    args = _call_args(call)
    obj = unwrap_parens(args[0]) if len(args) == 1 else None
    if obj is None or obj.type != "object":
        return None
    pairs = [c for c in obj.named_children if c.type != "comment"]
    if len(pairs) != 1 or pairs[0].type != "pair":
        return None
    key = object_key(src, pairs[0].child_by_field_name("key"))
    value = src.node_text(pairs[0].child_by_field_name("value"))
    if key is None:
        return None
    return key, re.sub(r"\bthis\.state\.", "", value)


def lift_class_state(
    members: Sequence[tree_sitter.Node], src: TsxSource
) -> Tuple[List[StateBinding], List[tree_sitter.Node]]:
    """Split class-component members (``render`` excluded) into bindings and the rest."""
    bindings: List[StateBinding] = []
    rest: List[tree_sitter.Node] = []
    handlers: List[Tuple[str, str, str]] = []

    for member in members:
        name_node = member.child_by_field_name("name")
        name = src.node_text(name_node)
        if member.type == "public_field_definition" and name == "state":
            value = unwrap_parens(member.child_by_field_name("value"))
            if value is not None and value.type == "object":
                bindings.extend(_state_object_bindings(src, value))
                continue
        if member.type == "method_definition" and name == "constructor":
            body = member.child_by_field_name("body")
            stmts = [c for c in body.named_children if c.type != "comment"] if body else []
            objects = [_this_state_assignment(src, s) for s in stmts]
            others = [
                s for s, obj in zip(stmts, objects)
                if obj is None and not src.node_text(s).startswith("super(")
            ]
            if any(obj is not None for obj in objects) and not others:
                for obj in objects:
                    if obj is not None:
                        bindings.extend(_state_object_bindings(src, obj))
                continue
        update = _class_set_state(src, member)
        if update is not None:
            handlers.append((name, update[0], update[1]))
            rest.append(member)
            continue
        rest.append(member)

    names = {b.name for b in bindings}
    consumed: Set[str] = set()
    for trigger, key, value in handlers:
        if key not in names:
            continue
        for i, binding in enumerate(bindings):
            if binding.name == key:
                transition = StateTransition(trigger, f"{key} = {value}")
                bindings[i] = replace(binding, transitions=binding.transitions + (transition,))
                consumed.add(trigger)
    rest = [m for m in rest if src.node_text(m.child_by_field_name("name")) not in consumed]
    return bindings, rest


# =============================================================================
# Widget tree: detection
# =============================================================================


@dataclass
class WidgetStateScan:
    """Outcome of ``detect_widget_state``."""

    bindings: List[StateBinding] = field(default_factory=list)
    members: List[DartMember] = field(default_factory=list)
    build_statements: List[Tuple[int, int]] = field(default_factory=list)
    consumed_declarations: Set[str] = field(default_factory=set)


def _set_state_closures(syntax: DartSyntax, start: int, end: int) -> List[List[str]]:
    """Statement texts of every ``setState(() ...)`` closure in a token range."""
    found = []
    i = start
    while i < end:
        if syntax.is_ident(i, "setState") and syntax.is_punct(i + 1, "("):
            close = syntax.match[i + 1]
            fn = syntax.parse_expression(i + 2, close) if close > i + 2 else None
            if isinstance(fn, DartFunction):
                if fn.block is not None:
                    found.append([syntax.text(s, e) for s, e in syntax.split_statements(*fn.block)])
                elif fn.body is not None:
                    found.append([fn.body.text])
            i = close + 1
            continue
        i += 1
    return found


def _single_call(syntax: DartSyntax, start: int, end: int) -> Optional[DartCall]:
    """The call a one-statement body consists of."""
    if start >= end:
        return None
    stmts = syntax.split_statements(start, end)
    if len(stmts) != 1:
        return None
    s, e = stmts[0]
    if syntax.is_punct(e - 1, ";"):
        e -= 1
    if s >= e:
        return None
    node = syntax.parse_expression(s, e)
    return node if isinstance(node, DartCall) else None


def _member_call(syntax: DartSyntax, member: DartMember) -> Optional[DartCall]:
    if member.arrow is not None:
        node = syntax.parse_expression(*member.arrow)
        return node if isinstance(node, DartCall) else None
    if member.body is not None:
        return _single_call(syntax, *member.body)
    return None


def _set_state_body(syntax: DartSyntax, member: DartMember) -> Optional[List[str]]:
    """Statements of the one ``setState`` a method consists of."""
    call = _member_call(syntax, member)
    if call is None or call.callee != "setState" or len(call.args) != 1:
        return None
    fn = call.args[0].value
    if not isinstance(fn, DartFunction):
        return None
    if fn.block is not None:
        return [syntax.text(s, e) for s, e in syntax.split_statements(*fn.block)]
    return [fn.body.text] if fn.body is not None else None


def _params(syntax: DartSyntax, member: DartMember) -> List[str]:
    return syntax.param_names(*member.params) if member.params else []


def _scan_set_state(syntax: DartSyntax, state_class: Optional[DartMember],
                    members: Sequence[DartMember]) -> Tuple[List[StateBinding], List[DartMember]]:
    mutated: Set[str] = set()
    if state_class is not None and state_class.body is not None:
        for stmts in _set_state_closures(syntax, *state_class.body):
            for stmt in stmts:
                parsed = normalize_mutation(stmt)
                if parsed:
                    mutated.add(parsed[0])

    bindings: Dict[str, StateBinding] = {}
    rest: List[DartMember] = []
    for member in members:
        if (member.kind == "field" and member.name in mutated
                and "static" not in member.modifiers and "const" not in member.modifiers):
            initial = None
            if member.initializer is not None:
                initial = to_prop_value(syntax.parse_expression(*member.initializer))
            bindings[member.name] = StateBinding(
                pattern=StatePattern.LOCAL,
                name=member.name,
                initial_value=initial,
                type_hint=member.type_text.replace("late", "").strip() or None,
                source_idiom="setState",
            )
            continue
        rest.append(member)

    remaining: List[DartMember] = []
    for member in rest:
        if member.kind != "method" or member.name in bindings:
            remaining.append(member)
            continue
        params = _params(syntax, member)
        stmts = _set_state_body(syntax, member)
        parsed = [normalize_mutation(s) for s in stmts] if stmts is not None else []
        if len(parsed) == 1 and parsed[0] is not None and parsed[0][0] in bindings:
            name, mutation = parsed[0]
            binding = bindings[name]
            if len(params) == 1 and mutation == f"{name} = {params[0]}":
                bindings[name] = replace(binding, setter=member.name)
                continue
            if not params:
                transition = StateTransition(member.name, mutation)
                bindings[name] = replace(binding, transitions=binding.transitions + (transition,))
                continue
        if not params and stmts is None:
            action = unconverted_text(member.text)
            if action is not None and member.body is not None and member.body[0] == member.body[1]:
                target = next(iter(bindings.values()), None)
                if target is not None:
                    transition = StateTransition(member.name, action)
                    bindings[target.name] = replace(target, transitions=target.transitions + (transition,))
                    continue
        remaining.append(member)
    return list(bindings.values()), remaining


_WATCH_CUBIT_RE = re.compile(
    r"^(?:final|var)\s+(?:[\w<>?]+\s+)?(\w+)\s*=\s*context\.watch<(\w+)>\(\)\.state\s*;?$"
)
_WATCH_PROVIDER_TYPE_RE = re.compile(
    r"^(?:final|var)\s+(?:[\w<>?]+\s+)?(\w+)\s*=\s*(?:context\.watch<(\w+)>\(\)|Provider\.of<(\w+)>\(context\))\s*;?$"
)
_INHERITED_RE = re.compile(r"^(?:final|var)\s+(?:[\w<>?]+\s+)?(\w+)\s*=\s*([A-Z]\w*)\.of\(context\)\s*;?$")
_REF_WATCH_RE = re.compile(r"^(?:final|var)\s+(?:[\w<>?]+\s+)?(\w+)\s*=\s*ref\.watch\((\w+)\)\s*;?$")
_STATE_PROVIDER_RE = re.compile(r"^StateProvider(?:<(.+)>)?\(", re.DOTALL)
_LOCAL_FN_RE = re.compile(r"^void\s+(\w+)\s*\(([^)]*)\)\s*(?:=>\s*(.+?)\s*;|\{(.*)\})\s*$", re.DOTALL)
_NOTIFIER_RE = r"ref\.read\(\s*{provider}\.notifier\s*\)\.state"
_CUBIT_CALL_RE = re.compile(r"^context\.read<(\w+)>\(\)\.(\w+)\((\w*)\)\s*;?$")


def _provider_initial(syntax: DartSyntax, member: DartMember) -> Optional[Tuple[Optional[str], PropValue]]:
    if member.initializer is None:
        return None
    node = syntax.parse_expression(*member.initializer)
    if not isinstance(node, DartCall) or not _STATE_PROVIDER_RE.match(node.text):
        return None
    fn = node.positional[0] if len(node.positional) == 1 else None
    if not isinstance(fn, DartFunction) or fn.body is None:
        return None
    return (node.type_args or None), to_prop_value(fn.body)


def _cubit_binding(syntax: DartSyntax, cls: DartMember, name: str) -> Optional[StateBinding]:
    """Binding for a ``Cubit`` class whose members are all regenerable."""
    if cls.super_name != "Cubit" or cls.body is None:
        return None
    initial: Optional[PropValue] = None
    setter = None
    transitions: List[StateTransition] = []
    for member in syntax.split_members(*cls.body):
        if member.kind == "constructor":
            i = member.start
            while i < member.end and not (syntax.is_ident(i, "super") and syntax.is_punct(i + 1, "(")):
                i += 1
            if i >= member.end:
                return None
            close = syntax.match[i + 1]
            if close > i + 2:
                initial = to_prop_value(syntax.parse_expression(i + 2, close))
            continue
        if member.kind != "method":
            return None
        params = _params(syntax, member)
        call = _member_call(syntax, member)
        if call is not None and call.callee == "emit" and len(call.args) == 1:
            value = call.args[0].value.text
            if len(params) == 1 and value == params[0]:
                setter = member.name
                continue
            if not params:
                transitions.append(StateTransition(member.name, f"{name} = {rename_identifier(value, 'state', name)}"))
                continue
        action = unconverted_text(member.text)
        if not params and action is not None and member.body is not None and member.body[0] == member.body[1]:
            transitions.append(StateTransition(member.name, action))
            continue
        return None
    return StateBinding(
        pattern=StatePattern.REDUCER,
        name=name,
        initial_value=initial,
        transitions=tuple(transitions),
        setter=setter,
        type_hint=cls.super_type_args or None,
        source_idiom="bloc",
        reducer=cls.name,
    )


def detect_widget_state(
    syntax: DartSyntax,
    state_class: Optional[DartMember],
    members: Sequence[DartMember],
    build_statements: Sequence[Tuple[int, int]] = (),
    declarations: Sequence[DartMember] = (),
) -> WidgetStateScan:
    """Lift widget-tree state.

    ``state_class`` is the class whose ``setState`` calls are scanned,
    ``members`` its members with ``build`` removed, ``build_statements``
    the statements before the returned tree, and ``declarations`` the
    top-level members (where Cubits and providers live).
    """
    scan = WidgetStateScan()
    scan.bindings, scan.members = _scan_set_state(syntax, state_class, members)
    top = {m.name: m for m in declarations}

    texts = [(rng, syntax.text(*rng)) for rng in build_statements]
    kept: List[Tuple[Tuple[int, int], str]] = []
    cubits: Dict[str, str] = {}
    providers: Dict[str, str] = {}

    for rng, text in texts:
        m = _WATCH_CUBIT_RE.match(text)
        if m and m.group(2) in top:
            binding = _cubit_binding(syntax, top[m.group(2)], m.group(1))
            if binding is not None:
                scan.bindings.append(binding)
                scan.consumed_declarations.add(m.group(2))
                cubits[m.group(2)] = m.group(1)
                continue
        m = _REF_WATCH_RE.match(text)
        if m and m.group(2) in top:
            provider = _provider_initial(syntax, top[m.group(2)])
            if provider is not None:
                scan.bindings.append(StateBinding(
                    pattern=StatePattern.EXTERNAL_STORE,
                    name=m.group(1),
                    initial_value=provider[1],
                    type_hint=provider[0],
                    source_idiom="riverpod",
                ))
                scan.consumed_declarations.add(m.group(2))
                providers[m.group(2)] = m.group(1)
                continue
        m = _INHERITED_RE.match(text)
        if m:
            scan.bindings.append(StateBinding(
                pattern=StatePattern.CONTEXT_DERIVED, name=m.group(1),
                type_hint=m.group(2), source_idiom="inheritedLookup",
            ))
            continue
        m = _WATCH_PROVIDER_TYPE_RE.match(text)
        if m:
            scan.bindings.append(StateBinding(
                pattern=StatePattern.CONTEXT_DERIVED, name=m.group(1),
                type_hint=m.group(2) or m.group(3), source_idiom="provider",
            ))
            continue
        kept.append((rng, text))

    for rng, text in kept:
        if not _lift_local_function(scan, text, cubits, providers):
            scan.build_statements.append(rng)
    return scan


def _lift_local_function(scan: WidgetStateScan, text: str,
                         cubits: Dict[str, str], providers: Dict[str, str]) -> bool:
    """Fold a regenerated build-local function back into its binding."""
    m = _LOCAL_FN_RE.match(text.strip())
    if m is None:
        return False
    trigger, params_text = m.group(1), m.group(2).strip()
    params = [p.split()[-1] for p in params_text.split(",") if p.strip()]
    body = (m.group(3) if m.group(3) is not None else m.group(4)).strip()

    call = _CUBIT_CALL_RE.match(body)
    if call and call.group(1) in cubits:
        return True

    for provider, name in providers.items():
        idx = next(i for i, b in enumerate(scan.bindings) if b.name == name)
        binding = scan.bindings[idx]
        notifier = _NOTIFIER_RE.format(provider=re.escape(provider))
        if not re.search(notifier, body):
            continue
        statement = re.sub(notifier, name, body).rstrip(";").strip()
        parsed = normalize_mutation(statement)
        if parsed is None or parsed[0] != name:
            return False
        if len(params) == 1 and parsed[1] == f"{name} = {params[0]}":
            scan.bindings[idx] = replace(binding, setter=trigger)
            return True
        if not params:
            transition = StateTransition(trigger, parsed[1])
            scan.bindings[idx] = replace(binding, transitions=binding.transitions + (transition,))
            return True
        return False
    return False


# =============================================================================
# Expansion
# =============================================================================


@dataclass
class StateFragment:
    """Source pieces one binding expands into.

    ``imports`` maps a module to the names imported from it (always empty
    for the widget tree). ``declarations`` are module-level, ``members``
    class-level, and ``build_locals`` go at the top of the render/build
    body. ``host`` tells the widget-tree generator which widget class the
    binding needs (``stateless``, ``stateful`` or ``consumer``).
    """

    imports: Dict[str, Set[str]] = field(default_factory=dict)
    declarations: List[str] = field(default_factory=list)
    members: List[str] = field(default_factory=list)
    build_locals: List[str] = field(default_factory=list)
    accessor: str = ""
    setter: Optional[str] = None
    host: str = "stateless"


def default_idiom(pattern: StatePattern, framework: str) -> str:
    """Configured target idiom for ``pattern`` in ``framework``."""
    defaults = get_settings().state.defaults.get(framework, {})
    idiom = defaults.get(StatePattern(pattern).value)
    if idiom is None:
        raise GenerationFailure(f"no state idiom configured for {pattern.value} in {framework}", "root")
    return idiom


def framework_of(idiom: str) -> Optional[str]:
    for framework, idioms in IDIOMS.items():
        if idiom in idioms:
            return framework
    return None


def _initial_js(binding: StateBinding) -> str:
    return js_prop(binding.initial_value) if binding.initial_value is not None else ""


def _initial_dart(binding: StateBinding) -> Optional[str]:
    return dart_prop(binding.initial_value) if binding.initial_value is not None else None


def _reuse(binding: StateBinding, idiom: str, value: Optional[str]) -> Optional[str]:
    return value if binding.source_idiom == idiom and value else None


def _expand_use_state(b: StateBinding) -> StateFragment:
    setter = _reuse(b, "useState", b.setter) or setter_name(b.name)
    ts = ts_type(b)
    type_args = f"<{ts}>" if ts else ""
    frag = StateFragment(imports={"react": {"useState"}}, accessor=b.name, setter=setter)
    frag.build_locals.append(f"const [{b.name}, {setter}] = useState{type_args}({_initial_js(b)});")
    for t in b.transitions:
        parts = split_assignment(t.mutation_expression)
        if parts and parts[0] == b.name:
            frag.build_locals.append(f"const {t.trigger} = () => {setter}({parts[1]});")
        else:
            frag.build_locals.append(f"const {t.trigger} = () => {{ {t.mutation_expression}; }};")
    return frag


def _expand_use_reducer(b: StateBinding) -> StateFragment:
    dispatch = _reuse(b, "useReducer", b.setter) or "dispatch"
    user_reducer = _reuse(b, "useReducer", b.reducer)
    reducer = user_reducer or f"{lower_first(b.name.lstrip('_'))}Reducer"
    initial = _initial_js(b) or "undefined"
    frag = StateFragment(imports={"react": {"useReducer"}}, accessor=b.name, setter=dispatch)
    frag.build_locals.append(f"const [{b.name}, {dispatch}] = useReducer({reducer}, {initial});")

    cases = []
    for t in b.transitions:
        parts = split_assignment(t.mutation_expression)
        if parts and parts[0] == b.name:
            frag.build_locals.append(f"const {t.trigger} = () => {dispatch}({{ type: '{t.trigger}' }});")
            cases.append((t.trigger, rename_identifier(parts[1], b.name, "state")))
        else:
            frag.build_locals.append(f"const {t.trigger} = () => {dispatch}({t.mutation_expression});")
    # A user reducer still present as a declaration handles its own actions.
    if cases or user_reducer is None:
        lines = [f"function {reducer}(state, action) {{", "  switch (action.type) {"]
        for trigger, rhs in cases:
            lines += [f"    case '{trigger}':", f"      return {rhs};"]
        lines += ["    default:", "      return state;", "  }", "}"]
        frag.declarations.append("\n".join(lines))
    return frag


def _expand_store_hook(b: StateBinding) -> StateFragment:
    initial = b.initial_value
    own = b.source_idiom == "storeHook"
    if own and isinstance(initial, Expression):
        selector = initial.source_text
    else:
        selector = f"(state) => state.{b.name}"
    # Other store hooks come from the user's own imports, kept as declarations.
    hook = _reuse(b, "storeHook", b.source_hook) or "useSelector"
    frag = StateFragment(accessor=b.name)
    if hook == "useSelector":
        frag.imports["react-redux"] = {hook}
    if not own and isinstance(initial, Expression):
        frag.build_locals.append(f"// {UNCONVERTED_PREFIX} initial {b.name} = {initial.source_text}")
    frag.build_locals.append(f"const {b.name} = {hook}({selector});")
    if b.setter or b.transitions:
        dispatch = _reuse(b, "storeHook", b.setter) or "dispatch"
        frag.setter = dispatch
        frag.imports.setdefault("react-redux", set()).add("useDispatch")
        frag.build_locals.append(f"const {dispatch} = useDispatch();")
        for t in b.transitions:
            parts = split_assignment(t.mutation_expression)
            action = _store_action(b.name, parts[1]) if parts and parts[0] == b.name else t.mutation_expression
            frag.build_locals.append(f"const {t.trigger} = () => {dispatch}({action});")
    return frag


def _expand_context_hook(b: StateBinding) -> StateFragment:
    if isinstance(b.initial_value, Expression):
        ctx = b.initial_value.source_text
    else:
        ctx = context_type(b.type_hint, b.name) + "Context"
    frag = StateFragment(imports={"react": {"useContext"}}, accessor=b.name)
    frag.build_locals.append(f"const {b.name} = useContext({ctx});")
    return frag


def _dart_method(signature: str, body: List[str]) -> str:
    lines = [f"{signature} {{"]
    lines.extend(f"  {line}" for line in body)
    lines.append("}")
    return "\n".join(lines)


def _expand_set_state(b: StateBinding) -> StateFragment:
    setter = _reuse(b, "setState", b.setter) or _reuse(b, "useState", b.setter) or setter_name(b.name)
    dtype = dart_type(b)
    initial = _initial_dart(b)
    frag = StateFragment(accessor=b.name, setter=setter, host="stateful")
    if initial is not None:
        frag.members.append(f"{dtype or 'var'} {b.name} = {initial};")
    elif dtype:
        frag.members.append(f"late {dtype} {b.name};")
    else:
        frag.members.append(f"dynamic {b.name};")

    param = f"{dtype} value" if dtype else "value"
    frag.members.append(_dart_method(
        f"void {setter}({param})",
        ["setState(() {", f"  {b.name} = value;", "});"],
    ))
    for t in b.transitions:
        parts = split_assignment(t.mutation_expression)
        if parts and parts[0] == b.name:
            body = ["setState(() {", f"  {t.mutation_expression};", "});"]
        else:
            body = [f"// {UNCONVERTED_PREFIX} {t.mutation_expression}"]
        frag.members.append(_dart_method(f"void {t.trigger}()", body))
    return frag


def _expand_bloc(b: StateBinding) -> StateFragment:
    cubit = _reuse(b, "bloc", b.reducer) or f"{capitalize(b.name.lstrip('_'))}Cubit"
    dtype = dart_type(b) or "dynamic"
    initial = _initial_dart(b) or "null"
    frag = StateFragment(
        imports={"package:flutter_bloc/flutter_bloc.dart": set()}, accessor=b.name,
    )
    lines = [f"class {cubit} extends Cubit<{dtype}> {{", f"  {cubit}() : super({initial});"]
    frag.build_locals.append(f"final {b.name} = context.watch<{cubit}>().state;")

    if b.setter:
        setter = _reuse(b, "bloc", b.setter) or setter_name(b.name)
        frag.setter = setter
        lines += ["", f"  void {setter}({dtype} value) => emit(value);"]
        frag.build_locals.append(
            f"void {setter}({dtype} value) => context.read<{cubit}>().{setter}(value);"
        )
    for t in b.transitions:
        parts = split_assignment(t.mutation_expression)
        lines.append("")
        if parts and parts[0] == b.name:
            lines.append(f"  void {t.trigger}() => emit({rename_identifier(parts[1], b.name, 'state')});")
        else:
            lines += [f"  void {t.trigger}() {{", f"    // {UNCONVERTED_PREFIX} {t.mutation_expression}", "  }"]
        frag.build_locals.append(f"void {t.trigger}() => context.read<{cubit}>().{t.trigger}();")
    lines.append("}")
    frag.declarations.append("\n".join(lines))
    return frag


def _expand_riverpod(b: StateBinding) -> StateFragment:
    provider = f"{lower_first(b.name.lstrip('_'))}Provider"
    dtype = dart_type(b)
    type_args = f"<{dtype}>" if dtype else ""
    initial = _initial_dart(b) or "null"
    frag = StateFragment(
        imports={"package:flutter_riverpod/flutter_riverpod.dart": set()},
        accessor=b.name, host="consumer",
    )
    declaration = f"final {provider} = StateProvider{type_args}((ref) => {initial});"
    if isinstance(b.initial_value, Expression) and b.source_idiom == "storeHook":
        # A store selector has no provider equivalent; the provider starts empty.
        selector = f"{b.source_hook or 'useSelector'}({b.initial_value.source_text})"
        nullable_args = f"<{dtype}?>" if dtype else ""
        commented = selector.replace("\n", "\n// ")
        declaration = (
            f"// {UNCONVERTED_PREFIX} {commented}\n"
            f"final {provider} = StateProvider{nullable_args}((ref) => null);"
        )
        logger.warning(f"Store selector for '{b.name}' kept as a comment: {selector}")
    frag.declarations.append(declaration)
    frag.build_locals.append(f"final {b.name} = ref.watch({provider});")
    notifier = f"ref.read({provider}.notifier).state"
    if b.setter:
        setter = _reuse(b, "riverpod", b.setter) or setter_name(b.name)
        frag.setter = setter
        param = f"{dtype} value" if dtype else "value"
        frag.build_locals.append(f"void {setter}({param}) => {notifier} = value;")
    for t in b.transitions:
        parts = split_assignment(t.mutation_expression)
        if parts and parts[0] == b.name:
            frag.build_locals.append(f"void {t.trigger}() => {notifier} = {parts[1]};")
        else:
            frag.build_locals.append(
                f"void {t.trigger}() {{\n  // {UNCONVERTED_PREFIX} {t.mutation_expression}\n}}"
            )
    return frag


def _expand_inherited(b: StateBinding) -> StateFragment:
    frag = StateFragment(accessor=b.name)
    if b.source_idiom == "provider" and b.type_hint:
        frag.build_locals.append(f"final {b.name} = context.watch<{b.type_hint}>();")
        frag.imports["package:provider/provider.dart"] = set()
    else:
        frag.build_locals.append(f"final {b.name} = {context_type(b.type_hint, b.name)}.of(context);")
    return frag


_EXPANDERS = {
    "useState": _expand_use_state,
    "useReducer": _expand_use_reducer,
    "storeHook": _expand_store_hook,
    "contextHook": _expand_context_hook,
    "setState": _expand_set_state,
    "bloc": _expand_bloc,
    "riverpod": _expand_riverpod,
    "inheritedLookup": _expand_inherited,
}


def expand(binding: StateBinding, target_idiom: str) -> StateFragment:
    """Expand one binding into ``target_idiom``.

    Raises ``GenerationFailure`` for an idiom this converter cannot emit.
    """
    try:
        expander = _EXPANDERS[target_idiom]
    except KeyError:
        raise GenerationFailure(f"unknown state idiom '{target_idiom}'", "root") from None
    logger.debug("Expanding %s binding %s as %s", binding.pattern.value, binding.name, target_idiom)
    return expander(binding)


def expand_all(bindings: Sequence[StateBinding], framework: str) -> List[StateFragment]:
    """Expand each binding with the configured default idiom for ``framework``."""
    fragments = []
    for binding in bindings:
        idiom = default_idiom(binding.pattern, framework)
        if framework_of(idiom) != framework:
            raise GenerationFailure(
                f"state idiom '{idiom}' cannot be expressed in {framework}", "root"
            )
        fragments.append(expand(binding, idiom))
    return fragments
