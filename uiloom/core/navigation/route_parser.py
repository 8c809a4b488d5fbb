"""Route tree extraction.

Reads React Router JSX (``<Routes>`` / ``<Route>`` with nesting, ``index``
routes, ``handle`` metadata, ``GuardedRoute`` wrappers and a
``routeGuards`` array) and widget-tree routers (``MaterialApp(routes:
{...})``, ``GoRouter(routes: [GoRoute(...)])`` with nested ``routes:``,
page transitions, ``runGuards`` redirects and ``NavigationGuard``
declarations) into a ``RouteSchema``.

Names come from ``GoRoute(name: ...)`` when given, otherwise from the
route's full path. Colliding names are reported, never renamed.
"""

import logging
import re
from collections import Counter
from dataclasses import replace
from typing import Any, Dict, List, Optional, Sequence, Tuple

import tree_sitter

from ..animation import converter as animation_converter
from ..constants import FRAMEWORK_COMPONENT_MODEL, FRAMEWORK_WIDGET_TREE, SUPPORTED_FRAMEWORKS
from ..ir.errors import ParseError, Result, SourceSyntaxError
from ..ir.models import Literal
from ..parsers.dart_syntax import (
    DartCall,
    DartFunction,
    DartList,
    DartMap,
    DartMember,
    DartNode,
    DartString,
    DartSyntax,
    to_prop_value,
)
from ..parsers.tsx_utils import (
    TsxSource,
    attribute_parts,
    classify,
    container_expression,
    is_jsx,
    jsx_attributes,
    jsx_children,
    jsx_tag_name,
    unwrap_parens,
    walk_nodes,
)
from .guards import guards_for_route
from .models import GuardType, NavigationGuard, Route, RouteSchema, TransitionConfig, TransitionType
from .naming import derive_route_name, extract_parameters, join_paths

logger = logging.getLogger(__name__)

ROUTER_TAGS = frozenset({"BrowserRouter", "HashRouter", "MemoryRouter", "Routes"})
GUARD_WRAPPER = "GuardedRoute"
GUARDS_DECLARATION = "routeGuards"

# Declarations the route generators emit; dropped on parse and regenerated.
HELPER_DECLARATIONS = {
    FRAMEWORK_COMPONENT_MODEL: frozenset({GUARD_WRAPPER, GUARDS_DECLARATION}),
    FRAMEWORK_WIDGET_TREE: frozenset({"NavigationGuard", "GuardType", GUARDS_DECLARATION, "runGuards"}),
}


# =============================================================================
# Shared helpers
# =============================================================================


def _name_route(route: Route, full_path: str, explicit: Optional[str]) -> Route:
    return replace(route, name=explicit or derive_route_name(full_path))


def collision_warnings(routes: Sequence[Route]) -> Tuple[str, ...]:
    """One warning per route name used more than once."""
    counts = Counter(r.name for r in routes)
    warnings = []
    for name, count in counts.items():
        if count > 1:
            paths = ", ".join(r.path or "(index)" for r in routes if r.name == name)
            message = f"route name '{name}' is used by {count} routes ({paths})"
            logger.warning(message)
            warnings.append(message)
    return tuple(warnings)


def _finish(routes: Tuple[Route, ...], initial: str, guards: Tuple[NavigationGuard, ...]) -> RouteSchema:
    schema = RouteSchema(routes=_prune_guards(routes, guards), initial_route=initial, guards=guards)
    return replace(schema, warnings=collision_warnings(schema.flatten()))


def _prune_guards(routes: Tuple[Route, ...], guards: Tuple[NavigationGuard, ...]) -> Tuple[Route, ...]:
    """Drop guard names a route gets anyway from the guard's own ``routes``."""
    out = []
    for route in routes:
        implied = {
            g.name for g in guards
            if not g.routes or route.name in g.routes or route.path in g.routes
        }
        explicit = tuple(n for n in route.guards if n not in implied)
        out.append(replace(route, guards=explicit, children=_prune_guards(route.children, guards)))
    return tuple(out)


def _guard_from_values(values: Dict[str, Any], handler: str) -> Optional[NavigationGuard]:
    name = values.get("name")
    if not isinstance(name, str):
        return None
    kind = values.get("type", "before")
    routes = values.get("routes") or ()
    priority = values.get("priority", 0)
    return NavigationGuard(
        name=name,
        handler=handler,
        type=GuardType.AFTER if kind == "after" else GuardType.BEFORE,
        routes=tuple(str(r) for r in routes) if isinstance(routes, (list, tuple)) else (),
        priority=int(priority) if isinstance(priority, (int, float)) else 0,
    )


def _transition_from_values(values: Any) -> Optional[TransitionConfig]:
    if isinstance(values, str):
        return TransitionConfig(TransitionType.parse(values))
    if not isinstance(values, dict):
        return None
    duration = values.get("duration", 300)
    return TransitionConfig(
        type=TransitionType.parse(values.get("type")),
        duration=int(duration) if isinstance(duration, (int, float)) else 300,
        easing=str(values.get("easing", "easeInOut")),
    )


# =============================================================================
# Component model (React Router)
# =============================================================================


def _jsx_attrs(src: TsxSource, node: tree_sitter.Node) -> Dict[str, Any]:
    """Attribute name -> Literal/Expression (``True`` for shorthand)."""
    attrs: Dict[str, Any] = {}
    for attr in jsx_attributes(node):
        if attr.type != "jsx_attribute":
            continue
        name, value = attribute_parts(src, attr)
        if value is None:
            attrs[name] = True
        elif value.type == "string":
            attrs[name] = src.node_text(value)[1:-1]
        elif value.type == "jsx_expression":
            inner = container_expression(value)
            attrs[name] = inner
        else:
            attrs[name] = value
    return attrs


def _element_component(src: TsxSource, node: Optional[tree_sitter.Node]) -> Tuple[str, Tuple[str, ...]]:
    """``(component, guard names)`` for an ``element={...}`` value."""
    node = unwrap_parens(node)
    if node is None:
        return "", ()
    if is_jsx(node) and jsx_tag_name(src, node) == GUARD_WRAPPER:
        guards: Tuple[str, ...] = ()
        attrs = _jsx_attrs(src, node)
        value = attrs.get("guards")
        if isinstance(value, tree_sitter.Node):
            lit = classify(src, value)
            if isinstance(lit, Literal) and isinstance(lit.value, list):
                guards = tuple(str(v) for v in lit.value)
        inner = [c for c in jsx_children(node) if is_jsx(c)]
        component, _ = _element_component(src, inner[0]) if inner else ("", ())
        return component, guards
    if node.type == "jsx_self_closing_element" and not jsx_attributes(node):
        return jsx_tag_name(src, node) or src.node_text(node), ()
    return src.node_text(node), ()


def _jsx_route(src: TsxSource, node: tree_sitter.Node, parent_path: str) -> Route:
    attrs = _jsx_attrs(src, node)
    path = attrs.get("path", "")
    if isinstance(path, tree_sitter.Node):
        lit = classify(src, path)
        path = lit.value if isinstance(lit, Literal) and isinstance(lit.value, str) else src.node_text(path)
    if attrs.get("index") is True:
        path = ""
    full_path = join_paths(parent_path, path) if path else parent_path or "/"

    element = attrs.get("element")
    component, guards = _element_component(src, element if isinstance(element, tree_sitter.Node) else None)

    meta: Dict[str, Any] = {}
    transition = None
    handle = attrs.get("handle")
    if isinstance(handle, tree_sitter.Node):
        lit = classify(src, handle)
        if isinstance(lit, Literal) and isinstance(lit.value, dict):
            meta = dict(lit.value)
            transition = _transition_from_values(meta.pop("transition", None))
        else:
            logger.warning("Route %s has a non-constant handle; metadata dropped", path or "(index)")

    children = tuple(
        _jsx_route(src, child, full_path)
        for child in jsx_children(node)
        if is_jsx(child) and jsx_tag_name(src, child) == "Route"
    )
    route = Route(
        name="",
        path=path,
        component=component,
        params=extract_parameters(path),
        children=children,
        meta=meta,
        transition=transition,
        guards=guards,
    )
    return _name_route(route, full_path, None)


def _jsx_initial_route(src: TsxSource, router: tree_sitter.Node) -> str:
    if jsx_tag_name(src, router) != "MemoryRouter":
        return "/"
    entries = _jsx_attrs(src, router).get("initialEntries")
    if isinstance(entries, tree_sitter.Node):
        lit = classify(src, entries)
        if isinstance(lit, Literal) and isinstance(lit.value, list) and lit.value:
            return str(lit.value[0])
    return "/"


def jsx_guard_declarations(src: TsxSource, array: tree_sitter.Node) -> Tuple[NavigationGuard, ...]:
    """Guards from a ``routeGuards = [{ name, type, handler, routes, priority }]`` array."""
    guards = []
    for item in array.named_children:
        if item.type != "object":
            continue
        values: Dict[str, Any] = {}
        handler = ""
        for pair in item.named_children:
            if pair.type != "pair":
                continue
            key = src.node_text(pair.child_by_field_name("key")).strip("'\"")
            value = pair.child_by_field_name("value")
            if key == "handler":
                handler = src.node_text(value)
                continue
            lit = classify(src, value)
            if isinstance(lit, Literal):
                values[key] = lit.value
        guard = _guard_from_values(values, handler)
        if guard is not None:
            guards.append(guard)
    return tuple(guards)


def find_jsx_guards(src: TsxSource) -> Tuple[NavigationGuard, ...]:
    for node in walk_nodes(src.root):
        if node.type != "variable_declarator":
            continue
        name = node.child_by_field_name("name")
        value = unwrap_parens(node.child_by_field_name("value"))
        if src.node_text(name) == GUARDS_DECLARATION and value is not None and value.type == "array":
            return jsx_guard_declarations(src, value)
    return ()


def routes_from_jsx(src: TsxSource, router: tree_sitter.Node,
                    guards: Sequence[NavigationGuard] = ()) -> RouteSchema:
    """Schema for a router element (``BrowserRouter`` or ``Routes``)."""
    initial = _jsx_initial_route(src, router)
    container = router
    if jsx_tag_name(src, router) != "Routes":
        nested = [c for c in jsx_children(router) if is_jsx(c) and jsx_tag_name(src, c) == "Routes"]
        container = nested[0] if nested else router
    routes = tuple(
        _jsx_route(src, child, "/")
        for child in jsx_children(container)
        if is_jsx(child) and jsx_tag_name(src, child) == "Route"
    )
    return _finish(routes, initial, tuple(guards))


# =============================================================================
# Widget tree (MaterialApp / GoRouter)
# =============================================================================

_DURATION_RE = re.compile(r"Duration\(\s*milliseconds:\s*(\d+)\s*\)")
_CURVE_RE = re.compile(r"Curves\.(\w+)")
_OFFSET_RE = re.compile(r"Offset\(\s*(-?[\d.]+)\s*,\s*(-?[\d.]+)\s*\)")
_RUN_GUARDS_RE = re.compile(r"runGuards\(\s*(?:const\s*)?\[(.*?)\]", re.DOTALL)
_QUOTED_RE = re.compile(r"'([^']*)'|\"([^\"]*)\"")

_SLIDE_OFFSETS = {
    (1.0, 0.0): TransitionType.SLIDE_LEFT,
    (-1.0, 0.0): TransitionType.SLIDE_RIGHT,
    (0.0, 1.0): TransitionType.SLIDE_UP,
    (0.0, -1.0): TransitionType.SLIDE_DOWN,
}


def _string(node: Optional[DartNode]) -> Optional[str]:
    if isinstance(node, DartString) and not node.has_interpolation:
        return node.value
    return None


def _dart_component(body: Optional[DartNode]) -> str:
    if isinstance(body, DartCall) and body.callee[:1].isupper():
        if body.args:
            logger.debug("Route builder %s arguments dropped from component name", body.callee)
        return body.callee
    return body.text if body is not None else ""


def _page_transition(page: DartCall) -> Tuple[Optional[TransitionConfig], Optional[DartNode]]:
    """Transition and child of a ``CustomTransitionPage`` / ``NoTransitionPage``."""
    child = page.named("child")
    if page.callee == "NoTransitionPage":
        return TransitionConfig(TransitionType.NONE, 0), child
    builder = page.named("transitionsBuilder")
    if builder is None:
        return None, child
    text = builder.text
    duration_node = page.named("transitionDuration")
    duration = 300
    if duration_node is not None:
        m = _DURATION_RE.search(duration_node.text)
        if m:
            duration = int(m.group(1))
    curve = _CURVE_RE.search(text)
    easing = animation_converter.easing_name(curve.group(1)) if curve else "easeInOut"

    kind = TransitionType.PLATFORM_DEFAULT
    if "FadeTransition" in text:
        kind = TransitionType.FADE
    elif "ScaleTransition" in text:
        kind = TransitionType.SCALE
    elif "SlideTransition" in text:
        offset = _OFFSET_RE.search(text)
        key = (float(offset.group(1)), float(offset.group(2))) if offset else None
        kind = _SLIDE_OFFSETS.get(key, TransitionType.SLIDE)
    return TransitionConfig(kind, duration, easing), child


def _dart_guard_names(redirect: Optional[DartNode]) -> Tuple[str, ...]:
    if redirect is None:
        return ()
    m = _RUN_GUARDS_RE.search(redirect.text)
    if m is None:
        logger.debug("Custom redirect kept out of the route schema: %s", redirect.text[:60])
        return ()
    return tuple(a or b for a, b in _QUOTED_RE.findall(m.group(1)))


def _go_route(call: DartCall, parent_path: str) -> Route:
    path = _string(call.named("path")) or ""
    full_path = join_paths(parent_path, path) if path else parent_path
    transition = None
    component = ""

    builder = call.named("builder")
    page_builder = call.named("pageBuilder")
    if isinstance(builder, DartFunction):
        component = _dart_component(builder.body)
    elif isinstance(page_builder, DartFunction) and isinstance(page_builder.body, DartCall):
        transition, child = _page_transition(page_builder.body)
        component = _dart_component(child)

    nested = call.named("routes")
    children: Tuple[Route, ...] = ()
    if isinstance(nested, DartList):
        children = tuple(
            _go_route(item, full_path) for item in nested.items
            if isinstance(item, DartCall) and item.callee == "GoRoute"
        )

    route = Route(
        name="",
        path=path,
        component=component,
        params=extract_parameters(path),
        children=children,
        transition=transition,
        guards=_dart_guard_names(call.named("redirect")),
    )
    return _name_route(route, full_path, _string(call.named("name")))


def _material_routes(routes: DartMap) -> Tuple[Route, ...]:
    out = []
    for key, value in routes.entries:
        path = _string(key)
        if path is None:
            continue
        body = value.body if isinstance(value, DartFunction) else value
        route = Route(name="", path=path, component=_dart_component(body), params=extract_parameters(path))
        out.append(_name_route(route, join_paths("/", path), None))
    return tuple(out)


def dart_guard_declarations(syntax: DartSyntax, member: DartMember) -> Tuple[NavigationGuard, ...]:
    """Guards from ``final routeGuards = [NavigationGuard(...), ...];``."""
    if member.initializer is None:
        return ()
    node = syntax.parse_expression(*member.initializer)
    if not isinstance(node, DartList):
        return ()
    guards = []
    for item in node.items:
        if not isinstance(item, DartCall) or item.callee != "NavigationGuard":
            continue
        values: Dict[str, Any] = {}
        for arg in item.args:
            if arg.name in (None, "handler"):
                continue
            if arg.name == "type":
                values["type"] = arg.value.text.rsplit(".", 1)[-1]
                continue
            lit = to_prop_value(arg.value)
            if isinstance(lit, Literal):
                values[arg.name] = lit.value
        handler = item.named("handler")
        guard = _guard_from_values(values, handler.text if handler is not None else "")
        if guard is not None:
            guards.append(guard)
    return tuple(guards)


def _go_router(call: DartCall) -> Tuple[Tuple[Route, ...], str]:
    routes = call.named("routes")
    initial = _string(call.named("initialLocation")) or "/"
    if not isinstance(routes, DartList):
        return (), initial
    return tuple(
        _go_route(item, "/") for item in routes.items
        if isinstance(item, DartCall) and item.callee == "GoRoute"
    ), initial


def routes_from_dart(
    syntax: DartSyntax,
    call: DartCall,
    declarations: Sequence[DartMember] = (),
) -> Tuple[RouteSchema, List[str]]:
    """Schema for a ``MaterialApp`` / ``MaterialApp.router`` / ``GoRouter`` call.

    Returns the schema and the names of the top-level declarations it
    consumed (a ``routerConfig`` field, the ``routeGuards`` list).
    """
    consumed: List[str] = []
    top = {m.name: m for m in declarations}
    guards: Tuple[NavigationGuard, ...] = ()
    if GUARDS_DECLARATION in top:
        guards = dart_guard_declarations(syntax, top[GUARDS_DECLARATION])
        consumed.append(GUARDS_DECLARATION)

    router: Optional[DartNode] = call if call.callee == "GoRouter" else call.named("routerConfig")
    if router is not None and not isinstance(router, DartCall):
        member = top.get(router.text.strip())
        if member is not None and member.initializer is not None:
            resolved = syntax.parse_expression(*member.initializer)
            if isinstance(resolved, DartCall):
                consumed.append(member.name)
                router = resolved

    if isinstance(router, DartCall) and router.callee == "GoRouter":
        routes, initial = _go_router(router)
    else:
        table = call.named("routes")
        routes = _material_routes(table) if isinstance(table, DartMap) else ()
        initial = _string(call.named("initialRoute")) or "/"
        home = call.named("home")
        if home is not None and not any(r.path == "/" for r in routes):
            route = Route(name="", path="/", component=_dart_component(home))
            routes = (_name_route(route, "/", None),) + routes
    return _finish(routes, initial, guards), consumed


def _find_dart_router(syntax: DartSyntax) -> Optional[DartCall]:
    for name in ("GoRouter", "MaterialApp"):
        for i in range(len(syntax)):
            if not syntax.is_ident(i, name):
                continue
            j = i + 1
            while syntax.is_punct(j, ".") and syntax.is_ident(j + 1):
                j += 2
            if not syntax.is_punct(j, "("):
                continue
            node = syntax.parse_expression(i, syntax.match[j] + 1)
            if isinstance(node, DartCall) and (name == "GoRouter" or node.named("routes") or node.named("routerConfig")):
                return node
    return None


# =============================================================================
# Entry points
# =============================================================================


def parse_routes(text: str, framework: str) -> RouteSchema:
    """Extract the route tree from a whole source file.

    Raises ``SourceSyntaxError`` on malformed input and ``ValueError`` for
    an unknown framework. A file with no router yields an empty schema.
    """
    if framework == FRAMEWORK_COMPONENT_MODEL:
        src = TsxSource(text)
        src.check_syntax()
        guards = find_jsx_guards(src)
        for node in walk_nodes(src.root):
            if is_jsx(node) and jsx_tag_name(src, node) in ROUTER_TAGS:
                return routes_from_jsx(src, node, guards)
        return RouteSchema(routes=(), guards=guards)

    if framework == FRAMEWORK_WIDGET_TREE:
        syntax = DartSyntax(text)
        declarations = syntax.split_members(0, len(syntax))
        call = _find_dart_router(syntax)
        if call is None:
            return RouteSchema(routes=())
        schema, _ = routes_from_dart(syntax, call, declarations)
        return schema

    raise ValueError(f"Unsupported framework: {framework}")


def parse_routes_result(text: str, framework: str, file_path: str = "<memory>") -> Result[RouteSchema]:
    if framework not in SUPPORTED_FRAMEWORKS:
        return Result.failure(ParseError(f"unsupported framework: {framework}", 1, 1, file_path))
    try:
        schema = parse_routes(text, framework)
    except SourceSyntaxError as e:
        return Result.failure(e.to_error(file_path))
    return Result.success(schema, list(schema.warnings))


def effective_guards(schema: RouteSchema, route: Route) -> List[NavigationGuard]:
    """Before-guards that run for ``route``, in execution order."""
    return guards_for_route(schema.guards, route, GuardType.BEFORE)
