"""Route tree generation.

Emits a ``RouteSchema`` as a React Router tree with a ``GuardedRoute``
runner, or as a ``GoRouter`` configuration with page-transition builders
and a guard ``redirect``. Both runners apply guards in the order
``order_guards`` defines and stop at the first rejection.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from ..animation import converter as animation_converter
from ..config import get_settings
from ..constants import FRAMEWORK_COMPONENT_MODEL, FRAMEWORK_WIDGET_TREE
from ..generators.literals import dart_string, js_string, js_value
from .guards import guards_for_route
from .models import GuardType, Route, RouteSchema, TransitionConfig, TransitionType
from .route_parser import GUARD_WRAPPER, GUARDS_DECLARATION

logger = logging.getLogger(__name__)

ROUTER_MODULE = "react-router-dom"
GO_ROUTER_IMPORT = "package:go_router/go_router.dart"
COLLECTION_IMPORT = "package:collection/collection.dart"

_IDENT_RE = re.compile(r"^[A-Za-z_$][\w$.]*$")
_LEADING_TAG_RE = re.compile(r"^<\s*([A-Za-z_$][\w$.]*)")
_LEADING_CALL_RE = re.compile(r"^(?:const\s+|new\s+)?([A-Z][\w$.]*)\s*\(")

_SLIDE_BEGIN = {
    TransitionType.SLIDE: "Offset(0.3, 0.0)",
    TransitionType.SLIDE_LEFT: "Offset(1.0, 0.0)",
    TransitionType.SLIDE_RIGHT: "Offset(-1.0, 0.0)",
    TransitionType.SLIDE_UP: "Offset(0.0, 1.0)",
    TransitionType.SLIDE_DOWN: "Offset(0.0, -1.0)",
}


@dataclass
class RoutesFragment:
    """Generated route tree plus what it needs around it."""

    markup: str
    declarations: List[str] = field(default_factory=list)
    imports: Dict[str, Set[str]] = field(default_factory=dict)


def _indent(text: str, prefix: str) -> str:
    return "\n".join(prefix + line if line else line for line in text.split("\n"))


def _effective_transition(schema: RouteSchema, route: Route) -> Optional[TransitionConfig]:
    return route.transition or schema.transition


def _guard_names(schema: RouteSchema, route: Route) -> List[str]:
    return [g.name for g in guards_for_route(schema.guards, route, GuardType.BEFORE)]


# =============================================================================
# Component model
# =============================================================================


def _jsx_element(component: str, warnings: Optional[List[str]]) -> str:
    if not component:
        return "null"
    if _IDENT_RE.match(component):
        return f"<{component} />"
    if component.startswith("<"):
        return component
    m = _LEADING_CALL_RE.match(component)
    if m:
        if warnings is not None:
            warnings.append(f"route component '{component}' reduced to <{m.group(1)} />")
        return f"<{m.group(1)} />"
    return component


def _transition_object(transition: TransitionConfig) -> Dict[str, Any]:
    return {
        "type": transition.type.value,
        "duration": transition.duration,
        "easing": transition.easing,
    }


def _jsx_route(schema: RouteSchema, route: Route, indent: str, warnings: Optional[List[str]]) -> str:
    element = _jsx_element(route.component, warnings)
    guards = _guard_names(schema, route)
    if guards:
        element = f"<{GUARD_WRAPPER} guards={{{js_value(guards)}}}>{element}</{GUARD_WRAPPER}>"

    attrs = []
    if route.path:
        attrs.append(f"path={js_string(route.path)}")
    elif not route.children:
        attrs.append("index")
    attrs.append(f"element={{{element}}}")

    handle = dict(route.meta)
    transition = _effective_transition(schema, route)
    if transition is not None:
        handle["transition"] = _transition_object(transition)
    if handle:
        attrs.append(f"handle={{{js_value(handle)}}}")

    head = f"<Route {' '.join(attrs)}"
    if not route.children:
        return head + " />"
    inner = "\n".join(_indent(_jsx_route(schema, c, indent, warnings), indent) for c in route.children)
    return f"{head}>\n{inner}\n</Route>"


def _jsx_guard_declarations(schema: RouteSchema, indent: str) -> List[str]:
    entries = []
    for guard in schema.guards:
        items = [
            f"name: {js_string(guard.name)}",
            f"type: {js_string(guard.type.value)}",
            f"handler: {guard.handler or '() => true'}",
        ]
        if guard.routes:
            items.append(f"routes: {js_value(list(guard.routes))}")
        items.append(f"priority: {guard.priority}")
        entries.append(f"{indent}{{ {', '.join(items)} }},")
    guards = "\n".join([f"const {GUARDS_DECLARATION} = ["] + entries + ["];"])

    unauthorized = get_settings().converter.unauthorized_route
    i1, i2, i3 = indent, indent * 2, indent * 3
    runner = "\n".join([
        f"function {GUARD_WRAPPER}({{ guards, children }}) {{",
        f"{i1}const location = useLocation();",
        f"{i1}const active = {GUARDS_DECLARATION}",
        f"{i2}.filter((guard) => guard.type === 'before' && guards.includes(guard.name))",
        f"{i2}.sort((a, b) => b.priority - a.priority);",
        f"{i1}for (const guard of active) {{",
        f"{i2}if (!guard.handler(location.pathname, null)) {{",
        f"{i3}return <Navigate to={js_string(unauthorized)} replace />;",
        f"{i2}}}",
        f"{i1}}}",
        f"{i1}return children;",
        "}",
    ])
    return [guards, runner]


def _emit_jsx(schema: RouteSchema, indent: str, warnings: Optional[List[str]]) -> RoutesFragment:
    names = {"Route", "Routes"}
    router = "BrowserRouter"
    router_attrs = ""
    if schema.initial_route not in ("", "/"):
        router = "MemoryRouter"
        router_attrs = f" initialEntries={{{js_value([schema.initial_route])}}}"
    names.add(router)

    routes = "\n".join(_indent(_jsx_route(schema, r, indent, warnings), indent * 2) for r in schema.routes)
    lines = [f"<{router}{router_attrs}>", f"{indent}<Routes>"]
    if routes:
        lines.append(routes)
    lines += [f"{indent}</Routes>", f"</{router}>"]

    frag = RoutesFragment("\n".join(lines))
    if schema.guards:
        names.update({"Navigate", "useLocation"})
        frag.declarations.extend(_jsx_guard_declarations(schema, indent))
    frag.imports[ROUTER_MODULE] = names
    return frag


# =============================================================================
# Widget tree
# =============================================================================


def _dart_widget(component: str, warnings: Optional[List[str]]) -> str:
    if not component:
        return "const SizedBox.shrink()"
    if _IDENT_RE.match(component):
        return f"{component}()"
    m = _LEADING_TAG_RE.match(component)
    if m:
        if warnings is not None:
            warnings.append(f"route component '{component}' reduced to {m.group(1)}()")
        return f"{m.group(1)}()"
    return component


def _transitions_builder(transition: TransitionConfig, indent: str) -> str:
    curve = f"Curves.{animation_converter.curve_name(transition.easing)}"
    animation = f"CurvedAnimation(parent: animation, curve: {curve})"
    if transition.type is TransitionType.FADE:
        body = f"FadeTransition(opacity: {animation}, child: child)"
    elif transition.type is TransitionType.SCALE:
        body = f"ScaleTransition(scale: {animation}, child: child)"
    else:
        begin = _SLIDE_BEGIN[transition.type]
        body = (
            f"SlideTransition(position: Tween<Offset>(begin: const {begin}, end: Offset.zero)"
            f".animate({animation}), child: child)"
        )
    return f"(context, animation, secondaryAnimation, child) =>\n{indent}{body}"


def _page_builder(transition: TransitionConfig, widget: str, indent: str) -> str:
    i1 = indent
    if transition.type is TransitionType.NONE:
        return f"pageBuilder: (context, state) => NoTransitionPage(key: state.pageKey, child: {widget}),"
    lines = [
        "pageBuilder: (context, state) => CustomTransitionPage(",
        f"{i1}key: state.pageKey,",
        f"{i1}child: {widget},",
        f"{i1}transitionDuration: const Duration(milliseconds: {transition.duration}),",
        f"{i1}transitionsBuilder: {_indent(_transitions_builder(transition, i1), i1).lstrip()},",
        "),",
    ]
    return "\n".join(lines)


def _go_route(schema: RouteSchema, route: Route, indent: str, warnings: Optional[List[str]]) -> str:
    widget = _dart_widget(route.component, warnings)
    body = [f"path: {dart_string(route.path)},", f"name: {dart_string(route.name)},"]

    transition = _effective_transition(schema, route)
    if transition is None or transition.type is TransitionType.PLATFORM_DEFAULT:
        body.append(f"builder: (context, state) => {widget},")
    else:
        body.append(_page_builder(transition, widget, indent))

    guards = _guard_names(schema, route)
    if guards:
        names = ", ".join(dart_string(n) for n in guards)
        body.append(f"redirect: (context, state) => runGuards(const [{names}], state),")
    if route.meta:
        logger.debug("Route %s metadata has no GoRoute equivalent", route.name)
        if warnings is not None:
            warnings.append(f"route '{route.name}' metadata dropped: {sorted(route.meta)}")

    if route.children:
        children = "\n".join(_indent(_go_route(schema, c, indent, warnings), indent) for c in route.children)
        body.append(f"routes: [\n{children}\n],")
    return "GoRoute(\n" + _indent("\n".join(body), indent) + "\n),"


def _go_router(schema: RouteSchema, indent: str, warnings: Optional[List[str]]) -> str:
    routes = "\n".join(_indent(_go_route(schema, r, indent, warnings), indent) for r in schema.routes)
    body = [f"initialLocation: {dart_string(schema.initial_route or '/')},", f"routes: [\n{routes}\n],"]
    return "GoRouter(\n" + _indent("\n".join(body), indent) + "\n)"


def _dart_guard_declarations(schema: RouteSchema, indent: str) -> List[str]:
    i1, i2, i3 = indent, indent * 2, indent * 3
    guard_class = "\n".join([
        "class NavigationGuard {",
        f"{i1}const NavigationGuard({{",
        f"{i2}required this.name,",
        f"{i2}required this.type,",
        f"{i2}required this.handler,",
        f"{i2}this.routes = const [],",
        f"{i2}this.priority = 0,",
        f"{i1}}});",
        "",
        f"{i1}final String name;",
        f"{i1}final GuardType type;",
        f"{i1}final bool Function(String to, String? from) handler;",
        f"{i1}final List<String> routes;",
        f"{i1}final int priority;",
        "}",
    ])
    guard_type = "enum GuardType { before, after }"

    entries = []
    for guard in schema.guards:
        args = [
            f"name: {dart_string(guard.name)}",
            f"type: GuardType.{guard.type.value}",
            f"handler: {guard.handler or '(to, from) => true'}",
        ]
        if guard.routes:
            args.append(f"routes: const [{', '.join(dart_string(r) for r in guard.routes)}]")
        args.append(f"priority: {guard.priority}")
        entries.append(f"{i1}NavigationGuard({', '.join(args)}),")
    guards = "\n".join([f"final {GUARDS_DECLARATION} = <NavigationGuard>["] + entries + ["];"])

    unauthorized = get_settings().converter.unauthorized_route
    runner = "\n".join([
        "String? runGuards(List<String> names, GoRouterState state) {",
        f"{i1}final active = {GUARDS_DECLARATION}",
        f"{i2}.where((guard) => guard.type == GuardType.before && names.contains(guard.name))",
        f"{i2}.toList();",
        f"{i1}mergeSort(active, compare: (a, b) => b.priority.compareTo(a.priority));",
        f"{i1}for (final guard in active) {{",
        f"{i2}if (!guard.handler(state.matchedLocation, null)) {{",
        f"{i3}return {dart_string(unauthorized)};",
        f"{i2}}}",
        f"{i1}}}",
        f"{i1}return null;",
        "}",
    ])
    return [guard_class, guard_type, guards, runner]


def _emit_dart(schema: RouteSchema, indent: str, warnings: Optional[List[str]]) -> RoutesFragment:
    router = _go_router(schema, indent, warnings)
    markup = "MaterialApp.router(\n" + _indent(f"routerConfig: {router},", indent) + "\n)"
    frag = RoutesFragment(markup, imports={GO_ROUTER_IMPORT: set()})
    if schema.guards:
        frag.declarations.extend(_dart_guard_declarations(schema, indent))
        frag.imports[COLLECTION_IMPORT] = set()
    return frag


# =============================================================================
# Entry points
# =============================================================================


def emit_routes(
    schema: RouteSchema,
    framework: str,
    indent: str = "  ",
    warnings: Optional[List[str]] = None,
) -> RoutesFragment:
    """Route tree markup, helper declarations and imports for ``framework``."""
    logger.debug("Emitting %d route(s) for %s", len(schema.flatten()), framework)
    if framework == FRAMEWORK_COMPONENT_MODEL:
        return _emit_jsx(schema, indent, warnings)
    if framework == FRAMEWORK_WIDGET_TREE:
        return _emit_dart(schema, indent, warnings)
    raise ValueError(f"Unsupported framework: {framework}")


def generate_routes(schema: RouteSchema, framework: str, indent: str = "  ") -> str:
    """A standalone router module for ``schema``."""
    frag = emit_routes(schema, framework, indent)
    if framework == FRAMEWORK_COMPONENT_MODEL:
        imports = [
            f"import {{ {', '.join(sorted(names))} }} from {js_string(module)};"
            for module, names in sorted(frag.imports.items())
        ]
        body = "\n".join([
            "export default function AppRouter() {",
            f"{indent}return (",
            _indent(frag.markup, indent * 2),
            f"{indent});",
            "}",
        ])
    else:
        modules = dict(frag.imports)
        modules.setdefault("package:flutter/material.dart", set())
        imports = [f"import {dart_string(m)};" for m in sorted(modules)]
        body = "final appRouter = " + _go_router(schema, indent, None) + ";"
    parts = ["\n".join(imports)] + frag.declarations + [body]
    return "\n\n".join(parts) + "\n"
