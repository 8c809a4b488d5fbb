"""Tests for route naming, parsing, guard ordering and route emission."""

import pytest
from uiloom.core.constants import FRAMEWORK_COMPONENT_MODEL, FRAMEWORK_WIDGET_TREE
from uiloom.core.ir.errors import ResultStatus
from uiloom.core.navigation import (
    GuardChain,
    GuardType,
    NavigationGuard,
    Route,
    RouteParam,
    RouteSchema,
    TransitionConfig,
    TransitionType,
    build_path,
    derive_route_name,
    emit_routes,
    extract_parameters,
    find_matching_route,
    match_path,
    order_guards,
    parse_routes,
    parse_routes_result,
)


# =========================================================================
# Sample route sources
# =========================================================================

REACT_ROUTER_SOURCE = """\
import { BrowserRouter, Routes, Route } from "react-router-dom";

export default function App() {
  return (
    <BrowserRouter>
      <Routes>
        <Route path="/" element={<Home />} />
        <Route path="/users/:id" element={<UserDetail />} />
      </Routes>
    </BrowserRouter>
  );
}
"""

NESTED_ROUTER_SOURCE = """\
export default function App() {
  return (
    <BrowserRouter>
      <Routes>
        <Route path="/users" element={<Users />}>
          <Route path=":id" element={<UserDetail />} />
        </Route>
      </Routes>
    </BrowserRouter>
  );
}
"""

GUARDED_ROUTER_SOURCE = """\
const routeGuards = [
  { name: 'auth', type: 'before', handler: isLoggedIn, priority: 10 },
  { name: 'admin', type: 'before', handler: isAdmin, routes: ['/admin'], priority: 100 },
];

export default function App() {
  return (
    <MemoryRouter initialEntries={["/admin"]}>
      <Routes>
        <Route path="/admin" element={<Admin />} handle={{ transition: "fade" }} />
      </Routes>
    </MemoryRouter>
  );
}
"""

MATERIAL_APP_SOURCE = """\
import 'package:flutter/material.dart';

class App extends StatelessWidget {
  const App({super.key});

  @override
  Widget build(BuildContext context) {
    return MaterialApp(
      routes: {
        '/': (context) => HomePage(),
        '/users/:id': (context) => UserDetail(),
      },
    );
  }
}
"""

GO_ROUTER_SOURCE = """\
final router = GoRouter(
  initialLocation: '/',
  routes: [
    GoRoute(
      path: '/',
      builder: (context, state) => HomePage(),
      routes: [
        GoRoute(path: 'settings', name: 'prefs', builder: (context, state) => Settings()),
      ],
    ),
  ],
);
"""


# =========================================================================
# Naming and paths
# =========================================================================


class TestRouteNaming:
    @pytest.mark.parametrize("path,name", [
        ("/users/:id", "users"),
        ("/", "home"),
        ("", "home"),
        ("/user-profile/settings", "userProfileSettings"),
        ("/:id", "route"),
        ("/404", "route404"),
        ("/search?q=x", "search"),
    ])
    def test_derive_route_name(self, path, name):
        assert derive_route_name(path) == name

    def test_extract_parameters(self):
        assert extract_parameters("/users/:id/posts/:postId?") == (
            RouteParam("id", "string", True),
            RouteParam("postId", "string", False),
        )

    def test_wildcard_parameter(self):
        assert extract_parameters("/files/*") == (RouteParam("wildcard", "string", False),)

    def test_match_path(self):
        assert match_path("/users/:id", "/users/42") == {"id": "42"}
        assert match_path("/users/:id", "/users") is None
        assert match_path("/", "/") == {}

    def test_static_segments_win(self):
        routes = [
            Route(name="user", path="/users/:id", component="UserDetail"),
            Route(name="usersNew", path="/users/new", component="NewUser"),
        ]
        match = find_matching_route(routes, "/users/new?tab=1")
        assert match.route.name == "usersNew"
        assert match.query == {"tab": "1"}

    def test_build_path(self):
        assert build_path("/users/:id", {"id": 7}, {"tab": "posts"}) == "/users/7?tab=posts"
        with pytest.raises(KeyError):
            build_path("/users/:id", {})


# =========================================================================
# Guards
# =========================================================================


def _guard(name, priority, handler=None):
    return NavigationGuard(name=name, handler=handler or name, priority=priority)


class TestGuards:
    def test_descending_priority(self):
        guards = [_guard("a", 10), _guard("b", 100), _guard("c", 50)]
        assert [g.priority for g in order_guards(guards)] == [100, 50, 10]

    def test_ties_keep_declaration_order(self):
        guards = [_guard("first", 5), _guard("second", 5), _guard("top", 9)]
        assert [g.name for g in order_guards(guards)] == ["top", "first", "second"]

    def test_chain_stops_at_first_rejection(self):
        calls = []

        def allow(to, from_):
            calls.append("allow")
            return True

        def deny(to, from_):
            calls.append("deny")
            return False

        chain = GuardChain(
            [_guard("low", 1, "allow"), _guard("high", 10, "deny")],
            unauthorized_route="/login",
        )
        outcome = chain.run({"allow": allow, "deny": deny}, "/admin")
        assert not outcome.allowed
        assert outcome.rejected_by == "high"
        assert outcome.redirect == "/login"
        assert calls == ["deny"]

    def test_chain_allows(self):
        chain = GuardChain([_guard("ok", 1)], unauthorized_route="/login")
        outcome = chain.run({"ok": lambda to, from_: True}, "/")
        assert outcome.allowed
        assert outcome.executed == ["ok"]

    def test_missing_handler_rejects(self):
        outcome = GuardChain([_guard("ghost", 1)]).run({}, "/")
        assert not outcome.allowed
        assert outcome.redirect == "/unauthorized"


# =========================================================================
# Parsing
# =========================================================================


class TestParseRoutes:
    def test_react_router_routes(self):
        schema = parse_routes(REACT_ROUTER_SOURCE, FRAMEWORK_COMPONENT_MODEL)
        assert [r.name for r in schema.routes] == ["home", "users"]
        assert schema.routes[1].params == (RouteParam("id", "string", True),)
        assert schema.routes[1].component == "UserDetail"
        assert schema.warnings == ()

    def test_material_app_routes(self):
        schema = parse_routes(MATERIAL_APP_SOURCE, FRAMEWORK_WIDGET_TREE)
        assert [r.path for r in schema.routes] == ["/", "/users/:id"]
        assert schema.routes[1].params == (RouteParam("id", "string", True),)
        assert schema.routes[0].component == "HomePage"

    def test_go_router_nested_routes(self):
        schema = parse_routes(GO_ROUTER_SOURCE, FRAMEWORK_WIDGET_TREE)
        home = schema.routes[0]
        assert home.name == "home"
        assert home.children[0].name == "prefs"
        assert home.children[0].path == "settings"
        assert [r.name for r in schema.flatten()] == ["home", "prefs"]

    def test_name_collisions_are_warnings(self):
        schema = parse_routes(NESTED_ROUTER_SOURCE, FRAMEWORK_COMPONENT_MODEL)
        assert [r.name for r in schema.flatten()] == ["users", "users"]
        assert len(schema.warnings) == 1
        assert "users" in schema.warnings[0]

    def test_guards_and_transition(self):
        schema = parse_routes(GUARDED_ROUTER_SOURCE, FRAMEWORK_COMPONENT_MODEL)
        assert schema.initial_route == "/admin"
        assert [g.name for g in order_guards(schema.guards)] == ["admin", "auth"]
        assert schema.guards[1].routes == ("/admin",)
        assert schema.routes[0].transition.type is TransitionType.FADE

    def test_no_router(self):
        schema = parse_routes("const x = 1;", FRAMEWORK_COMPONENT_MODEL)
        assert schema.routes == ()

    def test_syntax_error_result(self):
        result = parse_routes_result("<Routes><Route path=", FRAMEWORK_COMPONENT_MODEL)
        assert result.status is ResultStatus.FAILURE

    def test_unknown_framework(self):
        with pytest.raises(ValueError):
            parse_routes("", "vue")

    def test_unknown_framework_result(self):
        result = parse_routes_result("", "vue", "app.vue")
        assert result.status is ResultStatus.FAILURE
        assert result.errors[0].message == "unsupported framework: vue"
        assert result.errors[0].file_path == "app.vue"


# =========================================================================
# Emission
# =========================================================================


SCHEMA = RouteSchema(
    routes=(
        Route(name="home", path="/", component="Home"),
        Route(
            name="users",
            path="/users/:id",
            component="UserDetail",
            params=(RouteParam("id"),),
            transition=TransitionConfig(TransitionType.FADE, 200),
        ),
    ),
    guards=(NavigationGuard(name="auth", handler="isLoggedIn", routes=("users",), priority=5),),
)


class TestEmitRoutes:
    def test_react_router_markup(self):
        frag = emit_routes(SCHEMA, FRAMEWORK_COMPONENT_MODEL)
        assert frag.markup.startswith("<BrowserRouter>")
        assert '<Route path="/" element={<Home />} />' in frag.markup
        assert '<GuardedRoute guards={["auth"]}><UserDetail /></GuardedRoute>' in frag.markup
        assert {"Navigate", "useLocation", "Route", "Routes"} <= frag.imports["react-router-dom"]
        assert frag.declarations[0].startswith("const routeGuards = [")

    def test_go_router_markup(self):
        frag = emit_routes(SCHEMA, FRAMEWORK_WIDGET_TREE)
        assert frag.markup.startswith("MaterialApp.router(")
        assert "name: 'users'," in frag.markup
        assert "FadeTransition" in frag.markup
        assert "redirect: (context, state) => runGuards(const ['auth'], state)," in frag.markup
        assert "package:go_router/go_router.dart" in frag.imports

    def test_round_trip_through_go_router(self):
        frag = emit_routes(SCHEMA, FRAMEWORK_WIDGET_TREE)
        source = "final app = " + frag.markup + ";\n" + "\n\n".join(frag.declarations)
        schema = parse_routes(source, FRAMEWORK_WIDGET_TREE)
        assert [r.name for r in schema.routes] == ["home", "users"]
        assert schema.routes[1].transition == TransitionConfig(TransitionType.FADE, 200)
        assert schema.guards[0].handler == "isLoggedIn"
        assert schema.guards[0].type is GuardType.BEFORE

    def test_unknown_framework(self):
        with pytest.raises(ValueError):
            emit_routes(SCHEMA, "vue")
