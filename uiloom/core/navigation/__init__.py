from .converter import RoutesFragment, emit_routes, generate_routes
from .guards import GuardChain, GuardOutcome, guards_for_route, order_guards
from .models import (
    GuardType,
    NavigationGuard,
    Route,
    RouteMatch,
    RouteParam,
    RouteSchema,
    TransitionConfig,
    TransitionType,
)
from .naming import (
    build_path,
    derive_route_name,
    extract_parameters,
    find_matching_route,
    match_path,
)
from .route_parser import parse_routes, parse_routes_result

__all__ = [
    "GuardChain",
    "GuardOutcome",
    "GuardType",
    "NavigationGuard",
    "Route",
    "RouteMatch",
    "RouteParam",
    "RouteSchema",
    "RoutesFragment",
    "TransitionConfig",
    "TransitionType",
    "build_path",
    "derive_route_name",
    "emit_routes",
    "extract_parameters",
    "find_matching_route",
    "generate_routes",
    "guards_for_route",
    "match_path",
    "order_guards",
    "parse_routes",
    "parse_routes_result",
]
