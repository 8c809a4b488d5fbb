"""Guard ordering and execution.

Generated router code in both ecosystems follows the rule implemented
here: guards run in descending priority (ties keep declaration order),
one at a time, and the first rejection redirects to the unauthorized
route without running the rest.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Mapping, Optional, Sequence

from ..config import get_settings
from .models import GuardType, NavigationGuard, Route

logger = logging.getLogger(__name__)

GuardHandler = Callable[[str, str], bool]


def order_guards(guards: Iterable[NavigationGuard]) -> List[NavigationGuard]:
    """Stable sort on descending priority."""
    return sorted(guards, key=lambda g: -g.priority)


def guards_for_route(
    guards: Iterable[NavigationGuard], route: Route, guard_type: GuardType = GuardType.BEFORE
) -> List[NavigationGuard]:
    """Ordered guards of ``guard_type`` that apply to ``route``.

    A guard applies when it names no routes, or names the route by name or
    path, or the route lists the guard explicitly.
    """
    applicable = [
        g for g in guards
        if g.type is guard_type and (
            not g.routes
            or route.name in g.routes
            or route.path in g.routes
            or g.name in route.guards
        )
    ]
    return order_guards(applicable)


@dataclass
class GuardOutcome:
    allowed: bool
    redirect: Optional[str] = None
    executed: List[str] = field(default_factory=list)
    rejected_by: Optional[str] = None


class GuardChain:
    """Sequential guard runner for a fixed set of guards."""

    def __init__(self, guards: Sequence[NavigationGuard], unauthorized_route: Optional[str] = None):
        self.guards = order_guards(guards)
        self.unauthorized_route = (
            unauthorized_route or get_settings().converter.unauthorized_route
        )

    def run(self, handlers: Mapping[str, GuardHandler], to: str, from_: str = "/") -> GuardOutcome:
        """Run guards for a navigation from ``from_`` to ``to``.

        ``handlers`` maps a guard's ``handler`` name to a callable. A guard
        with no registered handler is treated as a rejection.
        """
        outcome = GuardOutcome(allowed=True)
        for guard in self.guards:
            outcome.executed.append(guard.name)
            handler = handlers.get(guard.handler)
            if handler is None:
                logger.warning("No handler registered for guard %s (%s)", guard.name, guard.handler)
                allowed = False
            else:
                allowed = bool(handler(to, from_))

            if not allowed:
                logger.debug("Guard %s rejected navigation to %s", guard.name, to)
                outcome.allowed = False
                outcome.rejected_by = guard.name
                outcome.redirect = self.unauthorized_route
                return outcome
        return outcome
