"""Route schema data models.

A ``RouteSchema`` is independent of the main IR tree. Parsers attach one
to the element that held the route tree under ``metadata["routes"]``.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class TransitionType(str, Enum):
    FADE = "fade"
    SLIDE = "slide"
    SLIDE_LEFT = "slideLeft"
    SLIDE_RIGHT = "slideRight"
    SLIDE_UP = "slideUp"
    SLIDE_DOWN = "slideDown"
    SCALE = "scale"
    PLATFORM_DEFAULT = "platformDefault"
    NONE = "none"

    @classmethod
    def parse(cls, name: Optional[str]) -> "TransitionType":
        """Map an identifier onto the enum; unknown names fall back."""
        for member in cls:
            if member.value == name:
                return member
        return cls.PLATFORM_DEFAULT


class GuardType(str, Enum):
    BEFORE = "before"
    AFTER = "after"


@dataclass(frozen=True)
class RouteParam:
    name: str
    type: str = "string"
    required: bool = True


@dataclass(frozen=True)
class TransitionConfig:
    type: TransitionType = TransitionType.PLATFORM_DEFAULT
    duration: int = 300
    easing: str = "easeInOut"


@dataclass(frozen=True)
class NavigationGuard:
    """A named check run around a navigation.

    ``handler`` is source text of a callable taking ``(to, from)`` and
    returning a truthy value to allow the navigation.
    """
    name: str
    handler: str
    type: GuardType = GuardType.BEFORE
    routes: Tuple[str, ...] = ()
    priority: int = 0


@dataclass(frozen=True)
class Route:
    name: str
    path: str
    component: str
    params: Tuple[RouteParam, ...] = ()
    children: Tuple["Route", ...] = ()
    meta: Dict[str, Any] = field(default_factory=dict)
    transition: Optional[TransitionConfig] = None
    guards: Tuple[str, ...] = ()


@dataclass(frozen=True)
class RouteSchema:
    routes: Tuple[Route, ...]
    initial_route: str = "/"
    guards: Tuple[NavigationGuard, ...] = ()
    transition: Optional[TransitionConfig] = None
    warnings: Tuple[str, ...] = ()

    def flatten(self) -> List[Route]:
        """All routes, parents before children."""
        out: List[Route] = []

        def visit(routes: Tuple[Route, ...]) -> None:
            for route in routes:
                out.append(route)
                visit(route.children)

        visit(self.routes)
        return out


@dataclass(frozen=True)
class RouteMatch:
    route: Route
    params: Dict[str, str]
    query: Dict[str, str]
    score: int
