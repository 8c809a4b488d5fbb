"""Route naming and path utilities shared by both route dialects."""

import re
from typing import Dict, Iterable, List, Optional, Tuple
from urllib.parse import parse_qsl, urlencode

from ..constants import FALLBACK_ROUTE_NAME, ROOT_ROUTE_NAME
from .models import Route, RouteMatch, RouteParam

_WORD_SPLIT_RE = re.compile(r"[^0-9A-Za-z]+")


def _segments(path: str) -> List[str]:
    return [s for s in path.split("/") if s]


def _is_param(segment: str) -> bool:
    return segment.startswith(":") or segment.startswith("*")


def derive_route_name(path: str) -> str:
    """Derive a camelCase route name from a path pattern.

    ``/users/:id`` -> ``users``, ``/user-profile/settings`` ->
    ``userProfileSettings``, ``/`` -> ``home``, ``/:id`` -> ``route``.
    """
    segments = _segments(path.split("?", 1)[0])
    if not segments:
        return ROOT_ROUTE_NAME

    words: List[str] = []
    for segment in segments:
        if _is_param(segment):
            continue
        words.extend(w for w in _WORD_SPLIT_RE.split(segment) if w)
    if not words:
        return FALLBACK_ROUTE_NAME

    name = words[0][0].lower() + words[0][1:]
    name += "".join(w[0].upper() + w[1:] for w in words[1:])
    if name[0].isdigit():
        name = FALLBACK_ROUTE_NAME + name[0].upper() + name[1:]
    return name


def extract_parameters(path: str) -> Tuple[RouteParam, ...]:
    """Path parameters: ``:id`` is required, ``*`` / ``*rest`` optional."""
    params: List[RouteParam] = []
    for segment in _segments(path):
        if segment.startswith(":"):
            name = segment[1:]
            optional = name.endswith("?")
            params.append(RouteParam(name.rstrip("?"), "string", not optional))
        elif segment.startswith("*"):
            params.append(RouteParam(segment[1:] or "wildcard", "string", False))
    return tuple(params)


def normalize_path(path: str) -> str:
    """Single leading slash, no trailing slash, no duplicate separators."""
    return "/" + "/".join(_segments(path))


def join_paths(parent: str, child: str) -> str:
    if child.startswith("/"):
        return normalize_path(child)
    return normalize_path(f"{parent}/{child}")


def _pattern_regex(pattern: str) -> Tuple["re.Pattern[str]", List[str]]:
    names: List[str] = []
    regex = "^"
    for segment in _segments(pattern):
        if segment.startswith(":"):
            name = segment[1:]
            if name.endswith("?"):
                names.append(name[:-1])
                regex += r"(?:/([^/]+))?"
            else:
                names.append(name)
                regex += r"/([^/]+)"
        elif segment.startswith("*"):
            names.append(segment[1:] or "wildcard")
            regex += r"(?:/(.*))?"
        else:
            regex += "/" + re.escape(segment)
    return re.compile(regex + "/?$"), names


def match_path(pattern: str, url: str) -> Optional[Dict[str, str]]:
    """Return the parameters ``url`` binds in ``pattern``, or ``None``."""
    regex, names = _pattern_regex(pattern)
    path = url.split("?", 1)[0] or "/"
    match = regex.match("" if path == "/" else path)
    if match is None:
        return None
    return {name: value for name, value in zip(names, match.groups()) if value is not None}


def parse_query(url: str) -> Dict[str, str]:
    if "?" not in url:
        return {}
    return dict(parse_qsl(url.split("?", 1)[1], keep_blank_values=True))


def _score(pattern: str) -> int:
    score = 0
    for segment in _segments(pattern):
        if segment.startswith(":"):
            score += 5
        elif segment.startswith("*"):
            score += 1
        else:
            score += 10
    return score


def find_matching_route(routes: Iterable[Route], url: str) -> Optional[RouteMatch]:
    """Best match for ``url``; static segments outrank parameters."""
    best: Optional[RouteMatch] = None
    for route in routes:
        params = match_path(route.path, url)
        if params is None:
            continue
        candidate = RouteMatch(route, params, parse_query(url), _score(route.path))
        if best is None or candidate.score > best.score:
            best = candidate
    return best


def build_path(pattern: str, params: Dict[str, object], query: Optional[Dict[str, object]] = None) -> str:
    """Fill a path pattern with parameter values."""
    parts: List[str] = []
    for segment in _segments(pattern):
        if _is_param(segment):
            name = segment[1:].rstrip("?") or "wildcard"
            if name in params:
                parts.append(str(params[name]))
            elif segment.startswith(":") and not segment.endswith("?"):
                raise KeyError(f"Missing required route parameter '{name}'")
        else:
            parts.append(segment)
    path = "/" + "/".join(parts)
    if query:
        path += "?" + urlencode({k: str(v) for k, v in query.items()})
    return path
