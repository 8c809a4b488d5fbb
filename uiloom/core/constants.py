"""Shared constants for uiloom.

This module contains constants that are used across multiple modules
to avoid duplication and ensure consistency.
"""

# =============================================================================
# Framework Tags
# =============================================================================

# JSX-style component model (function/class components, hooks, markup-in-code)
FRAMEWORK_COMPONENT_MODEL = "componentModel"

# Declarative widget tree (nested constructor calls, explicit rebuild)
FRAMEWORK_WIDGET_TREE = "widgetTree"

SUPPORTED_FRAMEWORKS = (FRAMEWORK_COMPONENT_MODEL, FRAMEWORK_WIDGET_TREE)

# =============================================================================
# IR
# =============================================================================

IR_VERSION = "1.0.0"

# Widget type of the explicit placeholder for unmapped tags
UNKNOWN_WIDGET = "unknown"

# Props accepted on every mapped widget without a table entry
COMMON_PROPS = frozenset({"key", "testID", "style", "ref"})

# Marker used by both generators so a placeholder survives a round trip
UNMAPPED_ATTRIBUTE = "data-unmapped"
UNMAPPED_COMMENT_PREFIX = "unmapped widget:"

DEFAULT_COMPONENT_NAME = "GeneratedComponent"

# =============================================================================
# Navigation
# =============================================================================

ROOT_ROUTE_NAME = "home"
FALLBACK_ROUTE_NAME = "route"
UNAUTHORIZED_ROUTE = "/unauthorized"

# =============================================================================
# File Extensions
# =============================================================================

SOURCE_EXTENSIONS = {
    ".tsx": FRAMEWORK_COMPONENT_MODEL,
    ".jsx": FRAMEWORK_COMPONENT_MODEL,
    ".ts": FRAMEWORK_COMPONENT_MODEL,
    ".js": FRAMEWORK_COMPONENT_MODEL,
    ".dart": FRAMEWORK_WIDGET_TREE,
}

# Prefix for source kept as a comment when it cannot be carried across
UNCONVERTED_PREFIX = "Unconverted:"

# Root metadata flag: the root's only child is markup held as one expression
MARKUP_EXPRESSION_KEY = "markupExpression"

# Mapping target for a prop that becomes the widget's text child
TEXT_CHILD_TARGET = "#text"
