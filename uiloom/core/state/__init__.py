from .converter import (
    IDIOMS,
    StateFragment,
    WidgetStateScan,
    default_idiom,
    detect_component_state,
    detect_widget_state,
    expand,
    expand_all,
    normalize_mutation,
)

__all__ = [
    "IDIOMS",
    "StateFragment",
    "WidgetStateScan",
    "default_idiom",
    "detect_component_state",
    "detect_widget_state",
    "expand",
    "expand_all",
    "normalize_mutation",
]
