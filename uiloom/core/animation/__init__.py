from .converter import (
    EASING_TO_CURVE,
    generate_animation,
    lower_keyframes,
    parse_animation,
    parse_motion_props,
    parse_widget_wrappers,
)

__all__ = [
    "EASING_TO_CURVE",
    "generate_animation",
    "lower_keyframes",
    "parse_animation",
    "parse_motion_props",
    "parse_widget_wrappers",
]
