"""Tests for motion props, widget wrappers and keyframe lowering."""

import pytest
from uiloom.core.constants import FRAMEWORK_COMPONENT_MODEL, FRAMEWORK_WIDGET_TREE
from uiloom.core.ir.models import (
    AnimationSpec,
    Expression,
    GestureSpec,
    Keyframe,
    PropertyTween,
    TweenSegment,
    literal,
)
from uiloom.core.animation import converter
from uiloom.core.parsers.dart_syntax import parse_source


FADE = AnimationSpec(tweens=(PropertyTween("opacity", 0, 1),), duration_ms=500, easing="easeOut")

EXPECTED_FADE_BUILDER = """\
TweenAnimationBuilder<double>(
  tween: Tween<double>(begin: 0.0, end: 1.0),
  duration: const Duration(milliseconds: 500),
  curve: Curves.easeOut,
  builder: (context, value, child) => Opacity(opacity: value, child: child),
  child: Text('Hi'),
)"""


def _wrappers(text):
    syntax = parse_source(text)
    return converter.parse_widget_wrappers(syntax.parse_expression(0, len(syntax)))


class TestMotionProps:
    def test_simple_tween(self):
        spec = converter.parse_motion_props({
            "initial": literal({"opacity": 0}),
            "animate": literal({"opacity": 1}),
            "transition": literal({"duration": 0.5, "ease": "easeOut"}),
        })
        assert spec == FADE

    def test_non_constant_props_are_left_alone(self):
        assert converter.parse_motion_props({"animate": Expression("controls")}) is None

    def test_keyframes(self):
        spec = converter.parse_motion_props({
            "animate": literal({"scale": [1, 1.5, 1]}),
            "transition": literal({"times": [0, 0.2, 1], "repeat": True}),
        })
        (tween,) = spec.tweens
        assert [k.offset for k in tween.keyframes] == [0.0, 0.2, 1.0]
        assert (tween.begin, tween.end) == (1, 1)
        assert spec.repeat

    def test_gestures(self):
        spec = converter.parse_motion_props({"onTap": Expression("handleTap"), "drag": literal("x")})
        assert spec.tweens == ()
        assert spec.gestures == (GestureSpec("tap", "handleTap"), GestureSpec("drag", None, "x"))

    def test_split_motion_props(self):
        anim, rest = converter.split_motion_props({"animate": literal({}), "style": Expression("s")})
        assert list(anim) == ["animate"]
        assert list(rest) == ["style"]


class TestKeyframes:
    FRAMES = (Keyframe(0.0, 1), Keyframe(0.5, 2, "easeIn"), Keyframe(1.0, 1))

    def test_lower(self):
        assert converter.lower_keyframes(self.FRAMES) == (
            TweenSegment(1, 2, 50.0, "easeIn"),
            TweenSegment(2, 1, 50.0, "linear"),
        )

    def test_raise_is_the_inverse(self):
        assert converter.raise_segments(converter.lower_keyframes(self.FRAMES)) == self.FRAMES

    @pytest.mark.parametrize("easing,curve", [("easeInOut", "easeInOut"), ("backOut", "easeOutBack"), ("spring", "spring")])
    def test_curve_names(self, easing, curve):
        assert converter.curve_name(easing) == curve
        assert converter.easing_name(f"Curves.{curve}") == easing


class TestGeneration:
    def test_motion_wrapper(self):
        text = converter.generate_animation(FADE, FRAMEWORK_COMPONENT_MODEL, "<Text>Hi</Text>")
        assert text == (
            '<motion.div initial={{ opacity: 0 }} animate={{ opacity: 1 }} '
            'transition={{ duration: 0.5, ease: "easeOut" }}>\n'
            "  <Text>Hi</Text>\n"
            "</motion.div>"
        )

    def test_tween_builder(self):
        assert converter.generate_animation(FADE, FRAMEWORK_WIDGET_TREE, "Text('Hi')") == EXPECTED_FADE_BUILDER

    def test_builder_reads_back(self):
        spec, child = _wrappers(EXPECTED_FADE_BUILDER)
        assert spec == FADE
        assert child.text == "Text('Hi')"

    def test_delay_becomes_interval(self):
        spec = AnimationSpec(tweens=(PropertyTween("scale", 0.5, 1),), duration_ms=300, delay_ms=200)
        text = converter.generate_animation(spec, FRAMEWORK_WIDGET_TREE, "child")
        assert "curve: Interval(0.4, 1.0, curve: Curves.easeInOut)," in text
        parsed, _ = _wrappers(text)
        assert (parsed.duration_ms, parsed.delay_ms) == (300, 200)

    def test_keyframes_read_back(self):
        frames = (Keyframe(0.0, 1), Keyframe(0.5, 1.2), Keyframe(1.0, 1))
        spec = AnimationSpec(tweens=(PropertyTween("scale", 1, 1, frames),))
        text = converter.generate_animation(spec, FRAMEWORK_WIDGET_TREE, "child")
        assert "TweenSequence<double>([" in text
        parsed, _ = _wrappers(text)
        assert parsed.tweens[0].keyframes == frames

    def test_gesture_detector(self):
        spec = AnimationSpec(gestures=(GestureSpec("tap", "handleTap"), GestureSpec("drag", None, "x")))
        text = converter.generate_animation(spec, FRAMEWORK_WIDGET_TREE, "child")
        assert text == (
            "GestureDetector(\n"
            "  onTap: handleTap,\n"
            "  onHorizontalDragUpdate: (_) {},\n"
            "  child: child,\n"
            ")"
        )
        parsed, _ = _wrappers(text)
        assert parsed.gestures == (GestureSpec("tap", "handleTap"), GestureSpec("drag", None, "x"))

    def test_unsupported_property_is_dropped_with_warning(self):
        warnings = []
        spec = AnimationSpec(tweens=(PropertyTween("skew", 0, 10),))
        text = converter.generate_animation(spec, FRAMEWORK_WIDGET_TREE, "child", warnings=warnings)
        assert text == "child"
        assert "skew" in warnings[0]

    def test_implicit_animation_widget(self):
        spec, child = _wrappers(
            "AnimatedOpacity(opacity: 0.5, duration: const Duration(seconds: 1), child: Text('a'))"
        )
        assert spec.tweens == (PropertyTween("opacity", None, 0.5),)
        assert spec.duration_ms == 1000
