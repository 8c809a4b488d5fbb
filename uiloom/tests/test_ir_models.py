"""Tests for the IR data model, validation and the schema form."""

import pytest
from uiloom.core.constants import FRAMEWORK_COMPONENT_MODEL, UNKNOWN_WIDGET
from uiloom.core.ir.errors import Result, ResultStatus, ValidationErrorKind
from uiloom.core.ir.models import (
    AnimationSpec,
    DocumentMetadata,
    Element,
    Expression,
    ExpressionSlot,
    IRDocument,
    Literal,
    LiteralKind,
    PropertyTween,
    StateBinding,
    StatePattern,
    StateTransition,
    TextLiteral,
    literal,
    node_path,
    placeholder,
    replace_node,
    walk,
)
from uiloom.core.ir.serialization import from_schema, to_schema
from uiloom.core.ir.validator import validate


def _doc(root):
    return IRDocument(
        metadata=DocumentMetadata(source_framework=FRAMEWORK_COMPONENT_MODEL, generated_at=0.0),
        root=root,
    )


COUNTER_TREE = Element(
    widget_type="View",
    props={"padding": literal(16)},
    children=(
        Element(widget_type="Text", children=(TextLiteral("Count: "), ExpressionSlot("count"))),
        Element(
            widget_type="Button",
            props={"onPress": Expression("() => setCount(count + 1)")},
            children=(TextLiteral("Inc"),),
        ),
    ),
    state_bindings=(
        StateBinding(
            pattern=StatePattern.LOCAL,
            name="count",
            initial_value=literal(0),
            setter="setCount",
            source_idiom="useState",
        ),
    ),
)


# =========================================================================
# Literals
# =========================================================================


class TestLiteral:
    @pytest.mark.parametrize("value,kind", [
        ("hi", LiteralKind.STRING),
        (16, LiteralKind.NUMBER),
        (1.5, LiteralKind.NUMBER),
        (True, LiteralKind.BOOLEAN),
        (None, LiteralKind.NULL),
        ([1, 2], LiteralKind.ARRAY),
        ({"a": 1}, LiteralKind.OBJECT),
    ])
    def test_kind_follows_value(self, value, kind):
        assert literal(value).kind is kind

    def test_bool_is_not_a_number(self):
        assert literal(False).kind is LiteralKind.BOOLEAN

    def test_tuple_becomes_array(self):
        assert literal((1, 2)) == Literal(LiteralKind.ARRAY, [1, 2])

    def test_rejects_non_constants(self):
        with pytest.raises(TypeError):
            literal(object())


# =========================================================================
# Traversal
# =========================================================================


class TestTraversal:
    def test_walk_is_depth_first_with_paths(self):
        paths = [path for path, _ in walk(COUNTER_TREE)]
        assert paths == [
            "root",
            "root.children[0]",
            "root.children[0].children[0]",
            "root.children[0].children[1]",
            "root.children[1]",
            "root.children[1].children[0]",
        ]

    def test_node_path(self):
        assert node_path() == "root"
        assert node_path(1, 0) == "root.children[1].children[0]"

    def test_replace_node_returns_a_new_tree(self):
        updated = replace_node(COUNTER_TREE, node_path(1, 0), TextLiteral("Add"))
        assert updated.children[1].children[0] == TextLiteral("Add")
        assert COUNTER_TREE.children[1].children[0] == TextLiteral("Inc")

    def test_placeholder_keeps_original_type(self):
        node = placeholder("MyChart", {"data": Expression("points")})
        assert node.widget_type == UNKNOWN_WIDGET
        assert node.original_type == "MyChart"
        assert node.is_placeholder


# =========================================================================
# Validation
# =========================================================================


class TestValidator:
    def test_valid_document(self):
        result = validate(_doc(COUNTER_TREE))
        assert result.ok
        assert result.status is ResultStatus.SUCCESS

    def test_unknown_widget_is_a_warning(self):
        result = validate(_doc(Element(widget_type="View", children=(placeholder("Chart"),))))
        assert result.ok
        assert [w.kind for w in result.warnings] == [ValidationErrorKind.UNKNOWN_WIDGET]
        assert result.warnings[0].path == "root.children[0]"

    def test_unregistered_widget_type_is_a_warning(self):
        result = validate(_doc(Element(widget_type="Carousel")))
        assert result.ok
        assert result.warnings[0].kind is ValidationErrorKind.UNKNOWN_WIDGET

    def test_unresolved_prop_is_a_warning(self):
        result = validate(_doc(Element(widget_type="View", props={"elevation": literal(2)})))
        assert result.ok
        assert result.warnings[0].kind is ValidationErrorKind.UNRESOLVED_PROP
        assert result.warnings[0].path == "root.props.elevation"

    def test_leaf_with_children_is_structural(self):
        root = Element(widget_type="Image", children=(Element(widget_type="Text"),))
        result = validate(_doc(root))
        assert not result.ok
        assert result.errors[0].kind is ValidationErrorKind.STRUCTURAL

    def test_mismatched_literal_kind_is_structural(self):
        root = Element(widget_type="View", props={"width": Literal(LiteralKind.NUMBER, "wide")})
        result = validate(_doc(root))
        assert not result.ok

    def test_untagged_prop_is_structural(self):
        root = Element(widget_type="View", props={"width": 100})
        assert not validate(_doc(root)).ok

    def test_shared_node_is_structural(self):
        shared = Element(widget_type="Text", children=(TextLiteral("x"),))
        root = Element(widget_type="View", children=(shared, shared))
        assert not validate(_doc(root)).ok

    def test_missing_root(self):
        result = validate(IRDocument(metadata=DocumentMetadata(FRAMEWORK_COMPONENT_MODEL), root=None))
        assert result.status is ResultStatus.FAILURE


# =========================================================================
# Schema form
# =========================================================================


class TestSchema:
    def test_schema_is_json_shaped(self):
        import json

        data = to_schema(_doc(COUNTER_TREE))
        assert json.loads(json.dumps(data)) == data

    def test_schema_round_trip(self):
        root = Element(
            widget_type="Text",
            children=(TextLiteral("hi"),),
            animation_spec=AnimationSpec(
                tweens=(PropertyTween("opacity", 0, 1),), duration_ms=500,
            ),
            state_bindings=(
                StateBinding(
                    pattern=StatePattern.REDUCER,
                    name="state",
                    initial_value=literal({"n": 0}),
                    transitions=(StateTransition("increment", "state = state + 1"),),
                    setter="dispatch",
                ),
            ),
        )
        doc = _doc(root)
        assert from_schema(to_schema(doc)) == doc


class TestResult:
    def test_unwrap_raises_on_failure(self):
        with pytest.raises(ValueError):
            Result.failure("boom").unwrap()

    def test_warnings_mark_status(self):
        assert Result.success(1, ["w"]).status is ResultStatus.SUCCESS_WITH_WARNINGS
