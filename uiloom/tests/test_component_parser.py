"""Tests for the component-model (TSX) parser."""

import pytest
from uiloom.core.constants import FRAMEWORK_COMPONENT_MODEL, MARKUP_EXPRESSION_KEY, UNKNOWN_WIDGET
from uiloom.core.ir.errors import ParseError, ResultStatus
from uiloom.core.ir.models import (
    Element,
    Expression,
    ExpressionSlot,
    StatePattern,
    StateTransition,
    TextLiteral,
    literal,
)
from uiloom.core.navigation import RouteSchema
from uiloom.core.parsers import detect_framework, parse, parse_component


# =========================================================================
# Sample TSX source fixtures
# =========================================================================

BUTTON_EXPRESSION = "<Button onClick={() => setCount(count+1)}>Inc</Button>"

COUNTER_SOURCE = """\
import { useState } from "react";
import { Button, Text, View } from "react-native";

export default function Counter() {
  const [count, setCount] = useState(0);
  return (
    <View style={{ padding: 16 }}>
      <Text>Count: {count}</Text>
      <Button onPress={() => setCount(count + 1)}>Inc</Button>
    </View>
  );
}
"""

CLASS_SOURCE = """\
class Counter extends React.Component {
  state = { count: 0 };

  increment = () => {
    this.setState({ count: this.state.count + 1 });
  };

  // Logs every render.
  log() {
    console.log(this.state.count);
  }

  render() {
    return <Button onPress={this.increment}>{this.state.count}</Button>;
  }
}
"""

DECLARATIONS_SOURCE = """\
import { Text } from "react-native";

// Formats a price.
function formatPrice(value) {
  return `$${value}`;
}

/* Standalone note. */

export const Price = ({ value }) => <Text>{formatPrice(value)}</Text>;
"""

PROPS_SOURCE = """\
export default function Card({ title, ...rest }) {
  return (
    <View {...rest} style={[styles.card, { margin: 4 }]} testID="card" hidden>
      <Text numberOfLines={2} style={{ fontSize: 18, fontWeight: "bold" }}>{title}</Text>
      <Image src="https://example.com/a.png" />
    </View>
  );
}
"""

TEXT_SOURCE = """\
export default function Notice() {
  return (
    <Text>
      Terms &amp; conditions
      apply {"here"}
    </Text>
  );
}
"""

FRAGMENT_SOURCE = """\
export default function Pair() {
  return (
    <>
      <Text>a</Text>
      <Text>b</Text>
    </>
  );
}
"""

UNMAPPED_SOURCE = """\
export default function Dashboard() {
  return (
    <View>
      <Chart data={points} />
      <div data-unmapped="Gauge">{/* unmapped widget: Gauge */}</div>
    </View>
  );
}
"""

ROUTER_SOURCE = """\
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

MOTION_SOURCE = """\
import { motion } from "framer-motion";

export default function FadeIn() {
  return (
    <motion.div initial={{ opacity: 0 }} animate={{ opacity: 1 }} transition={{ duration: 0.5 }}>
      <Text>Hello</Text>
    </motion.div>
  );
}
"""


CONDITIONAL_SOURCE = """\
export default function Gate({ ready }) {
  return ready ? <Home /> : <Spinner />;
}
"""

MISMATCHED_SOURCE = """\
export default function Card() {
  return (
    <View>
      <Text>hi</Text>
    </Views>
  );
}
"""


def _parse(text, file_path="<memory>"):
    result = parse_component(text, file_path)
    assert result.ok, result.errors
    return result.value


# =========================================================================
# Root selection and basic lowering
# =========================================================================


class TestBasicParsing:
    def test_expression_statement_root(self):
        root = _parse(BUTTON_EXPRESSION).root
        assert root.widget_type == "Button"
        assert root.props == {"onClick": Expression("() => setCount(count+1)")}
        assert root.children == (TextLiteral("Inc"),)

    def test_conditional_root_is_one_expression(self):
        doc = _parse(CONDITIONAL_SOURCE)
        assert doc.metadata.component_name == "Gate"
        assert doc.root.widget_type == "View"
        assert doc.root.children == (ExpressionSlot("ready ? <Home /> : <Spinner />"),)
        assert doc.root.metadata[MARKUP_EXPRESSION_KEY] is True

    def test_counter_component(self):
        doc = _parse(COUNTER_SOURCE)
        root = doc.root
        assert doc.metadata.component_name == "Counter"
        assert doc.metadata.source_framework == FRAMEWORK_COMPONENT_MODEL
        assert root.widget_type == "View"
        assert root.props == {"padding": literal(16)}
        text, button = root.children
        assert text.children == (TextLiteral("Count: "), ExpressionSlot("count"))
        assert button.props["onPress"] == Expression("() => setCount(count + 1)")

    def test_counter_state_binding(self):
        binding = _parse(COUNTER_SOURCE).root.state_bindings[0]
        assert binding.pattern is StatePattern.LOCAL
        assert binding.name == "count"
        assert binding.initial_value == literal(0)
        assert binding.setter == "setCount"
        assert binding.source_idiom == "useState"

    def test_imports_are_kept_as_declarations(self):
        declarations = [d.source_text for d in _parse(COUNTER_SOURCE).metadata.declarations]
        assert declarations == [
            'import { useState } from "react";',
            'import { Button, Text, View } from "react-native";',
        ]

    def test_aliases_resolve_to_canonical_names(self):
        root = _parse("<div><button>Go</button></div>").root
        assert root.widget_type == "View"
        assert root.children[0].widget_type == "Button"

    def test_component_name_from_file(self):
        doc = _parse("<View />", "src/user_card.tsx")
        assert doc.metadata.component_name == "UserCard"


# =========================================================================
# Props, text and structure
# =========================================================================


class TestProps:
    def test_props(self):
        root = _parse(PROPS_SOURCE).root
        assert root.props["...rest"] == Expression("rest")
        assert root.props["style"] == Expression("[styles.card, { margin: 4 }]")
        assert root.props["testID"] == literal("card")
        assert root.props["hidden"] == literal(True)

    def test_flat_style_objects_become_props(self):
        text = _parse(PROPS_SOURCE).root.children[0]
        assert text.props == {
            "numberOfLines": literal(2),
            "fontSize": literal(18),
            "fontWeight": literal("bold"),
        }
        assert text.children == (ExpressionSlot("title"),)

    def test_params_are_kept(self):
        root = _parse(PROPS_SOURCE).root
        assert root.metadata["params"] == "({ title, ...rest })"

    def test_jsx_text_whitespace_and_entities(self):
        root = _parse(TEXT_SOURCE).root
        assert root.children == (TextLiteral("Terms & conditions apply here"),)

    def test_fragment_root_gets_a_container(self):
        root = _parse(FRAGMENT_SOURCE).root
        assert root.widget_type == "View"
        assert [c.children for c in root.children] == [(TextLiteral("a"),), (TextLiteral("b"),)]

    def test_unmapped_components_become_placeholders(self):
        chart, gauge = _parse(UNMAPPED_SOURCE).root.children
        assert chart.widget_type == UNKNOWN_WIDGET
        assert chart.original_type == "Chart"
        assert chart.props == {"data": Expression("points")}
        assert gauge.original_type == "Gauge"
        assert gauge.children == ()


# =========================================================================
# Declarations and class components
# =========================================================================


class TestDeclarations:
    def test_helpers_and_comments(self):
        doc = _parse(DECLARATIONS_SOURCE)
        assert doc.metadata.component_name == "Price"
        declarations = [d.source_text for d in doc.metadata.declarations]
        assert declarations == [
            'import { Text } from "react-native";',
            "// Formats a price.\nfunction formatPrice(value) {\n  return `$${value}`;\n}",
            "/* Standalone note. */",
        ]

    def test_class_component(self):
        doc = _parse(CLASS_SOURCE)
        root = doc.root
        assert doc.metadata.component_name == "Counter"
        assert root.props == {"onPress": Expression("increment")}
        assert root.children == (ExpressionSlot("count"),)
        binding = root.state_bindings[0]
        assert binding.name == "count"
        assert binding.initial_value == literal(0)
        assert binding.transitions == (StateTransition("increment", "count = count + 1"),)

    def test_class_members_keep_comments(self):
        members = [m.source_text for m in _parse(CLASS_SOURCE).metadata.members]
        assert members == [
            "// Logs every render.",
            "log() {\n  console.log(this.state.count);\n}",
        ]


# =========================================================================
# Routes and animation
# =========================================================================


class TestRoutesAndMotion:
    def test_router_element(self):
        root = _parse(ROUTER_SOURCE).root
        assert root.widget_type == "Router"
        schema = root.metadata["routes"]
        assert isinstance(schema, RouteSchema)
        assert [r.name for r in schema.routes] == ["home", "users"]

    def test_router_imports_stay_in_declarations(self):
        declarations = [d.source_text for d in _parse(ROUTER_SOURCE).metadata.declarations]
        assert declarations == ['import { BrowserRouter, Routes, Route } from "react-router-dom";']

    def test_motion_wrapper_folds_into_child(self):
        root = _parse(MOTION_SOURCE).root
        assert root.widget_type == "Text"
        spec = root.animation_spec
        assert spec.duration_ms == 500
        assert spec.tweens[0].property == "opacity"
        assert (spec.tweens[0].begin, spec.tweens[0].end) == (0, 1)


# =========================================================================
# Errors
# =========================================================================


class TestErrors:
    def test_syntax_error(self):
        result = parse_component("export default function A() {\n  return <View>\n}\n", "a.tsx")
        assert result.status is ResultStatus.FAILURE
        error = result.errors[0]
        assert isinstance(error, ParseError)
        assert error.file_path == "a.tsx"
        assert error.line >= 1

    def test_mismatched_closing_tag(self):
        result = parse_component(MISMATCHED_SOURCE, "card.tsx")
        assert result.status is ResultStatus.FAILURE
        error = result.errors[0]
        assert error.message == "closing tag </Views> does not match <View>"
        assert (error.line, error.column) == (5, 5)

    def test_fragments_and_matching_tags_pass(self):
        doc = _parse("<><View><Text>a</Text></View></>")
        assert doc.root.widget_type == "View"

    def test_unknown_framework(self):
        result = parse("<View />", "vue", "box.vue")
        assert not result.ok
        assert result.errors[0].message == "unsupported framework: vue"

    def test_no_markup(self):
        result = parse_component("const x = 1;")
        assert not result.ok
        assert "no JSX root" in result.errors[0].message

    @pytest.mark.parametrize("path,framework", [
        ("App.tsx", "componentModel"),
        ("App.jsx", "componentModel"),
        ("main.dart", "widgetTree"),
        ("README.md", None),
    ])
    def test_detect_framework(self, path, framework):
        assert detect_framework(path) == framework
