"""Conversion properties that hold across parse and generate.

Re-converting an output into its own framework must reproduce it exactly,
expressions must survive verbatim, and every mapped widget name must come
back to itself through the registry.
"""

import pytest
from uiloom.core.constants import FRAMEWORK_COMPONENT_MODEL, FRAMEWORK_WIDGET_TREE
from uiloom.core.engine import convert
from uiloom.core.ir.errors import GenerationError, ValidationErrorKind
from uiloom.core.mapping import get_registry


# =========================================================================
# Sample sources
# =========================================================================

COUNTER_TSX = """\
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

GREETING_DART = """\
import 'package:flutter/material.dart';

class Greeting extends StatelessWidget {
  const Greeting({super.key});

  @override
  Widget build(BuildContext context) {
    return Column(
      children: [
        Text('Hello', style: TextStyle(fontSize: 18)),
        ElevatedButton(onPressed: onTap, child: Text('Go')),
      ],
    );
  }
}
"""

DASH_DART = """\
class Dash extends StatelessWidget {
  const Dash({super.key});

  @override
  Widget build(BuildContext context) {
    return Column(
      children: [
        Text('Sales'),
        CustomPaint(painter: RingPainter()),
      ],
    );
  }
}
"""

CONDITIONAL_TSX = """\
export default function Gate({ ready }) {
  return ready ? <Home /> : <Spinner />;
}
"""

STORE_TSX = """\
import { useStore } from "./store";

export default function Profile() {
  const user = useStore(userStore);
  return <Text>{user.name}</Text>;
}
"""

SELECTOR_TSX = """\
import { useSelector } from "react-redux";

export default function Todos() {
  const todos = useSelector(st => st.todos);
  return <Text>{todos.length}</Text>;
}
"""

AUTH_TSX = """\
export default function Header() {
  const auth = useContext(AuthCtx);
  return <Text>{auth.user}</Text>;
}
"""

EXPECTED_PADDED_BOX = """\
import 'package:flutter/material.dart';

class Box extends StatelessWidget {
  const Box({super.key});

  @override
  Widget build(BuildContext context) {
    return Container(padding: EdgeInsets.all(16));
  }
}
"""

CM = FRAMEWORK_COMPONENT_MODEL
WT = FRAMEWORK_WIDGET_TREE


def _convert(text, source, target, file_path="<memory>"):
    result = convert(text, source, target, file_path)
    assert result.ok, result.errors
    return result.value


# =========================================================================
# Fixed points
# =========================================================================


class TestFixedPoints:
    @pytest.mark.parametrize("text,source,target", [
        (COUNTER_TSX, CM, WT),
        (COUNTER_TSX, CM, CM),
        (GREETING_DART, WT, CM),
        (GREETING_DART, WT, WT),
        (DASH_DART, WT, WT),
        (CONDITIONAL_TSX, CM, CM),
        (STORE_TSX, CM, CM),
        (AUTH_TSX, CM, CM),
    ])
    def test_output_converts_to_itself(self, text, source, target):
        once = _convert(text, source, target)
        assert _convert(once, target, target) == once

    def test_counter_reaches_a_stateful_widget(self):
        text = _convert(COUNTER_TSX, CM, WT)
        assert "class _CounterState extends State<Counter> {" in text
        assert "int count = 0;" in text

    def test_padded_box(self):
        assert _convert("<View style={{ padding: 16 }} />", CM, WT, "box.tsx") == EXPECTED_PADDED_BOX


# =========================================================================
# Expressions
# =========================================================================


class TestExpressionPreservation:
    def test_expressions_are_emitted_verbatim(self):
        text = _convert(
            "<View><Text numberOfLines={user.lines}>{user.name}</Text>"
            "<Button onPress={() => onPress()}>Go</Button></View>",
            CM, WT,
        )
        assert "Text('${user.name}', maxLines: user.lines)" in text
        assert "onPressed: () => onPress()" in text
        assert "'user.name'" not in text

    def test_interpolation_becomes_an_expression_child(self):
        text = _convert(GREETING_DART.replace("'Hello'", "'Hello $count'"), WT, CM)
        assert "<Text style={{ fontSize: 18 }}>Hello {count}</Text>" in text
        assert "onPress={onTap}" in text

    def test_conditional_root_stays_verbatim(self):
        text = _convert(CONDITIONAL_TSX, CM, CM)
        assert "  return (\n    ready ? <Home /> : <Spinner />\n  );" in text

    def test_conditional_root_has_no_widget_form(self):
        result = convert(CONDITIONAL_TSX, CM, WT, "gate.tsx")
        assert not result.ok
        assert isinstance(result.errors[0], GenerationError)
        assert result.errors[0].file_path == "gate.tsx"


# =========================================================================
# State hooks
# =========================================================================


class TestStateHooks:
    def test_store_hook_keeps_its_callee_and_argument(self):
        text = _convert(STORE_TSX, CM, CM)
        assert "const user = useStore(userStore);" in text
        assert "useSelector" not in text

    def test_context_hook_keeps_its_context(self):
        text = _convert(AUTH_TSX, CM, CM)
        assert "const auth = useContext(AuthCtx);" in text

    def test_selector_without_a_provider_form_is_commented(self):
        text = _convert(SELECTOR_TSX, CM, WT)
        assert "// Unconverted: useSelector(st => st.todos)" in text
        assert "(ref) => st => st.todos" not in text


# =========================================================================
# Props across the table
# =========================================================================


class TestProps:
    def test_container_color_moves_into_the_decoration(self):
        tsx = _convert("Container(color: Colors.red, child: Text('x'))", WT, CM)
        assert 'style={{ backgroundColor: "red" }}' in tsx
        dart = _convert(tsx, CM, WT)
        assert "decoration: BoxDecoration(color: Colors.red)," in dart
        assert dart.count("color:") == 1

    def test_color_and_decoration_are_merged(self):
        dart = _convert(
            "Container(color: Colors.red, decoration: BoxDecoration(borderRadius: BorderRadius.circular(8)))",
            WT, WT,
        )
        assert dart.count("decoration:") == 1
        assert dart.count("color:") == 1

    def test_spread_props_leave_valid_arguments(self):
        once = _convert("<View {...props}><Text>a</Text></View>", CM, WT)
        assert "Container(/* Unconverted: {...props} */ child: Text('a'))" in once
        assert "*/," not in once
        assert "child: Text('a')" in _convert(once, WT, WT)

    def test_button_title_becomes_its_label(self):
        dart = _convert('<Button title="Save" onPress={save} />', CM, WT)
        assert "ElevatedButton(onPressed: save, child: Text('Save'))" in dart
        assert "<Button onPress={save}>Save</Button>" in _convert(dart, WT, CM)

    def test_image_source_uri(self):
        dart = _convert("<Image source={{ uri: user.avatar }} />", CM, WT)
        assert "return Image.network(user.avatar);" in dart

    def test_screen_layout_widgets(self):
        dart = _convert(
            "<Scaffold><Center><Padding style={{ padding: 8 }}><Text>hi</Text></Padding></Center></Scaffold>",
            CM, WT,
        )
        assert "body: Center(" in dart
        assert "Padding(padding: EdgeInsets.all(8), child: Text('hi'))" in dart
        assert _convert(dart, WT, WT) == dart


# =========================================================================
# Registry and unknown widgets
# =========================================================================


class TestMappingTotality:
    def test_every_target_resolves_back_to_its_source(self):
        registry = get_registry()
        for entry in registry.entries:
            back = registry.resolve_backward(entry.target_widget_name)
            assert back is not None, entry.target_widget_name
            forward = registry.resolve_forward(back.source_widget_name)
            assert forward.target_widget_name == entry.target_widget_name


class TestUnknownWidgets:
    SOURCE = "<View><Chart data={points} /><Text>mid</Text><Chart /></View>"

    @pytest.mark.parametrize("target,marker", [
        (WT, "unmapped widget: Chart"),
        (CM, 'data-unmapped="Chart"'),
    ])
    def test_one_placeholder_per_unmapped_tag(self, target, marker):
        result = convert(self.SOURCE, CM, target)
        assert result.ok
        assert result.value.count(marker) == 2
        assert any(w.kind is ValidationErrorKind.UNKNOWN_WIDGET for w in result.warnings)

    def test_placeholders_survive_a_round_trip(self):
        once = _convert(self.SOURCE, CM, WT)
        twice = _convert(once, WT, WT)
        assert twice == once
        assert "Container(/* unmapped widget: Chart(data: points) */)" in twice
        assert "Container(/* unmapped widget: Chart */)" in twice

    def test_placeholder_props_come_back_to_the_component_model(self):
        dart = _convert(self.SOURCE, CM, WT)
        tsx = _convert(dart, WT, CM)
        assert '<div data-unmapped="Chart" data={points}>' in tsx
