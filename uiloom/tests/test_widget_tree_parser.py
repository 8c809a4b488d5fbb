"""Tests for the widget-tree (Dart) parser."""

import pytest
from uiloom.core.constants import FRAMEWORK_WIDGET_TREE, UNKNOWN_WIDGET
from uiloom.core.ir.errors import ParseError, ResultStatus
from uiloom.core.ir.models import (
    Expression,
    ExpressionSlot,
    StatePattern,
    StateTransition,
    TextLiteral,
    literal,
)
from uiloom.core.navigation import RouteSchema
from uiloom.core.parsers import parse_widget_tree


# =========================================================================
# Sample Dart source fixtures
# =========================================================================

COUNTER_SOURCE = """\
import 'package:flutter/material.dart';

class Counter extends StatefulWidget {
  const Counter({super.key});

  @override
  State<Counter> createState() => _CounterState();
}

class _CounterState extends State<Counter> {
  int count = 0;

  void increment() {
    setState(() {
      count = count + 1;
    });
  }

  @override
  Widget build(BuildContext context) {
    return Container(
      padding: EdgeInsets.all(16),
      child: Column(
        children: [
          Text('Count: $count'),
          ElevatedButton(onPressed: increment, child: Text('Inc')),
        ],
      ),
    );
  }
}
"""

PROFILE_SOURCE = """\
import 'package:flutter/material.dart';

class Profile extends StatelessWidget {
  const Profile({super.key});

  // Shown above the avatar.
  static const title = 'Profile';

  @override
  Widget build(BuildContext context) {
    final name = user.name;
    return Column(
      children: [
        Text(title, key: ValueKey('title')),
        CustomPaint(painter: RingPainter(), child: Text(name)),
        Container(/* unmapped widget: Chart */),
      ],
    );
  }
}
"""

ROW_SOURCE = """\
Container(
  padding: EdgeInsets.symmetric(vertical: 4, horizontal: 8),
  child: Row(
    mainAxisAlignment: MainAxisAlignment.center,
    children: [Text('a'), Text('b')],
  ),
);
"""

ROUTER_SOURCE = """\
class App extends StatelessWidget {
  const App({super.key});

  @override
  Widget build(BuildContext context) {
    return MaterialApp(
      routes: {
        '/': (context) => HomePage(),
        '/users/:id': (context) => UserDetail(),
      },
    );
  }
}
"""

HOME_SOURCE = """\
class App extends StatelessWidget {
  const App({super.key});

  @override
  Widget build(BuildContext context) => MaterialApp(home: Text('Welcome'));
}
"""

NO_BUILD_SOURCE = """\
class Empty extends StatelessWidget {
  const Empty({super.key});
}
"""


def _parse(text, file_path="<memory>"):
    result = parse_widget_tree(text, file_path)
    assert result.ok, result.errors
    return result.value


# =========================================================================
# Stateful widgets
# =========================================================================


class TestStatefulWidget:
    def test_tree(self):
        doc = _parse(COUNTER_SOURCE)
        root = doc.root
        assert doc.metadata.component_name == "Counter"
        assert doc.metadata.source_framework == FRAMEWORK_WIDGET_TREE
        assert root.widget_type == "View"
        assert root.props == {"padding": literal(16)}
        text, button = root.children
        assert text.widget_type == "Text"
        assert text.children == (TextLiteral("Count: "), ExpressionSlot("count"))
        assert button.widget_type == "Button"
        assert button.props == {"onPress": Expression("increment")}
        assert button.children == (TextLiteral("Inc"),)

    def test_set_state_field_becomes_a_binding(self):
        binding = _parse(COUNTER_SOURCE).root.state_bindings[0]
        assert binding.pattern is StatePattern.LOCAL
        assert binding.name == "count"
        assert binding.initial_value == literal(0)
        assert binding.type_hint == "int"
        assert binding.source_idiom == "setState"
        assert binding.transitions == (StateTransition("increment", "count = count + 1"),)

    def test_lifted_members_are_not_kept(self):
        doc = _parse(COUNTER_SOURCE)
        assert doc.metadata.members == ()
        assert [d.source_text for d in doc.metadata.declarations] == [
            "import 'package:flutter/material.dart';",
        ]


# =========================================================================
# Stateless widgets
# =========================================================================


class TestStatelessWidget:
    def test_column_root(self):
        root = _parse(PROFILE_SOURCE).root
        assert root.widget_type == "View"
        assert root.props == {}
        assert len(root.children) == 3

    def test_value_key_becomes_key_prop(self):
        text = _parse(PROFILE_SOURCE).root.children[0]
        assert text.props == {"key": literal("title")}
        assert text.children == (ExpressionSlot("title"),)

    def test_unmapped_widget_becomes_placeholder(self):
        paint = _parse(PROFILE_SOURCE).root.children[1]
        assert paint.widget_type == UNKNOWN_WIDGET
        assert paint.original_type == "CustomPaint"
        assert paint.props == {"painter": Expression("RingPainter()")}
        assert paint.children[0].widget_type == "Text"

    def test_placeholder_comment_round_trips(self):
        chart = _parse(PROFILE_SOURCE).root.children[2]
        assert chart.widget_type == UNKNOWN_WIDGET
        assert chart.original_type == "Chart"
        assert chart.children == ()

    def test_placeholder_comment_carries_props(self):
        root = _parse("Container(/* unmapped widget: Chart(data: points, title: 'Sales') */);").root
        assert root.widget_type == UNKNOWN_WIDGET
        assert root.original_type == "Chart"
        assert root.props == {"data": Expression("points"), "title": literal("Sales")}

    def test_members_keep_attached_comments(self):
        members = [m.source_text for m in _parse(PROFILE_SOURCE).metadata.members]
        assert members == ["// Shown above the avatar.\nstatic const title = 'Profile';"]

    def test_build_locals_become_prelude(self):
        prelude = [p.source_text for p in _parse(PROFILE_SOURCE).metadata.prelude]
        assert prelude == ["final name = user.name;"]


# =========================================================================
# Expressions, layout and routes
# =========================================================================


class TestLayout:
    def test_expression_file(self):
        doc = _parse("Text('Hi');")
        assert doc.root.widget_type == "Text"
        assert doc.root.children == (TextLiteral("Hi"),)
        assert doc.metadata.component_name is None

    def test_row_child_merges_into_container(self):
        root = _parse(ROW_SOURCE).root
        assert root.widget_type == "View"
        assert root.props == {
            "padding": literal([4, 8]),
            "flexDirection": literal("row"),
            "justifyContent": literal("center"),
        }
        assert [c.children for c in root.children] == [(TextLiteral("a"),), (TextLiteral("b"),)]

    def test_container_color_and_decoration_share_one_prop_set(self):
        root = _parse(
            "Container(color: Color(0xFF112233), "
            "decoration: BoxDecoration(borderRadius: BorderRadius.circular(4)));"
        ).root
        assert root.props == {"backgroundColor": literal("#112233"), "borderRadius": literal(4)}

    def test_named_single_child_slots(self):
        root = _parse("Scaffold(body: Center(child: AppBar(title: Text('Home'))));").root
        assert root.widget_type == "Scaffold"
        center = root.children[0]
        assert center.widget_type == "Center"
        assert center.children[0].widget_type == "AppBar"
        assert center.children[0].children == (TextLiteral("Home"),)

    def test_router(self):
        root = _parse(ROUTER_SOURCE).root
        assert root.widget_type == "Router"
        schema = root.metadata["routes"]
        assert isinstance(schema, RouteSchema)
        assert [r.name for r in schema.routes] == ["home", "users"]

    def test_material_app_home(self):
        root = _parse(HOME_SOURCE).root
        assert root.widget_type == "Text"
        assert root.children == (TextLiteral("Welcome"),)


# =========================================================================
# Errors
# =========================================================================


class TestErrors:
    def test_missing_build(self):
        result = parse_widget_tree(NO_BUILD_SOURCE, "empty.dart")
        assert result.status is ResultStatus.FAILURE
        error = result.errors[0]
        assert isinstance(error, ParseError)
        assert "no build method" in error.message
        assert error.file_path == "empty.dart"

    @pytest.mark.parametrize("source", ["", "var x = 1;"])
    def test_no_widget(self, source):
        result = parse_widget_tree(source)
        assert not result.ok

    def test_unbalanced_brackets(self):
        result = parse_widget_tree("Container(child: Text('a');")
        assert not result.ok
