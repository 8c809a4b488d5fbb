"""Tests for the Dart tokenizer and structural view."""

import pytest
from uiloom.core.ir.errors import SourceSyntaxError
from uiloom.core.ir.models import Expression, literal
from uiloom.core.parsers.dart_syntax import (
    DartCall,
    DartFunction,
    DartList,
    DartMap,
    DartString,
    Interpolation,
    TokenKind,
    parse_source,
    to_prop_value,
)


def _expr(text):
    syntax = parse_source(text)
    return syntax.parse_expression(0, len(syntax))


class TestLexer:
    def test_comments_attach_to_next_token(self):
        syntax = parse_source("// a\n// b\nfoo;\n")
        assert [t.text for t in syntax.toks] == ["foo", ";"]
        assert syntax.comments_before[0] == ["// a", "// b"]
        assert syntax.comment_blocks(0) == [("// a\n// b", 1, 0)]

    def test_separated_comments_form_blocks(self):
        syntax = parse_source("/* one */\n\n// two\nfoo;\n")
        assert syntax.comment_blocks(0) == [("/* one */", 1, 2), ("// two", 1, 0)]

    def test_string_interpolation(self):
        tok = parse_source("'Hi $name, ${count + 1}!'").toks[0]
        assert tok.kind is TokenKind.STRING
        assert tok.parts == ("Hi ", Interpolation("name"), ", ", Interpolation("count + 1"), "!")

    def test_escapes_and_raw_strings(self):
        assert parse_source(r"'it\'s'").toks[0].parts == ("it's",)
        assert parse_source(r"r'a\n$b'").toks[0].parts == (r"a\n$b",)

    @pytest.mark.parametrize("source", ["foo(", "foo)", "[1, 2)", "'open"])
    def test_malformed_input(self, source):
        with pytest.raises(SourceSyntaxError):
            parse_source(source)

    def test_error_position(self):
        with pytest.raises(SourceSyntaxError) as info:
            parse_source("a\n  b)")
        assert (info.value.line, info.value.column) == (2, 4)


class TestExpressions:
    def test_call_with_named_and_positional_args(self):
        node = _expr("Text('hi', style: TextStyle(fontSize: 18))")
        assert isinstance(node, DartCall)
        assert node.callee == "Text"
        assert isinstance(node.positional[0], DartString)
        style = node.named("style")
        assert isinstance(style, DartCall)
        assert style.named("fontSize").text == "18"

    def test_dotted_callee(self):
        node = _expr("const Image.network(url)")
        assert isinstance(node, DartCall)
        assert node.callee == "Image.network"
        assert node.text == "const Image.network(url)"

    def test_generic_call(self):
        node = _expr("StateProvider<int>((ref) => 0)")
        assert isinstance(node, DartCall)
        assert node.callee == "StateProvider"
        assert node.type_args == "int"

    def test_collections(self):
        assert isinstance(_expr("<Widget>[a, b]"), DartList)
        node = _expr("{'a': 1, 'b': 2}")
        assert isinstance(node, DartMap)
        assert len(node.entries) == 2

    def test_functions(self):
        arrow = _expr("(context, state) => Home()")
        assert isinstance(arrow, DartFunction)
        assert arrow.params == ["context", "state"]
        assert arrow.body.text == "Home()"
        block = _expr("() { count++; }")
        assert isinstance(block, DartFunction)
        assert block.block is not None

    @pytest.mark.parametrize("source,value", [
        ("16", literal(16)),
        ("-2.5", literal(-2.5)),
        ("0xFF", literal(255)),
        ("true", literal(True)),
        ("null", literal(None)),
        ("'a' 'b'", literal("ab")),
        ("[1, 'x']", literal([1, "x"])),
        ("{'k': false}", literal({"k": False})),
    ])
    def test_constants_become_literals(self, source, value):
        assert to_prop_value(_expr(source)) == value

    @pytest.mark.parametrize("source", ["count + 1", "'Hi $name'", "[a, 1]", "EdgeInsets.all(8)"])
    def test_everything_else_is_an_expression(self, source):
        assert to_prop_value(_expr(source)) == Expression(source)


SAMPLE_CLASS = """\
class Counter extends State<CounterPage> with TickerProviderStateMixin {
  static const step = 1;
  late final int count = 0;

  Counter(this.start) : super();

  String get label => 'Count';

  @override
  void dispose() {
    super.dispose();
  }
}
"""


class TestDeclarations:
    def test_class_member(self):
        syntax = parse_source(SAMPLE_CLASS)
        (cls,) = syntax.split_members(0, len(syntax))
        assert cls.kind == "class"
        assert cls.name == "Counter"
        assert cls.super_name == "State"
        assert cls.super_type_args == "CounterPage"

    def test_class_body(self):
        syntax = parse_source(SAMPLE_CLASS)
        cls = syntax.split_members(0, len(syntax))[0]
        members = syntax.split_members(*cls.body)
        assert [(m.kind, m.name) for m in members] == [
            ("field", "step"),
            ("field", "count"),
            ("constructor", "Counter"),
            ("getter", "label"),
            ("method", "dispose"),
        ]
        assert members[0].modifiers == ("static", "const")
        assert members[1].type_text == "int"
        assert members[4].annotations == ("@override",)

    def test_statements_and_returns(self):
        syntax = parse_source("""\
Widget build(BuildContext context) {
  final a = 1;
  if (a > 0) {
    print(a);
  } else {
    print(0);
  }
  return Text('$a');
}
""")
        (build,) = syntax.split_members(0, len(syntax))
        statements = syntax.split_statements(*build.body)
        assert len(statements) == 3
        start, end = syntax.returned_expression(build)
        assert syntax.text(start, end) == "Text('$a')"
