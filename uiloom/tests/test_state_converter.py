"""Tests for state lifting and idiom expansion."""

import pytest
from uiloom.core.constants import FRAMEWORK_COMPONENT_MODEL, FRAMEWORK_WIDGET_TREE
from uiloom.core.ir.errors import GenerationFailure
from uiloom.core.ir.models import Expression, StateBinding, StatePattern, StateTransition, literal
from uiloom.core.parsers import parse_component, parse_widget_tree
from uiloom.core.state import converter


# =========================================================================
# Sample sources
# =========================================================================

REDUCER_SOURCE = """\
import { useReducer } from "react";

function counterReducer(state, action) {
  switch (action.type) {
    case 'increment':
      return state + 1;
    default:
      return state;
  }
}

export default function Counter() {
  const [count, dispatch] = useReducer(counterReducer, 0);
  const increment = () => dispatch({ type: 'increment' });
  return <Button onPress={increment}>{count}</Button>;
}
"""

STORE_SOURCE = """\
export default function Cart() {
  const items = useSelector((state) => state.items);
  const dispatch = useDispatch();
  const clear = () => dispatch({ type: 'items/set', payload: [] });
  const data = useFetch(url);
  return <Text>{items.length}</Text>;
}
"""

CONTEXT_SOURCE = """\
export default function Badge() {
  const theme = useContext(ThemeContext);
  const [open, setOpen] = useState<boolean>(false);
  const toggle = () => setOpen((o) => !o);
  return <Text>{theme.name}</Text>;
}
"""

ZUSTAND_SOURCE = """\
import { useStore } from "./store";

export default function Profile() {
  const user = useStore(userStore);
  return <Text>{user.name}</Text>;
}
"""

AUTH_SOURCE = """\
export default function Header() {
  const auth = useContext(AuthCtx);
  return <Text>{auth.user}</Text>;
}
"""

CUBIT_SOURCE = """\
class CounterCubit extends Cubit<int> {
  CounterCubit() : super(0);

  void increment() => emit(state + 1);
}

class CounterView extends StatelessWidget {
  const CounterView({super.key});

  @override
  Widget build(BuildContext context) {
    final count = context.watch<CounterCubit>().state;
    final theme = Theme.of(context);
    return Text('$count');
  }
}
"""

RIVERPOD_SOURCE = """\
final counterProvider = StateProvider<int>((ref) => 0);

class CounterView extends ConsumerWidget {
  const CounterView({super.key});

  @override
  Widget build(BuildContext context, WidgetRef ref) {
    final count = ref.watch(counterProvider);
    void increment() => ref.read(counterProvider.notifier).state = count + 1;
    return Text('$count');
  }
}
"""


def _bindings(result):
    assert result.ok, result.errors
    return result.value.root.state_bindings


COUNT = StateBinding(
    pattern=StatePattern.LOCAL,
    name="count",
    initial_value=literal(0),
    transitions=(StateTransition("increment", "count = count + 1"),),
)


# =========================================================================
# Mutation helpers
# =========================================================================


class TestMutations:
    @pytest.mark.parametrize("statement,expected", [
        ("count++;", ("count", "count = count + 1")),
        ("--count", ("count", "count = count - 1")),
        ("total += 5", ("total", "total = total + 5")),
        ("total -= a + b;", ("total", "total = total - (a + b)")),
        ("name ??= fallback", ("name", "name = name ?? fallback")),
        ("open = !open;", ("open", "open = !open")),
        ("a == b", None),
        ("print(a)", None),
    ])
    def test_normalize_mutation(self, statement, expected):
        assert converter.normalize_mutation(statement) == expected

    def test_split_assignment(self):
        assert converter.split_assignment("count = count + 1") == ("count", "count + 1")
        assert converter.split_assignment("dispatch(x)") is None

    @pytest.mark.parametrize("name,setter", [("count", "setCount"), ("_count", "_setCount")])
    def test_setter_name(self, name, setter):
        assert converter.setter_name(name) == setter

    def test_rename_identifier_skips_member_access(self):
        assert converter.rename_identifier("state + this.state", "state", "count") == "count + this.state"


class TestTypes:
    @pytest.mark.parametrize("hint,initial,expected", [
        (None, literal(0), "int"),
        (None, literal(1.5), "double"),
        (None, literal("a"), "String"),
        (None, literal(True), "bool"),
        ("number", literal(2), "int"),
        ("string[]", None, "List<String>"),
        (None, Expression("load()"), None),
    ])
    def test_dart_type(self, hint, initial, expected):
        binding = StateBinding(StatePattern.LOCAL, "v", initial_value=initial, type_hint=hint)
        assert converter.dart_type(binding) == expected

    def test_ts_type(self):
        assert converter.ts_type(StateBinding(StatePattern.LOCAL, "v", type_hint="List<int>")) == "number[]"
        assert converter.ts_type(StateBinding(StatePattern.LOCAL, "v")) is None

    def test_context_type(self):
        assert converter.context_type("ThemeContext", "theme") == "Theme"
        assert converter.context_type(None, "auth") == "Auth"


# =========================================================================
# Component-model lifting
# =========================================================================


class TestComponentState:
    def test_reducer_is_folded_into_transitions(self):
        (binding,) = _bindings(parse_component(REDUCER_SOURCE))
        assert binding.pattern is StatePattern.REDUCER
        assert binding.initial_value == literal(0)
        assert binding.setter == "dispatch"
        assert binding.transitions == (StateTransition("increment", "count = count + 1"),)

    def test_folded_reducer_leaves_declarations(self):
        doc = parse_component(REDUCER_SOURCE).value
        assert [d.source_text for d in doc.metadata.declarations] == ['import { useReducer } from "react";']
        assert doc.metadata.prelude == ()

    def test_store_hook(self):
        result = parse_component(STORE_SOURCE)
        (binding,) = _bindings(result)
        assert binding.pattern is StatePattern.EXTERNAL_STORE
        assert binding.initial_value == Expression("(state) => state.items")
        assert binding.setter == "dispatch"
        assert binding.transitions == (StateTransition("clear", "items = []"),)

    def test_store_hook_keeps_its_callee(self):
        (binding,) = _bindings(parse_component(ZUSTAND_SOURCE))
        assert binding.source_hook == "useStore"
        assert binding.initial_value == Expression("userStore")

    def test_context_hook_keeps_its_argument(self):
        (auth,) = _bindings(parse_component(AUTH_SOURCE))
        assert auth.pattern is StatePattern.CONTEXT_DERIVED
        assert auth.initial_value == Expression("AuthCtx")

    def test_custom_hooks_stay_in_prelude(self):
        prelude = [p.source_text for p in parse_component(STORE_SOURCE).value.metadata.prelude]
        assert prelude == ["const data = useFetch(url);"]

    def test_context_and_updater_functions(self):
        theme, open_ = _bindings(parse_component(CONTEXT_SOURCE))
        assert theme.pattern is StatePattern.CONTEXT_DERIVED
        assert theme.type_hint == "Theme"
        assert open_.type_hint == "boolean"
        assert open_.transitions == (StateTransition("toggle", "open = !open"),)


class TestInlineReducer:
    def _binding(self, *types):
        return StateBinding(
            pattern=StatePattern.REDUCER,
            name="count",
            transitions=tuple(StateTransition(t, f"{{ type: '{t}' }}") for t in types),
        )

    def test_extra_logic_keeps_reducer(self):
        source = (
            "function r(state, action) { if (action.log) { return state; } switch (action.type) {"
            " case 'inc': return state + 1; default: return state; } }"
        )
        assert converter.inline_reducer(self._binding("inc"), source) is None

    def test_unused_case_keeps_reducer(self):
        source = (
            "function r(state, action) { switch (action.type) {"
            " case 'inc': return state + 1; case 'dec': return state - 1; default: return state; } }"
        )
        assert converter.inline_reducer(self._binding("inc"), source) is None
        inlined = converter.inline_reducer(self._binding("inc", "dec"), source)
        assert [t.mutation_expression for t in inlined.transitions] == ["count = count + 1", "count = count - 1"]


# =========================================================================
# Widget-tree detection
# =========================================================================


class TestWidgetState:
    def test_cubit(self):
        doc = parse_widget_tree(CUBIT_SOURCE).value
        cubit, theme = doc.root.state_bindings
        assert cubit.pattern is StatePattern.REDUCER
        assert cubit.name == "count"
        assert cubit.reducer == "CounterCubit"
        assert cubit.initial_value == literal(0)
        assert cubit.transitions == (StateTransition("increment", "count = count + 1"),)
        assert theme.pattern is StatePattern.CONTEXT_DERIVED
        assert theme.type_hint == "Theme"
        assert doc.metadata.declarations == ()

    def test_riverpod(self):
        doc = parse_widget_tree(RIVERPOD_SOURCE).value
        (binding,) = doc.root.state_bindings
        assert binding.pattern is StatePattern.EXTERNAL_STORE
        assert binding.type_hint == "int"
        assert binding.initial_value == literal(0)
        assert binding.transitions == (StateTransition("increment", "count = count + 1"),)
        assert doc.metadata.prelude == ()


# =========================================================================
# Expansion
# =========================================================================


class TestExpansion:
    def test_use_state(self):
        frag = converter.expand(COUNT, "useState")
        assert frag.imports == {"react": {"useState"}}
        assert frag.build_locals == [
            "const [count, setCount] = useState(0);",
            "const increment = () => setCount(count + 1);",
        ]

    def test_use_reducer(self):
        frag = converter.expand(COUNT, "useReducer")
        assert frag.build_locals[0] == "const [count, dispatch] = useReducer(countReducer, 0);"
        assert frag.build_locals[1] == "const increment = () => dispatch({ type: 'increment' });"
        assert "    case 'increment':\n      return state + 1;" in frag.declarations[0]

    def test_set_state(self):
        frag = converter.expand(COUNT, "setState")
        assert frag.host == "stateful"
        assert frag.members[0] == "int count = 0;"
        assert frag.members[2] == "void increment() {\n  setState(() {\n    count = count + 1;\n  });\n}"

    def test_bloc(self):
        frag = converter.expand(COUNT, "bloc")
        assert frag.declarations[0].startswith("class CountCubit extends Cubit<int> {\n  CountCubit() : super(0);")
        assert "  void increment() => emit(state + 1);" in frag.declarations[0]
        assert frag.build_locals[0] == "final count = context.watch<CountCubit>().state;"

    def test_riverpod(self):
        frag = converter.expand(COUNT, "riverpod")
        assert frag.host == "consumer"
        assert frag.declarations == ["final countProvider = StateProvider<int>((ref) => 0);"]
        assert frag.build_locals[-1] == "void increment() => ref.read(countProvider.notifier).state = count + 1;"

    def test_inherited_lookup(self):
        binding = StateBinding(StatePattern.CONTEXT_DERIVED, "theme", type_hint="Theme")
        frag = converter.expand(binding, "inheritedLookup")
        assert frag.build_locals == ["final theme = Theme.of(context);"]

    def test_context_hook(self):
        binding = StateBinding(StatePattern.CONTEXT_DERIVED, "theme", type_hint="Theme")
        frag = converter.expand(binding, "contextHook")
        assert frag.build_locals == ["const theme = useContext(ThemeContext);"]

    def test_store_hook_reuses_callee_and_argument(self):
        binding = StateBinding(
            StatePattern.EXTERNAL_STORE, "user", initial_value=Expression("userStore"),
            source_idiom="storeHook", source_hook="useStore",
        )
        frag = converter.expand(binding, "storeHook")
        assert frag.build_locals == ["const user = useStore(userStore);"]
        assert frag.imports == {}

    def test_store_hook_from_another_idiom(self):
        binding = StateBinding(
            StatePattern.EXTERNAL_STORE, "todos", initial_value=Expression("todosProvider"),
            source_idiom="riverpod",
        )
        frag = converter.expand(binding, "storeHook")
        assert frag.imports == {"react-redux": {"useSelector"}}
        assert frag.build_locals == [
            "// Unconverted: initial todos = todosProvider",
            "const todos = useSelector((state) => state.todos);",
        ]

    def test_context_hook_keeps_the_context_expression(self):
        binding = StateBinding(
            StatePattern.CONTEXT_DERIVED, "auth", initial_value=Expression("AuthCtx"),
            type_hint="AuthCtx", source_idiom="contextHook",
        )
        frag = converter.expand(binding, "contextHook")
        assert frag.build_locals == ["const auth = useContext(AuthCtx);"]

    def test_store_selector_under_riverpod_is_kept_as_a_comment(self):
        binding = StateBinding(
            StatePattern.EXTERNAL_STORE, "todos", initial_value=Expression("st => st.todos"),
            source_idiom="storeHook", source_hook="useSelector",
        )
        frag = converter.expand(binding, "riverpod")
        (declaration,) = frag.declarations
        assert declaration.startswith("// Unconverted: useSelector(st => st.todos)\n")
        assert declaration.endswith("((ref) => null);")
        assert "(ref) => st => st.todos" not in declaration

    def test_unknown_idiom(self):
        with pytest.raises(GenerationFailure):
            converter.expand(COUNT, "signals")

    def test_expand_all_uses_configured_defaults(self):
        reducer = StateBinding(StatePattern.REDUCER, "count", initial_value=literal(0))
        frags = converter.expand_all([COUNT, reducer], FRAMEWORK_WIDGET_TREE)
        assert frags[0].host == "stateful"
        assert "package:flutter_bloc/flutter_bloc.dart" in frags[1].imports
        frags = converter.expand_all([COUNT], FRAMEWORK_COMPONENT_MODEL)
        assert "react" in frags[0].imports
