from pathlib import Path

import pytest
from hypothesis import given
from hypothesis.strategies import text

from ll1viz.engine import ActionKind, TraceStep, parse, tokenize
from ll1viz.grammar import Production, default_grammar, load_grammar

GRAMMAR = default_grammar()
PARENS = load_grammar(Path(__file__).resolve().parent.parent / "grammars" / "balanced_parens.json")


def _actions(result):
	return [step.action for step in result.trace]


def test_tokenize_keeps_every_character():
	assert tokenize("b c\ta") == ["b", " ", "c", "\t", "a"]
	assert tokenize("") == []


def test_whitespace_is_not_a_terminal():
	result = parse("a ", GRAMMAR)

	assert not result.accepted
	assert result.error.kind is ActionKind.NO_TABLE_ENTRY
	assert result.error.action == "Error: No parsing table entry for Non-Terminal A and Input  "


def test_single_a_is_accepted():
	result = parse("a", GRAMMAR)

	assert result.accepted
	assert _actions(result) == [
		"Initial configuration",
		"Expand S → a A",
		"Match a",
		"Expand A → ε",
		"Accept",
	]
	assert result.iteration_count == 4
	assert result.error is None


def test_initial_step():
	first = parse("bcaa", GRAMMAR).trace[0]

	assert first == TraceStep(
		stack=("$", "S"),
		remaining_input="bcaa$",
		kind=ActionKind.INITIAL,
		action="Initial configuration",
		focus_symbol="",
		matched=False,
	)


def test_bcaa_derivation():
	result = parse("bcaa", GRAMMAR)

	assert result.accepted
	# S => bB => bcC => bcaS => bcaaA => bcaa, plus the final accept decision
	assert result.iteration_count == 10
	assert _actions(result)[1:] == [
		"Expand S → b B",
		"Match b",
		"Expand B → c C",
		"Match c",
		"Expand C → a S",
		"Match a",
		"Expand S → a A",
		"Match a",
		"Expand A → ε",
		"Accept",
	]
	assert [s.stack for s in result.trace[:4]] == [
		("$", "S"),
		("$", "B", "b"),
		("$", "B"),
		("$", "C", "c"),
	]
	assert [s.remaining_input for s in result.trace[-4:]] == ["a$", "$", "$", "$"]


def test_stack_snapshots_are_copies():
	result = parse("bcaa", GRAMMAR)
	stacks = [step.stack for step in result.trace]

	assert len(set(map(id, stacks))) == len(stacks)
	assert all(isinstance(s, tuple) for s in stacks)


def test_c_has_no_table_entry():
	result = parse("c", GRAMMAR)

	assert not result.accepted
	assert result.iteration_count == 1
	assert len(result.trace) == 2
	last = result.trace[-1]
	assert last.kind is ActionKind.NO_TABLE_ENTRY
	assert last.action == "Error: No parsing table entry for Non-Terminal S and Input c"
	assert last.focus_symbol == "S"
	assert not last.matched
	assert result.error is last


def test_ab_fails_on_leftover_input():
	result = parse("ab", GRAMMAR)

	assert not result.accepted
	assert _actions(result)[1:] == [
		"Expand S → a A",
		"Match a",
		"Error: No parsing table entry for Non-Terminal A and Input b",
	]


def test_bda_fails_after_d():
	result = parse("bda", GRAMMAR)

	assert not result.accepted
	assert result.error.kind is ActionKind.NO_TABLE_ENTRY
	assert result.error.focus_symbol == "D"
	assert result.error.stack == ("$", "D")
	assert result.error.remaining_input == "a$"


def test_empty_input_is_rejected():
	result = parse("", GRAMMAR)

	assert not result.accepted
	assert result.error.action == "Error: No parsing table entry for Non-Terminal S and Input $"


def test_mismatch_on_terminal():
	result = parse("(", PARENS)

	assert not result.accepted
	assert result.error.kind is ActionKind.MISMATCH
	assert result.error.action == "Error: Mismatch. Expected ), but found $"
	assert result.error.focus_symbol == ")"


def test_leftover_input_mismatches_end_marker():
	result = parse(")", PARENS)

	assert not result.accepted
	assert _actions(result)[1:] == [
		"Expand S → ε",
		"Error: Mismatch. Expected end of input, but found )",
	]


def test_embedded_end_marker_does_not_accept():
	result = parse("a$b", GRAMMAR)

	assert not result.accepted
	assert result.error.kind is ActionKind.MISMATCH
	assert result.error.action == "Error: Mismatch. Expected end of input, but found $b"
	assert result.error.remaining_input == "$b$"


def test_nested_parens_accepted():
	result = parse("(())()", PARENS)

	assert result.accepted
	assert result.trace[-1].kind is ActionKind.ACCEPT


class BrokenGrammar:
	"""Duck-typed grammar whose table pushes a symbol outside both vocabularies."""

	start = "S"
	end_marker = "$"

	def is_terminal(self, symbol):
		return symbol == "a"

	def is_non_terminal(self, symbol):
		return symbol == "S"

	def lookup(self, non_terminal, lookahead):
		if lookahead == "a":
			return Production("S", ("a", "X"))
		return None


def test_invalid_stack_symbol():
	result = parse("a", BrokenGrammar())  # type: ignore[arg-type]

	assert not result.accepted
	assert _actions(result)[-1] == "Error: Invalid symbol in stack: X"
	assert result.error.kind is ActionKind.INVALID_SYMBOL
	assert result.iteration_count == 3


def test_rows():
	rows = parse("a", GRAMMAR).rows()

	assert rows[0] == (0, "$ S", "a$", "Initial configuration")
	assert rows[1] == (1, "$ A a", "a$", "Expand S → a A")
	assert rows[-1] == (4, "$", "$", "Accept")


def test_step_to_dict():
	step = parse("c", GRAMMAR).trace[-1]

	assert step.to_dict(1) == {
		"index": 1,
		"stack": ["$", "S"],
		"remaining_input": "c$",
		"action": "Error: No parsing table entry for Non-Terminal S and Input c",
		"kind": "NO_TABLE_ENTRY",
		"focus_symbol": "S",
		"matched": False,
	}


@pytest.mark.parametrize("sentence", ["a", "bcaa", "acaa", "bdbcaa", "adbcaa"])
def test_valid_sentences(sentence):
	assert parse(sentence, GRAMMAR).accepted


@pytest.mark.parametrize("sentence", ["c", "ab", "bda", "b", "aca", "aa"])
def test_invalid_sentences(sentence):
	assert not parse(sentence, GRAMMAR).accepted


@given(text(alphabet="abcd$x ", max_size=30))
def test_every_parse_ends_in_a_verdict(sentence):
	result = parse(sentence, GRAMMAR)
	last = result.trace[-1]

	assert result.iteration_count == len(result.trace) - 1
	assert result.trace[0].kind is ActionKind.INITIAL
	if result.accepted:
		assert last.kind is ActionKind.ACCEPT
		assert last.matched
	else:
		assert last.kind.is_error
		assert not last.matched
	assert all(step.matched for step in result.trace[1:-1])


@given(text(alphabet="abcd()", max_size=20))
def test_parse_is_repeatable(sentence):
	assert parse(sentence, GRAMMAR) == parse(sentence, GRAMMAR)
	assert parse(sentence, PARENS) == parse(sentence, PARENS)
