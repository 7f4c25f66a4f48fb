from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Dict, List, Optional, Tuple

from .grammar import GrammarTable

trace_log = logging.getLogger("ll1viz.trace")


class ActionKind(Enum):
	INITIAL = auto()
	MATCH = auto()
	EXPAND = auto()
	ACCEPT = auto()
	MISMATCH = auto()
	NO_TABLE_ENTRY = auto()
	INVALID_SYMBOL = auto()

	@property
	def is_error(self) -> bool:
		return self in (ActionKind.MISMATCH, ActionKind.NO_TABLE_ENTRY, ActionKind.INVALID_SYMBOL)


TraceRow = Tuple[int, str, str, str]


@dataclass(frozen=True)
class TraceStep:
	stack: Tuple[str, ...]
	remaining_input: str
	kind: ActionKind
	action: str
	focus_symbol: str
	matched: bool

	def row(self, number: int) -> TraceRow:
		"""Display row: (step#, stack joined by space, remaining input, action text)."""
		return (number, " ".join(self.stack), self.remaining_input, self.action)

	def to_dict(self, number: int) -> Dict[str, Any]:
		return {
			"index": number,
			"stack": list(self.stack),
			"remaining_input": self.remaining_input,
			"action": self.action,
			"kind": self.kind.name,
			"focus_symbol": self.focus_symbol,
			"matched": self.matched,
		}


@dataclass(frozen=True)
class ParseResult:
	accepted: bool
	iteration_count: int
	trace: Tuple[TraceStep, ...]

	@property
	def error(self) -> Optional[TraceStep]:
		"""The step that rejected the input, if any."""
		if self.trace and self.trace[-1].kind.is_error:
			return self.trace[-1]
		return None

	def rows(self) -> List[TraceRow]:
		return [step.row(i) for i, step in enumerate(self.trace)]


def tokenize(text: str) -> List[str]:
	"""One symbol per character, whitespace included."""
	return list(text)


def parse(text: str, grammar: GrammarTable) -> ParseResult:
	"""
	Table-driven LL(1) parse of `text` with a full trace.

	- The stack starts as [end marker, start symbol]; its top is the last element.
	- The input is tokenized per character and the end marker is appended.
	- Every loop iteration makes exactly one decision on the stack top and records one step.
	- The first mismatch or empty table cell ends the parse; there is no recovery.
	"""
	end = grammar.end_marker
	inp = tokenize(text) + [end]
	stack: List[str] = [end, grammar.start]
	steps: List[TraceStep] = []
	iterations = 0
	i = 0

	def snapshot(kind: ActionKind, action: str, focus: str, matched: bool) -> None:
		step = TraceStep(
			stack=tuple(stack),
			remaining_input="".join(inp[i:]),
			kind=kind,
			action=action,
			focus_symbol=focus,
			matched=matched,
		)
		if trace_log.isEnabledFor(logging.DEBUG):
			trace_log.debug(
				"{n: >3} {stack: <20} {input: <15} {action}".format(
					n=len(steps), stack=" ".join(step.stack), input=step.remaining_input, action=action
				)
			)
		steps.append(step)

	def finish(accepted: bool) -> ParseResult:
		return ParseResult(accepted=accepted, iteration_count=iterations, trace=tuple(steps))

	snapshot(ActionKind.INITIAL, "Initial configuration", "", False)

	while stack:
		iterations += 1
		top = stack[-1]
		cur = inp[i]

		if top == end and cur == end and i == len(inp) - 1:
			snapshot(ActionKind.ACCEPT, "Accept", top, True)
			return finish(True)

		# Bottom marker while input remains
		if top == end:
			leftover = "".join(inp[i:-1])
			snapshot(ActionKind.MISMATCH, f"Error: Mismatch. Expected end of input, but found {leftover}", top, False)
			return finish(False)

		if grammar.is_terminal(top):
			if top == cur:
				stack.pop()
				i += 1
				snapshot(ActionKind.MATCH, f"Match {top}", top, True)
				continue
			snapshot(ActionKind.MISMATCH, f"Error: Mismatch. Expected {top}, but found {cur}", top, False)
			return finish(False)

		if grammar.is_non_terminal(top):
			prod = grammar.lookup(top, cur)
			if prod is None:
				snapshot(
					ActionKind.NO_TABLE_ENTRY,
					f"Error: No parsing table entry for Non-Terminal {top} and Input {cur}",
					top,
					False,
				)
				return finish(False)

			stack.pop()
			# Push RHS in reverse order so the leftmost symbol ends up on top
			for sym in reversed(prod.rhs):
				stack.append(sym)
			snapshot(ActionKind.EXPAND, f"Expand {top} → {prod.body_text}", top, True)
			continue

		snapshot(ActionKind.INVALID_SYMBOL, f"Error: Invalid symbol in stack: {top}", top, False)
		return finish(False)

	return finish(False)
