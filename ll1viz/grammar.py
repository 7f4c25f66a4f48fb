from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Set, Tuple, Union

from pydantic import BaseModel, Field, ValidationError

EPS = "ε"
EOF = "$"

EPS_SPELLINGS = {"ε", "eps", "epsilon", "EPS", "EPSILON"}

Body = Tuple[str, ...]

log = logging.getLogger("ll1viz.grammar")


class GrammarError(ValueError):
	"""Raised when a grammar definition breaks one of the LL(1) table invariants."""


@dataclass(frozen=True)
class Production:
	lhs: str
	rhs: Body

	@property
	def body_text(self) -> str:
		if len(self.rhs) == 0:
			return EPS
		return " ".join(self.rhs)

	def __str__(self) -> str:
		return f"{self.lhs} → {self.body_text}"


@dataclass(frozen=True)
class ExampleSentence:
	sentence: str
	meaning: str
	valid: bool


def parse_body(text: str) -> Body:
	"""
	Split a production body such as "a A" into its symbols.

	Epsilon can be written as 'ε', 'eps' or 'epsilon', or the body can be left empty.
	Both spellings produce the empty tuple.
	"""
	return tuple(t for t in text.split() if t not in EPS_SPELLINGS)


def build_transition(cells: Iterable[Tuple[str, str, int]]) -> Dict[Tuple[str, str], int]:
	"""
	Collect (non-terminal, lookahead, production index) cells into a transition map.

	Two different productions for the same cell is an LL(1) conflict.
	"""
	transition: Dict[Tuple[str, str], int] = {}
	conflicts: List[str] = []

	for nt, lookahead, index in cells:
		existing = transition.get((nt, lookahead))
		if existing is not None and existing != index:
			conflicts.append(f"Conflict at M[{nt}, {lookahead}]: production #{existing} vs #{index}")
		else:
			transition[(nt, lookahead)] = index

	if conflicts:
		raise GrammarError("Grammar table is not LL(1): " + "; ".join(conflicts))
	return transition


def _shortest_derivations(productions: Mapping[str, Sequence[Body]], terminals: FrozenSet[str]) -> Dict[str, str]:
	"""
	Shortest terminal string derivable from each non-terminal, by fixed-point iteration.

	Non-terminals that derive no finite string are absent from the result.
	"""
	best: Dict[str, str] = {}

	changed = True
	while changed:
		changed = False
		for lhs, bodies in productions.items():
			for body in bodies:
				if any(s not in terminals and s not in best for s in body):
					continue
				text = "".join(s if s in terminals else best[s] for s in body)
				if lhs not in best or len(text) < len(best[lhs]):
					best[lhs] = text
					changed = True

	return best


Cell = Tuple[str, str]


def _expansion_edges(
	productions: Mapping[str, Sequence[Body]], transition: Mapping[Cell, int], non_terminals: FrozenSet[str]
) -> Dict[Cell, List[Cell]]:
	"""
	Cells the parser moves to from each cell without consuming input.

	Expanding M[A, t] leaves t as the lookahead, so the body's leading non-terminal B is
	expanded through M[B, t] next. The symbol after B is reached only if M[B, t] erases B.
	"""
	erased: Set[Cell] = set()
	changed = True
	while changed:
		changed = False
		for (nt, t), index in transition.items():
			if (nt, t) in erased:
				continue
			if all(s in non_terminals and (s, t) in erased for s in productions[nt][index]):
				erased.add((nt, t))
				changed = True

	edges: Dict[Cell, List[Cell]] = {}
	for (nt, t), index in transition.items():
		targets: List[Cell] = []
		for sym in productions[nt][index]:
			if sym not in non_terminals:
				break
			if (sym, t) in transition:
				targets.append((sym, t))
			if (sym, t) not in erased:
				break
		edges[(nt, t)] = targets
	return edges


def _find_cycle(edges: Mapping[Cell, List[Cell]]) -> Optional[List[Cell]]:
	state: Dict[Cell, int] = {}
	path: List[Cell] = []

	def visit(cell: Cell) -> Optional[List[Cell]]:
		state[cell] = 1
		path.append(cell)
		for nxt in edges.get(cell, ()):
			if state.get(nxt) == 1:
				return path[path.index(nxt):] + [nxt]
			if nxt not in state:
				found = visit(nxt)
				if found:
					return found
		path.pop()
		state[cell] = 2
		return None

	for cell in sorted(edges):
		if cell not in state:
			found = visit(cell)
			if found:
				return found
	return None


@dataclass(frozen=True)
class GrammarTable:
	"""
	A validated, read-only LL(1) grammar definition.

	`transition` maps (non-terminal, lookahead) to an index into `productions[non-terminal]`;
	a missing cell is a syntax error, never a default. `first` and `follow` are carried as
	static display data and are not used by the parser.
	"""

	start: str
	terminals: FrozenSet[str]
	non_terminals: FrozenSet[str]
	productions: Mapping[str, Tuple[Body, ...]]
	transition: Mapping[Tuple[str, str], int]
	end_marker: str = EOF
	first: Mapping[str, FrozenSet[str]] = field(default_factory=dict)
	follow: Mapping[str, FrozenSet[str]] = field(default_factory=dict)
	examples: Tuple[ExampleSentence, ...] = ()
	_shortest: Mapping[str, str] = field(init=False, repr=False, compare=False, default_factory=dict)

	def __post_init__(self) -> None:
		object.__setattr__(self, "terminals", frozenset(self.terminals))
		object.__setattr__(self, "non_terminals", frozenset(self.non_terminals))
		object.__setattr__(
			self,
			"productions",
			MappingProxyType({lhs: tuple(tuple(b) for b in bodies) for lhs, bodies in self.productions.items()}),
		)
		object.__setattr__(self, "transition", MappingProxyType(dict(self.transition)))
		object.__setattr__(self, "first", MappingProxyType({k: frozenset(v) for k, v in self.first.items()}))
		object.__setattr__(self, "follow", MappingProxyType({k: frozenset(v) for k, v in self.follow.items()}))
		object.__setattr__(self, "examples", tuple(self.examples))

		self._validate()

		# parse() would expand forever on such a table
		cycle = _find_cycle(_expansion_edges(self.productions, self.transition, self.non_terminals))
		if cycle:
			raise GrammarError(
				"Table expands without consuming input: " + " -> ".join(f"M[{nt}, {t}]" for nt, t in cycle)
			)

		shortest = _shortest_derivations(self.productions, self.terminals)
		unproductive = sorted(self.non_terminals - set(shortest))
		if unproductive:
			raise GrammarError(f"Non-terminals derive no finite string: {', '.join(unproductive)}")
		object.__setattr__(self, "_shortest", MappingProxyType(shortest))

	def __hash__(self) -> int:
		# Mapping proxies are unhashable; hash the parts that decide how input is parsed.
		return hash((self.start, self.end_marker, self.terminals, self.non_terminals, frozenset(self.transition.items())))

	def _validate(self) -> None:
		overlap = self.terminals & self.non_terminals
		if overlap:
			raise GrammarError(f"Symbols declared as both terminal and non-terminal: {', '.join(sorted(overlap))}")

		if len(self.end_marker) != 1:
			raise GrammarError(f"End marker must be a single character, got {self.end_marker!r}")
		for reserved in (EPS, self.end_marker):
			if reserved in self.terminals or reserved in self.non_terminals:
				raise GrammarError(f"Reserved symbol {reserved!r} cannot be declared as a grammar symbol")

		# Input is tokenized one character per symbol.
		for t in sorted(self.terminals):
			if len(t) != 1:
				raise GrammarError(f"Terminal {t!r} must be a single character")

		if self.start not in self.non_terminals:
			raise GrammarError(f"Start symbol {self.start!r} is not a declared non-terminal")

		for lhs, bodies in self.productions.items():
			if lhs not in self.non_terminals:
				raise GrammarError(f"Productions given for undeclared non-terminal {lhs!r}")
			for body in bodies:
				for sym in body:
					if sym not in self.terminals and sym not in self.non_terminals:
						raise GrammarError(f"Undeclared symbol {sym!r} in production {Production(lhs, body)}")

		for nt in sorted(self.non_terminals):
			if not self.productions.get(nt):
				raise GrammarError(f"Non-terminal {nt!r} has no productions")

		lookaheads = self.terminals | {self.end_marker}
		for (nt, lookahead), index in self.transition.items():
			if nt not in self.non_terminals:
				raise GrammarError(f"Table cell M[{nt}, {lookahead}] names an undeclared non-terminal")
			if lookahead not in lookaheads:
				raise GrammarError(f"Table cell M[{nt}, {lookahead}] names an undeclared terminal")
			if not 0 <= index < len(self.productions[nt]):
				raise GrammarError(f"Table cell M[{nt}, {lookahead}] points at missing production #{index}")

		# The generator picks any production; each one must be reachable through the table.
		used = {(nt, index) for (nt, _), index in self.transition.items()}
		for lhs, bodies in self.productions.items():
			for index, body in enumerate(bodies):
				if (lhs, index) not in used:
					raise GrammarError(f"Production {Production(lhs, body)} is never selected by the table")

		for name, sets in (("FIRST", self.first), ("FOLLOW", self.follow)):
			for nt in sets:
				if nt not in self.non_terminals:
					raise GrammarError(f"{name} set given for undeclared non-terminal {nt!r}")

	@property
	def ordered_non_terminals(self) -> List[str]:
		"""Non-terminals in production declaration order."""
		return list(self.productions.keys())

	@property
	def lookaheads(self) -> List[str]:
		return sorted(self.terminals) + [self.end_marker]

	def is_terminal(self, symbol: str) -> bool:
		return symbol in self.terminals

	def is_non_terminal(self, symbol: str) -> bool:
		return symbol in self.non_terminals

	def production(self, lhs: str, index: int) -> Production:
		return Production(lhs, self.productions[lhs][index])

	def productions_for(self, lhs: str) -> List[Production]:
		return [Production(lhs, body) for body in self.productions.get(lhs, ())]

	def all_productions(self) -> List[Production]:
		return [p for lhs in self.ordered_non_terminals for p in self.productions_for(lhs)]

	def lookup(self, non_terminal: str, lookahead: str) -> Optional[Production]:
		index = self.transition.get((non_terminal, lookahead))
		if index is None:
			return None
		return self.production(non_terminal, index)

	def shortest_derivation(self, non_terminal: str) -> str:
		return self._shortest[non_terminal]

	def table_rows(self) -> Dict[str, Dict[str, str]]:
		"""The transition table as non-terminal -> lookahead -> body text ("" for an empty cell)."""
		rows: Dict[str, Dict[str, str]] = {}
		for nt in self.ordered_non_terminals:
			row: Dict[str, str] = {}
			for t in self.lookaheads:
				p = self.lookup(nt, t)
				row[t] = p.body_text if p is not None else ""
			rows[nt] = row
		return rows


class ExampleConfig(BaseModel):
	sentence: str
	meaning: str
	valid: bool = True


class GrammarConfig(BaseModel):
	"""
	JSON shape of a grammar definition file.

	Productions and table cells are written as body strings ("a A", "ε"). A cell may also
	hold a list of bodies; more than one distinct body in a cell is reported as a conflict.
	The end marker may appear in `terminals` and is dropped from the terminal vocabulary.
	"""

	start: str
	end_marker: str = EOF
	terminals: List[str]
	non_terminals: List[str]
	productions: Dict[str, List[str]]
	table: Dict[str, Dict[str, Union[str, List[str]]]]
	first: Dict[str, List[str]] = Field(default_factory=dict)
	follow: Dict[str, List[str]] = Field(default_factory=dict)
	examples: List[ExampleConfig] = Field(default_factory=list)

	def to_grammar(self) -> GrammarTable:
		productions = {lhs: tuple(parse_body(alt) for alt in alts) for lhs, alts in self.productions.items()}

		cells: List[Tuple[str, str, int]] = []
		for nt, row in self.table.items():
			bodies = productions.get(nt)
			if bodies is None:
				raise GrammarError(f"Table row given for non-terminal {nt!r} without productions")
			for lookahead, entry in row.items():
				for text in [entry] if isinstance(entry, str) else entry:
					body = parse_body(text)
					if body not in bodies:
						raise GrammarError(f"M[{nt}, {lookahead}] = {text!r} is not a production of {nt}")
					cells.append((nt, lookahead, bodies.index(body)))

		return GrammarTable(
			start=self.start,
			terminals=frozenset(t for t in self.terminals if t != self.end_marker),
			non_terminals=frozenset(self.non_terminals),
			productions=productions,
			transition=build_transition(cells),
			end_marker=self.end_marker,
			first={k: frozenset(v) for k, v in self.first.items()},
			follow={k: frozenset(v) for k, v in self.follow.items()},
			examples=tuple(ExampleSentence(e.sentence, e.meaning, e.valid) for e in self.examples),
		)


def load_grammar(path: Union[str, Path]) -> GrammarTable:
	path = Path(path)
	try:
		raw = path.read_text(encoding="utf-8")
	except OSError as exc:
		raise GrammarError(f"Cannot read grammar file {path}: {exc}") from exc

	try:
		config = GrammarConfig.model_validate_json(raw)
	except ValidationError as exc:
		raise GrammarError(f"Invalid grammar file {path}: {exc}") from exc

	grammar = config.to_grammar()
	log.info(
		"Loaded grammar from %s (%d non-terminals, %d table cells)",
		path,
		len(grammar.non_terminals),
		len(grammar.transition),
	)
	return grammar


def default_config() -> GrammarConfig:
	"""
	The built-in demo grammar:

	  S -> a A | b B
	  A -> c C | d D | ε
	  B -> c C | d D
	  C -> a S
	  D -> b B

	FOLLOW is {$} everywhere because every recursion ends in S, so A -> ε is chosen only on $.
	"""
	return GrammarConfig(
		start="S",
		terminals=["a", "b", "c", "d"],
		non_terminals=["S", "A", "B", "C", "D"],
		productions={
			"S": ["a A", "b B"],
			"A": ["c C", "d D", EPS],
			"B": ["c C", "d D"],
			"C": ["a S"],
			"D": ["b B"],
		},
		table={
			"S": {"a": "a A", "b": "b B"},
			"A": {"c": "c C", "d": "d D", EOF: EPS},
			"B": {"c": "c C", "d": "d D"},
			"C": {"a": "a S"},
			"D": {"b": "b B"},
		},
		first={
			"S": ["a", "b"],
			"A": ["c", "d", EPS],
			"B": ["c", "d"],
			"C": ["a"],
			"D": ["b"],
		},
		follow={nt: [EOF] for nt in ("S", "A", "B", "C", "D")},
		examples=[
			ExampleConfig(sentence="a", meaning="Valid sentence (S -> aA -> aε)", valid=True),
			ExampleConfig(sentence="bcaa", meaning="Valid sentence (S -> bB -> bcC -> bcaS -> bcaaA -> bcaaε)", valid=True),
			ExampleConfig(sentence="acaa", meaning="Valid sentence (S -> aA -> acC -> acaS -> acaaA -> acaaε)", valid=True),
			ExampleConfig(sentence="bdbcaa", meaning="Valid sentence with deeper recursion.", valid=True),
			ExampleConfig(sentence="c", meaning="Invalid sentence (must start with 'a' or 'b').", valid=False),
			ExampleConfig(sentence="ab", meaning="Invalid sentence (after 'a' expects 'c', 'd' or end of input).", valid=False),
			ExampleConfig(sentence="bda", meaning="Invalid sentence (after 'd' the rule D -> bB requires a 'b').", valid=False),
		],
	)


def default_grammar() -> GrammarTable:
	return default_config().to_grammar()
