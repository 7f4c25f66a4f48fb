from __future__ import annotations

import logging
import random
from typing import List, Optional

from .grammar import EPS, GrammarTable

log = logging.getLogger("ll1viz.generator")

DEFAULT_MAX_DEPTH = 10


def generate(grammar: GrammarTable, max_depth: int = DEFAULT_MAX_DEPTH, *, rng: Optional[random.Random] = None) -> str:
	"""
	Random sentence derivable from the grammar's start symbol.

	Non-terminals are expanded leftmost-first. Each expansion bumps a counter; once it
	passes `max_depth`, a non-terminal is replaced by its precomputed shortest terminal
	derivation instead of a random production, so generation always terminates.
	"""
	if max_depth < 0:
		raise ValueError(f"max_depth must be >= 0, got {max_depth}")
	if rng is None:
		rng = random.Random()

	out: List[str] = []
	stack: List[str] = [grammar.start]
	expansions = 0

	while stack:
		sym = stack.pop()

		if sym == EPS or sym == grammar.end_marker:
			continue
		if grammar.is_terminal(sym):
			out.append(sym)
			continue

		expansions += 1
		if expansions > max_depth:
			out.append(grammar.shortest_derivation(sym))
			continue

		body = rng.choice(grammar.productions[sym])
		stack.extend(reversed(body))

	sentence = "".join(out).replace(grammar.end_marker, "")
	log.debug("Generated %r after %d expansions (max_depth=%d)", sentence, expansions, max_depth)
	return sentence
