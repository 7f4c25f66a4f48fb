from __future__ import annotations

from .engine import tokenize
from .grammar import GrammarTable

LONG_SENTENCE = 8


def describe_sentence(sentence: str, grammar: GrammarTable) -> str:
	"""Human-readable description of a sentence. Never fails."""
	for example in grammar.examples:
		if example.valid and example.sentence == sentence:
			return example.meaning

	symbols = tokenize(sentence)
	if not symbols:
		return "Empty sentence."

	first = grammar.lookup(grammar.start, symbols[0])
	if first is None:
		return f"Sentence cannot start with '{symbols[0]}'."

	if len(symbols) > LONG_SENTENCE:
		return f"Long sentence starting with {first} (repeated recursion)."
	return f"Sentence starting with {first}."
