"""
Print the grammar, FIRST/FOLLOW sets, LL(1) table cells and parse traces
for the configured grammar (LL1VIZ_GRAMMAR, or the built-in one).

Usage:
  python -X utf8 gen_ll1_logs.py               # traces for the grammar's example sentences
  python -X utf8 gen_ll1_logs.py bcaa ab c     # traces for the given sentences
"""

from __future__ import annotations

import argparse
import random
from typing import List, Optional, Sequence

from ll1viz.config import Settings
from ll1viz.engine import ParseResult, parse
from ll1viz.generator import generate
from ll1viz.grammar import GrammarTable


def print_trace(sentence: str, result: ParseResult) -> None:
	print(f"\n=== Parse: {sentence!r} ===")
	print("accepted:", result.accepted)
	print("iterations:", result.iteration_count)
	if result.error is not None:
		print("error:", result.error.action)
	for number, stack, remaining, action in result.rows():
		print(f"{number:>3}  STACK: {stack:<16} | IN: {remaining:<12} | ACT: {action}")


def print_grammar(grammar: GrammarTable) -> None:
	print("=== GRAMMAR ===")
	for p in grammar.all_productions():
		print(p)

	print("\n=== FIRST ===")
	for nt, syms in grammar.first.items():
		print(f"{nt}: {sorted(syms)}")

	print("\n=== FOLLOW ===")
	for nt, syms in grammar.follow.items():
		print(f"{nt}: {sorted(syms)}")

	print("\n=== LL(1) TABLE (non-empty cells) ===")
	for nt, row in grammar.table_rows().items():
		for t, body in row.items():
			if body:
				print(f"M[{nt}, {t}] = {body}")


def main(argv: Optional[Sequence[str]] = None) -> None:
	ap = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
	ap.add_argument("sentences", nargs="*", help="sentences to trace (default: the grammar's examples)")
	ap.add_argument("--generate", type=int, default=3, metavar="N", help="also trace N generated sentences")
	args = ap.parse_args(argv)

	settings = Settings.from_env()
	grammar = settings.load_grammar()
	print_grammar(grammar)

	sentences: List[str] = list(args.sentences) or [ex.sentence for ex in grammar.examples]
	for sentence in sentences:
		print_trace(sentence, parse(sentence, grammar))

	rng = random.Random(settings.seed)
	for _ in range(args.generate):
		sentence = generate(grammar, settings.max_depth, rng=rng)
		print_trace(sentence, parse(sentence, grammar))

	print("\n(EOF symbol is:", grammar.end_marker, ")")


if __name__ == "__main__":
	main()
