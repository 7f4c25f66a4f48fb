"""
Export the LL(1) grammar artifacts (grammar, FIRST, FOLLOW, parse table) and one
parse trace into Excel-friendly files.

Outputs (always):
  - LL1_Grammar.csv
  - LL1_FIRST.csv
  - LL1_FOLLOW.csv
  - LL1_ParseTable.csv
  - LL1_Trace.csv

Optional (only if openpyxl is installed):
  - LL1_Parse_Table.xlsx  (multiple sheets)

Run:
  python -X utf8 export_ll1_tables.py --out exports --sentence bcaa
"""

from __future__ import annotations

import argparse
import csv
from pathlib import Path
from typing import Dict, FrozenSet, List, Mapping, Optional, Sequence

from ll1viz.config import Settings
from ll1viz.engine import ParseResult, parse
from ll1viz.grammar import EPS, GrammarTable


ROOT = Path(__file__).resolve().parent


def fmt_sym(s: str) -> str:
	return "eps" if s == EPS else s


def export_grammar_csv(grammar: GrammarTable, out_dir: Path) -> Path:
	out_path = out_dir / "LL1_Grammar.csv"
	with out_path.open("w", newline="", encoding="utf-8") as f:
		w = csv.writer(f)
		w.writerow(["Section", "Value"])
		w.writerow(["Start symbol", grammar.start])
		w.writerow(["End marker", grammar.end_marker])
		w.writerow(["Terminals", " ".join(sorted(grammar.terminals))])
		w.writerow(["Non-terminals", " ".join(grammar.ordered_non_terminals)])
		w.writerow([])
		w.writerow(["Productions (one per line)", ""])
		for p in grammar.all_productions():
			w.writerow(["", str(p)])
	return out_path


def export_set_csv(out_dir: Path, filename: str, title: str, sets: Mapping[str, FrozenSet[str]]) -> Path:
	out_path = out_dir / filename
	with out_path.open("w", newline="", encoding="utf-8") as f:
		w = csv.writer(f)
		w.writerow([title, "Symbols (sorted)"])
		for nt, syms in sets.items():
			w.writerow([nt, " ".join(sorted(fmt_sym(s) for s in syms))])
	return out_path


def export_parse_table_csv(grammar: GrammarTable, out_dir: Path) -> Path:
	out_path = out_dir / "LL1_ParseTable.csv"
	with out_path.open("w", newline="", encoding="utf-8") as f:
		w = csv.writer(f)
		w.writerow(["NonTerminal"] + grammar.lookaheads)
		for nt, row in grammar.table_rows().items():
			w.writerow([nt] + [fmt_sym(row[t]) for t in grammar.lookaheads])
	return out_path


def export_trace_csv(sentence: str, result: ParseResult, out_dir: Path) -> Path:
	out_path = out_dir / "LL1_Trace.csv"
	with out_path.open("w", newline="", encoding="utf-8") as f:
		w = csv.writer(f)
		w.writerow(["Sentence", sentence, "Accepted", result.accepted, "Iterations", result.iteration_count])
		w.writerow(["Step", "Stack", "Input", "Action"])
		for row in result.rows():
			w.writerow(list(row))
	return out_path


def try_export_xlsx(grammar: GrammarTable, result: ParseResult, out_dir: Path) -> bool:
	try:
		import openpyxl  # type: ignore
		from openpyxl.utils import get_column_letter  # type: ignore
	except ImportError:
		return False

	wb = openpyxl.Workbook()
	wb.remove(wb.active)

	ws = wb.create_sheet("Grammar")
	ws.append(["Productions"])
	for p in grammar.all_productions():
		ws.append([str(p)])

	for title, sets in (("FIRST", grammar.first), ("FOLLOW", grammar.follow)):
		ws = wb.create_sheet(title)
		ws.append(["NonTerminal", "Symbols (sorted)"])
		for nt, syms in sets.items():
			ws.append([nt, " ".join(sorted(fmt_sym(s) for s in syms))])

	ws = wb.create_sheet("ParseTable")
	ws.append(["NonTerminal"] + grammar.lookaheads)
	for nt, row in grammar.table_rows().items():
		ws.append([nt] + [fmt_sym(row[t]) for t in grammar.lookaheads])

	ws = wb.create_sheet("Trace")
	ws.append(["Step", "Stack", "Input", "Action"])
	for row in result.rows():
		ws.append(list(row))

	for sheet in wb.worksheets:
		for col in range(1, sheet.max_column + 1):
			letter = get_column_letter(col)
			sheet.column_dimensions[letter].width = 22 if col == 1 else 18

	wb.save(out_dir / "LL1_Parse_Table.xlsx")
	return True


def export_all(grammar: GrammarTable, sentence: str, out_dir: Path) -> Dict[str, object]:
	out_dir.mkdir(parents=True, exist_ok=True)
	result = parse(sentence, grammar)

	written: List[Path] = [
		export_grammar_csv(grammar, out_dir),
		export_set_csv(out_dir, "LL1_FIRST.csv", "FIRST", grammar.first),
		export_set_csv(out_dir, "LL1_FOLLOW.csv", "FOLLOW", grammar.follow),
		export_parse_table_csv(grammar, out_dir),
		export_trace_csv(sentence, result, out_dir),
	]
	return {"written": written, "xlsx": try_export_xlsx(grammar, result, out_dir), "accepted": result.accepted}


def main(argv: Optional[Sequence[str]] = None) -> None:
	ap = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
	ap.add_argument("--out", type=Path, default=ROOT, help="output directory")
	ap.add_argument("--sentence", default=None, help="sentence to trace (default: first example)")
	args = ap.parse_args(argv)

	grammar = Settings.from_env().load_grammar()
	sentence = args.sentence
	if sentence is None:
		sentence = grammar.examples[0].sentence if grammar.examples else ""

	report = export_all(grammar, sentence, args.out)

	print("Wrote:", ", ".join(p.name for p in report["written"]))  # type: ignore[attr-defined]
	print(f"Trace of {sentence!r} accepted:", report["accepted"])
	print("Wrote LL1_Parse_Table.xlsx:", report["xlsx"])


if __name__ == "__main__":
	main()
