from __future__ import annotations

import logging
import random
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, Field

from .config import Settings, configure_logging
from .describe import describe_sentence
from .engine import parse
from .generator import generate
from .grammar import GrammarTable

log = logging.getLogger("ll1viz.api")

STATIC_DIR = Path(__file__).parent / "static"

# Upper bound for request-supplied depths; deeper runs only repeat the same recursion.
MAX_REQUEST_DEPTH = 200


class ParseRequest(BaseModel):
	# Example: "bcaa"
	sentence: str


class GenerateRequest(BaseModel):
	max_depth: Optional[int] = Field(default=None, ge=0, le=MAX_REQUEST_DEPTH)
	# Fixed seed makes the sentence reproducible
	seed: Optional[int] = None


class DescribeRequest(BaseModel):
	sentence: str


def grammar_to_json(grammar: GrammarTable) -> Dict[str, Any]:
	return {
		"start": grammar.start,
		"end_marker": grammar.end_marker,
		"terminals": sorted(grammar.terminals),
		"non_terminals": grammar.ordered_non_terminals,
		"lookaheads": grammar.lookaheads,
		"productions": [str(p) for p in grammar.all_productions()],
		"first": {k: sorted(v) for k, v in grammar.first.items()},
		"follow": {k: sorted(v) for k, v in grammar.follow.items()},
		"table": grammar.table_rows(),
		"examples": [
			{"sentence": ex.sentence, "meaning": ex.meaning, "valid": ex.valid}
			for ex in grammar.examples
		],
	}


def create_app(settings: Optional[Settings] = None) -> FastAPI:
	"""
	Build the API around one grammar, loaded and validated up front.

	An invalid grammar file raises GrammarError here, before any request is served.
	"""
	if settings is None:
		settings = Settings.from_env()
	grammar = settings.load_grammar()
	rng = random.Random(settings.seed)

	app = FastAPI(title="LL(1) Predictive Parser Visualizer", version="1.0.0")

	if STATIC_DIR.exists():
		app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

	app.add_middleware(
		CORSMiddleware,
		allow_origins=["*"],
		allow_credentials=True,
		allow_methods=["*"],
		allow_headers=["*"],
	)

	@app.get("/", response_class=HTMLResponse)
	def index() -> HTMLResponse:
		index_path = STATIC_DIR / "index.html"
		if index_path.exists():
			return HTMLResponse(index_path.read_text(encoding="utf-8"))
		return HTMLResponse(
			"<h2>LL(1) Parser API</h2><p>POST <code>/api/parse</code> with JSON: <code>{\"sentence\": \"bcaa\"}</code></p>"
		)

	@app.get("/health")
	def health() -> Dict[str, str]:
		return {"status": "ok"}

	@app.get("/api/grammar")
	def get_grammar() -> Dict[str, Any]:
		return grammar_to_json(grammar)

	@app.post("/api/parse")
	def parse_sentence(req: ParseRequest) -> Dict[str, Any]:
		result = parse(req.sentence, grammar)
		log.info("parse %r: accepted=%s iterations=%d", req.sentence, result.accepted, result.iteration_count)
		error = result.error
		return {
			"sentence": req.sentence,
			"accepted": result.accepted,
			"iterations": result.iteration_count,
			"error": error.action if error is not None else None,
			"steps": [step.to_dict(i) for i, step in enumerate(result.trace)],
			"rows": [list(row) for row in result.rows()],
		}

	@app.post("/api/generate")
	def generate_sentence(req: GenerateRequest) -> Dict[str, Any]:
		max_depth = settings.max_depth if req.max_depth is None else req.max_depth
		source = random.Random(req.seed) if req.seed is not None else rng
		sentence = generate(grammar, max_depth, rng=source)
		return {
			"sentence": sentence,
			"description": describe_sentence(sentence, grammar),
			"max_depth": max_depth,
		}

	@app.post("/api/describe")
	def describe(req: DescribeRequest) -> Dict[str, str]:
		return {"sentence": req.sentence, "description": describe_sentence(req.sentence, grammar)}

	return app


def build_default_app() -> FastAPI:
	"""Application factory for serving: `uvicorn ll1viz.main:build_default_app --factory`."""
	settings = Settings.from_env()
	configure_logging(settings.log_level)
	return create_app(settings)
