from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from .generator import DEFAULT_MAX_DEPTH
from .grammar import GrammarTable, default_grammar, load_grammar

ENV_PREFIX = "LL1VIZ_"


class Settings(BaseModel):
	# Path to a JSON grammar file; the built-in grammar is used when unset.
	grammar: Optional[Path] = None
	max_depth: int = Field(default=DEFAULT_MAX_DEPTH, ge=0)
	seed: Optional[int] = None
	log_level: str = "INFO"

	@field_validator("log_level")
	@classmethod
	def _known_level(cls, value: str) -> str:
		name = value.strip().upper()
		if not isinstance(logging.getLevelName(name), int):
			raise ValueError(f"Unknown log level: {value}")
		return name

	@classmethod
	def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
		"""
		Read LL1VIZ_GRAMMAR, LL1VIZ_MAX_DEPTH, LL1VIZ_SEED and LL1VIZ_LOG_LEVEL.

		Empty variables count as unset.
		"""
		env = os.environ if environ is None else environ
		values = {}
		for name in cls.model_fields:
			raw = env.get(ENV_PREFIX + name.upper(), "")
			if raw.strip():
				values[name] = raw.strip()
		try:
			return cls(**values)
		except ValidationError as exc:
			raise ValueError(f"Invalid {ENV_PREFIX}* configuration: {exc}") from exc

	def load_grammar(self) -> GrammarTable:
		if self.grammar is None:
			return default_grammar()
		return load_grammar(self.grammar)


def configure_logging(level: str = "INFO") -> None:
	logging.basicConfig(
		level=level,
		format="%(asctime)s %(levelname)s %(name)s: %(message)s",
	)
