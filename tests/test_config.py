from pathlib import Path

import pytest

from ll1viz.config import Settings
from ll1viz.grammar import GrammarError

PARENS_PATH = Path(__file__).resolve().parent.parent / "grammars" / "balanced_parens.json"


def test_defaults():
	settings = Settings.from_env({})

	assert settings.grammar is None
	assert settings.max_depth == 10
	assert settings.seed is None
	assert settings.log_level == "INFO"
	assert settings.load_grammar().start == "S"


def test_from_env():
	settings = Settings.from_env(
		{
			"LL1VIZ_GRAMMAR": str(PARENS_PATH),
			"LL1VIZ_MAX_DEPTH": "5",
			"LL1VIZ_SEED": "7",
			"LL1VIZ_LOG_LEVEL": "debug",
			"UNRELATED": "x",
		}
	)

	assert settings.grammar == PARENS_PATH
	assert settings.max_depth == 5
	assert settings.seed == 7
	assert settings.log_level == "DEBUG"
	assert settings.load_grammar().terminals == frozenset("()")


def test_blank_values_are_unset():
	settings = Settings.from_env({"LL1VIZ_SEED": "  ", "LL1VIZ_GRAMMAR": ""})
	assert settings.seed is None
	assert settings.grammar is None


@pytest.mark.parametrize(
	"env",
	[
		{"LL1VIZ_MAX_DEPTH": "-1"},
		{"LL1VIZ_MAX_DEPTH": "deep"},
		{"LL1VIZ_LOG_LEVEL": "chatty"},
	],
)
def test_invalid_env(env):
	with pytest.raises(ValueError, match="LL1VIZ_"):
		Settings.from_env(env)


def test_missing_grammar_file(tmp_path):
	settings = Settings(grammar=tmp_path / "missing.json")
	with pytest.raises(GrammarError):
		settings.load_grammar()
