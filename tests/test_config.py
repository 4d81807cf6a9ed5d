# tests/test_config.py
"""
Tests for the S-expression configuration file: option parsing, error
reporting, suppression globs and discovery.
"""

import pytest

from qualifiers_order.config import (
    DEFAULT_CONFIG_NAME,
    QualifiersOrderConfig,
    find_config,
    load_config,
    parse_config,
)
from qualifiers_order.errors import ConfigError
from qualifiers_order.planner import QualifierAlignment
from qualifiers_order.types import Qualifier

FULL = """
;; project settings
(qualifiers-order
  (alignment Right)
  (qualifier volatile)
  (check-parameters false)
  (check-template-arguments true)
  (suppress "legacy/*.c" "third_party/*"))
"""


class TestParse:

    def test_full_form(self):
        cfg = parse_config(FULL)
        assert cfg.alignment is QualifierAlignment.RIGHT
        assert cfg.qualifier is Qualifier.VOLATILE
        assert cfg.check_parameters is False
        assert cfg.check_template_arguments is True
        assert cfg.suppressions == ("legacy/*.c", "third_party/*")

    def test_empty_form_gives_defaults(self):
        assert parse_config("(qualifiers-order)") == QualifiersOrderConfig()

    def test_case_insensitive(self):
        cfg = parse_config("(Qualifiers-Order (ALIGNMENT left) (Qualifier CONST))")
        assert cfg.alignment is QualifierAlignment.LEFT
        assert cfg.qualifier is Qualifier.CONST

    @pytest.mark.parametrize("word,expected", [
        ("true", True), ("t", True), ("yes", True), ("on", True),
        ("false", False), ("nil", False), ("no", False), ("off", False),
    ])
    def test_booleans(self, word, expected):
        cfg = parse_config(f"(qualifiers-order (check-parameters {word}))")
        assert cfg.check_parameters is expected

    def test_repeated_suppress_accumulates(self):
        cfg = parse_config('(qualifiers-order (suppress "a.c") (suppress "b.c" "c.c"))')
        assert cfg.suppressions == ("a.c", "b.c", "c.c")

    def test_last_value_wins(self):
        cfg = parse_config("(qualifiers-order (alignment Left) (alignment Right))")
        assert cfg.alignment is QualifierAlignment.RIGHT


class TestErrors:

    def test_unknown_option(self):
        with pytest.raises(ConfigError, match="unknown option 'alignmnet'") as exc_info:
            parse_config("(qualifiers-order (alignmnet Left))")
        assert "alignment" in exc_info.value.hint

    def test_bad_alignment(self):
        with pytest.raises(ConfigError, match="Left"):
            parse_config("(qualifiers-order (alignment Middle))")

    def test_bad_qualifier(self):
        with pytest.raises(ConfigError):
            parse_config("(qualifiers-order (qualifier mutable))")

    def test_bad_boolean(self):
        with pytest.raises(ConfigError, match="boolean"):
            parse_config("(qualifiers-order (check-parameters maybe))")

    def test_wrong_arity(self):
        with pytest.raises(ConfigError, match="exactly one"):
            parse_config("(qualifiers-order (alignment Left Right))")

    def test_empty_suppress(self):
        with pytest.raises(ConfigError):
            parse_config("(qualifiers-order (suppress))")

    def test_wrong_head(self):
        with pytest.raises(ConfigError, match="expected"):
            parse_config("(clang-tidy (alignment Left))")

    def test_syntax_error(self):
        with pytest.raises(ConfigError, match="syntax"):
            parse_config("(qualifiers-order (alignment Left)", filename="broken")

    def test_bare_atom_option(self):
        with pytest.raises(ConfigError):
            parse_config("(qualifiers-order alignment)")


class TestSettings:

    def test_is_suppressed_by_path_or_basename(self):
        cfg = QualifiersOrderConfig(suppressions=("legacy/*.c", "gen_*.h"))
        assert cfg.is_suppressed("legacy/old.c")
        assert cfg.is_suppressed("src/gen_tables.h")
        assert not cfg.is_suppressed("src/main.c")

    def test_merged_ignores_none(self):
        cfg = QualifiersOrderConfig(alignment=QualifierAlignment.RIGHT)
        merged = cfg.merged(alignment=None, qualifier=Qualifier.VOLATILE)
        assert merged.alignment is QualifierAlignment.RIGHT
        assert merged.qualifier is Qualifier.VOLATILE
        assert cfg.qualifier is Qualifier.CONST


class TestFiles:

    def test_load_config(self, tmp_path):
        path = tmp_path / DEFAULT_CONFIG_NAME
        path.write_text("(qualifiers-order (alignment Right))\n", encoding="utf-8")
        assert load_config(path).alignment is QualifierAlignment.RIGHT

    def test_load_missing(self, tmp_path):
        with pytest.raises(ConfigError, match="cannot read"):
            load_config(tmp_path / "nope")

    def test_find_config_walks_up(self, tmp_path):
        path = tmp_path / DEFAULT_CONFIG_NAME
        path.write_text("(qualifiers-order)\n", encoding="utf-8")
        nested = tmp_path / "src" / "lib"
        nested.mkdir(parents=True)
        assert find_config(nested) == path.resolve()

    def test_find_config_from_file(self, tmp_path):
        path = tmp_path / DEFAULT_CONFIG_NAME
        path.write_text("(qualifiers-order)\n", encoding="utf-8")
        source = tmp_path / "a.c"
        source.write_text("int x;\n", encoding="utf-8")
        assert find_config(source) == path.resolve()

