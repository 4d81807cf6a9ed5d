# tests/conftest.py
"""
Shared fixtures and helpers for the qualifiers-order test-suite.

Most tests drive the real pipeline on small C/C++ snippets; the helpers
below keep that to one line per case.
"""

from __future__ import annotations

from typing import List, Sequence

import pytest

from qualifiers_order.check import Finding, QualifiersOrderCheck
from qualifiers_order.config import QualifiersOrderConfig
from qualifiers_order.frontend import parse_source
from qualifiers_order.lexer import TokenCursor
from qualifiers_order.planner import QualifierAlignment
from qualifiers_order.runner import CheckRunner
from qualifiers_order.source import SourceBuffer, SourceSpan
from qualifiers_order.types import Qualifier


# ═══════════════════════════════════════════════════════════════════════
#  Helpers
# ═══════════════════════════════════════════════════════════════════════

def make_cursor(text: str, name: str = "t.cpp",
                macro_ranges: Sequence[SourceSpan] = ()) -> TokenCursor:
    return TokenCursor(SourceBuffer(text, name, tuple(macro_ranges)))


def make_config(alignment: str = "Left", qualifier: str = "const", **kwargs) -> QualifiersOrderConfig:
    return QualifiersOrderConfig(
        alignment=QualifierAlignment.from_string(alignment),
        qualifier=Qualifier.from_string(qualifier),
        **kwargs,
    )


def findings_for(text: str, alignment: str = "Left", qualifier: str = "const",
                 name: str = "t.cpp", **kwargs) -> List[Finding]:
    """Findings after NOLINT filtering, as the CLI would report them."""
    runner = CheckRunner(make_config(alignment, qualifier, **kwargs))
    return runner.check_source(text, name).findings


def fixed(text: str, alignment: str = "Left", qualifier: str = "const", **kwargs) -> str:
    """Text after applying every fix for *text*."""
    runner = CheckRunner(make_config(alignment, qualifier, **kwargs))
    return runner.check_source(text, "t.cpp").fix().text


def check_for(text: str, alignment: str = "Left", qualifier: str = "const"):
    """A QualifiersOrderCheck bound to *text*, plus its declarations."""
    unit = parse_source(text, "t.cpp")
    check = QualifiersOrderCheck(
        unit.cursor,
        alignment=QualifierAlignment.from_string(alignment),
        qualifier=Qualifier.from_string(qualifier),
    )
    return check, unit.declarations


# ═══════════════════════════════════════════════════════════════════════
#  Sample sources
# ═══════════════════════════════════════════════════════════════════════

SAMPLE_LEFT_CLEAN = """\
#include <vector>

static const int limit = 10;
const char *name(const char *s);

namespace app {
struct Config {
    const int size;
    std::vector<const int *> items;
};
}
"""

SAMPLE_MIXED = """\
int const a = 1;
const int b = 2;
char const *greet(char const *who);
"""


@pytest.fixture
def left_runner() -> CheckRunner:
    return CheckRunner(make_config("Left"))


@pytest.fixture
def right_runner() -> CheckRunner:
    return CheckRunner(make_config("Right"))


@pytest.fixture
def sample_file(tmp_path):
    path = tmp_path / "sample.c"
    path.write_text(SAMPLE_MIXED, encoding="utf-8")
    return path
