"""
qualifiers_order — qualifier placement check for C and C++ sources
==================================================================

Finds declarations whose ``const`` (or ``volatile`` / ``restrict``) is
written on the wrong side of the type it qualifies and plans the minimal
edit that moves it:

    Left  :  const int x;     const std::vector<const int> v;
    Right :  int const x;     std::vector<int const> const v;

Qualifiers that apply to a pointer (``int *const p``) are never touched.

Quick start
-----------
>>> from qualifiers_order import CheckRunner, QualifiersOrderConfig
>>> result = CheckRunner(QualifiersOrderConfig()).check_source("int const x;", "a.c")
>>> [f.message for f in result.findings]
['wrong order of qualifiers']
>>> result.fix().text
'const int x;'

Package layout
--------------
::

    qualifiers_order/
    ├── source.py        buffers, spans, locations
    ├── lexer.py         raw lexer + TokenCursor
    ├── types.py         structural type trees
    ├── type_shape.py    innermost type, qualifier presence, candidate regions
    ├── locator.py       finds the written qualifier
    ├── planner.py       alignment policy and edit plans
    ├── dispatcher.py    declarations → analysis contexts
    ├── check.py         QualifiersOrderCheck
    ├── frontend.py      statement splitter + parsimonious declaration grammar
    ├── config.py        S-expression configuration (sexpdata)
    ├── suppressions.py  NOLINT comments
    ├── fixes.py         atomic fix application, unified diffs
    ├── reporter.py      terminal / gcc / JSON / SARIF / HTML output
    ├── runner.py        one file through the pipeline
    └── main.py          argparse CLI
"""

from __future__ import annotations

__version__ = "0.1.0"

from qualifiers_order.check import Finding, QualifiersOrderCheck
from qualifiers_order.config import QualifiersOrderConfig, load_config, parse_config
from qualifiers_order.errors import QualifiersOrderError
from qualifiers_order.fixes import apply_fixes
from qualifiers_order.frontend import TranslationUnit, parse_file, parse_source
from qualifiers_order.planner import EditPlan, QualifierAlignment
from qualifiers_order.runner import CheckRunner, FileResult
from qualifiers_order.types import Qualifier

__all__ = [
    "__version__",
    "CheckRunner",
    "EditPlan",
    "FileResult",
    "Finding",
    "Qualifier",
    "QualifierAlignment",
    "QualifiersOrderCheck",
    "QualifiersOrderConfig",
    "QualifiersOrderError",
    "TranslationUnit",
    "apply_fixes",
    "load_config",
    "parse_config",
    "parse_file",
    "parse_source",
]
