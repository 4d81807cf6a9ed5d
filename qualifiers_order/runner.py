"""
qualifiers_order/runner.py
══════════════════════════

One file through the whole pipeline::

    text ─► frontend.parse_source ─► QualifiersOrderCheck.run
         ─► NOLINT filtering ─► (optional) fixes.apply_fixes

:class:`CheckRunner` owns the configuration; each call returns a
:class:`FileResult` and never touches the file system except to read
(``check_file``) or, on request, to write fixes back (``write_fixes``).
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Union

from qualifiers_order.check import Finding, QualifiersOrderCheck
from qualifiers_order.config import QualifiersOrderConfig
from qualifiers_order.errors import FrontendParseError
from qualifiers_order.fixes import FixResult, apply_fixes, unified_diff
from qualifiers_order.frontend import TranslationUnit, parse_source
from qualifiers_order.suppressions import SuppressionManager

logger = logging.getLogger(__name__)


@dataclass
class FileResult:
    """Outcome of checking one file."""

    name: str
    text: str = ""
    unit: Optional[TranslationUnit] = None
    findings: List[Finding] = field(default_factory=list)
    suppressed: int = 0
    skipped: bool = False
    elapsed_ms: float = 0.0
    error: Optional[str] = None

    def fix(self) -> FixResult:
        return apply_fixes(self.text, (f.plan for f in self.findings))

    def diff(self) -> str:
        return unified_diff(self.text, self.fix().text, self.name)


class CheckRunner:
    """Runs the qualifiers-order check over sources with one configuration."""

    def __init__(self, config: Optional[QualifiersOrderConfig] = None) -> None:
        self.config = config or QualifiersOrderConfig()

    def check_source(self, text: str, name: str = "<input>") -> FileResult:
        t0 = time.perf_counter()
        result = FileResult(name=name, text=text)
        if self.config.is_suppressed(name):
            logger.info("%s: suppressed by configuration", name)
            result.skipped = True
            return result

        unit = parse_source(text, name)
        check = QualifiersOrderCheck.from_config(unit.cursor, self.config)
        suppressions = SuppressionManager.from_cursor(unit.cursor)
        for finding in check.run(unit.declarations):
            if suppressions.is_suppressed(check.name, finding.location.line):
                logger.debug("%s: NOLINT on line %d", name, finding.location.line)
                result.suppressed += 1
                continue
            result.findings.append(finding)

        result.unit = unit
        result.elapsed_ms = (time.perf_counter() - t0) * 1000.0
        logger.info("%s: %d finding(s), %d suppressed (%.1fms)",
                    name, len(result.findings), result.suppressed, result.elapsed_ms)
        return result

    def check_file(self, path: Union[str, Path], encoding: str = "utf-8") -> FileResult:
        p = Path(path)
        try:
            with open(p, encoding=encoding, newline="") as fh:
                text = fh.read()
        except (OSError, UnicodeDecodeError) as exc:
            raise FrontendParseError(f"cannot read {p}: {exc}", cause=exc) from exc
        return self.check_source(text, str(path))

    def check_files(self, paths: Iterable[Union[str, Path]]) -> List[FileResult]:
        """Check every path; an unreadable file yields a result with ``error`` set."""
        results = []
        for p in paths:
            try:
                results.append(self.check_file(p))
            except FrontendParseError as exc:
                logger.error("%s", exc)
                results.append(FileResult(name=str(p), error=str(exc)))
        return results

    @staticmethod
    def write_fixes(result: FileResult, encoding: str = "utf-8") -> FixResult:
        """Rewrite *result*'s file in place; no-op when nothing applies."""
        fixed = result.fix()
        if fixed.changed:
            with open(result.name, "w", encoding=encoding, newline="") as fh:
                fh.write(fixed.text)
            logger.info("%s: applied %d fix(es)", result.name, len(fixed.applied))
        return fixed


__all__ = ["FileResult", "CheckRunner"]
