"""
qualifiers_order/suppressions.py
════════════════════════════════

``NOLINT`` comment handling, in the clang-tidy dialect:

    int const a;  // NOLINT
    int const b;  // NOLINT(qualifiers-order)
    // NOLINTNEXTLINE(qualifiers-order)
    int const c;
    // NOLINTBEGIN
    int const d;
    // NOLINTEND

A bare marker silences every check; a parenthesised list names the
checks it applies to, each entry a glob (``qualifiers-*``, ``*``).
"""

from __future__ import annotations

import fnmatch
import logging
import re
from collections import defaultdict
from typing import Dict, List, Optional, Set, Tuple

from qualifiers_order.lexer import TokenCursor, TokenKind

logger = logging.getLogger(__name__)

_NOLINT_RE = re.compile(r"\bNOLINT(NEXTLINE|BEGIN|END)?\b(?:\(([^)]*)\))?")

_ANY = "*"


def _patterns(arg: Optional[str]) -> Set[str]:
    if arg is None:
        return {_ANY}
    names = {p.strip() for p in arg.split(",") if p.strip()}
    return names or {_ANY}


class SuppressionManager:
    """
    Line-indexed NOLINT suppressions for one buffer.

    Usage
    -----
    >>> sm = SuppressionManager.from_cursor(cursor)
    >>> if not sm.is_suppressed("qualifiers-order", finding.location.line):
    ...     emit(finding)
    """

    def __init__(self) -> None:
        # line → check-name patterns suppressed on that line
        self._lines: Dict[int, Set[str]] = defaultdict(set)
        # (first line, last line, patterns) for NOLINTBEGIN/END regions
        self._regions: List[Tuple[int, int, Set[str]]] = []

    @classmethod
    def from_cursor(cls, cursor: TokenCursor) -> "SuppressionManager":
        sm = cls()
        sm.load_inline_suppressions(cursor)
        return sm

    def load_inline_suppressions(self, cursor: TokenCursor) -> None:
        """Scan the comment tokens of *cursor*'s buffer for NOLINT markers."""
        buffer = cursor.buffer
        open_regions: List[Tuple[int, Set[str]]] = []
        for tok in cursor.tokens:
            if tok.kind is not TokenKind.COMMENT:
                continue
            for m in _NOLINT_RE.finditer(tok.text):
                kind, arg = m.group(1), m.group(2)
                line = buffer.location(tok.start + m.start()).line
                patterns = _patterns(arg)
                if kind is None:
                    self._lines[line] |= patterns
                elif kind == "NEXTLINE":
                    self._lines[buffer.location(tok.end).line + 1] |= patterns
                elif kind == "BEGIN":
                    open_regions.append((line, patterns))
                elif open_regions:
                    first, pats = open_regions.pop()
                    self._regions.append((first, line, pats))
                else:
                    logger.warning("%s:%d: NOLINTEND without NOLINTBEGIN", buffer.name, line)
        for first, _ in open_regions:
            logger.warning("%s:%d: unmatched NOLINTBEGIN", buffer.name, first)

    def add_line_suppression(self, line: int, check: str = _ANY) -> None:
        self._lines[line].add(check)

    def is_suppressed(self, check: str, line: int) -> bool:
        """Check whether *check* is silenced on 1-based *line*."""
        if self._matches(check, self._lines.get(line, ())):
            return True
        return any(
            first <= line <= last and self._matches(check, pats)
            for first, last, pats in self._regions
        )

    @staticmethod
    def _matches(check: str, patterns) -> bool:
        return any(fnmatch.fnmatchcase(check, p) for p in patterns)

    def __len__(self) -> int:
        return sum(len(v) for v in self._lines.values()) + len(self._regions)


__all__ = ["SuppressionManager"]
