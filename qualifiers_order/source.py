"""
qualifiers_order/source.py
══════════════════════════

Immutable source buffers and the spans that address them.

Every offset handled by the check is a character offset into one
:class:`SourceBuffer`.  Spans are half-open ``[start, end)``.  A span whose
``file`` is set to something other than the buffer's name, or that overlaps
one of the buffer's macro-expanded ranges, belongs to text the check cannot
rewrite safely and is rejected by :meth:`SourceBuffer.is_analyzable`.
"""

from __future__ import annotations

import bisect
from dataclasses import dataclass, field
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class SourceSpan:
    """Half-open character range ``[start, end)`` in one buffer."""

    start: int
    end: int
    file: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self.end <= self.start

    def __len__(self) -> int:
        return max(self.end - self.start, 0)

    def contains(self, offset: int) -> bool:
        return self.start <= offset < self.end

    def overlaps(self, other: "SourceSpan") -> bool:
        return self.start < other.end and other.start < self.end

    def with_end(self, end: int) -> "SourceSpan":
        return SourceSpan(self.start, end, self.file)

    def with_start(self, start: int) -> "SourceSpan":
        return SourceSpan(start, self.end, self.file)

    def __str__(self) -> str:
        prefix = f"{self.file}:" if self.file else ""
        return f"{prefix}[{self.start}, {self.end})"


@dataclass(frozen=True)
class SourceLocation:
    """A 1-based line/column point, used for reporting only."""

    file: str = ""
    line: int = 0
    column: int = 0

    def __str__(self) -> str:
        if self.column:
            return f"{self.file}:{self.line}:{self.column}"
        return f"{self.file}:{self.line}"


@dataclass(frozen=True)
class SourceBuffer:
    """
    Immutable snapshot of one source file.

    Attributes
    ----------
    text         : the full file contents
    name         : file name used in spans and diagnostics
    macro_ranges : spans of text produced by macro expansion
    """

    text: str
    name: str = "<input>"
    macro_ranges: Tuple[SourceSpan, ...] = ()
    _line_starts: Tuple[int, ...] = field(default=(), init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        starts: List[int] = [0]
        for idx, ch in enumerate(self.text):
            if ch == "\n":
                starts.append(idx + 1)
        object.__setattr__(self, "_line_starts", tuple(starts))

    def __len__(self) -> int:
        return len(self.text)

    def in_bounds(self, offset: int) -> bool:
        """True for offsets ``0 .. len(text)`` inclusive (end-of-buffer is valid)."""
        return 0 <= offset <= len(self.text)

    def char_at(self, offset: int) -> str:
        """Character at *offset*, or ``""`` outside the buffer."""
        if 0 <= offset < len(self.text):
            return self.text[offset]
        return ""

    def slice(self, span: SourceSpan) -> str:
        return self.text[span.start:span.end]

    def span(self, start: int, end: int) -> SourceSpan:
        return SourceSpan(start, end, self.name)

    def is_macro(self, span: SourceSpan) -> bool:
        for rng in self.macro_ranges:
            if span.is_empty:
                if rng.contains(span.start):
                    return True
            elif rng.overlaps(span):
                return True
        return False

    def is_analyzable(self, span: SourceSpan) -> bool:
        """Same file, in bounds, ordered and not macro-expanded."""
        if span.file is not None and span.file != self.name:
            return False
        if not (self.in_bounds(span.start) and self.in_bounds(span.end)):
            return False
        if span.end < span.start:
            return False
        return not self.is_macro(span)

    def location(self, offset: int) -> SourceLocation:
        """Map *offset* to a 1-based line/column location."""
        offset = min(max(offset, 0), len(self.text))
        line_idx = bisect.bisect_right(self._line_starts, offset) - 1
        column = offset - self._line_starts[line_idx] + 1
        return SourceLocation(self.name, line_idx + 1, column)

    def line_text(self, line: int) -> str:
        """Text of 1-based *line* without its newline."""
        if line < 1 or line > len(self._line_starts):
            return ""
        start = self._line_starts[line - 1]
        end = self.text.find("\n", start)
        if end < 0:
            end = len(self.text)
        return self.text[start:end].rstrip("\r")


__all__ = ["SourceSpan", "SourceLocation", "SourceBuffer"]
