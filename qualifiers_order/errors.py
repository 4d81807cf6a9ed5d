# qualifiers_order/errors.py
"""
Error types for the qualifiers-order check.

Error Hierarchy:
────────────────
  QualifiersOrderError (base)
  ├── QualifierNotFoundError    - type system and source text disagree
  ├── UnanalyzableSpanError     - span crosses buffers or macro expansions
  ├── MalformedDeclaratorError  - declaration shape does not fit dispatch
  ├── OffsetOutOfRangeError     - offset arithmetic walked off the buffer
  ├── ConfigError               - bad configuration file or option value
  └── FrontendParseError        - input source could not be read/split

The first four are *recoverable*: they abort the analysis of one
declaration context and nothing else.  ``QualifiersOrderCheck`` catches
them, logs the reason at DEBUG and moves on.  The last two are
infrastructure failures and propagate up to the CLI.
"""

from __future__ import annotations

from enum import Enum, unique
from typing import Any, Dict, Optional

from qualifiers_order.source import SourceSpan


@unique
class ErrorPhase(Enum):
    """Pipeline phase in which an error was raised."""

    CONFIG = "config"
    FRONTEND = "frontend"
    DISPATCH = "dispatch"
    RESOLVE = "resolve"
    LOCATE = "locate"
    PLAN = "plan"


class QualifiersOrderError(Exception):
    """
    Base exception for all qualifiers-order errors.

    Carries the phase it came from, an optional source span and a hint
    that the CLI prints under the message.
    """

    phase: ErrorPhase = ErrorPhase.PLAN
    recoverable: bool = False

    def __init__(
        self,
        message: str,
        span: Optional[SourceSpan] = None,
        hint: str = "",
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.span = span
        self.hint = hint
        self.cause = cause

    def to_json(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "error": type(self).__name__,
            "phase": self.phase.value,
            "message": self.message,
        }
        if self.span is not None:
            result["span"] = [self.span.start, self.span.end]
        if self.hint:
            result["hint"] = self.hint
        return result

    def __str__(self) -> str:
        text = self.message
        if self.span is not None:
            text = f"{text} at {self.span}"
        if self.hint:
            text = f"{text} (hint: {self.hint})"
        return text


class QualifierNotFoundError(QualifiersOrderError):
    """The qualifier is on the type but neither candidate region spells it."""

    phase = ErrorPhase.LOCATE
    recoverable = True


class UnanalyzableSpanError(QualifiersOrderError):
    """A span comes from another file or touches macro-expanded text."""

    phase = ErrorPhase.RESOLVE
    recoverable = True


class MalformedDeclaratorError(QualifiersOrderError):
    """A declaration was dispatched with a shape it does not have."""

    phase = ErrorPhase.DISPATCH
    recoverable = True


class OffsetOutOfRangeError(QualifiersOrderError):
    """Offset arithmetic left the bounds of the source buffer."""

    phase = ErrorPhase.RESOLVE
    recoverable = True


class ConfigError(QualifiersOrderError):
    """Configuration file or option value is invalid."""

    phase = ErrorPhase.CONFIG


class FrontendParseError(QualifiersOrderError):
    """Input could not be read or split into statements."""

    phase = ErrorPhase.FRONTEND


__all__ = [
    "ErrorPhase",
    "QualifiersOrderError",
    "QualifierNotFoundError",
    "UnanalyzableSpanError",
    "MalformedDeclaratorError",
    "OffsetOutOfRangeError",
    "ConfigError",
    "FrontendParseError",
]
