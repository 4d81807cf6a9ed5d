"""
qualifiers_order/check.py
═════════════════════════

The qualifiers-order check.

For every :class:`~qualifiers_order.dispatcher.DeclarationContext`:

  1. reconcile the qualifier on the innermost type   (type_shape)
  2. compute the left and right candidate regions    (type_shape)
  3. find the written qualifier                      (locator)
  4. plan the move to the canonical position         (planner)

Anything that makes a context unanalyzable (macro text, a qualifier that
is not where the type says it is, a malformed declarator) drops that one
context and is logged at DEBUG; the rest of the run continues.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import ClassVar, Iterable, List, Optional, Set, Tuple

from qualifiers_order.dispatcher import (
    Declaration,
    DeclarationContext,
    DeclarationDispatcher,
)
from qualifiers_order.errors import QualifiersOrderError, UnanalyzableSpanError
from qualifiers_order.lexer import TokenCursor
from qualifiers_order.locator import locate
from qualifiers_order.planner import EditPlan, QualifierAlignment, plan_edit
from qualifiers_order.source import SourceLocation, SourceSpan
from qualifiers_order.type_shape import (
    QualifierPresence,
    qualifier_presence,
    range_after_type,
    range_before_type,
)
from qualifiers_order.types import Qualifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Finding:
    """One wrong-order finding and the plan that fixes it."""

    anchor: int
    message: str
    plan: EditPlan
    location: SourceLocation
    context: DeclarationContext

    def to_dict(self) -> dict:
        return {
            "file": self.location.file,
            "line": self.location.line,
            "column": self.location.column,
            "message": self.message,
            "declaration": self.context.label,
            "kind": self.context.kind.value,
            "plan": self.plan.to_dict(),
        }


class QualifiersOrderCheck:
    """
    Checks that a qualifier sits on one fixed side of the type it qualifies.

    Parameters
    ----------
    cursor                   : TokenCursor over the analysed buffer
    alignment                : QualifierAlignment (``NONE`` disables the check)
    qualifier                : the one qualifier tracked by this instance
    check_parameters         : also visit function parameters
    check_template_arguments : also visit template arguments, recursively
    """

    name: ClassVar[str] = "qualifiers-order"
    error_id: ClassVar[str] = "qualifiersOrder"

    def __init__(
        self,
        cursor: TokenCursor,
        alignment: QualifierAlignment = QualifierAlignment.LEFT,
        qualifier: Qualifier = Qualifier.CONST,
        check_parameters: bool = True,
        check_template_arguments: bool = True,
    ) -> None:
        self.cursor = cursor
        self.alignment = alignment
        self.qualifier = qualifier
        self.dispatcher = DeclarationDispatcher(
            cursor,
            check_parameters=check_parameters,
            check_template_arguments=check_template_arguments,
        )

    @classmethod
    def from_config(cls, cursor: TokenCursor, config) -> "QualifiersOrderCheck":
        return cls(
            cursor,
            alignment=config.alignment,
            qualifier=config.qualifier,
            check_parameters=config.check_parameters,
            check_template_arguments=config.check_template_arguments,
        )

    # ── single context ───────────────────────────────────────────────

    def check_context(self, ctx: DeclarationContext) -> Optional[Finding]:
        """
        Analyse one context; ``None`` when there is nothing to report.

        Raises a recoverable :class:`QualifiersOrderError` when the context
        cannot be analysed.
        """
        if self.alignment is QualifierAlignment.NONE:
            return None
        presence = qualifier_presence(ctx.type, self.qualifier)
        if presence is QualifierPresence.SUPPRESSED:
            logger.debug("%s: printed type claims '%s', type does not; skipped",
                         ctx.label, self.qualifier.spelling)
            return None
        if presence is QualifierPresence.ABSENT:
            return None

        buffer = self.cursor.buffer
        decl_start = ctx.span.start
        before = range_before_type(ctx.type, decl_start)
        after = range_after_type(ctx.type, ctx.name_start)
        whole = SourceSpan(before.start, max(after.end, before.end), before.file)
        for span in (before, after, whole):
            if not buffer.is_analyzable(span):
                raise UnanalyzableSpanError(f"{ctx.label}: type spans unanalyzable text", span=span)

        located = locate(self.cursor, before, after, self.qualifier)
        plan = plan_edit(self.cursor, self.alignment, located, decl_start, after, anchor=decl_start)
        if not plan:
            return None
        return Finding(
            anchor=plan.anchor,
            message=plan.message,
            plan=plan,
            location=buffer.location(plan.anchor),
            context=ctx,
        )

    # ── declarations ─────────────────────────────────────────────────

    def check_declaration(self, decl: Declaration) -> List[Finding]:
        """Findings for *decl* and everything nested in it, in source order."""
        findings: List[Finding] = []
        try:
            for ctx in self.dispatcher.contexts(decl):
                finding = self._check_guarded(ctx)
                if finding is not None:
                    findings.append(finding)
        except QualifiersOrderError as exc:
            if not exc.recoverable:
                raise
            logger.debug("%s '%s' skipped: %s", decl.kind.value, decl.name, exc)
        return findings

    def run(self, declarations: Iterable[Declaration]) -> List[Finding]:
        """Check all *declarations*; identical plans are reported once."""
        findings: List[Finding] = []
        seen: Set[Tuple] = set()
        for decl in declarations:
            for finding in self.check_declaration(decl):
                key = finding.plan.edits
                if key in seen:
                    logger.debug("duplicate finding for %s dropped", finding.context.label)
                    continue
                seen.add(key)
                findings.append(finding)
        return findings

    def _check_guarded(self, ctx: DeclarationContext) -> Optional[Finding]:
        try:
            return self.check_context(ctx)
        except QualifiersOrderError as exc:
            if not exc.recoverable:
                raise
            logger.debug("%s context '%s' skipped: %s", ctx.kind.value, ctx.label, exc)
            return None

    def __repr__(self) -> str:
        return (f"<{self.__class__.__name__} '{self.name}' "
                f"{self.qualifier.spelling}/{self.alignment.value}>")


__all__ = ["Finding", "QualifiersOrderCheck"]
