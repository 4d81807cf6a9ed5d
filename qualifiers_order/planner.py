"""
qualifiers_order/planner.py
═══════════════════════════

Placement policy and edit planning.

An :class:`EditPlan` moves one qualifier.  Every offset in it refers to
the same pre-edit snapshot, so a plan is applied as one atomic rewrite
(see :func:`qualifiers_order.fixes.apply_fixes`).  The edits are
ordered insert-before-remove:

    [" "]  qualifier-text  [" "]  remove(original span)
     ^ Right only           ^ Left only

A qualifier that abuts a closing token (``>``, ``)``, ``;``, ``,``,
``]``) leaves no blank behind: a Left move also removes the spaces
before it, and a Right move drops the trailing whitespace of the text
it inserts there.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from qualifiers_order.errors import UnanalyzableSpanError
from qualifiers_order.lexer import TokenCursor
from qualifiers_order.source import SourceSpan

logger = logging.getLogger(__name__)

WRONG_ORDER_MESSAGE = "wrong order of qualifiers"

_CLOSERS = frozenset(">),;]")


class QualifierAlignment(Enum):
    """Where the qualifier belongs relative to the type it qualifies."""

    NONE = "None"
    LEFT = "Left"
    RIGHT = "Right"

    @classmethod
    def from_string(cls, s: str) -> "QualifierAlignment":
        """Parse ``None`` / ``Left`` / ``Right`` (case-insensitive)."""
        s_low = s.strip().lower()
        for member in cls:
            if member.value.lower() == s_low:
                return member
        raise ValueError(
            f"invalid alignment {s!r}; expected one of "
            + ", ".join(m.value for m in cls)
        )


@dataclass(frozen=True)
class InsertText:
    location: int
    text: str

    def to_dict(self) -> Dict[str, Any]:
        return {"insert": self.text, "at": self.location}


@dataclass(frozen=True)
class RemoveRange:
    span: SourceSpan

    def to_dict(self) -> Dict[str, Any]:
        return {"remove": [self.span.start, self.span.end]}


Edit = Union[InsertText, RemoveRange]


@dataclass(frozen=True)
class EditPlan:
    """Ordered edits plus the message and anchor of the finding they fix."""

    edits: Tuple[Edit, ...] = field(default_factory=tuple)
    message: str = WRONG_ORDER_MESSAGE
    anchor: int = 0

    def __bool__(self) -> bool:
        return bool(self.edits)

    @property
    def removal(self) -> Optional[SourceSpan]:
        for edit in self.edits:
            if isinstance(edit, RemoveRange):
                return edit.span
        return None

    @property
    def insertions(self) -> Tuple[InsertText, ...]:
        return tuple(e for e in self.edits if isinstance(e, InsertText))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "anchor": self.anchor,
            "edits": [e.to_dict() for e in self.edits],
        }


EMPTY_PLAN = EditPlan()


def insertion_target(
    cursor: TokenCursor,
    alignment: QualifierAlignment,
    decl_start: int,
    after: SourceSpan,
) -> Optional[int]:
    """Canonical insertion offset, or ``None`` when the check is disabled."""
    if alignment is QualifierAlignment.LEFT:
        return decl_start
    if alignment is QualifierAlignment.RIGHT:
        return cursor.skip_whitespace_forward(after.start)
    return None


def needs_edit(alignment: QualifierAlignment, qualifier_start: int, target: int) -> bool:
    if alignment is QualifierAlignment.LEFT:
        return qualifier_start > target
    if alignment is QualifierAlignment.RIGHT:
        return qualifier_start < target
    return False


def plan_edit(
    cursor: TokenCursor,
    alignment: QualifierAlignment,
    located: SourceSpan,
    decl_start: int,
    after: SourceSpan,
    anchor: Optional[int] = None,
) -> EditPlan:
    """
    Plan the move of *located* (qualifier plus trailing trivia).

    Returns :data:`EMPTY_PLAN` when the qualifier already sits at its
    canonical place or the policy is ``None``.
    """
    target = insertion_target(cursor, alignment, decl_start, after)
    if target is None or not needs_edit(alignment, located.start, target):
        return EMPTY_PLAN
    buffer = cursor.buffer
    if located.is_empty or not buffer.is_analyzable(located):
        raise UnanalyzableSpanError("qualifier span cannot be moved", span=located)
    if not buffer.is_analyzable(SourceSpan(target, target, located.file)):
        raise UnanalyzableSpanError(
            "insertion point cannot be edited", span=SourceSpan(target, target)
        )

    text = buffer.slice(located)
    removed = located
    edits = []
    if alignment is QualifierAlignment.RIGHT:
        if not buffer.char_at(target - 1).isspace():
            edits.append(InsertText(target, " "))
        if buffer.char_at(target) in _CLOSERS:
            text = text.rstrip()
    edits.append(InsertText(target, text))
    if alignment is QualifierAlignment.LEFT:
        if not buffer.char_at(located.end - 1).isspace():
            edits.append(InsertText(target, " "))
        if buffer.char_at(located.end) in _CLOSERS:
            start = located.start
            while start > target and buffer.char_at(start - 1) in " \t":
                start -= 1
            removed = SourceSpan(start, located.end, located.file)
    edits.append(RemoveRange(removed))
    return EditPlan(
        edits=tuple(edits),
        anchor=decl_start if anchor is None else anchor,
    )


__all__ = [
    "WRONG_ORDER_MESSAGE",
    "QualifierAlignment",
    "InsertText",
    "RemoveRange",
    "Edit",
    "EditPlan",
    "EMPTY_PLAN",
    "insertion_target",
    "needs_edit",
    "plan_edit",
]
