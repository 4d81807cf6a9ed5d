"""
qualifiers_order/fixes.py
═════════════════════════

Applying edit plans to source text.

Every plan's offsets refer to the *same* unmodified snapshot, so all
plans for one buffer are applied in a single pass:

  • identical plans are applied once
  • a plan whose removal overlaps an already accepted removal, or whose
    insertion falls strictly inside one (or vice versa), is dropped and
    logged at WARNING; a second ``--fix`` run picks it up
  • insertions at one offset keep plan order, then edit order
"""

from __future__ import annotations

import difflib
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Sequence, Tuple

from qualifiers_order.planner import EditPlan, InsertText, RemoveRange
from qualifiers_order.source import SourceSpan

logger = logging.getLogger(__name__)


@dataclass
class FixResult:
    """Rewritten text plus the plans that went into it."""

    text: str
    applied: List[EditPlan] = field(default_factory=list)
    dropped: List[EditPlan] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.applied)


def _strictly_inside(offset: int, span: SourceSpan) -> bool:
    return span.start < offset < span.end


def _conflicts(plan: EditPlan, accepted: Sequence[EditPlan]) -> bool:
    removal = plan.removal
    inserts = [e.location for e in plan.insertions]
    for other in accepted:
        other_removal = other.removal
        if removal is not None and other_removal is not None and removal.overlaps(other_removal):
            return True
        if other_removal is not None and any(_strictly_inside(i, other_removal) for i in inserts):
            return True
        if removal is not None and any(_strictly_inside(e.location, removal) for e in other.insertions):
            return True
    return False


def select_plans(plans: Iterable[EditPlan]) -> Tuple[List[EditPlan], List[EditPlan]]:
    """Split *plans* into ``(accepted, dropped)``; duplicates vanish silently."""
    accepted: List[EditPlan] = []
    dropped: List[EditPlan] = []
    seen = set()
    for plan in plans:
        if not plan or plan.edits in seen:
            continue
        seen.add(plan.edits)
        if _conflicts(plan, accepted):
            logger.warning("overlapping fix at offset %d dropped", plan.anchor)
            dropped.append(plan)
        else:
            accepted.append(plan)
    return accepted, dropped


def _render(text: str, plans: Sequence[EditPlan]) -> str:
    inserts: Dict[int, List[str]] = defaultdict(list)
    removals: Dict[int, int] = {}
    for plan in plans:
        for edit in plan.edits:
            if isinstance(edit, InsertText):
                inserts[edit.location].append(edit.text)
            elif isinstance(edit, RemoveRange):
                removals[edit.span.start] = edit.span.end

    pieces: List[str] = []
    pos = 0
    for cut in sorted(set(inserts) | set(removals)):
        if cut < pos:
            continue
        pieces.append(text[pos:cut])
        pos = cut
        pieces.extend(inserts.get(cut, ()))
        if cut in removals:
            pos = max(pos, removals[cut])
    pieces.append(text[pos:])
    return "".join(pieces)


def apply_fixes(text: str, plans: Iterable[EditPlan]) -> FixResult:
    """Apply all non-conflicting *plans* to *text* atomically."""
    accepted, dropped = select_plans(plans)
    if not accepted:
        return FixResult(text, [], dropped)
    return FixResult(_render(text, accepted), accepted, dropped)


def unified_diff(before: str, after: str, name: str) -> str:
    """``diff -u`` style text, empty when nothing changed."""
    if before == after:
        return ""
    return "".join(difflib.unified_diff(
        before.splitlines(keepends=True),
        after.splitlines(keepends=True),
        fromfile=f"a/{name}",
        tofile=f"b/{name}",
    ))


__all__ = ["FixResult", "select_plans", "apply_fixes", "unified_diff"]
