"""
qualifiers_order/type_shape.py
══════════════════════════════

Questions about the *shape* of a declared type:

  • which node is the innermost pointee            (strip_indirections)
  • what hides under a scope/tag prefix            (strip_elaboration)
  • does that node carry the tracked qualifier     (qualifier_presence)
  • where may the qualifier be written in source   (range_before_type,
                                                    range_after_type)

The two candidate regions are asymmetric.  The left region runs from the
declaration start up to the unqualified type.  The right region runs from
just after the type's own name (or closing ``>``) up to the *last*
pointer/reference sigil, so that ``T const *p`` is in scope while the
``const`` in ``T *const p`` qualifies the pointer and is never seen.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional, Tuple

from qualifiers_order.errors import MalformedDeclaratorError
from qualifiers_order.source import SourceSpan
from qualifiers_order.types import (
    QUALIFIER_ORDER,
    ElaboratedType,
    FunctionType,
    NamedType,
    PointerType,
    Qualifier,
    ReferenceType,
    TemplateSpecializationType,
    TypeNode,
    qualifiers_of,
    spelling,
)

logger = logging.getLogger(__name__)


class QualifierPresence(Enum):
    """Outcome of reconciling the structural and textual qualifier views."""

    CONFIRMED = "confirmed"
    SUPPRESSED = "suppressed"
    ABSENT = "absent"


def strip_indirections(node: TypeNode) -> Tuple[TypeNode, Optional[int]]:
    """Unwrap pointers/references; also return the innermost sigil offset."""
    last_sigil: Optional[int] = None
    while isinstance(node, (PointerType, ReferenceType)):
        last_sigil = node.sigil
        node = node.pointee
    return node, last_sigil


def strip_elaboration(node: TypeNode) -> TypeNode:
    if isinstance(node, ElaboratedType):
        return node.inner
    return node


def innermost_type(node: TypeNode) -> TypeNode:
    inner, _ = strip_indirections(node)
    return strip_elaboration(inner)


def textual_qualifiers(printed: str) -> Tuple[Qualifier, ...]:
    """
    Leading qualifiers of a printed type.

    A printed type always lists its qualifiers first, in the order
    const, volatile, restrict, so only the leading words are examined.
    """
    words = printed.split()
    found = []
    idx = 0
    for qual in QUALIFIER_ORDER:
        if idx < len(words) and words[idx] == qual.spelling:
            found.append(qual)
            idx += 1
    return tuple(found)


def qualifier_presence(node: TypeNode, qualifier: Qualifier) -> QualifierPresence:
    """
    Reconcile the structural qualifier set with the printed spelling.

    ``SUPPRESSED`` needs a ``printed`` form that disagrees with the
    structure, which only a front-end that records the compiler's own
    spelling can supply.  The bundled PEG front-end leaves ``printed``
    unset, so the printed view is derived from the structure and its
    declarations are always ``CONFIRMED`` or ``ABSENT``.
    """
    inner = innermost_type(node)
    if isinstance(inner, FunctionType):
        return QualifierPresence.ABSENT
    structural = qualifier in qualifiers_of(inner)
    textual = qualifier in textual_qualifiers(spelling(inner))
    if structural:
        if not textual:
            logger.debug(
                "'%s' on %r is structural only; printed form %r disagrees",
                qualifier.spelling, getattr(inner, "name", inner), spelling(inner),
            )
        return QualifierPresence.CONFIRMED
    if textual:
        return QualifierPresence.SUPPRESSED
    return QualifierPresence.ABSENT


def has_tracked_qualifier(node: TypeNode, qualifier: Qualifier) -> bool:
    return qualifier_presence(node, qualifier) is QualifierPresence.CONFIRMED


def _unqualified_start(node: TypeNode) -> int:
    if isinstance(node, (NamedType, ElaboratedType, TemplateSpecializationType)):
        return node.span.start
    raise MalformedDeclaratorError(f"no source range for {type(node).__name__}")


def _own_end(node: TypeNode) -> int:
    if isinstance(node, TemplateSpecializationType):
        return node.rangle + 1
    if isinstance(node, NamedType):
        return node.span.end
    raise MalformedDeclaratorError(f"no source range for {type(node).__name__}")


def range_before_type(node: TypeNode, decl_start: int) -> SourceSpan:
    """``[decl_start, start of the unqualified type)``."""
    inner, _ = strip_indirections(node)
    start = _unqualified_start(inner)
    return SourceSpan(decl_start, max(start, decl_start), _file_of(inner))


def range_after_type(node: TypeNode, decl_name_start: int) -> SourceSpan:
    """
    ``[end of the unqualified type, last sigil or declared name)``.

    For a template specialization the region starts past its ``>``.
    """
    inner, last_sigil = strip_indirections(node)
    end = last_sigil if last_sigil is not None else decl_name_start
    named = strip_elaboration(inner)
    start = _own_end(named)
    return SourceSpan(start, max(start, end), _file_of(named))


def _file_of(node: TypeNode) -> Optional[str]:
    span = getattr(node, "span", None)
    return span.file if span is not None else None


__all__ = [
    "QualifierPresence",
    "strip_indirections",
    "strip_elaboration",
    "innermost_type",
    "textual_qualifiers",
    "qualifier_presence",
    "has_tracked_qualifier",
    "range_before_type",
    "range_after_type",
]
