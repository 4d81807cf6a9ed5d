"""
qualifiers_order/types.py
═════════════════════════

Structural type representation consumed by the check.

The front-end builds one tree per declared type.  Nodes are frozen
dataclasses; code that walks them uses ``isinstance`` dispatch:

    NamedType                   int, unsigned long, string, T
    PointerType / ReferenceType one indirection level around a pointee
    ElaboratedType              scope/tag prefix around a name (std::, struct)
    TemplateSpecializationType  name<arg, ...>
    NonTypeArgument             a template argument that is not a type
    FunctionType                return type + parameter types

Qualifiers are recorded on the node reached after stripping indirections
and elaboration (a ``NamedType`` or a ``TemplateSpecializationType``).
Their *positions* are deliberately not recorded: finding them in the
source text is the locator's job.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Optional, Tuple, Union

from qualifiers_order.source import SourceSpan


class Qualifier(Enum):
    """A qualifier keyword the check can track."""

    CONST = "const"
    VOLATILE = "volatile"
    RESTRICT = "restrict"

    @property
    def spelling(self) -> str:
        return self.value

    @classmethod
    def from_string(cls, s: str) -> "Qualifier":
        """Parse a qualifier keyword (case-insensitive)."""
        s_low = s.strip().lower()
        for member in cls:
            if member.value == s_low:
                return member
        raise ValueError(f"unknown qualifier {s!r}")


# Order in which a printed type lists its qualifiers.
QUALIFIER_ORDER: Tuple[Qualifier, ...] = (
    Qualifier.CONST,
    Qualifier.VOLATILE,
    Qualifier.RESTRICT,
)


@dataclass(frozen=True)
class NamedType:
    """A builtin or user type name; ``span`` covers only the name words."""

    name: str
    span: SourceSpan
    qualifiers: FrozenSet[Qualifier] = frozenset()
    printed: Optional[str] = None


@dataclass(frozen=True)
class PointerType:
    pointee: "TypeNode"
    sigil: int


@dataclass(frozen=True)
class ReferenceType:
    pointee: "TypeNode"
    sigil: int
    rvalue: bool = False


@dataclass(frozen=True)
class ElaboratedType:
    """``prefix`` is the written scope or tag, e.g. ``"std::"`` or ``"struct "``."""

    inner: "TypeNode"
    span: SourceSpan
    prefix: str = ""


@dataclass(frozen=True)
class NonTypeArgument:
    text: str
    span: SourceSpan


@dataclass(frozen=True)
class TemplateSpecializationType:
    """
    ``langle`` / ``rangle`` are the offsets of the angle brackets.  For a
    specialization closed by a ``>>`` token, ``rangle`` is the offset of
    the ``>`` character that belongs to this specialization.
    """

    name: str
    args: Tuple["TemplateArgument", ...]
    langle: int
    rangle: int
    span: SourceSpan
    qualifiers: FrozenSet[Qualifier] = frozenset()
    printed: Optional[str] = None


@dataclass(frozen=True)
class FunctionType:
    return_type: "TypeNode"
    params: Tuple["TypeNode", ...] = field(default_factory=tuple)


TypeNode = Union[
    NamedType,
    PointerType,
    ReferenceType,
    ElaboratedType,
    TemplateSpecializationType,
    FunctionType,
]
TemplateArgument = Union[TypeNode, NonTypeArgument]


def is_type_argument(arg: TemplateArgument) -> bool:
    return not isinstance(arg, NonTypeArgument)


def argument_span(arg: TemplateArgument) -> Optional[SourceSpan]:
    """Source range where a template argument begins, if the node knows it."""
    if isinstance(arg, (NamedType, ElaboratedType, TemplateSpecializationType, NonTypeArgument)):
        return arg.span
    if isinstance(arg, (PointerType, ReferenceType)):
        return argument_span(arg.pointee)
    return None


def qualifiers_of(node: TypeNode) -> FrozenSet[Qualifier]:
    if isinstance(node, (NamedType, TemplateSpecializationType)):
        return node.qualifiers
    return frozenset()


def _qualifier_prefix(quals: FrozenSet[Qualifier]) -> str:
    return "".join(q.spelling + " " for q in QUALIFIER_ORDER if q in quals)


def spelling(node: TemplateArgument) -> str:
    """
    Canonical printed spelling, qualifiers first (``const volatile int *``).

    Nodes that carry a front-end supplied ``printed`` form return it as is.
    """
    if isinstance(node, NamedType):
        if node.printed is not None:
            return node.printed
        return _qualifier_prefix(node.qualifiers) + node.name
    if isinstance(node, TemplateSpecializationType):
        if node.printed is not None:
            return node.printed
        args = ", ".join(spelling(a) for a in node.args)
        return f"{_qualifier_prefix(node.qualifiers)}{node.name}<{args}>"
    if isinstance(node, ElaboratedType):
        inner = spelling(node.inner)
        quals = _qualifier_prefix(qualifiers_of(node.inner))
        if quals and inner.startswith(quals):
            return quals + node.prefix + inner[len(quals):]
        return node.prefix + inner
    if isinstance(node, PointerType):
        return f"{spelling(node.pointee)} *"
    if isinstance(node, ReferenceType):
        return f"{spelling(node.pointee)} {'&&' if node.rvalue else '&'}"
    if isinstance(node, FunctionType):
        params = ", ".join(spelling(p) for p in node.params)
        return f"{spelling(node.return_type)} ({params})"
    if isinstance(node, NonTypeArgument):
        return node.text
    raise TypeError(f"not a type node: {node!r}")


__all__ = [
    "Qualifier",
    "QUALIFIER_ORDER",
    "NamedType",
    "PointerType",
    "ReferenceType",
    "ElaboratedType",
    "NonTypeArgument",
    "TemplateSpecializationType",
    "FunctionType",
    "TypeNode",
    "TemplateArgument",
    "is_type_argument",
    "argument_span",
    "qualifiers_of",
    "spelling",
]
