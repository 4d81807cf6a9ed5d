"""
qualifiers_order/dispatcher.py
══════════════════════════════

Turns one declaration into the contexts the check analyses.

  ┌────────────────────┬───────────────────┬──────────────────────────────┐
  │ shape              │ type              │ span                         │
  ├────────────────────┼───────────────────┼──────────────────────────────┤
  │ variable/parameter │ declared type     │ [start, name)                │
  │ function           │ return type       │ [start, function name)       │
  │ typedef / alias    │ aliased type      │ [start, end of declaration)  │
  │ template argument  │ argument type     │ [after '<' or ',', ',' or >) │
  └────────────────────┴───────────────────┴──────────────────────────────┘

Template arguments are walked left to right.  Each argument ends at the
comma found by a backward search from the next argument's start, or at
the specialization's closing ``>`` for the last one.  Non-type arguments
occupy a slot but produce no context.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional, Tuple

from qualifiers_order.errors import MalformedDeclaratorError
from qualifiers_order.lexer import TokenCursor
from qualifiers_order.source import SourceSpan
from qualifiers_order.type_shape import innermost_type
from qualifiers_order.types import (
    FunctionType,
    TemplateSpecializationType,
    TypeNode,
    argument_span,
    is_type_argument,
)

logger = logging.getLogger(__name__)


class DeclarationKind(Enum):
    VARIABLE = "variable"
    PARAMETER = "parameter"
    FUNCTION = "function"
    TYPEDEF = "typedef"
    ALIAS = "alias"
    TEMPLATE_ARGUMENT = "template argument"


@dataclass(frozen=True)
class Declaration:
    """
    One declaration site reported by the front-end.

    ``start`` is the first token of the type (after storage/function
    specifiers).  ``name_start`` is where the declared name begins; for
    aliases and unnamed parameters it is the end of the written type.
    """

    kind: DeclarationKind
    name: str
    type: TypeNode
    start: int
    name_start: int
    end: int
    params: Tuple["Declaration", ...] = field(default_factory=tuple)
    file: Optional[str] = None


@dataclass(frozen=True)
class DeclarationContext:
    """The unit of work for one check: a type and the text around it."""

    type: TypeNode
    span: SourceSpan
    name_start: int
    kind: DeclarationKind
    label: str = ""

    @property
    def start(self) -> int:
        return self.span.start


class DeclarationDispatcher:
    """Derive :class:`DeclarationContext` objects from declarations."""

    def __init__(
        self,
        cursor: TokenCursor,
        check_parameters: bool = True,
        check_template_arguments: bool = True,
    ) -> None:
        self.cursor = cursor
        self.check_parameters = check_parameters
        self.check_template_arguments = check_template_arguments

    def contexts(self, decl: Declaration) -> Iterator[DeclarationContext]:
        """Contexts for *decl*, its template arguments and its parameters."""
        kind = decl.kind
        if kind in (DeclarationKind.VARIABLE, DeclarationKind.PARAMETER):
            own = DeclarationContext(
                decl.type,
                SourceSpan(decl.start, decl.name_start, decl.file),
                decl.name_start,
                kind,
                decl.name,
            )
        elif kind is DeclarationKind.FUNCTION:
            if not isinstance(decl.type, FunctionType):
                raise MalformedDeclaratorError(
                    f"function '{decl.name}' does not have a function type"
                )
            own = DeclarationContext(
                decl.type.return_type,
                SourceSpan(decl.start, decl.name_start, decl.file),
                decl.name_start,
                kind,
                decl.name,
            )
        elif kind in (DeclarationKind.TYPEDEF, DeclarationKind.ALIAS):
            own = DeclarationContext(
                decl.type,
                SourceSpan(decl.start, decl.end, decl.file),
                decl.name_start,
                kind,
                decl.name,
            )
        else:
            raise MalformedDeclaratorError(f"cannot dispatch a {kind.value} declaration")

        yield own
        if self.check_template_arguments:
            yield from self.template_argument_contexts(own.type, decl.name)
        if kind is DeclarationKind.FUNCTION and self.check_parameters:
            for param in decl.params:
                yield from self.contexts(param)

    def template_argument_contexts(
        self, node: TypeNode, owner: str = ""
    ) -> Iterator[DeclarationContext]:
        """Contexts for each type argument of the specialization under *node*."""
        spec = innermost_type(node)
        if not isinstance(spec, TemplateSpecializationType) or not spec.args:
            return
        closing = self._closing_angle(spec)
        left = self.cursor.skip_whitespace_and_comments_forward(spec.langle + 1)
        last = len(spec.args) - 1
        for idx, arg in enumerate(spec.args):
            if idx < last:
                right = self._separator_before(spec.args[idx + 1], left)
            else:
                right = closing
            if is_type_argument(arg):
                ctx = DeclarationContext(
                    arg,
                    SourceSpan(left, right, spec.span.file),
                    right,
                    DeclarationKind.TEMPLATE_ARGUMENT,
                    f"{owner}: argument {idx + 1} of {spec.name}",
                )
                yield ctx
                yield from self.template_argument_contexts(arg, owner)
            if idx < last:
                left = self.cursor.skip_whitespace_and_comments_forward(right + 1)

    # ── boundaries ───────────────────────────────────────────────────

    def _separator_before(self, next_arg, lower_bound: int) -> int:
        span = argument_span(next_arg)
        if span is None:
            raise MalformedDeclaratorError("template argument without a source range")
        comma = self.cursor.find_backward(span.start, ",", lower_bound=lower_bound)
        if comma is None:
            raise MalformedDeclaratorError(
                "no ',' between template arguments", span=SourceSpan(lower_bound, span.start)
            )
        return comma.start

    def _closing_angle(self, spec: TemplateSpecializationType) -> int:
        """Offset of the specialization's ``>``, which may sit inside a ``>>`` token."""
        tok = self.cursor.token_containing(spec.rangle)
        if tok is not None:
            hit = self.cursor.find_forward(tok.span, ">", angle_suffix=True)
            if hit is not None:
                return spec.rangle
        raise MalformedDeclaratorError(
            f"'{spec.name}' has no closing '>' at offset {spec.rangle}",
            span=SourceSpan(spec.langle, spec.rangle, spec.span.file),
        )


__all__ = [
    "DeclarationKind",
    "Declaration",
    "DeclarationContext",
    "DeclarationDispatcher",
]
