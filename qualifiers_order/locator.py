"""Find the written qualifier keyword of a declaration in the source text."""

from __future__ import annotations

import logging

from qualifiers_order.errors import QualifierNotFoundError
from qualifiers_order.lexer import TokenCursor
from qualifiers_order.source import SourceSpan
from qualifiers_order.types import Qualifier

logger = logging.getLogger(__name__)


def find_qualifier(
    cursor: TokenCursor,
    before: SourceSpan,
    after: SourceSpan,
    qualifier: Qualifier,
) -> SourceSpan:
    """Token span of *qualifier*, left region first."""
    text = qualifier.spelling
    found = cursor.find_forward(before, text)
    if found is not None:
        return found
    found = cursor.find_forward(after, text)
    if found is not None:
        return found
    raise QualifierNotFoundError(
        f"'{text}' is on the type but not written next to it",
        span=SourceSpan(before.start, after.end, before.file),
        hint="the type was probably spelled through a typedef or macro",
    )


def locate(
    cursor: TokenCursor,
    before: SourceSpan,
    after: SourceSpan,
    qualifier: Qualifier,
) -> SourceSpan:
    """
    Removable span of the qualifier: its token plus the whitespace and
    comments that follow it.
    """
    token = find_qualifier(cursor, before, after, qualifier)
    end = cursor.skip_whitespace_and_comments_forward(token.end)
    logger.debug("located '%s' at %s, removable up to %d", qualifier.spelling, token, end)
    return token.with_end(end)


__all__ = ["find_qualifier", "locate"]
