"""
qualifiers_order/lexer.py
═════════════════════════

Raw C/C++ lexer and the read-only :class:`TokenCursor` built on it.

The cursor never changes the text.  It answers four kinds of question
about one :class:`~qualifiers_order.source.SourceBuffer`:

  • what kind of token starts at an offset   (``classify``)
  • where does that token end                 (``token_end``)
  • where is the next significant character   (``skip_*``)
  • where is the nearest token spelled ``T``  (``find_forward`` / ``find_backward``)

Tokens lying inside a macro-expanded range are *invalid*: ``classify``
returns ``None`` for them and the searches refuse spans that touch them.

Usage
─────
    buf = SourceBuffer("int const x;")
    cur = TokenCursor(buf)
    cur.find_forward(buf.span(3, 10), "const")   # SourceSpan(4, 9)
"""

from __future__ import annotations

import bisect
import logging
import re
from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator, List, Optional

from qualifiers_order.errors import OffsetOutOfRangeError, UnanalyzableSpanError
from qualifiers_order.source import SourceBuffer, SourceSpan

logger = logging.getLogger(__name__)


class TokenKind(Enum):
    IDENTIFIER = auto()
    KEYWORD = auto()
    NUMBER = auto()
    STRING = auto()
    CHAR = auto()
    PUNCT = auto()
    COMMENT = auto()
    UNKNOWN = auto()


KEYWORDS = frozenset({
    "alignas", "alignof", "asm", "auto", "bool", "break", "case", "catch",
    "char", "char8_t", "char16_t", "char32_t", "class", "const", "consteval",
    "constexpr", "constinit", "const_cast", "continue", "decltype", "default",
    "delete", "do", "double", "dynamic_cast", "else", "enum", "explicit",
    "export", "extern", "false", "float", "for", "friend", "goto", "if",
    "inline", "int", "long", "mutable", "namespace", "new", "noexcept",
    "nullptr", "operator", "private", "protected", "public", "register",
    "reinterpret_cast", "restrict", "return", "short", "signed", "sizeof",
    "static", "static_assert", "static_cast", "struct", "switch", "template",
    "this", "thread_local", "throw", "true", "try", "typedef", "typeid",
    "typename", "union", "unsigned", "using", "virtual", "void", "volatile",
    "wchar_t", "while", "_Bool", "_Complex", "_Atomic", "_Thread_local",
    "__restrict", "__restrict__",
})

# Longest first; the alternation below relies on that order.
_PUNCTUATORS = (
    "<<=", ">>=", "...", "->*", "<=>",
    "::", "->", "++", "--", "<<", ">>", "<=", ">=", "==", "!=", "&&", "||",
    "+=", "-=", "*=", "/=", "%=", "&=", "|=", "^=", ".*", "##",
    "{", "}", "[", "]", "(", ")", "<", ">", ";", ":", ",", ".", "?",
    "+", "-", "*", "/", "%", "&", "|", "^", "!", "~", "=", "#",
)

_TOKEN_RE = re.compile(
    r"""
      (?P<comment>//[^\n]*|/\*(?:.|\n)*?(?:\*/|\Z))
    | (?P<string>(?:u8|u|U|L)?R"(?P<delim>[^()\\\s"]{0,16})\((?:.|\n)*?\)(?P=delim)"
                |(?:u8|u|U|L)?"(?:[^"\\\n]|\\.)*"?)
    | (?P<char>(?:u8|u|U|L)?'(?:[^'\\\n]|\\.)*'?)
    | (?P<ident>[A-Za-z_][A-Za-z0-9_]*)
    | (?P<number>\.?[0-9](?:[eEpP][+-]|[A-Za-z0-9_.'])*)
    | (?P<punct>""" + "|".join(re.escape(p) for p in _PUNCTUATORS) + r""")
    | (?P<unknown>\S)
    """,
    re.VERBOSE,
)


@dataclass(frozen=True)
class Token:
    """One raw token: its kind, span and spelling."""

    kind: TokenKind
    span: SourceSpan
    text: str

    @property
    def start(self) -> int:
        return self.span.start

    @property
    def end(self) -> int:
        return self.span.end

    def __str__(self) -> str:
        return f"{self.kind.name}({self.text!r})@{self.span.start}"


def lex_at(buffer: SourceBuffer, offset: int) -> Optional[Token]:
    """
    Lex exactly one raw token starting at *offset*.

    Returns ``None`` at end of buffer or when *offset* is whitespace.
    """
    text = buffer.text
    if offset < 0 or offset >= len(text) or text[offset].isspace():
        return None
    m = _TOKEN_RE.match(text, offset)
    if m is None:  # pragma: no cover - ``unknown`` matches any non-space
        return None
    group = m.lastgroup
    spelling = m.group(0)
    if group == "delim":
        group = "string"
    if group == "ident":
        kind = TokenKind.KEYWORD if spelling in KEYWORDS else TokenKind.IDENTIFIER
    else:
        kind = {
            "comment": TokenKind.COMMENT,
            "string": TokenKind.STRING,
            "char": TokenKind.CHAR,
            "number": TokenKind.NUMBER,
            "punct": TokenKind.PUNCT,
        }.get(group or "", TokenKind.UNKNOWN)
    return Token(kind, buffer.span(offset, m.end()), spelling)


def tokenize(buffer: SourceBuffer) -> List[Token]:
    """Lex the whole buffer, comments included."""
    tokens: List[Token] = []
    pos = 0
    text = buffer.text
    n = len(text)
    while pos < n:
        if text[pos].isspace():
            pos += 1
            continue
        tok = lex_at(buffer, pos)
        if tok is None:
            pos += 1
            continue
        tokens.append(tok)
        pos = tok.end
    return tokens


class TokenCursor:
    """
    Read-only token queries over one :class:`SourceBuffer`.

    The token list is computed once on construction; all queries are
    side-effect free.
    """

    def __init__(self, buffer: SourceBuffer) -> None:
        self.buffer = buffer
        self._tokens: List[Token] = tokenize(buffer)
        self._starts: List[int] = [t.start for t in self._tokens]

    # ── token access ─────────────────────────────────────────────────

    @property
    def tokens(self) -> List[Token]:
        return list(self._tokens)

    def token_at(self, offset: int) -> Optional[Token]:
        """The token starting exactly at *offset*, if any and if valid."""
        idx = bisect.bisect_left(self._starts, offset)
        if idx < len(self._starts) and self._starts[idx] == offset:
            tok = self._tokens[idx]
            if self.buffer.is_macro(tok.span):
                return None
            return tok
        return None

    def token_containing(self, offset: int) -> Optional[Token]:
        """The token whose span contains *offset* (beginning-of-token lookup)."""
        idx = bisect.bisect_right(self._starts, offset) - 1
        if idx >= 0 and self._tokens[idx].span.contains(offset):
            return self._tokens[idx]
        return None

    def classify(self, offset: int) -> Optional[TokenKind]:
        """Kind of the token starting at *offset*; ``None`` when invalid."""
        tok = self.token_at(offset)
        return tok.kind if tok is not None else None

    def token_end(self, offset: int) -> int:
        """Exclusive end of the token starting at *offset*."""
        tok = self.token_at(offset)
        if tok is None:
            raise UnanalyzableSpanError(
                "no valid token starts here", span=self.buffer.span(offset, offset)
            )
        return tok.end

    def tokens_in(self, span: SourceSpan) -> Iterator[Token]:
        """Tokens that start inside *span* and end within it."""
        idx = bisect.bisect_left(self._starts, span.start)
        while idx < len(self._tokens):
            tok = self._tokens[idx]
            if tok.start >= span.end or tok.end > span.end:
                return
            yield tok
            idx += 1

    def spelling(self, span: SourceSpan) -> str:
        self._require(span)
        return self.buffer.slice(span)

    # ── skipping ─────────────────────────────────────────────────────

    def skip_whitespace_forward(self, offset: int) -> int:
        self._require_offset(offset)
        text = self.buffer.text
        while offset < len(text) and text[offset].isspace():
            offset += 1
        return offset

    def skip_whitespace_backward(self, offset: int) -> int:
        """Move left over whitespace; the result is a position, not a char index."""
        self._require_offset(offset)
        text = self.buffer.text
        while offset > 0 and text[offset - 1].isspace():
            offset -= 1
        return offset

    def skip_whitespace_and_comments_forward(self, offset: int) -> int:
        while True:
            offset = self.skip_whitespace_forward(offset)
            tok = self.token_at(offset)
            if tok is None or tok.kind is not TokenKind.COMMENT:
                return offset
            offset = tok.end

    # ── searching ────────────────────────────────────────────────────

    def find_forward(
        self, span: SourceSpan, text: str, angle_suffix: bool = False
    ) -> Optional[SourceSpan]:
        """
        First token inside *span* spelled *text*.

        With ``angle_suffix`` a token spelled *text* followed only by
        ``>`` characters also matches; the returned span then covers
        just the *text* part.
        """
        self._require(span)
        for tok in self.tokens_in(span):
            hit = self._match(tok, text, angle_suffix)
            if hit is not None:
                return hit
        return None

    def find_backward(
        self,
        start: int,
        text: str,
        angle_suffix: bool = False,
        lower_bound: int = 0,
    ) -> Optional[SourceSpan]:
        """
        Nearest token ending at or before *start* spelled *text*.

        The walk goes token by token towards the buffer start and stops
        before any token beginning left of *lower_bound*.
        """
        self._require_offset(start)
        self._require_offset(lower_bound)
        idx = bisect.bisect_left(self._starts, start) - 1
        while idx >= 0:
            tok = self._tokens[idx]
            if tok.start < lower_bound:
                break
            if tok.end <= start:
                if self.buffer.is_macro(tok.span):
                    raise UnanalyzableSpanError(
                        "backward search crossed macro-expanded text", span=tok.span
                    )
                hit = self._match(tok, text, angle_suffix)
                if hit is not None:
                    return hit
            idx -= 1
        return None

    # ── helpers ──────────────────────────────────────────────────────

    @staticmethod
    def _match(tok: Token, text: str, angle_suffix: bool) -> Optional[SourceSpan]:
        if tok.text == text:
            return tok.span
        if angle_suffix and tok.text.startswith(text):
            rest = tok.text[len(text):]
            if rest and set(rest) == {">"}:
                return SourceSpan(tok.start, tok.start + len(text), tok.span.file)
        return None

    def _require(self, span: SourceSpan) -> None:
        if not self.buffer.is_analyzable(span):
            raise UnanalyzableSpanError("span is not analyzable", span=span)

    def _require_offset(self, offset: int) -> None:
        if not self.buffer.in_bounds(offset):
            raise OffsetOutOfRangeError(
                f"offset {offset} outside buffer of length {len(self.buffer)}"
            )


__all__ = [
    "TokenKind",
    "Token",
    "KEYWORDS",
    "lex_at",
    "tokenize",
    "TokenCursor",
]
