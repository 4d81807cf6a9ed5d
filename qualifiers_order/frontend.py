"""
frontend.py — declaration discovery for C and C++ sources
=========================================================

Finds the declarations the qualifiers-order check visits and builds their
type trees.  Two passes:

  1. **Statement splitting.**  The raw token stream (comments and
     preprocessor lines removed) is cut at ``;`` and at brace bodies.
     Function, namespace, class/struct/union and block bodies are split
     recursively.  ``template <...>`` and ``extern "C"`` prefixes are
     peeled off each statement.

  2. **Declaration parsing.**  Each statement is matched against a PEG
     grammar (parsimonious) covering variables, functions with
     parameters, typedefs and ``using`` aliases.  Statements the grammar
     does not describe (expressions, control flow, function pointers...)
     are skipped.

Object-like and function-like ``#define`` names become macro ranges in
the resulting :class:`~qualifiers_order.source.SourceBuffer`; any type
that touches one is left alone by the check.

Usage::

    from qualifiers_order.frontend import parse_source

    tu = parse_source("int const x = 1;", "demo.c")
    for decl in tu.declarations:
        print(decl.kind, decl.name)

Depends on:
    - parsimonious (PEG parser)
"""

from __future__ import annotations

import dataclasses
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, List, Optional, Sequence, Set, Tuple, Type, Union

from parsimonious.exceptions import ParseError
from parsimonious.grammar import Grammar
from parsimonious.nodes import Node, NodeVisitor

from qualifiers_order.dispatcher import Declaration, DeclarationKind
from qualifiers_order.errors import FrontendParseError
from qualifiers_order.lexer import Token, TokenCursor, TokenKind, tokenize
from qualifiers_order.source import SourceBuffer, SourceSpan
from qualifiers_order.types import (
    ElaboratedType,
    FunctionType,
    NamedType,
    NonTypeArgument,
    PointerType,
    Qualifier,
    ReferenceType,
    TemplateSpecializationType,
    TypeNode,
)

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════
#  PART 1 — DECLARATION GRAMMAR (Parsimonious PEG)
# ═══════════════════════════════════════════════════════════════════

_RESERVED = (
    "const|volatile|restrict|typedef|static|extern|inline|constexpr|constinit|"
    "consteval|thread_local|_Thread_local|register|mutable|virtual|explicit|"
    "friend|struct|class|union|enum|typename|using|unsigned|signed|short|long|"
    "int|char|char8_t|char16_t|char32_t|float|double|void|bool|_Bool|wchar_t|"
    "auto|return|if|else|for|while|do|switch|case|default|break|continue|goto|"
    "sizeof|new|delete|throw|try|catch|operator|template|namespace|public|"
    "private|protected|this|true|false|nullptr|static_assert|decltype"
)

DECLARATION_GRAMMAR = Grammar(r'''
    # ─────────────────────────────────────────────────────────────
    # Statements
    # ─────────────────────────────────────────────────────────────

    statement           = _ declaration _
    declaration         = alias_decl / function_decl / simple_decl

    alias_decl          = "using" !word_char _ identifier _ "=" _ type_id
    function_decl       = specifier_seq type_spec ptr_ops _ qualified_name _ "(" _ param_list _ ")" fn_trailer
    simple_decl         = specifier_seq type_spec _ declarator_list

    specifier_seq       = specifier*
    specifier           = specifier_word !word_char _
    specifier_word      = "typedef" / "static" / "extern" / "inline" / "constexpr"
                        / "constinit" / "consteval" / "thread_local" / "_Thread_local"
                        / "register" / "mutable" / "virtual" / "explicit" / "friend"

    # ─────────────────────────────────────────────────────────────
    # Types
    # ─────────────────────────────────────────────────────────────

    type_spec           = cv_before base_type cv_after
    cv_before           = (cv _)*
    cv_after            = (_ cv)*
    cv                  = cv_word !word_char
    cv_word             = "const" / "volatile" / "restrict"

    base_type           = builtin_type / elaborated_type / scoped_type
    builtin_type        = builtin_word (_ builtin_word)*
    builtin_word        = builtin_name !word_char
    builtin_name        = "unsigned" / "signed" / "short" / "long" / "int"
                        / "char8_t" / "char16_t" / "char32_t" / "char"
                        / "float" / "double" / "void" / "bool" / "_Bool"
                        / "wchar_t" / "auto"

    elaborated_type     = tag_word !word_char _ scoped_type
    tag_word            = "struct" / "class" / "union" / "enum" / "typename"
    scoped_type         = global_scope? scope_segment* type_name
    global_scope        = "::" _
    scope_segment       = segment_name _ "::" _
    segment_name        = template_id / identifier
    type_name           = template_id / identifier

    template_id         = identifier _ "<" _ template_args _ ">"
    template_args       = (template_arg (_ "," _ template_arg)*)?
    template_arg        = type_arg / non_type_arg
    type_arg            = type_id &(_ ("," / ">"))
    non_type_arg        = non_type_piece+
    non_type_piece      = paren_group / ~r"[^,<>()\[\]{};]+"

    type_id             = type_spec ptr_ops
    ptr_ops             = ptr_op*
    ptr_op              = _ sigil ptr_cv
    sigil               = "*" / "&&" / "&"
    ptr_cv              = (_ cv)*

    # ─────────────────────────────────────────────────────────────
    # Declarators
    # ─────────────────────────────────────────────────────────────

    declarator_list     = declarator (_ "," _ declarator)*
    declarator          = ptr_ops _ qualified_name array_suffix* initializer?
    array_suffix        = _ "[" ~r"[^\]]*" "]"
    initializer         = _ (assign_init / brace_group / paren_group)
    assign_init         = "=" _ init_expr
    init_expr           = init_piece+
    init_piece          = paren_group / brace_group / bracket_group / ~r"[^,(){}\[\];]+"

    paren_group         = "(" balanced* ")"
    brace_group         = "{" balanced* "}"
    bracket_group       = "[" balanced* "]"
    balanced            = paren_group / brace_group / bracket_group / ~r"[^(){}\[\]]+"

    param_list          = void_params / params / ""
    void_params         = "void" _ &")"
    params              = param (_ "," _ param)* variadic?
    variadic            = _ "," _ "..."
    param               = specifier_seq type_spec ptr_ops param_name? array_suffix* default_arg?
    param_name          = _ identifier
    default_arg         = _ "=" _ init_expr
    fn_trailer          = ~r"[\s\S]*"

    # ─────────────────────────────────────────────────────────────
    # Names & Whitespace
    # ─────────────────────────────────────────────────────────────

    qualified_name      = global_scope? identifier (_ "::" _ identifier)*
    identifier          = ~r"(?!(?:''' + _RESERVED + r''')(?![A-Za-z0-9_]))[A-Za-z_][A-Za-z0-9_]*"
    word_char           = ~r"[A-Za-z0-9_]"
    _                   = ~r"(?:\s|//[^\n]*|/\*[\s\S]*?\*/)*"
''')


# ═══════════════════════════════════════════════════════════════════
#  PART 2 — PARSE RESULTS
# ═══════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class _Cv:
    qualifier: Qualifier


@dataclass(frozen=True)
class _Word:
    text: str


@dataclass(frozen=True)
class _Name:
    text: str
    start: int
    end: int


@dataclass(frozen=True)
class _Sigil:
    text: str
    offset: int


@dataclass(frozen=True)
class _TypeSpec:
    node: TypeNode
    start: int
    end: int


@dataclass(frozen=True)
class _Declarator:
    sigils: Tuple[_Sigil, ...]
    name: _Name


@dataclass(frozen=True)
class _Param:
    name: str
    type: TypeNode
    start: int
    name_start: int
    end: int


@dataclass(frozen=True)
class _SimpleDecl:
    specifiers: Tuple[str, ...]
    spec: _TypeSpec
    declarators: Tuple[_Declarator, ...]


@dataclass(frozen=True)
class _FunctionDecl:
    specifiers: Tuple[str, ...]
    spec: _TypeSpec
    sigils: Tuple[_Sigil, ...]
    name: _Name
    params: Tuple[_Param, ...]


@dataclass(frozen=True)
class _AliasDecl:
    name: _Name
    type: TypeNode
    start: int
    end: int


_TYPE_CLASSES = (NamedType, ElaboratedType, TemplateSpecializationType, PointerType, ReferenceType)


def _flatten(items: Any) -> Iterable[Any]:
    if isinstance(items, list):
        for item in items:
            yield from _flatten(item)
    else:
        yield items


def _find_all(items: Any, cls: Union[Type, Tuple[Type, ...]]) -> List[Any]:
    return [x for x in _flatten(items) if isinstance(x, cls)]


def _find(items: Any, cls: Union[Type, Tuple[Type, ...]]) -> Optional[Any]:
    found = _find_all(items, cls)
    return found[0] if found else None


def _with_qualifiers(node: TypeNode, quals: Set[Qualifier]) -> TypeNode:
    if not quals:
        return node
    if isinstance(node, ElaboratedType):
        return dataclasses.replace(node, inner=_with_qualifiers(node.inner, quals))
    if isinstance(node, (NamedType, TemplateSpecializationType)):
        return dataclasses.replace(node, qualifiers=node.qualifiers | frozenset(quals))
    return node


def _wrap(node: TypeNode, sigils: Sequence[_Sigil]) -> TypeNode:
    """Apply written indirections, the first written sigil innermost."""
    for sigil in sigils:
        if sigil.text == "*":
            node = PointerType(node, sigil.offset)
        else:
            node = ReferenceType(node, sigil.offset, rvalue=sigil.text == "&&")
    return node


# ═══════════════════════════════════════════════════════════════════
#  PART 3 — VISITOR (Parse Tree → Type Trees)
# ═══════════════════════════════════════════════════════════════════

class DeclarationBuilder(NodeVisitor):
    """
    Transforms a parsimonious parse tree of one statement into parse results.

    Offsets in the tree are relative to the statement text; ``base`` moves
    them back into the buffer.
    """

    grammar = DECLARATION_GRAMMAR

    def __init__(self, base: int = 0, file: Optional[str] = None) -> None:
        self.base = base
        self.file = file

    def _span(self, node: Node) -> SourceSpan:
        return SourceSpan(self.base + node.start, self.base + node.end, self.file)

    def generic_visit(self, node, visited_children):
        return visited_children or node

    # ── statements ───────────────────────────────────────────────────

    def visit_statement(self, node, visited_children):
        return _find(visited_children, (_SimpleDecl, _FunctionDecl, _AliasDecl))

    def visit_alias_decl(self, node, visited_children):
        name = _find(visited_children[3], _Name)
        type_node = node.children[7]
        return _AliasDecl(
            name=name,
            type=visited_children[7],
            start=self.base + type_node.start,
            end=self.base + type_node.end,
        )

    def visit_function_decl(self, node, visited_children):
        specifiers, spec, sigils, _, name, _, _, _, params, *_ = visited_children
        return _FunctionDecl(
            specifiers=tuple(w.text for w in _find_all(specifiers, _Word)),
            spec=spec,
            sigils=tuple(_find_all(sigils, _Sigil)),
            name=name,
            params=tuple(_find_all(params, _Param)),
        )

    def visit_simple_decl(self, node, visited_children):
        specifiers, spec, _, declarators = visited_children
        return _SimpleDecl(
            specifiers=tuple(w.text for w in _find_all(specifiers, _Word)),
            spec=spec,
            declarators=tuple(_find_all(declarators, _Declarator)),
        )

    def visit_specifier(self, node, visited_children):
        return _Word(node.children[0].text)

    # ── types ────────────────────────────────────────────────────────

    def visit_cv(self, node, visited_children):
        return _Cv(Qualifier.from_string(node.children[0].text))

    def visit_type_spec(self, node, visited_children):
        before, base, after = visited_children
        quals = {cv.qualifier for cv in _find_all([before, after], _Cv)}
        base_node = _find(base, _TYPE_CLASSES)
        return _TypeSpec(
            node=_with_qualifiers(base_node, quals),
            start=self.base + node.start,
            end=self.base + node.end,
        )

    def visit_builtin_word(self, node, visited_children):
        return _Word(node.children[0].text)

    def visit_builtin_type(self, node, visited_children):
        words = [w.text for w in _find_all(visited_children, _Word)]
        return NamedType(" ".join(words), self._span(node))

    def visit_identifier(self, node, visited_children):
        return _Name(node.text, self.base + node.start, self.base + node.end)

    def visit_template_id(self, node, visited_children):
        return TemplateSpecializationType(
            name=node.children[0].text,
            args=tuple(_find_all(visited_children[4], _TYPE_CLASSES + (NonTypeArgument,))),
            langle=self.base + node.children[2].start,
            rangle=self.base + node.children[6].start,
            span=self._span(node),
        )

    def visit_scoped_type(self, node, visited_children):
        named = visited_children[2]
        named = _find(named, (TemplateSpecializationType, _Name))
        if isinstance(named, _Name):
            named = NamedType(named.text, SourceSpan(named.start, named.end, self.file))
        prefix_len = named.span.start - (self.base + node.start)
        if prefix_len <= 0:
            return named
        prefix = re.sub(r"\s+", "", node.text[:prefix_len])
        return ElaboratedType(inner=named, span=self._span(node), prefix=prefix)

    def visit_elaborated_type(self, node, visited_children):
        tag = node.children[0].text
        scoped = visited_children[3]
        if isinstance(scoped, ElaboratedType):
            return ElaboratedType(scoped.inner, self._span(node), f"{tag} {scoped.prefix}")
        return ElaboratedType(scoped, self._span(node), f"{tag} ")

    def visit_type_arg(self, node, visited_children):
        return visited_children[0]

    def visit_non_type_arg(self, node, visited_children):
        text = node.text.rstrip()
        start = self.base + node.start
        return NonTypeArgument(text, SourceSpan(start, start + len(text), self.file))

    def visit_type_id(self, node, visited_children):
        spec, sigils = visited_children
        return _wrap(spec.node, _find_all(sigils, _Sigil))

    def visit_ptr_op(self, node, visited_children):
        sigil = node.children[1]
        return _Sigil(sigil.text, self.base + sigil.start)

    # ── declarators ──────────────────────────────────────────────────

    def visit_declarator(self, node, visited_children):
        sigils, _, name, *_ = visited_children
        return _Declarator(tuple(_find_all(sigils, _Sigil)), name)

    def visit_qualified_name(self, node, visited_children):
        return _Name(
            re.sub(r"\s+", "", node.text),
            self.base + node.start,
            self.base + node.end,
        )

    def visit_param(self, node, visited_children):
        _, spec, sigils, name, *_ = visited_children
        name = _find(name, _Name)
        type_end = self.base + node.children[2].end
        return _Param(
            name=name.text if name else "",
            type=_wrap(spec.node, _find_all(sigils, _Sigil)),
            start=spec.start,
            name_start=name.start if name else type_end,
            end=self.base + node.end,
        )

    # Statement-internal expressions carry nothing the check needs.
    def visit_init_expr(self, node, visited_children):
        return node

    def visit_fn_trailer(self, node, visited_children):
        return node


# ═══════════════════════════════════════════════════════════════════
#  PART 4 — STATEMENT SPLITTING
# ═══════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Statement:
    """Token range ``[start, end)`` of one statement, terminator excluded."""

    start: int
    end: int


_CONTROL_WORDS = frozenset({
    "if", "else", "for", "while", "do", "switch", "try", "catch", "return",
})
_RECORD_WORDS = frozenset({"struct", "class", "union", "enum"})
_ACCESS_WORDS = frozenset({"public", "private", "protected"})
_NAME_KINDS = (TokenKind.IDENTIFIER, TokenKind.KEYWORD)


def _matching(tokens: Sequence[Token], idx: int, hi: int, opening: str, closing: str) -> int:
    """Index of the token closing the bracket at *idx* (``hi`` if unbalanced)."""
    depth = 0
    for j in range(idx, hi):
        text = tokens[j].text
        if text == opening:
            depth += 1
        elif text == closing:
            depth -= 1
            if depth == 0:
                return j
    return hi


def _strip_prefixes(tokens: Sequence[Token], lo: int, hi: int) -> int:
    """Skip ``template <...>``, ``extern "C"`` and ``[[...]]`` prefixes."""
    while lo < hi:
        text = tokens[lo].text
        if text == "template" and lo + 1 < hi and tokens[lo + 1].text == "<":
            depth = 0
            j = lo + 1
            while j < hi:
                t = tokens[j].text
                if t == "<":
                    depth += 1
                elif t in (">", ">>"):
                    depth -= len(t)
                    if depth <= 0:
                        break
                j += 1
            lo = j + 1
        elif text == "extern" and lo + 1 < hi and tokens[lo + 1].kind is TokenKind.STRING:
            lo += 2
        elif text == "[" and lo + 1 < hi and tokens[lo + 1].text == "[":
            lo = _matching(tokens, lo, hi, "[", "]") + 1
        else:
            break
    return lo


class StatementSplitter:
    """Cut a token stream into declaration candidates."""

    def __init__(self, tokens: Sequence[Token]) -> None:
        self.tokens = list(tokens)
        self.statements: List[Statement] = []

    def split(self) -> List[Statement]:
        self.statements = []
        self._split(0, len(self.tokens))
        self.statements.sort(key=lambda s: s.start)
        return self.statements

    def _emit(self, lo: int, hi: int) -> None:
        lo = _strip_prefixes(self.tokens, lo, hi)
        if lo < hi:
            self.statements.append(Statement(self.tokens[lo].start, self.tokens[hi - 1].end))

    def _split(self, lo: int, hi: int) -> None:
        tokens = self.tokens
        i = lo
        stmt_lo = lo
        depth = 0
        skip_rest = False
        while i < hi:
            text = tokens[i].text
            if text in ("(", "["):
                depth += 1
            elif text in (")", "]"):
                depth = max(depth - 1, 0)
            elif text == ";" and depth == 0:
                if not skip_rest:
                    self._emit(stmt_lo, i)
                stmt_lo = i + 1
                skip_rest = False
            elif text == ":" and depth == 0 and stmt_lo < i and (
                tokens[stmt_lo].text in _ACCESS_WORDS | {"case", "default"}
            ):
                stmt_lo = i + 1
            elif text == "{":
                close = _matching(tokens, i, hi, "{", "}")
                if depth == 0:
                    stmt_lo, skip_rest = self._brace(stmt_lo, i, close, skip_rest)
                i = close + 1
                continue
            i += 1

    def _brace(self, stmt_lo: int, open_idx: int, close: int, skip_rest: bool) -> Tuple[int, bool]:
        """Handle a top-level ``{``; returns the new statement start and skip flag."""
        tokens = self.tokens
        head_lo = _strip_prefixes(tokens, stmt_lo, open_idx)
        header = [t.text for t in tokens[head_lo:open_idx]]
        if skip_rest:
            return stmt_lo, True
        if not header or header[0] in _CONTROL_WORDS or header[0] == "namespace":
            self._split(open_idx + 1, close)
            return close + 1, False
        is_record = header[0] in _RECORD_WORDS or (
            header[0] == "typedef" and len(header) > 1 and header[1] in _RECORD_WORDS
        )
        if is_record and "=" not in header:
            if "enum" not in header[:2]:
                self._split(open_idx + 1, close)
            return stmt_lo, True
        if "(" in header and "=" not in header[:header.index("(")]:
            self._emit(stmt_lo, open_idx)
            self._split(open_idx + 1, close)
            return close + 1, False
        # Brace initializer: the statement continues past the braces.
        return stmt_lo, False


# ═══════════════════════════════════════════════════════════════════
#  PART 5 — TRANSLATION UNIT
# ═══════════════════════════════════════════════════════════════════

@dataclass
class TranslationUnit:
    """Declarations found in one buffer, plus the cursor they refer to."""

    buffer: SourceBuffer
    cursor: TokenCursor
    declarations: List[Declaration] = field(default_factory=list)
    statements: int = 0
    skipped: int = 0
    macros: Tuple[str, ...] = ()


def _directive_end(text: str, start: int) -> int:
    """End of the preprocessor line starting at *start*, with continuations."""
    pos = start
    while True:
        nl = text.find("\n", pos)
        if nl < 0:
            return len(text)
        if nl > 0 and text[nl - 1] == "\\" or nl > 1 and text[nl - 2:nl] == "\\\r":
            pos = nl + 1
            continue
        return nl


def _preprocess(buffer: SourceBuffer) -> Tuple[List[Token], Set[str]]:
    """Code tokens (no comments, no directives) and the names ``#define``\\ d."""
    text = buffer.text
    code: List[Token] = []
    macros: Set[str] = set()
    tokens = tokenize(buffer)
    i = 0
    while i < len(tokens):
        tok = tokens[i]
        if tok.text == "#" and not text[text.rfind("\n", 0, tok.start) + 1:tok.start].strip():
            end = _directive_end(text, tok.start)
            directive: List[Token] = []
            while i < len(tokens) and tokens[i].start < end:
                if tokens[i].kind is not TokenKind.COMMENT:
                    directive.append(tokens[i])
                i += 1
            if len(directive) >= 3 and directive[1].text == "define":
                macros.add(directive[2].text)
            continue
        if tok.kind is not TokenKind.COMMENT:
            code.append(tok)
        i += 1
    return code, macros


def _build_declarations(result: Any, end: int, file: Optional[str]) -> List[Declaration]:
    if isinstance(result, _AliasDecl):
        return [Declaration(
            kind=DeclarationKind.ALIAS,
            name=result.name.text,
            type=result.type,
            start=result.start,
            name_start=result.end,
            end=result.end,
            file=file,
        )]
    if isinstance(result, _FunctionDecl):
        params = tuple(
            Declaration(
                kind=DeclarationKind.PARAMETER,
                name=p.name,
                type=p.type,
                start=p.start,
                name_start=p.name_start,
                end=p.end,
                file=file,
            )
            for p in result.params
        )
        return [Declaration(
            kind=DeclarationKind.FUNCTION,
            name=result.name.text,
            type=FunctionType(
                _wrap(result.spec.node, result.sigils),
                tuple(p.type for p in params),
            ),
            start=result.spec.start,
            name_start=result.name.start,
            end=end,
            params=params,
            file=file,
        )]
    if isinstance(result, _SimpleDecl):
        kind = (DeclarationKind.TYPEDEF if "typedef" in result.specifiers
                else DeclarationKind.VARIABLE)
        return [
            Declaration(
                kind=kind,
                name=d.name.text,
                type=_wrap(result.spec.node, d.sigils),
                start=result.spec.start,
                name_start=d.name.start,
                end=end,
                file=file,
            )
            for d in result.declarators
        ]
    return []


def parse_statement(buffer: SourceBuffer, stmt: Statement) -> List[Declaration]:
    """Declarations in one statement; ``[]`` when the grammar does not match."""
    text = buffer.text[stmt.start:stmt.end]
    try:
        tree = DECLARATION_GRAMMAR.parse(text)
        result = DeclarationBuilder(stmt.start, buffer.name).visit(tree)
    except ParseError as exc:
        logger.debug("not a declaration at %s: %s",
                     buffer.location(stmt.start), str(exc).splitlines()[0])
        return []
    return _build_declarations(result, stmt.end, buffer.name)


def parse_source(text: str, name: str = "<input>") -> TranslationUnit:
    """Split and parse *text*; never raises for unparsable statements."""
    plain = SourceBuffer(text, name)
    code, macros = _preprocess(plain)
    macro_ranges = tuple(t.span for t in code
                         if t.kind in _NAME_KINDS and t.text in macros)
    buffer = SourceBuffer(text, name, macro_ranges) if macro_ranges else plain
    cursor = TokenCursor(buffer)

    unit = TranslationUnit(buffer=buffer, cursor=cursor, macros=tuple(sorted(macros)))
    for stmt in StatementSplitter(code).split():
        unit.statements += 1
        decls = parse_statement(buffer, stmt)
        if not decls:
            unit.skipped += 1
        unit.declarations.extend(decls)
    logger.info("%s: %d statement(s), %d declaration(s), %d skipped",
                name, unit.statements, len(unit.declarations), unit.skipped)
    return unit


def parse_file(path: Union[str, Path], encoding: str = "utf-8") -> TranslationUnit:
    p = Path(path)
    try:
        with open(p, encoding=encoding, newline="") as fh:
            text = fh.read()
    except (OSError, UnicodeDecodeError) as exc:
        raise FrontendParseError(f"cannot read {p}: {exc}", cause=exc) from exc
    return parse_source(text, str(path))


__all__ = [
    "DECLARATION_GRAMMAR",
    "DeclarationBuilder",
    "Statement",
    "StatementSplitter",
    "TranslationUnit",
    "parse_statement",
    "parse_source",
    "parse_file",
]
