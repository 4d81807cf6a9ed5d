# tests/test_frontend.py
"""
Tests for declaration discovery: the statement splitter, the PEG
declaration grammar and the type trees the visitor builds.
"""

import pytest
from parsimonious.exceptions import ParseError, VisitationError

from qualifiers_order.dispatcher import DeclarationKind
from qualifiers_order.errors import FrontendParseError
from qualifiers_order.frontend import (
    DECLARATION_GRAMMAR,
    DeclarationBuilder,
    StatementSplitter,
    parse_file,
    parse_source,
)
from qualifiers_order.lexer import TokenKind, tokenize
from qualifiers_order.source import SourceBuffer
from qualifiers_order.types import (
    ElaboratedType,
    FunctionType,
    NamedType,
    NonTypeArgument,
    PointerType,
    Qualifier,
    ReferenceType,
    TemplateSpecializationType,
    spelling,
)

CONST = frozenset({Qualifier.CONST})


def _decls(text):
    return parse_source(text, "t.cpp").declarations


def _statements(text):
    buf = SourceBuffer(text)
    code = [t for t in tokenize(buf) if t.kind is not TokenKind.COMMENT]
    return [text[s.start:s.end] for s in StatementSplitter(code).split()]


class TestGrammar:

    @pytest.mark.parametrize("text", [
        "int x",
        "const unsigned long long int x = 1",
        "std::map<int, std::vector<char>> m",
        "int f(void)",
        "char *strdup(const char *s) noexcept",
        "using V = std::vector<int const *>",
        "typedef struct node *node_ptr",
        "int a[3] = {1, 2, 3}, *b",
    ])
    def test_declarations_parse(self, text):
        assert DECLARATION_GRAMMAR.parse(text) is not None

    @pytest.mark.parametrize("text", [
        "x = 1",
        "return x",
        "f(a, b)",
        "if (x) y = 2",
        "int (*fp)(int)",
    ])
    def test_non_declarations_fail(self, text):
        with pytest.raises(ParseError):
            DECLARATION_GRAMMAR.parse(text)

    def test_identifier_rejects_keywords(self):
        for kw in ("int", "const", "return", "struct"):
            with pytest.raises(ParseError):
                DECLARATION_GRAMMAR["identifier"].parse(kw)

    def test_identifier_accepts_keyword_prefix(self):
        for name in ("integer", "constant", "structure"):
            assert DECLARATION_GRAMMAR["identifier"].parse(name).text == name


class TestStatementSplitter:

    def test_semicolons(self):
        assert _statements("int a; int b;") == ["int a", "int b"]

    def test_function_body_is_split(self):
        stmts = _statements("int f(int a) { int b = a; return b; }")
        assert stmts == ["int f(int a)", "int b = a", "return b"]

    def test_brace_initializer_stays_in_statement(self):
        assert _statements("int a[] = {1, 2}; int b;") == ["int a[] = {1, 2}", "int b"]

    def test_record_body_split_and_trailer_dropped(self):
        stmts = _statements("struct S { int a; char b; } s; int c;")
        assert stmts == ["int a", "char b", "int c"]

    def test_enum_body_skipped(self):
        assert _statements("enum E { A, B }; int x;") == ["int x"]

    def test_namespace_and_extern_c(self):
        text = 'namespace n { int a; } extern "C" { int b; }'
        assert _statements(text) == ["int a", "int b"]

    def test_control_blocks(self):
        text = "void f() { if (x) { int a; } else { int b; } for (;;) { int c; } }"
        assert _statements(text) == ["void f()", "int a", "int b", "int c"]

    def test_access_and_case_labels(self):
        text = "class C { public: int a; }; void g() { switch (x) { case 1: int b; } }"
        stmts = _statements(text)
        assert "int a" in stmts
        assert "int b" in stmts

    def test_template_prefix_stripped(self):
        assert _statements("template <typename T> T const f(T a);") == ["T const f(T a)"]

    def test_lambda_in_initializer(self):
        stmts = _statements("auto f = [](int x) { return x; }; int y;")
        assert stmts[-1] == "int y"
        assert stmts[0].startswith("auto f = []")


class TestDeclarations:

    def test_variable(self):
        (decl,) = _decls("int const x = 1;")
        assert decl.kind is DeclarationKind.VARIABLE
        assert decl.name == "x"
        assert decl.type == NamedType("int", decl.type.span, CONST)
        assert (decl.start, decl.name_start) == (0, 10)

    def test_specifiers_are_not_part_of_the_type(self):
        (decl,) = _decls("static constexpr int n = 2;")
        assert decl.start == 17

    def test_multiple_declarators(self):
        decls = _decls("int const a, *b, c[4];")
        assert [d.name for d in decls] == ["a", "b", "c"]
        assert isinstance(decls[1].type, PointerType)
        assert decls[1].type.sigil == 13

    def test_sigils_wrap_first_written_innermost(self):
        (decl,) = _decls("int *const *p;")
        outer = decl.type
        assert isinstance(outer, PointerType) and outer.sigil == 11
        assert isinstance(outer.pointee, PointerType) and outer.pointee.sigil == 4

    def test_references(self):
        lref, rref = _decls("int &a = x; int &&b = f();")
        assert isinstance(lref.type, ReferenceType) and not lref.type.rvalue
        assert isinstance(rref.type, ReferenceType) and rref.type.rvalue

    def test_typedef(self):
        (decl,) = _decls("typedef const char *cstr;")
        assert decl.kind is DeclarationKind.TYPEDEF
        assert decl.name == "cstr"
        assert decl.start == 8

    def test_alias(self):
        (decl,) = _decls("using cint = int const;")
        assert decl.kind is DeclarationKind.ALIAS
        assert decl.name == "cint"
        assert (decl.start, decl.name_start, decl.end) == (13, 22, 22)

    def test_function_and_parameters(self):
        (decl,) = _decls("const char *find(const char *s, int c, ...);")
        assert decl.kind is DeclarationKind.FUNCTION
        assert decl.name == "find"
        assert isinstance(decl.type, FunctionType)
        assert spelling(decl.type.return_type) == "const char *"
        assert [p.name for p in decl.params] == ["s", "c"]
        assert all(p.kind is DeclarationKind.PARAMETER for p in decl.params)

    def test_method_definition(self):
        (decl,) = _decls("int const Widget::size() const { return n; }")
        assert decl.kind is DeclarationKind.FUNCTION
        assert decl.name == "Widget::size"

    def test_elaborated_and_scoped(self):
        a, b = _decls("struct stat const st; std::string const s;")
        assert isinstance(a.type, ElaboratedType) and a.type.prefix == "struct "
        assert isinstance(b.type, ElaboratedType) and b.type.prefix == "std::"
        assert b.type.inner.qualifiers == CONST

    def test_template_specialization(self):
        (decl,) = _decls("std::map<int const, std::array<char, 4>> m;")
        spec = decl.type.inner
        assert isinstance(spec, TemplateSpecializationType)
        assert spec.name == "map"
        assert (spec.langle, spec.rangle) == (8, 39)
        first, second = spec.args
        assert first.qualifiers == CONST
        inner = second.inner
        assert isinstance(inner, TemplateSpecializationType)
        assert inner.rangle == 38
        assert isinstance(inner.args[1], NonTypeArgument)
        assert inner.args[1].text == "4"

    def test_unparsable_statements_are_counted(self):
        unit = parse_source("int a; a = 2; foo(a);", "t.cpp")
        assert unit.statements == 3
        assert unit.skipped == 2
        assert [d.name for d in unit.declarations] == ["a"]

    def test_visitor_errors_propagate(self, monkeypatch):
        def broken(self, node, visited_children):
            raise TypeError("broken visitor")

        monkeypatch.setattr(DeclarationBuilder, "visit_builtin_word", broken)
        with pytest.raises(VisitationError) as exc_info:
            parse_source("int x;", "t.cpp")
        assert exc_info.value.original_class is TypeError


class TestPreprocessor:

    def test_directives_are_skipped(self):
        text = "#include <stdio.h>\n#if X\nint const a;\n#endif\n"
        assert [d.name for d in _decls(text)] == ["a"]

    def test_continued_define_is_skipped(self):
        text = "#define TWICE(x) \\\n    ((x) + (x))\nint b;\n"
        assert [d.name for d in _decls(text)] == ["b"]

    def test_macro_uses_become_macro_ranges(self):
        unit = parse_source("#define CINT const int\nCINT x; int y = CINT;\n", "t.cpp")
        assert unit.macros == ("CINT",)
        starts = [r.start for r in unit.buffer.macro_ranges]
        assert starts == [23, 39]


class TestParseFile:

    def test_reads_file(self, tmp_path):
        path = tmp_path / "a.c"
        path.write_text("int const x;\n", encoding="utf-8")
        unit = parse_file(path)
        assert unit.buffer.name == str(path)
        assert [d.name for d in unit.declarations] == ["x"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(FrontendParseError):
            parse_file(tmp_path / "missing.c")

    def test_keeps_crlf(self, tmp_path):
        path = tmp_path / "a.c"
        path.write_bytes(b"int const x;\r\nint y;\r\n")
        unit = parse_file(path)
        assert unit.buffer.text == "int const x;\r\nint y;\r\n"
        assert [d.name for d in unit.declarations] == ["x", "y"]
        assert unit.buffer.line_text(1) == "int const x;"
