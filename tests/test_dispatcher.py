# tests/test_dispatcher.py
"""
Tests for turning declarations into analysis contexts: own type,
template arguments (with boundary recovery) and function parameters.
"""

import pytest

from qualifiers_order.dispatcher import (
    Declaration,
    DeclarationDispatcher,
    DeclarationKind,
)
from qualifiers_order.errors import MalformedDeclaratorError
from qualifiers_order.frontend import parse_source
from qualifiers_order.source import SourceSpan
from qualifiers_order.types import NamedType


def _contexts(text, **kwargs):
    unit = parse_source(text, "t.cpp")
    dispatcher = DeclarationDispatcher(unit.cursor, **kwargs)
    return [ctx for decl in unit.declarations for ctx in dispatcher.contexts(decl)]


def _bounds(ctx):
    return ctx.span.start, ctx.span.end


class TestOwnContext:

    def test_variable_span_ends_at_name(self):
        (ctx,) = _contexts("int const x;")
        assert ctx.kind is DeclarationKind.VARIABLE
        assert _bounds(ctx) == (0, 10)
        assert ctx.name_start == 10

    def test_typedef_span_covers_declaration(self):
        (ctx,) = _contexts("typedef int const cint;")
        assert ctx.kind is DeclarationKind.TYPEDEF
        assert _bounds(ctx) == (8, 22)
        assert ctx.name_start == 18

    def test_alias_span(self):
        (ctx,) = _contexts("using cint = int const;")
        assert ctx.kind is DeclarationKind.ALIAS
        assert _bounds(ctx) == (13, 22)

    def test_function_uses_return_type(self):
        ctxs = _contexts("int const f(char c);")
        assert ctxs[0].kind is DeclarationKind.FUNCTION
        assert ctxs[0].type.name == "int"
        assert _bounds(ctxs[0]) == (0, 10)

    def test_function_without_function_type_is_malformed(self):
        unit = parse_source("int x;", "t.cpp")
        bogus = Declaration(
            kind=DeclarationKind.FUNCTION,
            name="f",
            type=NamedType("int", SourceSpan(0, 3)),
            start=0,
            name_start=4,
            end=5,
        )
        with pytest.raises(MalformedDeclaratorError):
            list(DeclarationDispatcher(unit.cursor).contexts(bogus))


class TestParameters:

    def test_parameters_follow_function(self):
        ctxs = _contexts("int f(const int a, char b);")
        assert [c.kind for c in ctxs] == [
            DeclarationKind.FUNCTION, DeclarationKind.PARAMETER, DeclarationKind.PARAMETER,
        ]
        assert [c.label for c in ctxs] == ["f", "a", "b"]

    def test_parameters_can_be_disabled(self):
        ctxs = _contexts("int f(const int a, char b);", check_parameters=False)
        assert len(ctxs) == 1

    def test_unnamed_parameter(self):
        ctxs = _contexts("void g(int const);")
        param = ctxs[1]
        assert param.kind is DeclarationKind.PARAMETER
        assert _bounds(param) == (7, 16)


class TestTemplateArguments:

    def test_each_type_argument_gets_a_context(self):
        text = "std::pair<int const, char> p;"
        ctxs = _contexts(text)
        args = [c for c in ctxs if c.kind is DeclarationKind.TEMPLATE_ARGUMENT]
        assert [_bounds(c) for c in args] == [(10, 19), (21, 25)]
        assert [text[c.span.start:c.span.end] for c in args] == ["int const", "char"]
        assert args[0].label == "p: argument 1 of pair"

    def test_non_type_arguments_occupy_a_slot(self):
        text = "array<int const, 4> a;"
        args = [c for c in _contexts(text) if c.kind is DeclarationKind.TEMPLATE_ARGUMENT]
        assert len(args) == 1
        assert _bounds(args[0]) == (6, 15)

    def test_nested_arguments_are_recursive(self):
        text = "map<int, vector<int const>> m;"
        args = [c for c in _contexts(text) if c.kind is DeclarationKind.TEMPLATE_ARGUMENT]
        spelled = [text[c.span.start:c.span.end] for c in args]
        assert spelled == ["int", "vector<int const>", "int const"]

    def test_comma_inside_nested_argument_is_not_a_boundary(self):
        text = "f<g<int, char> const, long> x;"
        args = [c for c in _contexts(text) if c.kind is DeclarationKind.TEMPLATE_ARGUMENT]
        spelled = [text[c.span.start:c.span.end] for c in args]
        assert spelled[0] == "g<int, char> const"
        assert "long" in spelled

    def test_template_arguments_can_be_disabled(self):
        ctxs = _contexts("std::pair<int const, char> p;", check_template_arguments=False)
        assert len(ctxs) == 1
