# tests/test_type_shape.py
"""
Tests for type-tree shape queries: indirection stripping, qualifier
reconciliation and the two candidate source regions.
"""

import pytest

from qualifiers_order.errors import MalformedDeclaratorError
from qualifiers_order.frontend import parse_source
from qualifiers_order.source import SourceSpan
from qualifiers_order.type_shape import (
    QualifierPresence,
    has_tracked_qualifier,
    innermost_type,
    qualifier_presence,
    range_after_type,
    range_before_type,
    strip_elaboration,
    strip_indirections,
    textual_qualifiers,
)
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


def _int(start=0, quals=frozenset(), printed=None):
    return NamedType("int", SourceSpan(start, start + 3), quals, printed)


class TestStripping:

    def test_innermost_sigil_is_first_written(self):
        # int **p : sigils at 4 and 5, the one at 4 is innermost
        node = PointerType(PointerType(_int(), 4), 5)
        inner, sigil = strip_indirections(node)
        assert inner == _int()
        assert sigil == 4

    def test_reference(self):
        node = ReferenceType(_int(), 4, rvalue=True)
        assert strip_indirections(node) == (_int(), 4)

    def test_no_indirection(self):
        assert strip_indirections(_int()) == (_int(), None)

    def test_elaboration(self):
        elab = ElaboratedType(_int(5), SourceSpan(0, 8), "std::")
        assert strip_elaboration(elab) == _int(5)
        assert innermost_type(PointerType(elab, 9)) == _int(5)


class TestTextualQualifiers:

    def test_leading_words(self):
        assert textual_qualifiers("const volatile int") == (Qualifier.CONST, Qualifier.VOLATILE)

    def test_trailing_words_ignored(self):
        assert textual_qualifiers("int const") == ()

    def test_out_of_order_stops(self):
        assert textual_qualifiers("volatile const int") == (Qualifier.VOLATILE,)


class TestQualifierPresence:

    def test_confirmed(self):
        assert qualifier_presence(_int(quals=CONST), Qualifier.CONST) is QualifierPresence.CONFIRMED
        assert has_tracked_qualifier(PointerType(_int(quals=CONST), 4), Qualifier.CONST)

    def test_textual_only_is_suppressed(self):
        node = _int(printed="const int")
        assert qualifier_presence(node, Qualifier.CONST) is QualifierPresence.SUPPRESSED

    def test_parsed_declarations_are_never_suppressed(self):
        text = "int const a; const char *b; const std::vector<int> c; struct S const d;\n"
        decls = parse_source(text, "t.cpp").declarations
        assert [d.name for d in decls] == ["a", "b", "c", "d"]
        for decl in decls:
            assert innermost_type(decl.type).printed is None
            assert qualifier_presence(decl.type, Qualifier.CONST) is QualifierPresence.CONFIRMED
        assert qualifier_presence(decls[0].type, Qualifier.VOLATILE) is QualifierPresence.ABSENT

    def test_absent(self):
        assert qualifier_presence(_int(), Qualifier.CONST) is QualifierPresence.ABSENT

    def test_other_qualifier_absent(self):
        assert qualifier_presence(_int(quals=CONST), Qualifier.VOLATILE) is QualifierPresence.ABSENT

    def test_pointer_const_is_not_pointee_const(self):
        # int *const p : nothing on the pointee
        assert qualifier_presence(PointerType(_int(), 4), Qualifier.CONST) is QualifierPresence.ABSENT

    def test_function_type_absent(self):
        fn = FunctionType(_int(quals=CONST))
        assert qualifier_presence(fn, Qualifier.CONST) is QualifierPresence.ABSENT

    def test_template_specialization_qualifiers(self):
        spec = TemplateSpecializationType(
            "vector", (_int(7),), 6, 10, SourceSpan(0, 11), CONST,
        )
        assert qualifier_presence(spec, Qualifier.CONST) is QualifierPresence.CONFIRMED
        assert spelling(spec) == "const vector<int>"


class TestRanges:

    def test_before_type(self):
        # const int x;
        node = _int(6, CONST)
        assert range_before_type(node, 0) == SourceSpan(0, 6)

    def test_before_type_includes_elaborated_prefix(self):
        # const std::string s;  -> stops at 'std', not at 'string'
        elab = ElaboratedType(NamedType("string", SourceSpan(11, 17)), SourceSpan(6, 17), "std::")
        assert range_before_type(elab, 0) == SourceSpan(0, 6)

    def test_after_type_stops_at_first_sigil(self):
        # int const *const p;
        node = PointerType(_int(0, CONST), 10)
        assert range_after_type(node, 17) == SourceSpan(3, 10)

    def test_after_type_without_sigil(self):
        # int const x;
        assert range_after_type(_int(0, CONST), 10) == SourceSpan(3, 10)

    def test_after_template_starts_past_rangle(self):
        # vector<int> const v;
        spec = TemplateSpecializationType("vector", (_int(7),), 6, 10, SourceSpan(0, 11), CONST)
        assert range_after_type(spec, 18) == SourceSpan(11, 18)

    def test_after_never_negative(self):
        assert range_after_type(_int(4), 2) == SourceSpan(7, 7)

    def test_malformed_node_raises(self):
        with pytest.raises(MalformedDeclaratorError):
            range_before_type(FunctionType(_int()), 0)
        with pytest.raises(MalformedDeclaratorError):
            range_after_type(NonTypeArgument("3", SourceSpan(0, 1)), 0)
