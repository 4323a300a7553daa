"""
Tree building from op sequences, list sugar and rendering back to ops.
"""

import pytest

from galaxy_asm.ast_builder import (
    EMPTY,
    App,
    Literal,
    build_tree,
    lit,
    nodes_equal,
    render,
)
from galaxy_asm.core.ops import AP, GALAXY_VARIABLE_ID, EncodedNumber, Fun, Syntax, Variable
from galaxy_asm.errors import (
    ListCommaWithoutElement,
    ListNotClosed,
    ListSyntaxClosingAfterComma,
    ListSyntaxSeveralCommas,
    ListSyntaxUnexpectedNode,
    NoAppArgProvided,
    NoAppFunProvided,
    TrailingOps,
    UnexpectedSyntax,
)

from conftest import asm

LP, COMMA, RP = Syntax.LEFT_PAREN, Syntax.COMMA, Syntax.RIGHT_PAREN


class TestBuildTree:
    def test_empty_input(self):
        assert build_tree(()) is EMPTY

    def test_single_literal(self):
        tree = build_tree((EncodedNumber(5),))
        assert isinstance(tree, Literal)
        assert tree.op == EncodedNumber(5)

    def test_application_shape(self):
        tree = build_tree(asm("ap ap add 1 2"))
        assert isinstance(tree, App)
        assert isinstance(tree.fun, App)
        assert tree.fun.fun.op is Fun.ADD
        assert tree.fun.arg.op == EncodedNumber(1)
        assert tree.arg.op == EncodedNumber(2)

    def test_nested_argument(self):
        tree = build_tree(asm("ap inc ap inc 0"))
        assert render(tree) == asm("ap inc ap inc 0")

    def test_galaxy_becomes_variable(self):
        tree = build_tree((Fun.GALAXY,))
        assert tree.op == Variable(GALAXY_VARIABLE_ID)

    def test_deep_right_spine_does_not_recurse(self):
        ops = (AP, Fun.INC) * 20000 + (EncodedNumber(0),)
        tree = build_tree(ops)
        assert render(tree) == ops


class TestBuildErrors:
    def test_lone_ap(self):
        with pytest.raises(NoAppFunProvided):
            build_tree((AP,))

    def test_missing_argument(self):
        with pytest.raises(NoAppArgProvided) as exc:
            build_tree((AP, Fun.INC))
        assert exc.value.fun == lit(Fun.INC)

    def test_trailing_ops(self):
        with pytest.raises(TrailingOps) as exc:
            build_tree(asm("1 2"))
        assert exc.value.index == 1


class TestListSugar:
    def test_empty_list_is_nil(self):
        assert render(build_tree((LP, RP))) == (Fun.NIL,)

    def test_single_element(self):
        assert render(build_tree(asm("(x0)"))) == asm("ap ap cons x0 nil")

    def test_two_elements(self):
        assert render(build_tree(asm("(x0, x1)"))) == asm("ap ap cons x0 ap ap cons x1 nil")

    def test_nested_lists(self):
        got = render(build_tree(asm("((1, 2), ())")))
        assert got == asm("ap ap cons ap ap cons 1 ap ap cons 2 nil ap ap cons nil nil")

    def test_list_as_argument(self):
        assert render(build_tree(asm("ap car (1)"))) == asm("ap car ap ap cons 1 nil")

    def test_application_inside_list(self):
        assert render(build_tree(asm("(ap inc 1)"))) == asm("ap ap cons ap inc 1 nil")

    def test_not_closed(self):
        with pytest.raises(ListNotClosed):
            build_tree((LP, EncodedNumber(1)))

    def test_comma_first(self):
        with pytest.raises(ListCommaWithoutElement):
            build_tree((LP, COMMA, EncodedNumber(1), RP))

    def test_two_commas(self):
        with pytest.raises(ListSyntaxSeveralCommas):
            build_tree((LP, EncodedNumber(1), COMMA, COMMA, RP))

    def test_closing_after_comma(self):
        with pytest.raises(ListSyntaxClosingAfterComma):
            build_tree((LP, EncodedNumber(1), COMMA, RP))

    def test_missing_comma(self):
        with pytest.raises(ListSyntaxUnexpectedNode):
            build_tree((LP, EncodedNumber(1), EncodedNumber(2), RP))

    def test_stray_closing_paren(self):
        with pytest.raises(UnexpectedSyntax):
            build_tree((RP,))

    def test_comma_outside_list(self):
        with pytest.raises(UnexpectedSyntax):
            build_tree((AP, COMMA))


class TestNodeIdentity:
    def test_structural_equality_and_hash(self):
        a = build_tree(asm("ap ap cons 1 ap inc x0"))
        b = build_tree(asm("ap ap cons 1 ap inc x0"))
        assert a is not b
        assert a == b
        assert hash(a) == hash(b)

    def test_different_trees_differ(self):
        assert build_tree(asm("ap inc 1")) != build_tree(asm("ap inc 2"))
        assert build_tree(asm("1")) != build_tree(asm("[1]"))

    def test_shared_subtrees_compare_once(self):
        a = build_tree(asm("1"))
        b = build_tree(asm("1"))
        for _ in range(200):
            a = App(a, a)
            b = App(b, b)
        assert nodes_equal(a, b)

    def test_basis_literals_are_shared(self):
        assert lit(Fun.CONS) is lit(Fun.CONS)
