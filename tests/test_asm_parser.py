"""
Tokenizing and parsing Galaxy assembly text.
"""

import pytest

from galaxy_asm.asm_parser import parse_expression, parse_script, parse_statement, parse_token, tokenize
from galaxy_asm.core.ops import AP, EncodedNumber, Fun, Modulation, ModulatedBits, Syntax, Variable
from galaxy_asm.errors import ParseError, UnknownToken


class TestTokens:
    def test_tokenize_splits_list_syntax(self):
        assert tokenize("ap car (1,2)") == ["ap", "car", "(", "1", ",", "2", ")"]

    @pytest.mark.parametrize(
        "token, op",
        [
            ("ap", AP),
            ("(", Syntax.LEFT_PAREN),
            ("cons", Fun.CONS),
            ("t", Fun.TRUE),
            ("galaxy", Fun.GALAXY),
            ("42", EncodedNumber(42)),
            ("-7", EncodedNumber(-7)),
            ("[3]", EncodedNumber(3, Modulation.MODULATED)),
            ("{0110}", ModulatedBits("0110")),
            (":1029", Variable(1029)),
            ("x1029", Variable(1029)),
        ],
    )
    def test_parse_token(self, token, op):
        assert parse_token(token) == op

    def test_colon_and_x_name_the_same_variable(self):
        assert parse_token(":5") == parse_token("x5")

    def test_unknown_token(self):
        with pytest.raises(UnknownToken) as exc:
            parse_token("frobnicate", line=3)
        assert exc.value.line == 3


class TestExpressions:
    def test_expression(self):
        assert parse_expression("ap inc 1") == (AP, Fun.INC, EncodedNumber(1))

    def test_equal_sign_rejected(self):
        with pytest.raises(ParseError):
            parse_expression(":1 = 2")

    def test_empty_expression(self):
        assert parse_expression("   ") == ()


class TestScripts:
    def test_statement(self):
        assert parse_statement(":1 = ap inc 0") == ((Variable(1),), (AP, Fun.INC, EncodedNumber(0)))

    def test_statement_without_equal(self):
        with pytest.raises(ParseError):
            parse_statement(":1 ap inc 0")

    def test_empty_sides(self):
        with pytest.raises(ParseError):
            parse_statement(" = 1")
        with pytest.raises(ParseError):
            parse_statement(":1 = ")

    def test_script_skips_blank_lines(self):
        script = "x1 = 1\n\n   \ngalaxy = :1\n"
        assert parse_script(script) == [
            ((Variable(1),), (EncodedNumber(1),)),
            ((Fun.GALAXY,), (Variable(1),)),
        ]

    def test_error_carries_line_number(self):
        with pytest.raises(UnknownToken) as exc:
            parse_script(":1 = 1\n:2 = ap bogus 1\n")
        assert exc.value.line == 2
