"""Tests for the shared lexer."""

import pytest

from mjolnir.errors import ContractSyntaxError
from mjolnir.frontend.lexer import tokenize
from mjolnir.frontend.tokens import TokenType
from mjolnir.ir.model import Dialect


def values(tokens):
    return [t.value for t in tokens if t.type != TokenType.EOF]


class TestSolidityTokens:
    def test_keywords_and_identifiers(self):
        """Given a declaration, keywords and identifiers are told apart."""
        tokens = tokenize("uint256 public total;", Dialect.SOLIDITY)

        assert [t.type for t in tokens] == [
            TokenType.IDENTIFIER,
            TokenType.KEYWORD,
            TokenType.IDENTIFIER,
            TokenType.PUNCT,
            TokenType.EOF,
        ]

    def test_comments_are_skipped_and_lines_tracked(self):
        """Given comments spanning lines, tokens keep their source lines."""
        source = "// header\n/* block\n comment */ x = 1;"

        tokens = tokenize(source, Dialect.SOLIDITY)

        assert values(tokens) == ["x", "=", "1", ";"]
        assert tokens[0].line == 3

    def test_exponent_is_one_operator(self):
        """Given `a ** b`, Solidity lexes a single exponent operator."""
        assert values(tokenize("a ** b", Dialect.SOLIDITY)) == ["a", "**", "b"]

    def test_hex_and_underscored_numbers(self):
        """Given hex and underscore-separated literals, digits are normalised."""
        tokens = tokenize("0xFF 1_000", Dialect.SOLIDITY)

        assert tokens[0].type == TokenType.HEX_NUMBER
        assert tokens[0].value == "0xFF"
        assert tokens[1].value == "1000"

    def test_unterminated_string_raises(self):
        """Given an unterminated string, a syntax error names the line."""
        with pytest.raises(ContractSyntaxError) as exc_info:
            tokenize('x = "abc', Dialect.SOLIDITY)

        assert exc_info.value.line == 1


class TestRustTokens:
    def test_integer_suffix_is_dropped(self):
        """Given `10u128`, the suffix is not part of the number."""
        assert values(tokenize("10u128", Dialect.INK)) == ["10"]

    def test_range_is_not_a_fraction(self):
        """Given `0..10`, the lexer produces a range, not a decimal."""
        assert values(tokenize("0..10", Dialect.INK)) == ["0", "..", "10"]

    def test_double_star_is_two_dereferences(self):
        """Given `**x` in Rust, no exponent operator is produced."""
        assert values(tokenize("**x", Dialect.INK)) == ["*", "*", "x"]

    def test_raw_identifier(self):
        """Given `r#type`, the raw prefix is stripped."""
        tokens = tokenize("r#type", Dialect.INK)

        assert tokens[0].type == TokenType.IDENTIFIER
        assert tokens[0].value == "type"

    def test_lifetime_and_char(self):
        """Given a char literal and a lifetime, both are recognised."""
        tokens = tokenize("'a' 'b", Dialect.INK)

        assert tokens[0].type == TokenType.CHAR
        assert tokens[1].type == TokenType.LIFETIME

    def test_nested_block_comment_unterminated(self):
        """Given an unclosed nested comment, a syntax error is raised."""
        with pytest.raises(ContractSyntaxError):
            tokenize("/* outer /* inner */ still open", Dialect.INK)
