"""Tests for identifier case conversion and keyword escaping."""

import pytest

from mjolnir.codegen.diagnostics import ConversionDiagnostics
from mjolnir.codegen.naming import Namer, to_camel, to_pascal, to_snake
from mjolnir.ir.model import Dialect


class TestCaseConversion:
    @pytest.mark.parametrize(
        "name, expected",
        [
            ("totalSupply", "total_supply"),
            ("getHTTPResponse", "get_http_response"),
            ("balanceOf", "balance_of"),
            ("_owner", "_owner"),
            ("already_snake", "already_snake"),
            ("MAX_SUPPLY", "MAX_SUPPLY"),
        ],
    )
    def test_to_snake(self, name, expected):
        """Given camelCase names, snake_case is produced and constants are kept."""
        assert to_snake(name) == expected

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("total_supply", "totalSupply"),
            ("_total_supply", "_totalSupply"),
            ("flip", "flip"),
            ("alreadyCamel", "alreadyCamel"),
            ("MAX_SUPPLY", "MAX_SUPPLY"),
        ],
    )
    def test_to_camel(self, name, expected):
        """Given snake_case names, camelCase is produced."""
        assert to_camel(name) == expected

    def test_to_pascal(self):
        """Given type names in either style, PascalCase is produced."""
        assert to_pascal("my_token") == "MyToken"
        assert to_pascal("flipper") == "Flipper"
        assert to_pascal("ERC20") == "ERC20"


class TestNamer:
    def test_ink_values_are_snake_case(self):
        """Given an ink! target, values become snake_case."""
        namer = Namer(Dialect.INK, ConversionDiagnostics())

        assert namer.value("initValue") == "init_value"
        assert namer.type("my_token") == "MyToken"
        assert namer.module("MyToken") == "my_token"

    def test_ink_keyword_escapes(self):
        """Given Rust keywords, raw identifiers are used where Rust allows them."""
        diagnostics = ConversionDiagnostics()
        namer = Namer(Dialect.INK, diagnostics)

        assert namer.value("type") == "r#type"
        assert namer.value("self") == "self_"
        assert [n.construct for n in diagnostics.limitations] == ["naming", "naming"]

    def test_solidity_keyword_escape_is_reported_once(self):
        """Given a Solidity keyword used twice, one note is recorded."""
        diagnostics = ConversionDiagnostics()
        namer = Namer(Dialect.SOLIDITY, diagnostics)

        assert namer.value("address") == "address_"
        assert namer.value("address") == "address_"
        assert [n.message for n in diagnostics.limitations] == [
            "identifier 'address' clashes with a keyword; renamed to 'address_'"
        ]

    def test_plain_names_are_not_reported(self):
        """Given ordinary identifiers, no notes are recorded."""
        diagnostics = ConversionDiagnostics()
        namer = Namer(Dialect.SOLIDITY, diagnostics)

        assert namer.value("init_value") == "initValue"
        assert diagnostics.notes == []
