"""Tests for the conversion entry point."""

import pytest

from mjolnir.codegen.converter import convert, resolve_target
from mjolnir.errors import ConfigError, UnsupportedConstruct
from mjolnir.frontend.parse import parse
from mjolnir.ir.model import Dialect, Mutability


class TestResolveTarget:
    def test_case_insensitive(self):
        """Given mixed-case names, the dialect is found."""
        assert resolve_target("INK") == Dialect.INK
        assert resolve_target("Solidity") == Dialect.SOLIDITY

    def test_unknown_target(self):
        """Given an unknown target, a configuration error lists the options."""
        with pytest.raises(ConfigError) as exc_info:
            resolve_target("vyper")

        assert exc_info.value.status_code == 400
        assert exc_info.value.details == {"supported_targets": ["ink", "solidity"]}


class TestConvert:
    def test_solidity_to_ink(self, solidity_flipper):
        """Given the Solidity flipper, ink! code is produced without notes."""
        result = convert(parse(solidity_flipper), "ink")

        assert result.target == Dialect.INK
        assert "#[ink::contract]" in result.code
        assert result.compilation_output is None

    def test_round_trip_preserves_interface(self, solidity_flipper):
        """Given a Solidity to ink! to Solidity trip, fields and functions survive."""
        ink_code = convert(parse(solidity_flipper), "ink").code
        back = parse(convert(parse(ink_code), "solidity").code)

        assert back.field_names == ["value"]
        assert [f.name for f in back.functions] == ["flip", "get"]
        assert back.function_named("flip").mutability == Mutability.MUTATING
        assert back.function_named("get").mutability == Mutability.VIEW
        assert [p.name for p in back.constructors[0].parameters] == ["initValue"]

    def test_ink_round_trip_preserves_interface(self, ink_token):
        """Given an ink! to Solidity to ink! trip, storage, messages and events survive."""
        solidity_code = convert(parse(ink_token), "solidity").code
        back = parse(convert(parse(solidity_code), "ink").code)

        assert back.dialect == Dialect.INK
        assert back.field_names == ["total_supply", "balances"]
        assert [f.name for f in back.functions] == ["balance_of", "transfer"]
        assert back.function_named("balance_of").mutability == Mutability.VIEW
        assert back.function_named("transfer").mutability == Mutability.MUTATING
        assert [e.name for e in back.events] == ["Transfer"]
        assert [(f.name, f.indexed) for f in back.events[0].fields] == [("from", True), ("to", True), ("value", False)]
        assert [p.name for p in back.constructors[0].parameters] == ["supply"]

    def test_same_dialect(self, solidity_flipper):
        """Given the source dialect as the target, the contract is regenerated."""
        result = convert(parse(solidity_flipper), "SOLIDITY")

        assert result.target == Dialect.SOLIDITY
        assert "function flip() public {" in result.code

    def test_limitations_are_reported(self):
        """Given an approximation, the compilation output lists it."""
        source = "pragma solidity ^0.8.0;\ncontract A {\n    uint256 total;\n}\n"

        result = convert(parse(source), "ink")

        assert "[limitation] uint256 narrowed to u128" in result.compilation_output

    def test_parse_warnings_are_reported(self):
        """Given a parse warning, it appears in the compilation output."""
        source = """\
contract Asm {
    uint x;
    function f() public {
        assembly { let y := 1 }
        x = 1;
    }
}
"""
        result = convert(parse(source), "ink")

        assert "[warning]" in result.compilation_output
        assert "// unsupported:" in result.code

    def test_optimize_flag(self):
        """Given optimize, rewrites are applied and reported."""
        source = "contract A {\n    uint x;\n    uint y;\n    function f() public {\n        x = 1 + 1;\n    }\n}\n"

        result = convert(parse(source), "ink", optimize=True)

        assert "self.x = 2;" in result.code
        assert "[optimization] folded 1 constant expression(s)" in result.compilation_output
        assert "[optimization] removed unused private field 'y'" in result.compilation_output

    def test_assembly_only_function_converts_across_dialects(self):
        """Given a function whose body is only assembly, ink! output keeps it as a comment."""
        source = "contract Asm {\n    function f() public {\n        assembly { let x := 1 }\n    }\n}\n"

        result = convert(parse(source), "ink")

        assert "pub fn f(&mut self)" in result.code
        assert "// unsupported: assembly { let x := 1 }" in result.code
        assert "[limitation] 'assembly' could not be translated and is left as a comment (line 3)" in result.compilation_output

    def test_assembly_is_copied_verbatim_within_solidity(self):
        """Given Solidity to Solidity, the assembly block is copied as written."""
        source = """\
contract Asm {
    function f() public {
        assembly {
            mstore(0, 1)
        }
    }
}
"""
        result = convert(parse(source), "solidity")

        assert "        assembly {\n            mstore(0, 1)\n        }\n" in result.code
        assert "// unsupported" not in result.code
        assert "[limitation] 'assembly' copied verbatim without translation (line 3)" in result.compilation_output

    def test_multiline_opaque_text_is_fully_commented(self):
        """Given a multi-line assembly block sent to ink!, every line is commented."""
        source = "contract Asm {\n    function f() public {\n        assembly {\n            mstore(0, 1)\n        }\n    }\n}\n"

        result = convert(parse(source), "ink")

        opaque_lines = [line.strip() for line in result.code.splitlines() if "mstore" in line or line.strip().endswith("assembly {")]
        assert opaque_lines == ["// unsupported: assembly {", "//     mstore(0, 1)"]

    def test_nothing_emittable(self):
        """Given a contract whose only content is an opaque constructor, conversion is refused."""
        source = "contract Asm {\n    constructor() {\n        assembly { let x := 1 }\n    }\n}\n"

        with pytest.raises(UnsupportedConstruct) as exc_info:
            convert(parse(source), "ink")

        assert exc_info.value.construct == "assembly"
        assert exc_info.value.line == 3
        assert exc_info.value.error_code == "UNSUPPORTED_CONSTRUCT"
