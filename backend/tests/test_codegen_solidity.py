"""Tests for Solidity generation from the contract model."""

from mjolnir.codegen.diagnostics import ConversionDiagnostics
from mjolnir.codegen.solidity import SolidityGenerator
from mjolnir.frontend.parse import parse


def generate(source):
    diagnostics = ConversionDiagnostics()
    code = SolidityGenerator(parse(source), diagnostics).generate()
    return code, diagnostics


class TestFlipper:
    def test_header(self, ink_flipper):
        """Given ink! input, a default pragma and license header are emitted."""
        code, _ = generate(ink_flipper)

        assert code.startswith("// SPDX-License-Identifier: MIT\npragma solidity ^0.8.0;\n")
        assert "contract Flipper {" in code
        assert code.endswith("}\n")

    def test_members(self, ink_flipper):
        """Given the ink! flipper, camelCase members with Solidity modifiers appear."""
        code, _ = generate(ink_flipper)

        assert "    bool private value;" in code
        assert "constructor(bool initValue) {" in code
        assert "value = initValue;" in code
        assert "function flip() public {" in code
        assert "value = !value;" in code
        assert "function get() public view returns (bool) {" in code
        assert "return value;" in code

    def test_source_pragma_is_kept(self, solidity_bank):
        """Given Solidity input, its own version constraint is reused."""
        code, _ = generate(solidity_bank)

        assert "pragma solidity 0.8.19;" in code

    def test_no_blank_line_before_closing_brace(self, ink_flipper):
        """Given any contract, the body ends directly at the closing brace."""
        code, _ = generate(ink_flipper)

        assert "\n\n}" not in code


class TestToken:
    def test_types_and_declarations(self, ink_token):
        """Given ink! environment types, fixed-width Solidity types are used."""
        code, _ = generate(ink_token)

        assert "uint128 private totalSupply;" in code
        assert "mapping(address => uint128) private balances;" in code
        assert "event Transfer(address indexed from, address indexed to, uint128 value);" in code
        assert "error InsufficientBalance();" in code

    def test_result_errors_become_reverts(self, ink_token):
        """Given Err(Error::X), a custom error revert is emitted."""
        code, _ = generate(ink_token)

        assert "function transfer(address to, uint128 value) public {" in code
        assert "revert InsufficientBalance();" in code
        assert "emit Transfer(from, to, value);" in code

    def test_locals_get_inferred_types(self, ink_token):
        """Given untyped let bindings, declarations use inferred types."""
        code, _ = generate(ink_token)

        assert "address from = msg.sender;" in code
        assert "uint128 fromBalance = balanceOf(from);" in code

    def test_mapping_writes(self, ink_token):
        """Given Mapping::insert, index assignment is emitted."""
        code, _ = generate(ink_token)

        assert "balances[from] = fromBalance - value;" in code
        assert "balances[caller] = supply;" in code
