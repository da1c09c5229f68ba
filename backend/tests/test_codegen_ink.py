"""Tests for ink! generation from the contract model."""

from mjolnir.codegen.diagnostics import ConversionDiagnostics
from mjolnir.codegen.ink import InkGenerator
from mjolnir.frontend.parse import parse

COUNTER = """\
pragma solidity ^0.8.0;
contract Counter {
    uint256 public count;
    mapping(address => uint256) balances;
    function bump() public {
        count += 1;
    }
    function credit(address who, uint256 amount) public {
        balances[who] = amount;
    }
    function balanceOf(address who) public view returns (uint256) {
        return balances[who];
    }
}
"""


def generate(source):
    diagnostics = ConversionDiagnostics()
    code = InkGenerator(parse(source), diagnostics).generate()
    return code, diagnostics


class TestFlipper:
    def test_module_layout(self, solidity_flipper):
        """Given the Solidity flipper, an ink! module with storage and impl is produced."""
        code, _ = generate(solidity_flipper)

        assert code.startswith('#![cfg_attr(not(feature = "std"), no_std, no_main)]\n')
        assert "#[ink::contract]\nmod flipper {" in code
        assert "#[ink(storage)]" in code
        assert "pub struct Flipper {" in code
        assert "impl Flipper {" in code

    def test_messages(self, solidity_flipper):
        """Given flip and get, receivers follow mutability and names are snake_case."""
        code, _ = generate(solidity_flipper)

        assert "#[ink(constructor)]" in code
        assert "pub fn new(init_value: bool) -> Self {" in code
        assert "value: init_value," in code
        assert "#[ink(message)]\n        pub fn flip(&mut self) {" in code
        assert "self.value = !self.value;" in code
        assert "pub fn get(&self) -> bool {" in code
        assert "            self.value\n" in code


class TestCounter:
    def test_checked_arithmetic(self):
        """Given 0.8 arithmetic, increments use checked_add."""
        code, _ = generate(COUNTER)

        assert 'self.count = self.count.checked_add(1).expect("arithmetic overflow");' in code

    def test_mapping_access(self):
        """Given mapping reads and writes, get and insert are used."""
        code, _ = generate(COUNTER)

        assert "use ink::storage::Mapping;" in code
        assert "balances: Mapping<AccountId, u128>," in code
        assert "self.balances.insert(who, &amount);" in code
        assert "self.balances.get(who).unwrap_or_default()" in code

    def test_integer_narrowing_is_reported(self):
        """Given uint256 storage, the narrowed type is noted."""
        code, diagnostics = generate(COUNTER)

        assert "count: u128," in code
        assert any("uint256 narrowed to u128" in n.message for n in diagnostics.limitations)

    def test_public_field_getter(self):
        """Given a public Solidity field, a getter message is synthesised."""
        code, diagnostics = generate(COUNTER)

        assert "pub fn count(&self) -> u128 {" in code
        assert any(n.construct == "getter" for n in diagnostics.limitations)

    def test_implicit_constructor_defaults(self):
        """Given no constructor, fields start from their defaults."""
        code, _ = generate(COUNTER)

        assert "pub fn new() -> Self {" in code
        assert "count: Default::default()," in code


def test_keyword_field_is_escaped():
    """Given a field named like a Rust keyword, a raw identifier is emitted."""
    code, diagnostics = generate("contract A {\n    uint ref;\n    function f() public {\n        ref = 1;\n    }\n}\n")

    assert "r#ref: u128," in code
    assert "self.r#ref = 1;" in code
    assert any("renamed to 'r#ref'" in n.message for n in diagnostics.limitations)


def test_unchecked_block_wraps():
    """Given an unchecked block, wrapping arithmetic is emitted."""
    source = """\
pragma solidity ^0.8.0;
contract A {
    uint total;
    function add(uint a) public {
        unchecked { total = total + a; }
    }
}
"""
    code, _ = generate(source)

    assert "self.total = self.total.wrapping_add(a);" in code
