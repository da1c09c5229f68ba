"""Tests for the individual analysis rules."""

from mjolnir.analyzer.rules import (
    RULES,
    check_access_control,
    check_assembly_usage,
    check_deprecated_patterns,
    check_event_emission,
    check_floating_pragma,
    check_force_send_ether,
    check_gas_hotspot,
    check_loop_external_call,
    check_missing_visibility,
    check_reentrancy,
    check_signature_malleability,
    check_storage_in_loop,
    check_timestamp_dependence,
    check_tx_origin,
    check_unbounded_storage,
    check_unchecked_arithmetic,
    check_unchecked_call,
    check_unmodelled_construct,
    check_unprotected_selfdestruct,
    check_weak_randomness,
)
from mjolnir.frontend.parse import parse

PAYOUT_LOOP = """\
pragma solidity 0.8.19;
contract Payout {
    address[] payees;
    uint total;
    function pay() public {
        for (uint i = 0; i < payees.length; i++) {
            payable(payees[i]).transfer(1);
            total += 1;
        }
    }
}
"""


def test_registry_order_and_names_are_unique():
    """Given the registry, names are unique and reentrancy runs first."""
    names = [rule.name for rule in RULES]

    assert len(names) == len(set(names))
    assert names[0] == "reentrancy"
    assert "floating_pragma" in names


class TestReentrancy:
    def test_write_after_call(self, solidity_bank):
        """Given a balance update after a value call, reentrancy is reported at the call."""
        findings = check_reentrancy(parse(solidity_bank))

        assert len(findings) == 1
        assert findings[0].line == 20
        assert "'withdraw'" in findings[0].message

    def test_effects_before_interaction(self):
        """Given the write before the call, nothing is reported."""
        source = """\
contract Safe {
    mapping(address => uint) balances;
    function withdraw(uint amount) public {
        balances[msg.sender] -= amount;
        (bool ok, ) = msg.sender.call{value: amount}("");
        require(ok);
    }
}
"""
        assert check_reentrancy(parse(source)) == []


class TestArithmetic:
    LEGACY = """\
pragma solidity ^0.7.6;
contract Sum {
    uint total;
    function add(uint a) public {
        total = total + a;
    }
}
"""

    def test_legacy_compiler_overflow(self):
        """Given pre-0.8 arithmetic on integers, an overflow risk is reported."""
        findings = check_unchecked_arithmetic(parse(self.LEGACY))

        assert len(findings) == 1
        assert findings[0].line == 5
        assert findings[0].message == "Potential integer overflow/underflow in 'add'"

    def test_guarded_operand(self):
        """Given a require on an operand, the operation counts as guarded."""
        source = self.LEGACY.replace("        total = total + a;", "        require(a < 100);\n        total = total + a;")

        assert check_unchecked_arithmetic(parse(source)) == []

    def test_checked_compiler(self):
        """Given a 0.8 compiler, plain arithmetic is safe."""
        source = self.LEGACY.replace("^0.7.6", "^0.8.0")

        assert check_unchecked_arithmetic(parse(source)) == []

    def test_unchecked_block_in_checked_compiler(self):
        """Given an unchecked block under 0.8, the overflow risk returns."""
        source = self.LEGACY.replace("^0.7.6", "^0.8.0").replace(
            "        total = total + a;", "        unchecked { total = total + a; }"
        )

        assert len(check_unchecked_arithmetic(parse(source))) == 1

    def test_ink_checked_add_is_safe(self):
        """Given ink! checked_add, no overflow is reported."""
        source = """\
#[ink::contract]
mod counter {
    #[ink(storage)]
    pub struct Counter {
        count: u32,
    }

    impl Counter {
        #[ink(constructor)]
        pub fn new() -> Self {
            Self { count: 0 }
        }

        #[ink(message)]
        pub fn bump(&mut self, by: u32) {
            self.count = self.count.checked_add(by).unwrap();
        }
    }
}
"""
        assert check_unchecked_arithmetic(parse(source)) == []

    def test_guard_must_bound_the_subtraction(self):
        """Given a balance check before a debit, the subtraction is covered."""
        source = """\
pragma solidity ^0.7.6;
contract Vault {
    mapping(address => uint) balances;
    function take(uint amount) public {
        require(balances[msg.sender] >= amount);
        balances[msg.sender] -= amount;
    }
}
"""
        assert check_unchecked_arithmetic(parse(source)) == []

    def test_debit_check_does_not_cover_the_credit(self):
        """Given a check that only bounds the debit, the credit is still reported."""
        source = """\
pragma solidity ^0.7.6;
contract Vault {
    mapping(address => uint) balances;
    function move(address to, uint amount) public {
        require(balances[msg.sender] >= amount);
        balances[msg.sender] -= amount;
        balances[to] += amount;
    }
}
"""
        findings = check_unchecked_arithmetic(parse(source))

        assert [f.line for f in findings] == [7]

    def test_check_on_the_result(self):
        """Given a require comparing the sum itself, the addition is covered."""
        source = self.LEGACY.replace(
            "        total = total + a;", "        require(total + a >= total);\n        total = total + a;"
        )

        assert check_unchecked_arithmetic(parse(source)) == []

    def test_lower_bound_does_not_cover_addition(self):
        """Given an ink! assert that only bounds the operand from below, the addition is reported."""
        source = """\
#[ink::contract]
mod accumulator {
    #[ink(storage)]
    pub struct Accumulator {
        total: u32,
    }

    impl Accumulator {
        #[ink(constructor)]
        pub fn new() -> Self {
            Self { total: 0 }
        }

        #[ink(message)]
        pub fn add(&mut self, a: u32) {
            assert!(a > 0);
            self.total = self.total + a;
        }
    }
}
"""
        findings = check_unchecked_arithmetic(parse(source))

        assert [(f.message, f.line) for f in findings] == [("Potential integer overflow/underflow in 'add'", 17)]

    def test_token_transfer_credit(self, ink_token):
        """Given the token transfer, the guarded debit passes and the unguarded credit is reported."""
        findings = check_unchecked_arithmetic(parse(ink_token))

        assert [(f.message, f.line) for f in findings] == [
            ("Potential integer overflow/underflow in 'transfer'", 52)
        ]


class TestEnvironmentRules:
    def test_tx_origin(self):
        """Given tx.origin in a comparison, it is reported."""
        source = """\
pragma solidity 0.8.19;
contract A {
    address owner;
    function isOwner() public view returns (bool) {
        return tx.origin == owner;
    }
}
"""
        findings = check_tx_origin(parse(source))

        assert [(f.message, f.line) for f in findings] == [("Use of tx.origin in 'isOwner'", 5)]

    def test_timestamp_in_condition(self):
        """Given block.timestamp in a require, timestamp dependence is reported."""
        source = """\
contract Sale {
    function buy() public view {
        require(block.timestamp > 100, "early");
    }
}
"""
        findings = check_timestamp_dependence(parse(source))

        assert len(findings) == 1
        assert findings[0].line == 3

    def test_blockhash_randomness(self):
        """Given blockhash used as a source of entropy, weak randomness is reported."""
        source = """\
contract Dice {
    function roll() public view returns (uint) {
        return uint(blockhash(block.number - 1)) % 6;
    }
}
"""
        findings = check_weak_randomness(parse(source))

        assert findings[0].message == "Weak randomness using blockhash in 'roll'"


class TestCallRules:
    def test_unchecked_low_level_call(self):
        """Given a discarded call result, it is reported."""
        source = """\
contract A {
    function ping(address target) public {
        target.call("");
    }
}
"""
        findings = check_unchecked_call(parse(source))

        assert [(f.message, f.line) for f in findings] == [
            ("Unchecked return value from low-level call in 'ping'", 3)
        ]

    def test_checked_call_is_fine(self, solidity_bank):
        """Given a call whose flag is required, nothing is reported."""
        assert check_unchecked_call(parse(solidity_bank)) == []

    def test_unprotected_selfdestruct(self):
        """Given selfdestruct without a caller check, it is reported."""
        source = """\
contract A {
    address owner;
    function kill() public {
        selfdestruct(payable(msg.sender));
    }
}
"""
        findings = check_unprotected_selfdestruct(parse(source))

        assert [(f.message, f.line) for f in findings] == [("Unprotected self-destruct in 'kill'", 4)]

    def test_protected_selfdestruct(self):
        """Given an owner check, selfdestruct is allowed."""
        source = """\
contract A {
    address owner;
    function kill() public {
        require(msg.sender == owner);
        selfdestruct(payable(msg.sender));
    }
}
"""
        assert check_unprotected_selfdestruct(parse(source)) == []


class TestLoops:
    def test_external_call_in_loop(self):
        """Given a transfer inside a loop, it is reported at the call."""
        findings = check_loop_external_call(parse(PAYOUT_LOOP))

        assert [(f.message, f.line) for f in findings] == [("External call inside a loop in 'pay'", 7)]

    def test_storage_write_in_loop(self):
        """Given a storage write inside a loop, it is reported at the write."""
        findings = check_storage_in_loop(parse(PAYOUT_LOOP))

        assert [f.line for f in findings] == [8]

    def test_gas_hotspot(self):
        """Given loop work multiplied by the loop factor, the estimate exceeds the threshold."""
        findings = check_gas_hotspot(parse(PAYOUT_LOOP))

        assert len(findings) == 1
        assert findings[0].message.startswith("Function 'pay' has a high estimated gas cost")
        assert findings[0].line == 5

    def test_unbounded_storage(self):
        """Given a dynamic array in storage, it is reported at the field."""
        findings = check_unbounded_storage(parse(PAYOUT_LOOP))

        assert [(f.message, f.line) for f in findings] == [
            ("Storage field 'payees' is an unbounded dynamic sequence", 3)
        ]


class TestAccessAndQuality:
    OWNABLE = """\
pragma solidity 0.8.19;
contract Ownable {
    address owner;
    event OwnerSet(address owner);
    function setOwner(address next) public {
        owner = next;
        emit OwnerSet(next);
    }
}
"""

    def test_unguarded_owner_change(self):
        """Given a privileged address written without a caller check, it is reported."""
        findings = check_access_control(parse(self.OWNABLE))

        assert [(f.message, f.line) for f in findings] == [
            ("Function 'setOwner' may lack proper access control", 6)
        ]

    def test_guarded_owner_change(self):
        """Given a msg.sender check, the function is considered protected."""
        source = self.OWNABLE.replace(
            "        owner = next;", '        require(msg.sender == owner, "not owner");\n        owner = next;'
        )

        assert check_access_control(parse(source)) == []

    def test_event_emission_follows_internal_calls(self):
        """Given a public function whose helper emits, no missing event is reported."""
        source = """\
contract Counter {
    uint count;
    event Bumped(uint count);
    function bump() public {
        _bump();
    }
    function _bump() internal {
        count += 1;
        emit Bumped(count);
    }
}
"""
        assert check_event_emission(parse(source)) == []

    def test_event_emission_missing(self, solidity_flipper):
        """Given a state change without an event, it is reported at the function."""
        findings = check_event_emission(parse(solidity_flipper))

        assert [(f.message, f.line) for f in findings] == [
            ("Missing event emission after state change in 'flip'", 11)
        ]

    def test_floating_pragma(self, solidity_flipper):
        """Given a caret constraint, the pragma line is reported."""
        findings = check_floating_pragma(parse(solidity_flipper))

        assert [(f.message, f.line) for f in findings] == [("Floating pragma version (^0.8.0)", 2)]

    def test_missing_pragma(self):
        """Given no pragma at all, the finding has no line."""
        findings = check_floating_pragma(parse("contract A { uint x; }"))

        assert [(f.message, f.line) for f in findings] == [("Floating pragma version (missing)", None)]

    def test_pinned_pragma_and_ink(self, solidity_bank, ink_flipper):
        """Given an exact version or ink! source, nothing is reported."""
        assert check_floating_pragma(parse(solidity_bank)) == []
        assert check_floating_pragma(parse(ink_flipper)) == []


LEGACY = """\
pragma solidity ^0.4.24;
contract Legacy {
    address owner;
    uint x;
    function kill() public {
        suicide(owner);
    }
    function digest() public view returns (bytes32) {
        return sha3(msg.sender);
    }
    function check() public {
        if (x == 0) {
            throw;
        }
        uint left = msg.gas;
        bytes32 h = block.blockhash(block.number - 1);
    }
}
"""


class TestLegacyPatterns:
    def test_undocumented_assembly(self):
        """Given an assembly block with no comment, it is reported at the block."""
        source = """\
contract A {
    uint x;
    function f() public {
        assembly { mstore(0, 1) }
    }
}
"""
        findings = check_assembly_usage(parse(source))

        assert [(f.message, f.line) for f in findings] == [("Assembly block without documentation in 'f'", 4)]

    def test_documented_assembly(self):
        """Given a comment inside the assembly block, nothing is reported."""
        source = """\
contract A {
    uint x;
    function f() public {
        assembly {
            // scratch space write
            mstore(0, 1)
        }
    }
}
"""
        assert check_assembly_usage(parse(source)) == []

    def test_deprecated_patterns(self):
        """Given pre-0.5 spellings, each one is reported where it appears."""
        findings = check_deprecated_patterns(parse(LEGACY))

        assert {(f.message, f.line) for f in findings} == {
            ("Use of deprecated function or pattern: suicide", 6),
            ("Use of deprecated function or pattern: sha3", 9),
            ("Use of deprecated function or pattern: throw", 13),
            ("Use of deprecated function or pattern: msg.gas", 15),
            ("Use of deprecated function or pattern: block.blockhash", 16),
        }

    def test_current_code_has_no_deprecated_patterns(self, solidity_bank):
        """Given current Solidity, nothing is reported."""
        assert check_deprecated_patterns(parse(solidity_bank)) == []

    def test_missing_visibility(self):
        """Given a function without a visibility keyword, it is reported at the function."""
        source = """\
contract A {
    uint x;
    function f() {
        x = 1;
    }
    function g() public {
        x = 2;
    }
}
"""
        findings = check_missing_visibility(parse(source))

        assert [(f.message, f.line) for f in findings] == [
            ("Function 'f' is missing an explicit visibility specifier", 3)
        ]

    def test_visibility_does_not_apply_to_ink(self, ink_flipper):
        """Given ink! source, visibility comes from attributes and nothing is reported."""
        assert check_missing_visibility(parse(ink_flipper)) == []


class TestSignatureAndForcedEther:
    def test_ecrecover(self):
        """Given raw ecrecover, signature malleability is reported."""
        source = """\
contract Verifier {
    function recover(bytes32 hash, uint8 v, bytes32 r, bytes32 s) public pure returns (address) {
        return ecrecover(hash, v, r, s);
    }
}
"""
        findings = check_signature_malleability(parse(source))

        assert [(f.message, f.line) for f in findings] == [("Potential signature malleability in 'recover'", 3)]

    def test_no_recovery(self, solidity_bank):
        """Given no signature recovery, nothing is reported."""
        assert check_signature_malleability(parse(solidity_bank)) == []

    def test_selfdestruct_forces_ether(self):
        """Given selfdestruct, even a guarded one, one forced-send finding is reported."""
        source = """\
contract A {
    address owner;
    function kill() public {
        require(msg.sender == owner);
        selfdestruct(payable(owner));
    }
}
"""
        findings = check_force_send_ether(parse(source))

        assert [(f.message, f.line) for f in findings] == [
            ("Contract uses selfdestruct which can force-send ether", 5)
        ]

    def test_suicide_forces_ether(self):
        """Given the legacy spelling, the same finding is reported."""
        assert [f.line for f in check_force_send_ether(parse(LEGACY))] == [6]


class TestUnmodelledConstruct:
    def test_skipped_contract_is_reported(self):
        """Given a second contract, the skipped one surfaces as an issue."""
        source = "contract A {\n    uint x;\n}\ncontract B {\n    uint y;\n}\n"

        findings = check_unmodelled_construct(parse(source))

        assert [(f.message, f.line) for f in findings] == [
            ("Code not analysed: contract 'B' is not modelled; only 'A' is", 4)
        ]

    def test_informational_notes_are_not_reported(self, solidity_flipper, ink_token):
        """Given inlined modifiers, a test module or clean source, nothing is reported."""
        source = """\
contract Owned {
    address owner;
    uint count;
    modifier onlyOwner() {
        require(msg.sender == owner);
        _;
    }
    function bump() public onlyOwner {
        count += 1;
    }
}
"""
        assert check_unmodelled_construct(parse(source)) == []
        assert check_unmodelled_construct(parse(ink_token)) == []
        assert check_unmodelled_construct(parse(solidity_flipper)) == []

    def test_deprecated_spellings_are_left_to_their_own_rule(self):
        """Given legacy source, the deprecation notes are not double counted."""
        assert check_unmodelled_construct(parse(LEGACY)) == []
