"""Tests for Solidity parsing and lowering into the contract model."""

from mjolnir.frontend.parse import parse
from mjolnir.ir.model import (
    Assign,
    Builtin,
    CallKind,
    Emit,
    EnvKind,
    EnvRef,
    ExternalCall,
    Guard,
    Index,
    LocalVar,
    Loop,
    Mutability,
    Return,
    Revert,
    StateRef,
    TypeKind,
    Unchecked,
    Unsupported,
    Visibility,
)


class TestContractShape:
    def test_flipper_model(self, solidity_flipper):
        """Given the flipper, fields, functions and pragma are modelled."""
        model = parse(solidity_flipper)

        assert model.name == "Flipper"
        assert [f.name for f in model.fields] == ["value"]
        assert model.fields[0].type.kind == TypeKind.BOOL
        assert model.fields[0].visibility == Visibility.PRIVATE
        assert [f.name for f in model.functions] == ["flip", "get"]
        assert model.function_named("flip").mutability == Mutability.MUTATING
        assert model.function_named("get").mutability == Mutability.VIEW
        assert model.version_constraint == "^0.8.0"
        assert model.version_line == 2
        assert model.checked_arithmetic is True

    def test_explicit_constructor(self, solidity_flipper):
        """Given an explicit constructor, it is kept with its parameters."""
        model = parse(solidity_flipper)

        assert len(model.constructors) == 1
        constructor = model.constructors[0]
        assert not constructor.implicit
        assert [p.name for p in constructor.parameters] == ["initValue"]

    def test_implicit_constructor(self):
        """Given no constructor, an implicit one is added."""
        model = parse("contract A { uint x; }")

        assert len(model.constructors) == 1
        assert model.constructors[0].implicit

    def test_legacy_pragma_disables_checked_arithmetic(self):
        """Given a pre-0.8 pragma, arithmetic is modelled as unchecked."""
        model = parse("pragma solidity ^0.7.6;\ncontract A { uint x; }")

        assert model.checked_arithmetic is False

    def test_events_and_errors(self, solidity_bank):
        """Given events and custom errors, both are collected."""
        source = solidity_bank.replace("    event Deposited", "    error Unauthorized();\n    event Deposited")

        model = parse(source)

        event = model.event_named("Deposited")
        assert [f.name for f in event.fields] == ["who", "amount"]
        assert [f.indexed for f in event.fields] == [True, False]
        assert model.errors == ["Unauthorized"]


class TestStatements:
    def test_environment_and_mappings(self, solidity_bank):
        """Given msg.sender indexing a mapping, the write targets storage."""
        model = parse(solidity_bank)

        deposit = model.function_named("deposit")
        assert deposit.mutability == Mutability.PAYABLE
        write = deposit.body[0]
        assert isinstance(write, Assign)
        assert write.op == "+="
        assert write.target == Index(StateRef("balances"), EnvRef(EnvKind.CALLER))
        assert write.value == EnvRef(EnvKind.VALUE)
        assert isinstance(deposit.body[1], Emit)

    def test_low_level_call_with_value(self, solidity_bank):
        """Given `call{value: x}("")`, an external call carries the value."""
        model = parse(solidity_bank)

        withdraw = model.function_named("withdraw")
        assert isinstance(withdraw.body[0], Guard)
        assert withdraw.body[0].message == "insufficient balance"
        declaration = withdraw.body[1]
        assert isinstance(declaration, LocalVar)
        assert declaration.name == "ok"
        call = declaration.value
        assert isinstance(call, ExternalCall)
        assert call.kind == CallKind.CALL
        assert call.target == EnvRef(EnvKind.CALLER)
        assert call.value is not None

    def test_modifier_is_inlined(self):
        """Given a modifier, its body wraps the function at the placeholder."""
        source = """\
contract Owned {
    address owner;
    uint count;
    modifier onlyOwner() {
        require(msg.sender == owner, "not owner");
        _;
    }
    function bump() public onlyOwner {
        count += 1;
    }
}
"""
        model = parse(source)

        body = model.function_named("bump").body
        assert isinstance(body[0], Guard)
        assert body[0].message == "not owner"
        assert isinstance(body[1], Assign)
        assert any(w.construct == "modifier_inlined" for w in model.warnings)

    def test_for_loop_and_unchecked(self):
        """Given a counted loop inside unchecked, both structures survive."""
        source = """\
contract Counter {
    uint total;
    function run(uint n) public {
        unchecked {
            for (uint i = 0; i < n; i++) {
                total += i;
            }
        }
    }
}
"""
        model = parse(source)

        block = model.function_named("run").body[0]
        assert isinstance(block, Unchecked)
        loop = block.body[0]
        assert isinstance(loop, Loop)
        assert loop.kind == "for"
        assert isinstance(loop.init, LocalVar)
        assert isinstance(loop.post, Assign)
        assert loop.post.op == "+="

    def test_assembly_is_kept_opaque(self):
        """Given inline assembly, an opaque statement and a warning are produced."""
        source = """\
contract Asm {
    function f() public {
        assembly { let x := 1 }
    }
}
"""
        model = parse(source)

        statement = model.function_named("f").body[0]
        assert isinstance(statement, Unsupported)
        assert statement.construct == "assembly"
        assert any(w.construct == "assembly" for w in model.warnings)

    def test_denominations_are_expanded(self):
        """Given `1 ether`, the literal holds the wei amount."""
        model = parse("contract A { uint constant PRICE = 1 ether; }")

        price = model.field_named("PRICE")
        assert price.constant
        assert price.default.value == str(10**18)

    def test_legacy_spellings_are_lowered_to_current_ones(self):
        """Given sha3, throw and msg.gas, the current equivalents are modelled with a note each."""
        source = """\
pragma solidity ^0.4.24;
contract Legacy {
    uint x;
    function f() public returns (bytes32) {
        if (x == 0) {
            throw;
        }
        x = msg.gas;
        return sha3(msg.sender);
    }
}
"""
        model = parse(source)

        branch, assign, ret = model.function_named("f").body
        assert isinstance(branch.then[0], Revert)
        assert assign.value == Builtin("gasleft")
        assert isinstance(ret, Return) and ret.value.name == "keccak256"
        assert [w.construct for w in model.warnings] == ["throw", "msg.gas", "sha3"]

    def test_visibility_keyword_is_recorded(self):
        """Given one function with and one without a visibility keyword, the difference is kept."""
        model = parse("contract A { uint x; function f() { x = 1; } function g() internal { x = 2; } }")

        assert not model.function_named("f").explicit_visibility
        assert model.function_named("f").visibility == Visibility.PUBLIC
        assert model.function_named("g").explicit_visibility
