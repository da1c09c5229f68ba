"""Tests for ink! parsing and lowering into the contract model."""

import pytest

from mjolnir.errors import NotAContract
from mjolnir.frontend.parse import parse
from mjolnir.ir.model import (
    ADDRESS,
    Assign,
    Dialect,
    Emit,
    EnvKind,
    EnvRef,
    If,
    Index,
    LocalVar,
    Mutability,
    Name,
    Return,
    Revert,
    StateRef,
    TypeKind,
    Unary,
    Visibility,
    integer,
)


@pytest.fixture
def token_model(ink_token):
    return parse(ink_token)


class TestFlipperLowering:
    def test_shape(self, ink_flipper):
        """Given the ink! flipper, one bool field and two messages are modelled."""
        model = parse(ink_flipper)

        assert model.dialect == Dialect.INK
        assert model.name == "Flipper"
        assert [f.name for f in model.fields] == ["value"]
        assert model.fields[0].type.kind == TypeKind.BOOL
        assert model.checked_arithmetic is False
        assert [f.name for f in model.functions] == ["flip", "get"]

    def test_mutability_from_receiver(self, ink_flipper):
        """Given &mut self and &self receivers, mutability classes follow."""
        model = parse(ink_flipper)

        assert model.function_named("flip").mutability == Mutability.MUTATING
        assert model.function_named("get").mutability == Mutability.VIEW

    def test_bodies(self, ink_flipper):
        """Given self.field access, storage references are produced."""
        model = parse(ink_flipper)

        flip = model.function_named("flip").body
        assert flip == [Assign(StateRef("value"), Unary("!", StateRef("value")), line=18)]
        get = model.function_named("get").body
        assert get == [Return(StateRef("value"), line=23)]

    def test_constructor_struct_literal(self, ink_flipper):
        """Given `Self { value: init_value }`, the constructor assigns the field."""
        model = parse(ink_flipper)

        constructor = model.constructors[0]
        assert constructor.name == "new"
        assert [p.name for p in constructor.parameters] == ["init_value"]
        assert constructor.body == [Assign(StateRef("value"), Name("init_value"), line=13)]


class TestTokenLowering:
    def test_environment_type_aliases(self, token_model):
        """Given Balance and AccountId, integer and address types are kept."""
        total_supply = token_model.field_named("total_supply")
        balances = token_model.field_named("balances")

        assert total_supply.type == integer(128, name="Balance")
        assert balances.type.kind == TypeKind.MAPPING
        assert balances.type.key == ADDRESS

    def test_events_and_errors(self, token_model):
        """Given event structs and an Error enum, both are collected."""
        event = token_model.event_named("Transfer")

        assert [f.name for f in event.fields] == ["from", "to", "value"]
        assert [f.indexed for f in event.fields] == [True, True, False]
        assert token_model.errors == ["InsufficientBalance"]

    def test_constructor_through_instance_binding(self, token_model):
        """Given a `let mut instance = Self {..}` binding, its writes land in storage."""
        body = token_model.constructors[0].body

        assert isinstance(body[0], LocalVar)
        assert body[0].value == EnvRef(EnvKind.CALLER)
        assert body[1] == Assign(StateRef("total_supply"), Name("supply"), line=body[1].line)
        assert body[2].target == Index(StateRef("balances"), Name("caller"))
        assert body[2].value == Name("supply")

    def test_mapping_get_is_an_index_read(self, token_model):
        """Given `get(k).unwrap_or_default()`, the read is a plain index."""
        balance_of = token_model.function_named("balance_of")

        assert balance_of.mutability == Mutability.VIEW
        assert balance_of.returns == integer(128, name="Balance")
        assert balance_of.body[0].value == Index(StateRef("balances"), Name("owner"))

    def test_result_plumbing(self, token_model):
        """Given Result<(), Error>, Err becomes a revert and Ok(()) disappears."""
        transfer = token_model.function_named("transfer")

        assert transfer.returns is None
        assert transfer.visibility == Visibility.PUBLIC
        guard = next(s for s in transfer.body if isinstance(s, If))
        assert guard.then == [Revert(error="InsufficientBalance", line=guard.then[0].line)]
        assert isinstance(transfer.body[-1], Emit)
        assert transfer.body[-1].event == "Transfer"
        assert len(transfer.body[-1].args) == 3

    def test_insert_becomes_assignment(self, token_model):
        """Given Mapping::insert, a write to the mapping entry is modelled."""
        transfer = token_model.function_named("transfer")

        writes = [s for s in transfer.body if isinstance(s, Assign)]
        assert [w.target for w in writes] == [
            Index(StateRef("balances"), Name("from")),
            Index(StateRef("balances"), Name("to")),
        ]

    def test_test_module_is_skipped(self, token_model):
        """Given a #[cfg(test)] module, it is skipped with a warning."""
        assert any(w.construct == "test_module" for w in token_model.warnings)


def test_missing_storage_struct():
    """Given an ink! module without storage, there is no contract."""
    source = "#[ink::contract]\nmod empty {\n    pub struct Nothing {}\n}\n"

    with pytest.raises(NotAContract):
        parse(source)
