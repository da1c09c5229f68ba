"""Shared fixtures: canonical contracts in both dialects and an API client."""

import pytest

INK_FLIPPER = """\
#![cfg_attr(not(feature = "std"), no_std, no_main)]

#[ink::contract]
mod flipper {
    #[ink(storage)]
    pub struct Flipper {
        value: bool,
    }

    impl Flipper {
        #[ink(constructor)]
        pub fn new(init_value: bool) -> Self {
            Self { value: init_value }
        }

        #[ink(message)]
        pub fn flip(&mut self) {
            self.value = !self.value;
        }

        #[ink(message)]
        pub fn get(&self) -> bool {
            self.value
        }
    }
}
"""

SOLIDITY_FLIPPER = """\
// SPDX-License-Identifier: MIT
pragma solidity ^0.8.0;

contract Flipper {
    bool private value;

    constructor(bool initValue) {
        value = initValue;
    }

    function flip() public {
        value = !value;
    }

    function get() public view returns (bool) {
        return value;
    }
}
"""

SOLIDITY_BANK = """\
pragma solidity 0.8.19;

contract Bank {
    mapping(address => uint256) public balances;
    address public owner;

    event Deposited(address indexed who, uint256 amount);

    constructor() {
        owner = msg.sender;
    }

    function deposit() public payable {
        balances[msg.sender] += msg.value;
        emit Deposited(msg.sender, msg.value);
    }

    function withdraw(uint256 amount) public {
        require(balances[msg.sender] >= amount, "insufficient balance");
        (bool ok, ) = msg.sender.call{value: amount}("");
        require(ok, "transfer failed");
        balances[msg.sender] -= amount;
    }
}
"""

INK_TOKEN = """\
#[ink::contract]
mod token {
    use ink::storage::Mapping;

    #[ink(event)]
    pub struct Transfer {
        #[ink(topic)]
        from: AccountId,
        #[ink(topic)]
        to: AccountId,
        value: Balance,
    }

    #[derive(Debug, PartialEq, Eq)]
    #[ink::scale_derive(Encode, Decode, TypeInfo)]
    pub enum Error {
        InsufficientBalance,
    }

    #[ink(storage)]
    pub struct Token {
        total_supply: Balance,
        balances: Mapping<AccountId, Balance>,
    }

    impl Token {
        #[ink(constructor)]
        pub fn new(supply: Balance) -> Self {
            let caller = Self::env().caller();
            let mut instance = Self {
                total_supply: supply,
                balances: Mapping::default(),
            };
            instance.balances.insert(caller, &supply);
            instance
        }

        #[ink(message)]
        pub fn balance_of(&self, owner: AccountId) -> Balance {
            self.balances.get(owner).unwrap_or_default()
        }

        #[ink(message)]
        pub fn transfer(&mut self, to: AccountId, value: Balance) -> Result<(), Error> {
            let from = self.env().caller();
            let from_balance = self.balance_of(from);
            if from_balance < value {
                return Err(Error::InsufficientBalance);
            }
            self.balances.insert(from, &(from_balance - value));
            let to_balance = self.balance_of(to);
            self.balances.insert(to, &(to_balance + value));
            self.env().emit_event(Transfer { from, to, value });
            Ok(())
        }
    }

    #[cfg(test)]
    mod tests {
        use super::*;

        #[ink::test]
        fn works() {}
    }
}
"""


@pytest.fixture
def ink_flipper() -> str:
    return INK_FLIPPER


@pytest.fixture
def solidity_flipper() -> str:
    return SOLIDITY_FLIPPER


@pytest.fixture
def solidity_bank() -> str:
    return SOLIDITY_BANK


@pytest.fixture
def ink_token() -> str:
    return INK_TOKEN


@pytest.fixture
def client():
    from fastapi.testclient import TestClient

    from mjolnir.main import app
    from mjolnir.middleware.rate_limiter import limiter

    limiter.reset()
    with TestClient(app) as test_client:
        yield test_client
    limiter.reset()
