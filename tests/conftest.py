"""Shared fixtures and in-memory contract fakes for relay tests."""
from __future__ import annotations

from typing import Any

import pytest
from web3 import Web3

from paymaster_relay.admin.transactions import ReadAfterWriteConfig
from paymaster_relay.clients import TransactionOutcome
from paymaster_relay.config import RelaySettings
from paymaster_relay.erc4337 import DepositInfo, ENTRYPOINT_V07
from paymaster_relay.registry import ChainRegistry

PAYMASTER_ADDRESS = "0x1111111111111111111111111111111111111111"
RADIUS_PAYMASTER_ADDRESS = "0x2222222222222222222222222222222222222222"
OTHER_ADDRESS = "0x3333333333333333333333333333333333333333"

# Well-known development accounts (hardhat #0 and #1)
DEPLOYER_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
DEPLOYER_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
TRUSTED_SIGNER_KEY = "0x59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d"
TRUSTED_SIGNER_ADDRESS = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"

TX_HASH = "0x" + "ab" * 32

# No waiting between verification reads
FAST_READS = ReadAfterWriteConfig(attempts=3, base_delay=0.0)


def ether(value: str) -> int:
    return Web3.to_wei(value, "ether")


def make_settings(**overrides: Any) -> RelaySettings:
    values: dict[str, Any] = {
        "paymaster_proxy_address": PAYMASTER_ADDRESS,
        "paymaster_proxy_address_radius_testnet": RADIUS_PAYMASTER_ADDRESS,
        "deployer_private_key": DEPLOYER_KEY,
        "trusted_signer_private_key": TRUSTED_SIGNER_KEY,
        "base_sepolia_rpc_url": "http://rpc.base-sepolia.test",
        "base_sepolia_bundler_url": "http://bundler.base-sepolia.test",
        "radius_testnet_rpc_url": "http://rpc.radius.test",
        "radius_testnet_bundler_url": "http://bundler.radius.test",
        "sentry_dsn": None,
    }
    values.update(overrides)
    return RelaySettings(_env_file=None, **values)


@pytest.fixture
def settings() -> RelaySettings:
    return make_settings()


@pytest.fixture
def registry(settings) -> ChainRegistry:
    return ChainRegistry.from_settings(settings)


class FakeEntryPoint:
    def __init__(self, address: str = ENTRYPOINT_V07, balance: int = 0):
        self.address = address
        self.balance = balance

    async def balance_of(self, account: str) -> int:
        return self.balance

    async def get_deposit_info(self, account: str) -> DepositInfo:
        return DepositInfo(
            deposit=self.balance,
            staked=False,
            stake=0,
            unstake_delay_sec=0,
            withdraw_time=0,
        )


class FakePaymaster:
    """Paymaster stand-in that records every submitted transaction."""

    def __init__(
        self,
        entry_point: FakeEntryPoint,
        *,
        owner: str = DEPLOYER_ADDRESS,
        bound: int = 0,
        version: str = "1.0.0",
    ):
        self.address = PAYMASTER_ADDRESS
        self.entry_point_contract = entry_point
        self.entry_point_address = entry_point.address
        self.owner_address = owner
        self.bound = bound
        self.version_value = version
        self.read_error: Exception | None = None
        self.version_error: Exception | None = None
        self.credit_deposits = True
        self.apply_writes = True
        self.signer = None
        self.transactions: list[tuple[str, int]] = []

    async def version(self) -> str:
        if self.version_error is not None:
            raise self.version_error
        return self.version_value

    async def owner(self) -> str:
        if self.read_error is not None:
            raise self.read_error
        return self.owner_address

    async def entry_point(self) -> str:
        return self.entry_point_address

    async def verifying_signer(self) -> str:
        return TRUSTED_SIGNER_ADDRESS

    async def max_allowed_gas_cost(self) -> int:
        return self.bound

    async def deposit(self, value: int) -> str:
        self.transactions.append(("deposit", value))
        if self.credit_deposits:
            self.entry_point_contract.balance += value
        return TX_HASH

    async def set_max_allowed_gas_cost(self, value: int) -> str:
        self.transactions.append(("setMaxAllowedGasCost", value))
        if self.apply_writes:
            self.bound = value
        return TX_HASH


class FakeSigner:
    def __init__(self, address: str = DEPLOYER_ADDRESS, balance: int = 0):
        self.address = address
        self.balance = balance
        self.receipts: list[str] = []
        self.closed = False

    async def get_balance(self, address: str | None = None) -> int:
        return self.balance

    async def wait_for_receipt(self, tx_hash: str, timeout_seconds: float = 60.0) -> TransactionOutcome:
        self.receipts.append(tx_hash)
        return TransactionOutcome(tx_hash=tx_hash, succeeded=True, block_number=42, gas_used=50_000)

    async def close(self) -> None:
        self.closed = True
