"""
Client factory for per-chain node access.

Builds read-only web3 clients and signing clients from the registry and the
two process keys:
- deployer/owner key: administrative operations and ownership checks
- trusted signer key: the address the paymaster recognises as its approver
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from eth_account import Account
from eth_account.signers.local import LocalAccount
from pydantic import SecretStr
from web3 import AsyncWeb3
from web3.exceptions import TimeExhausted

from .config import RelaySettings
from .exceptions import (
    ConfigurationError,
    TransactionRevertedError,
    TransactionTimeoutError,
)
from .registry import ChainDescriptor, ChainRegistry

logger = logging.getLogger(__name__)

DEFAULT_CONFIRMATION_TIMEOUT_SECONDS = 60.0


@dataclass(frozen=True)
class TransactionOutcome:
    """Result of waiting for a submitted transaction."""
    tx_hash: str
    succeeded: bool
    block_number: int
    gas_used: int


def normalize_private_key(key: str) -> str:
    """Add the 0x prefix when missing."""
    key = key.strip()
    if not key.startswith("0x"):
        key = "0x" + key
    return key


class SigningClient:
    """A web3 client bound to one chain and one local account."""

    def __init__(self, chain: ChainDescriptor, web3: AsyncWeb3, account: LocalAccount):
        self.chain = chain
        self.web3 = web3
        self._account = account

    @property
    def address(self) -> str:
        return self._account.address

    async def get_balance(self, address: Optional[str] = None) -> int:
        return int(await self.web3.eth.get_balance(address or self.address))

    async def transact(self, function: Any, value: int = 0) -> str:
        """Sign and broadcast a contract call, returning the transaction hash."""
        nonce = await self.web3.eth.get_transaction_count(self.address, "pending")
        tx = await function.build_transaction({
            "from": self.address,
            "value": value,
            "nonce": nonce,
            "chainId": self.chain.chain_id,
        })
        signed = self._account.sign_transaction(tx)
        tx_hash = await self.web3.eth.send_raw_transaction(signed.raw_transaction)
        tx_hash_hex = AsyncWeb3.to_hex(tx_hash)
        logger.info(f"Transaction submitted on {self.chain.identifier}: {tx_hash_hex}")
        return tx_hash_hex

    async def wait_for_receipt(
        self,
        tx_hash: str,
        timeout_seconds: float = DEFAULT_CONFIRMATION_TIMEOUT_SECONDS,
    ) -> TransactionOutcome:
        """Wait for confirmation. Timeout is terminal; the transaction is not withdrawn.

        Raises:
            TransactionTimeoutError: no receipt within timeout_seconds
            TransactionRevertedError: receipt status is 0
        """
        try:
            receipt = await self.web3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout_seconds)
        except TimeExhausted as e:
            raise TransactionTimeoutError(tx_hash, timeout_seconds, chain=self.chain.identifier) from e

        outcome = TransactionOutcome(
            tx_hash=tx_hash,
            succeeded=receipt["status"] == 1,
            block_number=int(receipt["blockNumber"]),
            gas_used=int(receipt["gasUsed"]),
        )
        if not outcome.succeeded:
            raise TransactionRevertedError(tx_hash, chain=self.chain.identifier)
        logger.info(
            f"Transaction {tx_hash} confirmed in block {outcome.block_number} "
            f"(gas used {outcome.gas_used})"
        )
        return outcome

    async def close(self) -> None:
        """Close the provider's HTTP sessions."""
        await self.web3.provider.disconnect()


class ClientFactory:
    """Builds chain clients for registered chains."""

    def __init__(self, settings: RelaySettings, registry: ChainRegistry):
        self._settings = settings
        self._registry = registry

    def build_public_client(self, chain: str) -> AsyncWeb3:
        descriptor = self._registry.resolve(chain)
        return AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(self._require_rpc_url(descriptor)))

    def build_deployer_client(self, chain: str) -> SigningClient:
        return self._build_signing_client(
            chain, self._settings.deployer_private_key, "DEPLOYER_PRIVATE_KEY"
        )

    def build_trusted_signer_client(self, chain: str) -> SigningClient:
        return self._build_signing_client(
            chain, self._settings.trusted_signer_private_key, "TRUSTED_SIGNER_PRIVATE_KEY"
        )

    def _build_signing_client(
        self,
        chain: str,
        secret: Optional[SecretStr],
        env_key: str,
    ) -> SigningClient:
        descriptor = self._registry.resolve(chain)
        if secret is None:
            raise ConfigurationError(f"{env_key} is not set", keys=[env_key])
        try:
            account = Account.from_key(normalize_private_key(secret.get_secret_value()))
        except Exception:
            # Never echo the key material
            raise ConfigurationError(f"{env_key} is not a valid private key", keys=[env_key]) from None
        web3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(self._require_rpc_url(descriptor)))
        return SigningClient(descriptor, web3, account)

    @staticmethod
    def _require_rpc_url(descriptor: ChainDescriptor) -> str:
        if not descriptor.rpc_url:
            raise ConfigurationError(
                f"RPC_URL for chain ({descriptor.identifier}) is not set",
                details={"chain": descriptor.identifier},
            )
        return descriptor.rpc_url
