"""Shared plumbing for async contract bindings."""

from __future__ import annotations

import logging
from typing import Any, Optional

from web3 import AsyncWeb3

from ..exceptions import ConfigurationError, ContractReadError

logger = logging.getLogger(__name__)


class BoundContract:
    """A contract at a fixed address with optional signing capability.

    Reads go through the web3 instance. Writes are handed to the signer, which
    must expose `async transact(function, value=0) -> tx_hash`.
    """

    def __init__(
        self,
        web3: AsyncWeb3,
        address: str,
        abi: list[dict[str, Any]],
        *,
        signer: Optional[Any] = None,
        chain: Optional[str] = None,
    ):
        self._address = AsyncWeb3.to_checksum_address(address)
        self._contract = web3.eth.contract(address=self._address, abi=abi)
        self._signer = signer
        self._chain = chain

    @property
    def address(self) -> str:
        return self._address

    @property
    def signer(self) -> Optional[Any]:
        return self._signer

    async def _read(self, function: str, *args: Any) -> Any:
        try:
            return await getattr(self._contract.functions, function)(*args).call()
        except Exception as e:
            raise ContractReadError(function, self._address, str(e), chain=self._chain) from e

    async def _write(self, function: str, *args: Any, value: int = 0) -> str:
        if self._signer is None:
            raise ConfigurationError(f"No signer bound to contract {self._address}; cannot call {function}")
        logger.info(f"Submitting {function} to {self._address} (value={value})")
        return await self._signer.transact(getattr(self._contract.functions, function)(*args), value=value)
