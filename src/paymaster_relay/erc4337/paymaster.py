"""Binding for the signature-verifying paymaster (EntryPoint v0.7)."""

from __future__ import annotations

from typing import Any, Optional

from web3 import AsyncWeb3

from .abis import PAYMASTER_ABI
from .contract import BoundContract


class PaymasterContract(BoundContract):
    """Paymaster proxy: ownership, funding and gas-cost policy."""

    def __init__(
        self,
        web3: AsyncWeb3,
        address: str,
        *,
        signer: Optional[Any] = None,
        chain: Optional[str] = None,
    ):
        super().__init__(web3, address, PAYMASTER_ABI, signer=signer, chain=chain)

    async def version(self) -> str:
        return str(await self._read("VERSION"))

    async def owner(self) -> str:
        return str(await self._read("owner"))

    async def entry_point(self) -> str:
        return str(await self._read("entryPoint"))

    async def verifying_signer(self) -> str:
        return str(await self._read("verifyingSigner"))

    async def max_allowed_gas_cost(self) -> int:
        return int(await self._read("maxAllowedGasCost"))

    async def deposit(self, value: int) -> str:
        """Fund the paymaster's EntryPoint deposit from the signer."""
        return await self._write("deposit", value=value)

    async def set_max_allowed_gas_cost(self, value: int) -> str:
        return await self._write("setMaxAllowedGasCost", value)
