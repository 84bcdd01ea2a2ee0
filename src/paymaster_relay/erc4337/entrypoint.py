"""EntryPoint addresses and contract binding for ERC-4337 v0.7."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from web3 import AsyncWeb3

from .abis import ENTRYPOINT_ABI
from .contract import BoundContract

logger = logging.getLogger(__name__)

ENTRYPOINT_V07 = "0x0000000071727De22E5E9d8BAf0edAc6f37da032"

# Radius runs its own EntryPoint deployment
ENTRYPOINT_V07_RADIUS_TESTNET = "0x9b443e4bd122444852B52331f851a000164Cc83F"


@dataclass(frozen=True)
class DepositInfo:
    """Snapshot of EntryPoint.getDepositInfo for one account."""
    deposit: int
    staked: bool
    stake: int
    unstake_delay_sec: int
    withdraw_time: int

    @classmethod
    def from_tuple(cls, raw: Any) -> "DepositInfo":
        deposit, staked, stake, unstake_delay_sec, withdraw_time = raw
        return cls(
            deposit=int(deposit),
            staked=bool(staked),
            stake=int(stake or 0),
            unstake_delay_sec=int(unstake_delay_sec),
            withdraw_time=int(withdraw_time),
        )


class EntryPointContract(BoundContract):
    """EntryPoint v0.7 binding: deposit accounting for paymasters."""

    def __init__(
        self,
        web3: AsyncWeb3,
        address: str,
        *,
        signer: Optional[Any] = None,
        chain: Optional[str] = None,
    ):
        super().__init__(web3, address, ENTRYPOINT_ABI, signer=signer, chain=chain)

    async def balance_of(self, account: str) -> int:
        return int(await self._read("balanceOf", AsyncWeb3.to_checksum_address(account)))

    async def get_deposit_info(self, account: str) -> DepositInfo:
        raw = await self._read("getDepositInfo", AsyncWeb3.to_checksum_address(account))
        return DepositInfo.from_tuple(raw)

    async def deposit_to(self, account: str, value: int) -> str:
        """Credit `account`'s deposit directly on the EntryPoint."""
        return await self._write("depositTo", AsyncWeb3.to_checksum_address(account), value=value)
