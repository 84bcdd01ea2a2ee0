"""Paymaster deposit status check."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional

from web3 import Web3

from ..erc4337 import DepositInfo, EntryPointContract, PaymasterContract
from ..exceptions import ContractReadError

logger = logging.getLogger(__name__)

# Below this the paymaster is close to running dry
MIN_RESERVE_WEI: int = Web3.to_wei(Decimal("0.1"), "ether")

UNKNOWN_VERSION = "Unknown"


class DepositStatus(str, Enum):
    EMPTY = "empty"
    LOW = "low"
    OK = "ok"


@dataclass(frozen=True)
class PaymasterDetails:
    version: str
    owner: str
    verifying_signer: str
    max_allowed_gas_cost: int


@dataclass(frozen=True)
class StatusReport:
    paymaster: str
    entry_point: str
    balance: int
    deposit_info: DepositInfo
    status: DepositStatus
    details: Optional[PaymasterDetails] = None


def classify_deposit(balance: int, reserve: int = MIN_RESERVE_WEI) -> DepositStatus:
    if balance == 0:
        return DepositStatus.EMPTY
    if balance < reserve:
        return DepositStatus.LOW
    return DepositStatus.OK


async def _version_or_unknown(paymaster: PaymasterContract) -> str:
    try:
        return await paymaster.version()
    except ContractReadError:
        return UNKNOWN_VERSION


async def read_paymaster_details(paymaster: PaymasterContract) -> Optional[PaymasterDetails]:
    """Best-effort read of the paymaster's configuration. Returns None on failure."""
    try:
        owner, signer, bound, version = await asyncio.gather(
            paymaster.owner(),
            paymaster.verifying_signer(),
            paymaster.max_allowed_gas_cost(),
            _version_or_unknown(paymaster),
        )
    except ContractReadError as e:
        logger.warning(f"Could not fetch paymaster contract details: {e}")
        return None
    return PaymasterDetails(
        version=version,
        owner=owner,
        verifying_signer=signer,
        max_allowed_gas_cost=bound,
    )


async def check_status(
    entry_point: EntryPointContract,
    paymaster: PaymasterContract,
    *,
    reserve: int = MIN_RESERVE_WEI,
    include_details: bool = True,
) -> StatusReport:
    """
    Read the paymaster's EntryPoint deposit and classify it.

    Raises:
        ContractReadError: the EntryPoint reads failed
    """
    balance = await entry_point.balance_of(paymaster.address)
    deposit_info = await entry_point.get_deposit_info(paymaster.address)
    details = await read_paymaster_details(paymaster) if include_details else None
    return StatusReport(
        paymaster=paymaster.address,
        entry_point=entry_point.address,
        balance=balance,
        deposit_info=deposit_info,
        status=classify_deposit(balance, reserve),
        details=details,
    )
