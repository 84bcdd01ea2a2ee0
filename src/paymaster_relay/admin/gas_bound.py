"""Update-gas-bound workflow for the paymaster's maxAllowedGasCost."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional

from web3 import Web3

from ..clients import DEFAULT_CONFIRMATION_TIMEOUT_SECONDS, SigningClient, TransactionOutcome
from ..erc4337 import PaymasterContract
from ..exceptions import AuthorizationError, BoundsViolationError, StateMismatchError
from .transactions import DEFAULT_READ_AFTER_WRITE, ReadAfterWriteConfig, verify_read_after_write

logger = logging.getLogger(__name__)

MIN_GAS_BOUND_WEI: int = Web3.to_wei(Decimal("0.001"), "ether")
MAX_GAS_BOUND_WEI: int = Web3.to_wei(Decimal("1.0"), "ether")


class GasBoundStatus(str, Enum):
    UPDATED = "updated"
    UNCHANGED = "unchanged"


@dataclass(frozen=True)
class GasBoundUpdate:
    status: GasBoundStatus
    previous: int
    requested: int
    current: int
    outcome: Optional[TransactionOutcome] = None


def check_bounds(requested: int, minimum: int = MIN_GAS_BOUND_WEI, maximum: int = MAX_GAS_BOUND_WEI) -> None:
    if requested > maximum:
        raise BoundsViolationError(
            f"Gas limit too high. Maximum allowed: {Web3.from_wei(maximum, 'ether')}",
            requested, minimum, maximum,
        )
    if requested < minimum:
        raise BoundsViolationError(
            f"Gas limit too low. Minimum allowed: {Web3.from_wei(minimum, 'ether')}",
            requested, minimum, maximum,
        )


async def update_gas_bound(
    deployer: SigningClient,
    paymaster: PaymasterContract,
    requested: int,
    *,
    minimum: int = MIN_GAS_BOUND_WEI,
    maximum: int = MAX_GAS_BOUND_WEI,
    confirmation_timeout: float = DEFAULT_CONFIRMATION_TIMEOUT_SECONDS,
    read_after_write: ReadAfterWriteConfig = DEFAULT_READ_AFTER_WRITE,
) -> GasBoundUpdate:
    """
    Set the paymaster's maxAllowedGasCost to `requested` wei.

    Returns UNCHANGED without submitting anything when the value already matches.

    Raises:
        AuthorizationError: deployer is not the paymaster owner
        BoundsViolationError: requested value outside [minimum, maximum]
        TransactionTimeoutError: no receipt within `confirmation_timeout`
        StateMismatchError: confirmed, but the contract still reports another value
    """
    owner = await paymaster.owner()
    if owner.lower() != deployer.address.lower():
        raise AuthorizationError(caller=deployer.address, owner=owner)

    previous = await paymaster.max_allowed_gas_cost()
    logger.info(f"Current gas limit: {previous} wei")
    if requested == previous:
        return GasBoundUpdate(
            status=GasBoundStatus.UNCHANGED,
            previous=previous,
            requested=requested,
            current=previous,
        )

    check_bounds(requested, minimum, maximum)

    tx_hash = await paymaster.set_max_allowed_gas_cost(requested)
    outcome = await deployer.wait_for_receipt(tx_hash, confirmation_timeout)

    current, settled = await verify_read_after_write(
        paymaster.max_allowed_gas_cost,
        lambda value: value == requested,
        read_after_write,
        what="maxAllowedGasCost",
    )
    if not settled:
        raise StateMismatchError("Gas limit update failed", expected=requested, actual=current)

    return GasBoundUpdate(
        status=GasBoundStatus.UPDATED,
        previous=previous,
        requested=requested,
        current=current,
        outcome=outcome,
    )
