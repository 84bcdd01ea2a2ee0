"""Deposit workflow: fund the paymaster's EntryPoint balance from the deployer."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from ..clients import DEFAULT_CONFIRMATION_TIMEOUT_SECONDS, SigningClient, TransactionOutcome
from ..erc4337 import EntryPointContract, PaymasterContract
from ..exceptions import InsufficientFundsError, MismatchError
from .transactions import DEFAULT_READ_AFTER_WRITE, ReadAfterWriteConfig, verify_read_after_write

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DepositResult:
    outcome: TransactionOutcome
    amount: int
    balance_before: int
    balance_after: int
    deployer_balance_after: int
    settled: bool

    @property
    def delta(self) -> int:
        return self.balance_after - self.balance_before


async def deposit_funds(
    deployer: SigningClient,
    entry_point: EntryPointContract,
    paymaster: PaymasterContract,
    amount: int,
    *,
    confirmation_timeout: float = DEFAULT_CONFIRMATION_TIMEOUT_SECONDS,
    read_after_write: ReadAfterWriteConfig = DEFAULT_READ_AFTER_WRITE,
) -> DepositResult:
    """
    Deposit `amount` wei into the paymaster through `paymaster.deposit()`.

    Raises:
        InsufficientFundsError: deployer balance is below `amount`
        MismatchError: the paymaster points at a different EntryPoint
        TransactionTimeoutError: no receipt within `confirmation_timeout`
        TransactionRevertedError: the deposit reverted
    """
    deployer_balance = await deployer.get_balance()
    logger.info(f"Deployer balance: {deployer_balance} wei")
    if deployer_balance < amount:
        raise InsufficientFundsError(available=deployer_balance, required=amount)

    balance_before = await entry_point.balance_of(paymaster.address)

    paymaster_entry_point = await paymaster.entry_point()
    if paymaster_entry_point.lower() != entry_point.address.lower():
        raise MismatchError(
            "Paymaster EntryPoint mismatch",
            expected=entry_point.address,
            actual=paymaster_entry_point,
        )

    tx_hash = await paymaster.deposit(amount)
    outcome = await deployer.wait_for_receipt(tx_hash, confirmation_timeout)

    # Other sponsorships may spend from the deposit meanwhile; a short fall is reported, not raised
    balance_after, settled = await verify_read_after_write(
        lambda: entry_point.balance_of(paymaster.address),
        lambda balance: balance >= balance_before + amount,
        read_after_write,
        what="paymaster deposit",
    )
    if not settled:
        logger.warning(
            f"Paymaster deposit grew by {balance_after - balance_before} wei, expected {amount}"
        )

    return DepositResult(
        outcome=outcome,
        amount=amount,
        balance_before=balance_before,
        balance_after=balance_after,
        deployer_balance_after=await deployer.get_balance(),
        settled=settled,
    )
