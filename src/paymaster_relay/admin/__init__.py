"""Administrative workflows: status, deposit and gas bound updates."""

from .deposit import DepositResult, deposit_funds
from .gas_bound import (
    MAX_GAS_BOUND_WEI,
    MIN_GAS_BOUND_WEI,
    GasBoundStatus,
    GasBoundUpdate,
    check_bounds,
    update_gas_bound,
)
from .status import (
    MIN_RESERVE_WEI,
    DepositStatus,
    PaymasterDetails,
    StatusReport,
    check_status,
    classify_deposit,
)
from .transactions import ReadAfterWriteConfig, verify_read_after_write

__all__ = [
    "DepositResult",
    "deposit_funds",
    "MAX_GAS_BOUND_WEI",
    "MIN_GAS_BOUND_WEI",
    "GasBoundStatus",
    "GasBoundUpdate",
    "check_bounds",
    "update_gas_bound",
    "MIN_RESERVE_WEI",
    "DepositStatus",
    "PaymasterDetails",
    "StatusReport",
    "check_status",
    "classify_deposit",
    "ReadAfterWriteConfig",
    "verify_read_after_write",
]
