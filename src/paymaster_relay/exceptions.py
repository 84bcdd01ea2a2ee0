"""Exception hierarchy for the paymaster relay.

All relay errors inherit from RelayError, enabling:
- Consistent HTTP status mapping at the dispatcher boundary
- Structured error reports from the administrative CLI
- Error codes that survive redaction

Usage:
    from paymaster_relay.exceptions import RelayError, UnsupportedChainError

    try:
        descriptor = registry.resolve(chain)
    except UnsupportedChainError as e:
        return JSONResponse(status_code=e.http_status, content=e.to_dict())

All exceptions have:
- error_code: Machine-readable error code (e.g., "UNSUPPORTED_CHAIN")
- http_status: HTTP status code used when the error reaches the API layer
- message: Human-readable error message, safe to return to clients
- details: Optional additional context dictionary
- to_dict(): Convert to API response format
"""
from __future__ import annotations

from typing import Any, Optional


class RelayError(Exception):
    """Base exception for all relay errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code
        details: Optional additional context
    """

    error_code: str = "RELAY_ERROR"
    http_status: int = 500

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response format."""
        result = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


# =============================================================================
# Startup & Lifecycle Errors
# =============================================================================

class ConfigurationError(RelayError):
    """Required configuration is missing or malformed."""

    error_code = "CONFIGURATION_ERROR"
    http_status = 500

    def __init__(
        self,
        message: str,
        keys: Optional[list[str]] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        details = details or {}
        if keys:
            details["keys"] = keys
        super().__init__(message, details=details)


class UnsupportedChainError(RelayError):
    """Chain identifier is not in the registry."""

    error_code = "UNSUPPORTED_CHAIN"
    http_status = 400

    def __init__(self, chain: str) -> None:
        self.chain = chain
        super().__init__(f"Chain ({chain}) is not supported", details={"chain": chain})


class DeploymentError(RelayError):
    """Paymaster contract is not deployed (or not readable) on a chain."""

    error_code = "PAYMASTER_NOT_DEPLOYED"
    http_status = 503

    def __init__(self, chain: str, address: Optional[str] = None) -> None:
        details: dict[str, Any] = {"chain": chain}
        if address:
            details["address"] = address
        super().__init__(f"Paymaster is not deployed for chain ({chain})", details=details)


# =============================================================================
# Administrative Workflow Errors
# =============================================================================

class AuthorizationError(RelayError):
    """Caller is not the owner of the contract it tries to mutate."""

    error_code = "NOT_OWNER"
    http_status = 403

    def __init__(self, caller: str, owner: str) -> None:
        super().__init__(
            f"The deployer ({caller}) is not the owner ({owner}) of the paymaster contract.",
            details={"caller": caller, "owner": owner},
        )


class BoundsViolationError(RelayError):
    """Requested value lies outside the allowed range. Nothing was submitted."""

    error_code = "BOUNDS_VIOLATION"
    http_status = 400

    def __init__(self, message: str, requested: int, minimum: int, maximum: int) -> None:
        self.requested = requested
        self.minimum = minimum
        self.maximum = maximum
        super().__init__(
            message,
            details={"requested": requested, "minimum": minimum, "maximum": maximum},
        )


class InsufficientFundsError(RelayError):
    """Sender balance does not cover the requested amount."""

    error_code = "INSUFFICIENT_FUNDS"
    http_status = 400

    def __init__(self, available: int, required: int) -> None:
        self.available = available
        self.required = required
        super().__init__(
            "Insufficient balance to deposit",
            details={"available": available, "required": required},
        )


class MismatchError(RelayError):
    """On-chain value disagrees with the expected one."""

    error_code = "MISMATCH"
    http_status = 409

    def __init__(self, message: str, expected: Any, actual: Any) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(message, details={"expected": str(expected), "actual": str(actual)})


class StateMismatchError(MismatchError):
    """Transaction confirmed but did not produce the expected state."""

    error_code = "STATE_MISMATCH"


# =============================================================================
# Chain Errors
# =============================================================================

class ChainError(RelayError):
    """Base class for blockchain interaction errors."""

    error_code = "CHAIN_ERROR"
    http_status = 502

    def __init__(
        self,
        message: str,
        chain: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        details = details or {}
        if chain:
            details["chain"] = chain
        super().__init__(message, details=details)


class ContractReadError(ChainError):
    """A contract view call failed unexpectedly."""

    error_code = "CONTRACT_READ_FAILED"

    def __init__(self, function: str, address: str, reason: str, chain: Optional[str] = None) -> None:
        self.function = function
        super().__init__(
            f"Failed to read {function} from {address}: {reason}",
            chain=chain,
            details={"function": function, "address": address},
        )


class TransactionTimeoutError(ChainError):
    """Confirmation wait expired. The transaction may still be mined later."""

    error_code = "TRANSACTION_TIMEOUT"
    http_status = 504

    def __init__(self, tx_hash: str, timeout_seconds: float, chain: Optional[str] = None) -> None:
        self.tx_hash = tx_hash
        super().__init__(
            f"Transaction {tx_hash} not confirmed within {timeout_seconds:g}s",
            chain=chain,
            details={"tx_hash": tx_hash, "timeout_seconds": timeout_seconds},
        )


class TransactionRevertedError(ChainError):
    """Transaction was mined with a failed status."""

    error_code = "TRANSACTION_REVERTED"

    def __init__(self, tx_hash: str, chain: Optional[str] = None) -> None:
        self.tx_hash = tx_hash
        super().__init__(
            f"Transaction {tx_hash} reverted",
            chain=chain,
            details={"tx_hash": tx_hash},
        )
