"""
Relay handler: the per-chain JSON-RPC endpoint behind /rpc/v1/{chain}.

A handler is bound at construction to a bundler client, the paymaster
contract and the trusted-signer client. It answers chain metadata locally,
forwards ERC-4337 bundler methods to the bundler, and hands paymaster
(`pm_*`) methods to a SponsorshipApprover. How an approver decides and signs
is not this module's concern.
"""
from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

from fastapi import Request
from fastapi.responses import JSONResponse

from .clients import SigningClient
from .erc4337 import BundlerClient, BundlerRPCError, PaymasterContract

logger = logging.getLogger(__name__)

BUNDLER_METHODS = frozenset({
    "eth_sendUserOperation",
    "eth_estimateUserOperationGas",
    "eth_getUserOperationByHash",
    "eth_getUserOperationReceipt",
    "pimlico_getUserOperationGasPrice",
    "pimlico_getUserOperationStatus",
})

PAYMASTER_METHODS = frozenset({
    "pm_getPaymasterStubData",
    "pm_getPaymasterData",
    "pm_sponsorUserOperation",
})

# JSON-RPC 2.0 error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602


class JSONRPCError(Exception):
    def __init__(self, code: int, message: str, data: Any = None):
        self.code = code
        self.message = message
        self.data = data
        super().__init__(message)

    def to_error(self) -> dict[str, Any]:
        error: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return error


class SponsorshipApprover(Protocol):
    """Decides whether to sponsor a UserOperation and produces paymaster data."""

    async def approve(
        self,
        method: str,
        params: list[Any],
        *,
        entry_point: str,
        chain_id: int,
        paymaster: PaymasterContract,
        signer: SigningClient,
    ) -> Any:
        ...


class RelayHandler:
    """JSON-RPC handler bound to one chain's clients."""

    def __init__(
        self,
        bundler: BundlerClient,
        paymaster: PaymasterContract,
        signer: SigningClient,
        approver: Optional[SponsorshipApprover] = None,
    ):
        self.bundler = bundler
        self.paymaster = paymaster
        self.signer = signer
        self._approver = approver

    async def close(self) -> None:
        """Release the bundler connection and both signing clients."""
        await self.bundler.close()
        await self.signer.close()
        if self.paymaster.signer is not None and self.paymaster.signer is not self.signer:
            await self.paymaster.signer.close()

    async def handle(self, request: Request) -> JSONResponse:
        """Handle a single JSON-RPC message or a batch."""
        try:
            body = await request.json()
        except ValueError:
            return JSONResponse(_error_response(None, JSONRPCError(PARSE_ERROR, "Parse error")))

        if isinstance(body, list):
            if not body:
                return JSONResponse(
                    _error_response(None, JSONRPCError(INVALID_REQUEST, "Empty batch"))
                )
            return JSONResponse([await self.dispatch(message) for message in body])
        return JSONResponse(await self.dispatch(body))

    async def dispatch(self, message: Any) -> dict[str, Any]:
        if not isinstance(message, dict) or not isinstance(message.get("method"), str):
            return _error_response(None, JSONRPCError(INVALID_REQUEST, "Invalid request"))

        request_id = message.get("id")
        params = message.get("params", [])
        if not isinstance(params, list):
            return _error_response(
                request_id, JSONRPCError(INVALID_PARAMS, "params must be an array")
            )

        try:
            result = await self._call(message["method"], params)
        except JSONRPCError as e:
            return _error_response(request_id, e)
        except BundlerRPCError as e:
            logger.info(f"Bundler rejected {e.method}: {e.error}")
            return {"jsonrpc": "2.0", "id": request_id, "error": e.error}
        return {"jsonrpc": "2.0", "id": request_id, "result": result}

    async def _call(self, method: str, params: list[Any]) -> Any:
        if method == "eth_chainId":
            return hex(self.bundler.chain_id)
        if method == "eth_supportedEntryPoints":
            return [self.bundler.entry_point]
        if method in PAYMASTER_METHODS:
            if self._approver is None:
                raise JSONRPCError(METHOD_NOT_FOUND, f"Sponsorship method {method} is not enabled")
            return await self._approver.approve(
                method,
                params,
                entry_point=self.bundler.entry_point,
                chain_id=self.bundler.chain_id,
                paymaster=self.paymaster,
                signer=self.signer,
            )
        if method in BUNDLER_METHODS:
            return await self.bundler.request(method, params)
        raise JSONRPCError(METHOD_NOT_FOUND, f"Method {method} is not supported")


def _error_response(request_id: Any, error: JSONRPCError) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "error": error.to_error()}
