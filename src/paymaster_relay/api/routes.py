"""Relay HTTP routes: liveness and per-chain JSON-RPC dispatch."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from pydantic import BaseModel

from ..exceptions import RelayError
from ..handlers import HandlerCache
from ..monitoring import capture_exception, capture_message, scrub
from ..registry import ChainRegistry

logger = logging.getLogger(__name__)

router = APIRouter()

GENERIC_ERROR_DETAIL = "Internal error"


class PingResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error: str
    details: str | None = None


# Dependencies

class RelayDependencies:
    """Dependencies for relay routes."""
    def __init__(
        self,
        registry: ChainRegistry,
        handler_cache: HandlerCache,
        expose_error_details: bool = False,
    ):
        self.registry = registry
        self.handler_cache = handler_cache
        self.expose_error_details = expose_error_details


def get_deps() -> RelayDependencies:
    """Dependency injection placeholder."""
    raise NotImplementedError("Must be overridden")


def redact_error(error: BaseException, expose_details: bool) -> str:
    """Client-safe description of a failure."""
    if isinstance(error, RelayError):
        return scrub(error.message)
    if expose_details:
        return scrub(str(error)) or type(error).__name__
    return GENERIC_ERROR_DETAIL


# Routes

@router.get("/", response_class=PlainTextResponse)
async def root() -> str:
    return "Custom paymaster relay"


@router.get("/ping", response_model=PingResponse)
async def ping() -> PingResponse:
    return PingResponse(message="pong")


@router.get("/debug-sentry")
async def debug_sentry():
    """Raise on purpose so error reporting can be verified end to end."""
    raise RuntimeError("This is a test error for Sentry")


@router.post(
    "/rpc/v1/{chain}",
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def relay_rpc(
    chain: str,
    request: Request,
    deps: RelayDependencies = Depends(get_deps),
) -> Response:
    """Forward a JSON-RPC request to the chain's relay handler."""
    if not deps.registry.is_supported(chain):
        error_message = f"Chain ({chain}) is not supported"
        capture_message(error_message, level="error", tags={"chain": chain})
        return JSONResponse(status_code=400, content={"error": error_message})

    try:
        handler = await deps.handler_cache.get_handler(chain)
        return await handler.handle(request)
    except Exception as e:
        logger.error(f"Error handling RPC request for chain ({chain}): {e}")
        capture_exception(e, tags={"chain": chain})
        return JSONResponse(
            status_code=500,
            content={
                "error": f"Failed to process request for chain ({chain})",
                "details": redact_error(e, deps.expose_error_details),
            },
        )
