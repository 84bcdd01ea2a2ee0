"""API composition root."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..clients import ClientFactory
from ..config import RelaySettings, load_settings
from ..handlers import HandlerCache, HandlerConstructor
from ..monitoring import init_sentry
from ..registry import ChainRegistry
from ..relay import SponsorshipApprover
from . import routes

logger = logging.getLogger("paymaster_relay.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    logger.info(f"Serving chains: {', '.join(app.state.registry.chains())}")
    yield
    logger.info("Shutting down paymaster relay...")
    await app.state.handler_cache.close()


def create_app(
    settings: RelaySettings | None = None,
    *,
    handler_cache: Optional[HandlerCache] = None,
    approver: Optional[SponsorshipApprover] = None,
) -> FastAPI:
    """
    Build the relay application.

    Raises:
        ConfigurationError: settings are missing or malformed (refuse to start)
    """
    settings = settings or load_settings()
    registry = ChainRegistry.from_settings(settings)

    if handler_cache is None:
        constructor = HandlerConstructor(
            registry,
            ClientFactory(settings, registry),
            approver=approver,
        )
        handler_cache = HandlerCache(
            constructor.construct,
            evict_failures=settings.relay_retry_failed_handlers,
        )

    app = FastAPI(
        title="Paymaster Relay",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["POST", "GET", "OPTIONS"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.registry = registry
    app.state.handler_cache = handler_cache

    app.dependency_overrides[routes.get_deps] = lambda: routes.RelayDependencies(
        registry=registry,
        handler_cache=handler_cache,
        expose_error_details=not settings.is_production,
    )
    app.include_router(routes.router)

    logger.info(f"Relay initialized with {len(registry)} chain(s)")
    return app


def init_monitoring(settings: RelaySettings) -> None:
    init_sentry(
        dsn=settings.sentry_dsn,
        environment=settings.sentry_environment or settings.environment,
        release=f"paymaster-relay@{__version__}",
    )
