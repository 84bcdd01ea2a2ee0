"""Tests for handler construction and the per-chain handler cache."""
from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from conftest import DEPLOYER_ADDRESS, FakeEntryPoint, FakePaymaster, TRUSTED_SIGNER_ADDRESS, make_settings
from paymaster_relay import handlers
from paymaster_relay.clients import ClientFactory, SigningClient
from paymaster_relay.exceptions import (
    ConfigurationError,
    ContractReadError,
    DeploymentError,
    UnsupportedChainError,
)
from paymaster_relay.handlers import HandlerCache, HandlerConstructor
from paymaster_relay.registry import ChainRegistry


class TestHandlerCache:
    @pytest.mark.asyncio
    async def test_concurrent_requests_construct_once(self):
        calls = []
        sentinel = object()

        async def construct(chain):
            calls.append(chain)
            await asyncio.sleep(0.01)
            return sentinel

        cache = HandlerCache(construct)
        results = await asyncio.gather(*(cache.get_handler("baseSepolia") for _ in range(10)))

        assert calls == ["baseSepolia"]
        assert all(result is sentinel for result in results)

    @pytest.mark.asyncio
    async def test_chains_are_independent(self):
        calls = []

        async def construct(chain):
            calls.append(chain)
            return chain

        cache = HandlerCache(construct)
        assert await cache.get_handler("base") == "base"
        assert await cache.get_handler("radiusTestnet") == "radiusTestnet"
        assert await cache.get_handler("base") == "base"
        assert calls == ["base", "radiusTestnet"]

    @pytest.mark.asyncio
    async def test_failure_is_cached(self):
        calls = []

        async def construct(chain):
            calls.append(chain)
            raise DeploymentError(chain)

        cache = HandlerCache(construct)
        with pytest.raises(DeploymentError):
            await cache.get_handler("baseSepolia")
        with pytest.raises(DeploymentError):
            await cache.get_handler("baseSepolia")

        assert calls == ["baseSepolia"]
        assert "baseSepolia" in cache

    @pytest.mark.asyncio
    async def test_failure_evicted_when_enabled(self):
        calls = []

        async def construct(chain):
            calls.append(chain)
            if len(calls) == 1:
                raise DeploymentError(chain)
            return "handler"

        cache = HandlerCache(construct, evict_failures=True)
        with pytest.raises(DeploymentError):
            await cache.get_handler("baseSepolia")
        await asyncio.sleep(0)

        assert "baseSepolia" not in cache
        assert await cache.get_handler("baseSepolia") == "handler"
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_concurrent_failures_share_one_error(self):
        calls = []

        async def construct(chain):
            calls.append(chain)
            await asyncio.sleep(0.01)
            raise DeploymentError(chain)

        cache = HandlerCache(construct)
        results = await asyncio.gather(
            *(cache.get_handler("baseSepolia") for _ in range(5)),
            return_exceptions=True,
        )

        assert calls == ["baseSepolia"]
        assert isinstance(results[0], DeploymentError)
        assert all(result is results[0] for result in results)

    @pytest.mark.asyncio
    async def test_cancelled_waiter_leaves_construction_running(self):
        calls = []
        release = asyncio.Event()

        async def construct(chain):
            calls.append(chain)
            await release.wait()
            return "handler"

        cache = HandlerCache(construct)

        async def wait_for_handler():
            return await cache.get_handler("baseSepolia")

        cancelled = asyncio.create_task(wait_for_handler())
        concurrent = asyncio.create_task(wait_for_handler())
        await asyncio.sleep(0.01)
        cancelled.cancel()
        with pytest.raises(asyncio.CancelledError):
            await cancelled

        release.set()
        assert await concurrent == "handler"
        assert await cache.get_handler("baseSepolia") == "handler"
        assert calls == ["baseSepolia"]

    @pytest.mark.asyncio
    async def test_close_releases_handlers(self):
        handler = SimpleNamespace(close=AsyncMock())

        async def construct(chain):
            return handler

        cache = HandlerCache(construct)
        await cache.get_handler("base")
        await cache.close()

        handler.close.assert_awaited_once()
        assert "base" not in cache


@pytest.fixture
def sentry_calls(monkeypatch):
    calls = {"exceptions": [], "messages": []}
    monkeypatch.setattr(
        handlers, "capture_exception",
        lambda exc, **kwargs: calls["exceptions"].append(exc),
    )
    monkeypatch.setattr(
        handlers, "capture_message",
        lambda message, **kwargs: calls["messages"].append(message),
    )
    return calls


@pytest.fixture
def fake_paymaster(monkeypatch):
    paymaster = FakePaymaster(FakeEntryPoint(), version="1.2.0")
    monkeypatch.setattr(handlers, "PaymasterContract", lambda *args, **kwargs: paymaster)
    return paymaster


def _constructor(settings=None):
    settings = settings or make_settings()
    registry = ChainRegistry.from_settings(settings)
    built = []

    def handler_factory(bundler, paymaster, signer):
        handler = SimpleNamespace(bundler=bundler, paymaster=paymaster, signer=signer)
        built.append(handler)
        return handler

    constructor = HandlerConstructor(
        registry, ClientFactory(settings, registry), handler_factory=handler_factory
    )
    return constructor, built


class TestHandlerConstructor:
    @pytest.mark.asyncio
    async def test_construct_ready(self, fake_paymaster, sentry_calls):
        constructor, built = _constructor()

        handler = await constructor.construct("baseSepolia")

        assert built == [handler]
        assert handler.paymaster is fake_paymaster
        assert handler.signer.address == TRUSTED_SIGNER_ADDRESS
        assert handler.bundler.chain_id == 84532
        assert sentry_calls["messages"] == ["Paymaster v1.2.0 ready for chain (baseSepolia)"]
        assert sentry_calls["exceptions"] == []
        await handler.bundler.close()

    @pytest.mark.asyncio
    async def test_unsupported_chain(self, fake_paymaster, sentry_calls):
        constructor, built = _constructor()

        with pytest.raises(UnsupportedChainError):
            await constructor.construct("unknownChain")

        assert built == []
        assert len(sentry_calls["exceptions"]) == 1

    @pytest.mark.asyncio
    async def test_missing_bundler_url(self, fake_paymaster, sentry_calls):
        constructor, _ = _constructor(make_settings(base_sepolia_bundler_url=None))

        with pytest.raises(ConfigurationError, match="BUNDLER_URL"):
            await constructor.construct("baseSepolia")

    @pytest.mark.asyncio
    async def test_missing_rpc_url(self, fake_paymaster, sentry_calls):
        constructor, _ = _constructor()

        with pytest.raises(ConfigurationError, match="RPC_URL"):
            await constructor.construct("base")

    @pytest.mark.asyncio
    async def test_missing_signer_key(self, fake_paymaster, sentry_calls):
        constructor, _ = _constructor(make_settings(trusted_signer_private_key=None))

        with pytest.raises(ConfigurationError, match="TRUSTED_SIGNER_PRIVATE_KEY"):
            await constructor.construct("baseSepolia")
        assert sentry_calls["messages"] == []

    @pytest.mark.asyncio
    async def test_paymaster_not_deployed(self, fake_paymaster, sentry_calls):
        fake_paymaster.version_error = ContractReadError("VERSION", fake_paymaster.address, "execution reverted")
        constructor, built = _constructor()

        with pytest.raises(DeploymentError) as exc_info:
            await constructor.construct("baseSepolia")

        assert exc_info.value.message == "Paymaster is not deployed for chain (baseSepolia)"
        assert built == []
        assert sentry_calls["exceptions"] == [exc_info.value]

    @pytest.mark.asyncio
    async def test_failed_construction_releases_connections(self, fake_paymaster, sentry_calls, monkeypatch):
        closed = []

        async def close_client(client):
            closed.append(client.address)

        class RecordingBundler:
            def __init__(self, config):
                self.config = config

            async def close(self):
                closed.append("bundler")

        def failing_factory(bundler, paymaster, signer):
            raise RuntimeError("handler wiring failed")

        monkeypatch.setattr(SigningClient, "close", close_client)
        monkeypatch.setattr(handlers, "BundlerClient", RecordingBundler)
        settings = make_settings()
        registry = ChainRegistry.from_settings(settings)
        constructor = HandlerConstructor(
            registry, ClientFactory(settings, registry), handler_factory=failing_factory
        )

        with pytest.raises(RuntimeError):
            await constructor.construct("baseSepolia")

        assert closed == ["bundler", DEPLOYER_ADDRESS, TRUSTED_SIGNER_ADDRESS]
