"""
Per-chain relay handler lifecycle.

HandlerConstructor assembles a RelayHandler for one chain; HandlerCache makes
sure that happens at most once per chain no matter how many requests race for
it. The cache stores the construction task before the first await, so every
caller on the event loop shares the same outcome.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional

from .clients import ClientFactory, SigningClient
from .erc4337 import BundlerClient, BundlerConfig, PaymasterContract
from .exceptions import ConfigurationError, DeploymentError, RelayError
from .monitoring import capture_exception, capture_message
from .registry import ChainRegistry
from .relay import RelayHandler, SponsorshipApprover

logger = logging.getLogger(__name__)

HandlerFactory = Callable[[BundlerClient, PaymasterContract, SigningClient], RelayHandler]
ConstructFn = Callable[[str], Awaitable[RelayHandler]]


class HandlerConstructor:
    """Builds and verifies everything a chain's RelayHandler needs."""

    def __init__(
        self,
        registry: ChainRegistry,
        client_factory: ClientFactory,
        *,
        approver: Optional[SponsorshipApprover] = None,
        handler_factory: Optional[HandlerFactory] = None,
    ):
        self._registry = registry
        self._client_factory = client_factory
        self._handler_factory = handler_factory or (
            lambda bundler, paymaster, signer: RelayHandler(bundler, paymaster, signer, approver)
        )

    async def construct(self, chain: str) -> RelayHandler:
        """
        Build a RelayHandler for a chain.

        Raises:
            UnsupportedChainError: chain has no registered paymaster
            ConfigurationError: RPC/bundler URL or a signing key is missing
            DeploymentError: the paymaster's VERSION() cannot be read
        """
        clients: list[SigningClient] = []
        bundler: Optional[BundlerClient] = None
        try:
            descriptor = self._registry.resolve(chain)
            if not descriptor.rpc_url:
                raise ConfigurationError(f"RPC_URL for chain ({chain}) is not set")
            if not descriptor.bundler_url:
                raise ConfigurationError(f"BUNDLER_URL for chain ({chain}) is not set")

            deployer = self._client_factory.build_deployer_client(chain)
            clients.append(deployer)
            logger.info(f"Deployer/Owner address: {deployer.address}")
            trusted_signer = self._client_factory.build_trusted_signer_client(chain)
            clients.append(trusted_signer)
            logger.info(f"Trusted signer address: {trusted_signer.address}")

            paymaster = PaymasterContract(
                deployer.web3,
                descriptor.paymaster_address,
                signer=deployer,
                chain=chain,
            )
            try:
                version = await paymaster.version()
            except RelayError as e:
                raise DeploymentError(chain, descriptor.paymaster_address) from e

            bundler = BundlerClient(BundlerConfig(
                url=descriptor.bundler_url,
                entry_point=descriptor.entry_point,
                chain_id=descriptor.chain_id,
            ))
            handler = self._handler_factory(bundler, paymaster, trusted_signer)
        except Exception as e:
            logger.error(f"Error setting up paymaster system for chain ({chain}): {e}")
            capture_exception(e, tags={"chain": chain})
            await _release(bundler, clients)
            raise

        message = f"Paymaster v{version} ready for chain ({chain})"
        logger.info(message)
        capture_message(message, level="info", tags={"chain": chain})
        return handler


class HandlerCache:
    """
    Memoizes one handler construction per chain.

    With evict_failures=False (the default) a failed construction stays cached
    for the life of the process: later requests for that chain get the same
    error and nothing is rebuilt until restart. With evict_failures=True the
    failed entry is dropped once it settles, so the next request retries.
    """

    def __init__(self, construct: ConstructFn, *, evict_failures: bool = False):
        self._construct = construct
        self._evict_failures = evict_failures
        self._entries: Dict[str, asyncio.Task[RelayHandler]] = {}

    def get_handler(self, chain: str) -> "asyncio.Future[RelayHandler]":
        """
        Return an awaitable for the chain's construction outcome.

        Each caller gets its own shield around the shared task, so cancelling
        one waiting request never cancels the construction the others await.
        """
        task = self._entries.get(chain)
        if task is None:
            task = asyncio.ensure_future(self._construct(chain))
            self._entries[chain] = task
            if self._evict_failures:
                task.add_done_callback(lambda t: self._evict_if_failed(chain, t))
            logger.debug(f"Started handler construction for chain ({chain})")
        return asyncio.shield(task)

    def _evict_if_failed(self, chain: str, task: "asyncio.Task[RelayHandler]") -> None:
        if task.cancelled() or task.exception() is not None:
            if self._entries.get(chain) is task:
                del self._entries[chain]
                logger.warning(f"Evicted failed handler for chain ({chain}); next request will retry")

    def __contains__(self, chain: str) -> bool:
        return chain in self._entries

    async def close(self) -> None:
        """Release connections of handlers that were built and cancel pending ones."""
        for task in self._entries.values():
            if task.done() and not task.cancelled() and task.exception() is None:
                await task.result().close()
            elif not task.done():
                task.cancel()
        self._entries.clear()


async def _release(bundler: Optional[BundlerClient], clients: list[SigningClient]) -> None:
    """Close whatever a failed construction already opened."""
    if bundler is not None:
        await bundler.close()
    for client in clients:
        await client.close()
