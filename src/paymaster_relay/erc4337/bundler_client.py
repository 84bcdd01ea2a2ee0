"""Minimal ERC-4337 bundler client bound to one chain and EntryPoint."""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Any

import httpx


class BundlerRPCError(RuntimeError):
    """Bundler answered with a JSON-RPC error object."""

    def __init__(self, method: str, error: dict[str, Any]):
        self.method = method
        self.error = error
        super().__init__(f"Bundler RPC error ({method}): {error}")


@dataclass
class BundlerConfig:
    url: str
    entry_point: str
    chain_id: int
    timeout_seconds: float = 30.0


class BundlerClient:
    def __init__(self, config: BundlerConfig):
        self._config = config
        self._client = httpx.AsyncClient(timeout=config.timeout_seconds)
        self._ids = itertools.count(1)

    @property
    def entry_point(self) -> str:
        return self._config.entry_point

    @property
    def chain_id(self) -> int:
        return self._config.chain_id

    async def request(self, method: str, params: list[Any]) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        response = await self._client.post(self._config.url, json=payload)
        response.raise_for_status()
        data = response.json()
        if data.get("error"):
            raise BundlerRPCError(method, data["error"])
        return data.get("result")

    async def close(self) -> None:
        await self._client.aclose()
