"""Configuration Loader — once-only acquisition of credential pools.

The loader fetches the named credential pools exactly once per process and
exposes them as an immutable ``GatewayConfig`` snapshot. All callers share a
single ready signal (one asyncio.Task) that resolves or rejects exactly once.
If the fetch fails the loader fails closed: every waiter gets
``NotConfigured`` and the gateway never contacts upstream with absent keys.

Sources:
  - RemoteConfigSource: GET a trusted configuration endpoint (JSON)
  - SettingsConfigSource: credential slots from the process environment
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import httpx

from healthgate.core.config import Settings
from healthgate.gateway.errors import NotConfigured
from healthgate.gateway.types import GatewayConfig

logger = logging.getLogger(__name__)


class ConfigSource(Protocol):
    async def fetch(self) -> Mapping[str, Any]: ...


class RemoteConfigSource:
    """Trusted HTTP configuration endpoint returning named key arrays."""

    def __init__(self, url: str, timeout: float = 10.0):
        self.url = url
        self.timeout = timeout

    async def fetch(self) -> Mapping[str, Any]:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.get(self.url, headers={"Accept": "application/json"})
            resp.raise_for_status()
            return resp.json()


class SettingsConfigSource:
    """Credential pools read from settings (ANALYZER_GEM_1, DASHBOARD_GEM_2, ...)."""

    def __init__(self, settings: Settings):
        self.settings = settings

    async def fetch(self) -> Mapping[str, Any]:
        return {
            "firebaseConfig": self.settings.firebase_config,
            "geminiApiKeys": self.settings.credential_pools,
        }


class ConfigLoader:
    """Once-only loader with a shared ready signal.

    Usage:
        loader = ConfigLoader(RemoteConfigSource("https://.../api/v1/config"))
        config = await loader.wait_ready()   # raises NotConfigured on failure
    """

    def __init__(self, source: ConfigSource):
        self.source = source
        self._task: asyncio.Task[GatewayConfig] | None = None

    def start(self) -> asyncio.Task[GatewayConfig]:
        """Begin loading if not started yet; returns the shared ready task."""
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._load())
        return self._task

    async def wait_ready(self) -> GatewayConfig:
        """Wait for the snapshot. Cancelling a waiter does not cancel the load."""
        task = self.start()
        if task.cancelled():
            raise NotConfigured("AI service is not configured: configuration load was cancelled.")
        return await asyncio.shield(task)

    @property
    def ready(self) -> bool:
        task = self._task
        return task is not None and task.done() and not task.cancelled() and task.exception() is None

    @property
    def snapshot(self) -> GatewayConfig | None:
        """The loaded snapshot, or None while loading or after a failure."""
        return self._task.result() if self.ready else None

    @property
    def failed(self) -> bool:
        task = self._task
        return task is not None and task.done() and (task.cancelled() or task.exception() is not None)

    async def _load(self) -> GatewayConfig:
        try:
            data = await self.source.fetch()
        except Exception as e:
            logger.error("Gateway configuration fetch failed: %s: %s", type(e).__name__, e)
            raise NotConfigured("AI service is not configured: configuration could not be loaded.") from e

        if not isinstance(data, Mapping):
            logger.error("Gateway configuration is not a JSON object (got %s)", type(data).__name__)
            raise NotConfigured("AI service is not configured: configuration is malformed.")

        config = GatewayConfig.from_mapping(data)
        logger.info(
            "Gateway configuration loaded: %s",
            ", ".join(f"{name}={len(pool)}" for name, pool in config.pools.items()) or "no pools",
        )
        return config
