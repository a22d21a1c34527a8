"""AI Request Gateway — orchestrator integrating all gateway components.

Main entry point for UI callers and the proxy endpoint:
  1. Waits on the shared configuration ready signal (fails closed)
  2. Applies the cooldown gate (reject, never queue)
  3. Builds the upstream body (text part first, optional inline image second)
  4. Runs the credential failover loop for the request's category
  5. Validates the 2xx body shape (shape errors are not retried)

Usage:
    gateway = AiGateway.from_settings(settings)

    response = await gateway.invoke("analyzer", prompt, image=InlineImage(data=b64))
    scores = response.parse_json()
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

from healthgate.core.config import Settings
from healthgate.core.metrics import GATEWAY_INVOCATIONS
from healthgate.gateway.config_loader import ConfigLoader, RemoteConfigSource, SettingsConfigSource
from healthgate.gateway.cooldown import DEFAULT_COOLDOWN_MS, CooldownGate
from healthgate.gateway.errors import AttemptFailed, GatewayError, NotConfigured
from healthgate.gateway.payload import body_for
from healthgate.gateway.rotation import CredentialRotator
from healthgate.gateway.transport import GeminiTransport
from healthgate.gateway.types import (
    CredentialPool,
    GatewayConfig,
    GatewayRequest,
    GatewayResponse,
    InlineImage,
)
from healthgate.gateway.validation import extract_candidate_text

logger = logging.getLogger(__name__)

DEFAULT_ATTEMPT_TIMEOUT = 20.0


class AiGateway:
    """Single gateway instance per process.

    Owns the shared mutable state: one cooldown clock for the whole gateway
    and one rotation cursor per category. Nothing outside the gateway
    mutates either.
    """

    def __init__(
        self,
        loader: ConfigLoader,
        transport: GeminiTransport | None = None,
        cooldown_ms: int = DEFAULT_COOLDOWN_MS,
        attempt_timeout: float = DEFAULT_ATTEMPT_TIMEOUT,
        default_category: str | None = None,
    ):
        """
        Args:
            loader: Once-only configuration loader providing credential pools
            transport: Upstream model transport (Gemini generateContent)
            cooldown_ms: Minimum spacing between invocations
            attempt_timeout: Upper bound for a single credential attempt, seconds
            default_category: Pool used when a request names an unknown category
        """
        self.loader = loader
        self.transport = transport or GeminiTransport()
        self.cooldown = CooldownGate(interval_ms=cooldown_ms)
        self.attempt_timeout = attempt_timeout
        self.default_category = default_category
        self._rotators: dict[str, CredentialRotator] = {}

    @classmethod
    def from_settings(cls, settings: Settings) -> AiGateway:
        if settings.gateway_config_url:
            source = RemoteConfigSource(settings.gateway_config_url, timeout=settings.gateway_config_timeout_seconds)
        else:
            source = SettingsConfigSource(settings)
        return cls(
            loader=ConfigLoader(source),
            transport=GeminiTransport(model=settings.gemini_model, api_url_template=settings.gemini_api_url_template),
            cooldown_ms=settings.gateway_cooldown_ms,
            attempt_timeout=settings.gateway_attempt_timeout_seconds,
            default_category=settings.gateway_default_category,
        )

    def _get_rotator(self, category: str) -> CredentialRotator:
        """Get or create the rotator (and its cursor) for a category."""
        if category not in self._rotators:
            self._rotators[category] = CredentialRotator(category)
        return self._rotators[category]

    def _resolve_category(self, config: GatewayConfig, category: str) -> str:
        if category not in config.pools and self.default_category in config.pools:
            return self.default_category
        return category

    def _resolve_pool(self, config: GatewayConfig, category: str) -> CredentialPool:
        resolved = self._resolve_category(config, category)
        if resolved != category:
            logger.info("Unknown category %r, using %r keys", category, resolved)
        return config.pool(resolved)

    def _metric_category(self, category: str) -> str:
        """Metric label for a request: a configured category name or "unknown"."""
        config = self.loader.snapshot
        if config is None:
            return "unknown"
        resolved = self._resolve_category(config, category)
        return resolved if resolved in config.pools else "unknown"

    async def invoke(
        self,
        category: str,
        prompt: str,
        image: InlineImage | None = None,
        json_response: bool = False,
    ) -> GatewayResponse:
        """Deliver a prompt through the category's credential pool."""
        request = GatewayRequest(prompt=prompt, category=category, image=image, json_response=json_response)
        return await self.execute(request)

    async def execute(self, request: GatewayRequest) -> GatewayResponse:
        try:
            response = await self._execute(request)
        except GatewayError as e:
            GATEWAY_INVOCATIONS.labels(category=self._metric_category(request.category), outcome=e.kind).inc()
            logger.info(
                "Gateway request %s failed (%s): %s",
                request.request_id,
                e.kind,
                e.message,
                extra={"request_id": request.request_id, "category": request.category},
            )
            raise

        GATEWAY_INVOCATIONS.labels(category=self._metric_category(request.category), outcome="success").inc()
        return response

    async def _execute(self, request: GatewayRequest) -> GatewayResponse:
        config = await self.loader.wait_ready()
        pool = self._resolve_pool(config, request.category)

        async with self.cooldown.lock:
            self.cooldown.check()
            if len(pool) == 0:
                raise NotConfigured(f"No API keys are configured for '{request.category}'.")
            # The attempt sequence begins now, whatever its outcome
            self.cooldown.stamp()

        body = body_for(request)
        rotator = self._get_rotator(pool.category)
        start = time.monotonic()

        async def attempt(index: int, credential: str) -> tuple[dict[str, Any], str]:
            try:
                data = await asyncio.wait_for(
                    self.transport.send(credential, body, timeout=self.attempt_timeout),
                    timeout=self.attempt_timeout,
                )
            except asyncio.TimeoutError as e:
                raise AttemptFailed(f"Timeout after {self.attempt_timeout}s") from e
            return data, extract_candidate_text(data)

        result = await rotator.run(pool, attempt)
        data, text = result.value

        logger.info(
            "Gateway request %s succeeded for %s with key index %d after %d attempt(s)",
            request.request_id,
            pool.category,
            result.credential_index,
            result.attempts,
            extra={"request_id": request.request_id, "category": pool.category},
        )
        return GatewayResponse(
            request_id=request.request_id,
            category=pool.category,
            text=text,
            payload=data,
            credential_index=result.credential_index,
            attempts=result.attempts,
            latency_ms=int((time.monotonic() - start) * 1000),
        )

    def cursor(self, category: str) -> int:
        """Index of the credential the next call for ``category`` tries first."""
        rotator = self._rotators.get(category)
        return rotator.cursor if rotator else 0

    def get_status(self) -> dict:
        """Get gateway status. Never includes credentials."""
        config = self.loader.snapshot
        pools = config.pools if config else {}
        return {
            "configured": config is not None,
            "config_failed": self.loader.failed,
            "cooldown": self.cooldown.get_stats(),
            "categories": {
                name: {"keys": len(pool), "cursor": self.cursor(name)} for name, pool in pools.items()
            },
            "rotators": [r.get_stats() for r in self._rotators.values()],
        }
