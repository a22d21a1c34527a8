"""Credential rotation & failover loop.

Each category keeps a persistent rotation cursor: the index of the credential
to try first on the next call. The loop is an explicit state machine:

    IDLE -> ATTEMPTING(i) -> ATTEMPTING(i+1 mod N) -> ... -> EXHAUSTED_FAILED
                         \\-> SUCCEEDED    (cursor stays at i)
                         \\-> ABORTED      (InvalidResponseShape, cursor stays at i)

Attempts are strictly sequential, and every credential is tried at most once
per call, so a call makes at most N attempts.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from healthgate.core.logging import mask_credential
from healthgate.core.metrics import GATEWAY_ATTEMPTS
from healthgate.gateway.errors import AllAttemptsFailed, AttemptFailed, InvalidResponseShape, NotConfigured
from healthgate.gateway.types import AttemptState, CredentialPool

logger = logging.getLogger(__name__)

T = TypeVar("T")

AttemptFn = Callable[[int, str], Awaitable[T]]


@dataclass
class RotationResult(Generic[T]):
    value: T
    credential_index: int
    attempts: int


class CredentialRotator:
    """Failover loop over one category's credential pool.

    Usage:
        rotator = CredentialRotator("analyzer")
        result = await rotator.run(pool, attempt)   # attempt(index, credential)

    ``attempt`` raises AttemptFailed to rotate, InvalidResponseShape to stop.
    """

    def __init__(self, category: str):
        self.category = category
        self.cursor = 0
        self.state = AttemptState.IDLE
        self._lock = asyncio.Lock()

    async def run(self, pool: CredentialPool, attempt: AttemptFn) -> RotationResult:
        size = len(pool)
        if size == 0:
            raise NotConfigured(f"No API keys are configured for '{self.category}'.")

        async with self._lock:
            self.state = AttemptState.IDLE
            self.cursor %= size
            last_error = ""

            for attempts in range(1, size + 1):
                index = self.cursor
                self.state = AttemptState.ATTEMPTING

                try:
                    value = await attempt(index, pool[index])
                except AttemptFailed as e:
                    last_error = e.message
                    GATEWAY_ATTEMPTS.labels(category=self.category, result="failure").inc()
                    logger.warning(
                        "Key %s at index %d failed for %s (attempt %d/%d): %s",
                        mask_credential(pool[index]),
                        index,
                        self.category,
                        attempts,
                        size,
                        e.message,
                        extra={"category": self.category, "attempt": attempts},
                    )
                    self.cursor = (index + 1) % size
                    continue
                except InvalidResponseShape:
                    GATEWAY_ATTEMPTS.labels(category=self.category, result="invalid").inc()
                    self.state = AttemptState.ABORTED
                    raise

                GATEWAY_ATTEMPTS.labels(category=self.category, result="success").inc()
                self.state = AttemptState.SUCCEEDED
                return RotationResult(value=value, credential_index=index, attempts=attempts)

            self.state = AttemptState.EXHAUSTED_FAILED
            logger.error(
                "All %d keys failed for %s. Last error: %s",
                size,
                self.category,
                last_error,
                extra={"category": self.category},
            )
            raise AllAttemptsFailed(last_error, attempts=size)

    def get_stats(self) -> dict:
        return {
            "category": self.category,
            "cursor": self.cursor,
            "state": self.state.value,
        }
