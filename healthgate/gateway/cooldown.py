"""Cooldown Gate — minimum spacing between gateway invocations.

A single clock per gateway records when the last attempt sequence started.
Calls arriving before ``last_started + interval`` are rejected outright with
``Throttled``; they are never queued or delayed. The clock is stamped when an
attempt sequence begins, so a burst is serialized at cooldown granularity
regardless of upstream latency or outcome.

Thread-safe via asyncio.Lock.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable

from healthgate.gateway.errors import Throttled

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN_MS = 4000


class CooldownGate:
    """Reject-not-queue rate limiter with a fixed interval.

    Usage:
        gate = CooldownGate(interval_ms=4000)

        async with gate.lock:
            gate.check()          # raises Throttled if too early
            ...                   # any other pre-flight checks
            gate.stamp()          # attempt sequence begins
    """

    def __init__(
        self,
        interval_ms: int = DEFAULT_COOLDOWN_MS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.interval_ms = interval_ms
        self._clock = clock
        self._last_started: float | None = None
        self.lock = asyncio.Lock()

    def _now_ms(self) -> float:
        return self._clock() * 1000.0

    def remaining_ms(self) -> float:
        """Milliseconds until the next call is allowed; 0 if allowed now."""
        if self._last_started is None:
            return 0.0
        elapsed = self._now_ms() - self._last_started
        return max(self.interval_ms - elapsed, 0.0)

    def check(self) -> None:
        """Raise ``Throttled`` if the cooldown has not elapsed."""
        remaining = self.remaining_ms()
        if remaining > 0:
            logger.debug("Cooldown active: %.0fms remaining", remaining)
            raise Throttled(remaining)

    def stamp(self) -> None:
        """Record the start of an attempt sequence."""
        self._last_started = self._now_ms()

    def get_stats(self) -> dict:
        return {
            "interval_ms": self.interval_ms,
            "remaining_ms": int(self.remaining_ms()),
        }
