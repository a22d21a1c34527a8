"""Gateway error taxonomy.

Callers see exactly one of four kinds per ``invoke``:

  - Throttled: local cooldown not yet elapsed; recoverable by waiting
  - NotConfigured: no usable credentials (or configuration failed to load)
  - AllAttemptsFailed: every credential in the pool failed at transport/status level
  - InvalidResponseShape: upstream answered 2xx but without usable candidate text

AttemptFailed is per-attempt and never escapes the failover loop.
"""

from __future__ import annotations

import math


class GatewayError(Exception):
    """Base class for errors surfaced to gateway callers."""

    kind: str = "gateway_error"
    status_code: int = 500  # HTTP status used by the web layer

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class Throttled(GatewayError):
    kind = "throttled"
    status_code = 429

    def __init__(self, remaining_ms: float):
        self.retry_after_seconds = max(1, math.ceil(remaining_ms / 1000))
        super().__init__(f"Please wait {self.retry_after_seconds}s.")


class NotConfigured(GatewayError):
    kind = "not_configured"
    status_code = 503


class AllAttemptsFailed(GatewayError):
    kind = "all_attempts_failed"
    status_code = 502

    def __init__(self, last_error: str, attempts: int = 0):
        self.last_error = last_error
        self.attempts = attempts
        super().__init__(f"All API attempts failed. Last error: {last_error}")


class InvalidResponseShape(GatewayError):
    kind = "invalid_response_shape"
    status_code = 502


class AttemptFailed(Exception):
    """A single credential attempt failed at transport or HTTP status level."""

    def __init__(self, message: str, status_code: int = 0):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
