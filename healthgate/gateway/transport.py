"""Upstream transport — one POST to the generateContent endpoint per attempt.

The credential travels as the ``key`` query parameter. Any transport error,
non-2xx status or undecodable body is reported as ``AttemptFailed`` so the
failover loop can move on to the next credential. A decodable 2xx body is
returned as-is; shape validation happens in the gateway.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from healthgate.core.logging import mask_credential
from healthgate.gateway.errors import AttemptFailed

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.0-flash"
API_URL_TEMPLATE = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"


class GeminiTransport:
    """Sends request bodies to a Gemini ``generateContent`` endpoint."""

    def __init__(self, model: str = DEFAULT_MODEL, api_url_template: str = API_URL_TEMPLATE):
        self.model = model
        self.api_url = api_url_template.format(model=model)

    async def send(self, credential: str, body: dict[str, Any], timeout: float = 20.0) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=timeout) as client:
                resp = await client.post(
                    self.api_url,
                    json=body,
                    params={"key": credential},
                    headers={"Content-Type": "application/json"},
                )
        except httpx.TimeoutException as e:
            raise AttemptFailed(f"Timeout after {timeout}s") from e
        except httpx.HTTPError as e:
            # str(e) may embed the URL with the key; report the type only
            raise AttemptFailed(f"Network error: {type(e).__name__}") from e

        if not resp.is_success:
            message = _error_message(resp)
            logger.debug("Upstream %s rejected key %s: %s", resp.status_code, mask_credential(credential), message)
            raise AttemptFailed(message, status_code=resp.status_code)

        try:
            return resp.json()
        except ValueError as e:
            raise AttemptFailed("Malformed response body from AI service", status_code=resp.status_code) from e


def _error_message(resp: httpx.Response) -> str:
    """Best-effort diagnostic from an error body like ``{"error": {"message": ...}}``."""
    try:
        data = resp.json()
    except ValueError:
        data = None

    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])

    reason = resp.reason_phrase or "Unknown"
    return f"API Error with status: {resp.status_code} {reason}"
