"""Shared test helpers: upstream mocks and gateway builders."""

from collections.abc import Callable
from contextlib import contextmanager
from typing import Any
from unittest.mock import AsyncMock, patch

import httpx

from healthgate.gateway.config_loader import ConfigLoader
from healthgate.gateway.gateway import AiGateway


class StaticConfigSource:
    """In-memory config source that counts fetches."""

    def __init__(self, data: Any = None, error: Exception | None = None):
        self.data = data if data is not None else {}
        self.error = error
        self.fetch_count = 0

    async def fetch(self):
        self.fetch_count += 1
        if self.error is not None:
            raise self.error
        return self.data


def make_httpx_response(status_code: int, json_data: Any = None, text: str = "") -> httpx.Response:
    """Create a proper httpx.Response with request set."""
    request = httpx.Request("POST", "https://example.com")
    if json_data is not None:
        return httpx.Response(status_code, json=json_data, request=request)
    return httpx.Response(status_code, text=text, request=request)


def gemini_ok(text: str = '{"score": 7}') -> httpx.Response:
    return make_httpx_response(
        200,
        json_data={
            "candidates": [{"content": {"parts": [{"text": text}], "role": "model"}, "finishReason": "STOP"}],
            "usageMetadata": {"promptTokenCount": 10, "candidatesTokenCount": 20, "totalTokenCount": 30},
        },
    )


def gemini_error(status_code: int, message: str = "API key not valid") -> httpx.Response:
    return make_httpx_response(status_code, json_data={"error": {"code": status_code, "message": message}})


@contextmanager
def mock_upstream(handler: Callable[..., httpx.Response]):
    """Patch the transport's httpx client; ``handler(url, json=..., params=..., headers=...)``.

    Yields the mocked client so tests can inspect ``post.call_args_list``.
    """
    with patch("healthgate.gateway.transport.httpx.AsyncClient") as mock_client_cls:
        mock_client = AsyncMock()
        mock_client.post.side_effect = handler
        mock_client.__aenter__ = AsyncMock(return_value=mock_client)
        mock_client.__aexit__ = AsyncMock(return_value=None)
        mock_client_cls.return_value = mock_client
        yield mock_client


def by_key(responses: dict[str, httpx.Response | Exception]) -> Callable[..., httpx.Response]:
    """Upstream handler answering per ``key`` query parameter."""

    def handler(url, json=None, params=None, headers=None):
        outcome = responses[params["key"]]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    return handler


def keys_called(mock_client) -> list[str]:
    return [c.kwargs["params"]["key"] for c in mock_client.post.call_args_list]


def build_gateway(pools: dict[str, list[Any]] | None = None, cooldown_ms: int = 0, **kwargs) -> AiGateway:
    source = StaticConfigSource({"geminiApiKeys": pools or {}})
    return AiGateway(loader=ConfigLoader(source), cooldown_ms=cooldown_ms, **kwargs)
