"""Request payload builder for the generateContent endpoint.

Part order matters: the model ties "this image" to the instruction that
precedes it, so the text part always comes first and the inline image second.
"""

from __future__ import annotations

from typing import Any

from healthgate.gateway.types import GatewayRequest, InlineImage


def build_request_body(
    prompt: str,
    image: InlineImage | None = None,
    json_response: bool = False,
) -> dict[str, Any]:
    parts: list[dict[str, Any]] = [{"text": prompt}]
    if image is not None:
        parts.append(
            {
                "inline_data": {
                    "mime_type": image.mime_type,
                    "data": image.data,
                }
            }
        )

    body: dict[str, Any] = {"contents": [{"parts": parts}]}
    if json_response:
        body["generationConfig"] = {"responseMimeType": "application/json"}
    return body


def body_for(request: GatewayRequest) -> dict[str, Any]:
    """Shortcut for building the body straight from a GatewayRequest."""
    return build_request_body(request.prompt, request.image, request.json_response)
