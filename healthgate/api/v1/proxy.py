"""Gemini proxy endpoint — server-side entry to the AI Request Gateway.

The web client posts ``{prompt, base64Image?, type?}``; the gateway picks the
credential pool for ``type`` (unknown types use the default pool), applies
the cooldown and failover, and the upstream JSON is returned untouched.
Gateway errors are rendered by the app-level handler as
``{"error": {"message": ...}}``.
"""

from fastapi import APIRouter, Depends

from healthgate.core.config import settings
from healthgate.core.dependencies import get_gateway
from healthgate.gateway.gateway import AiGateway
from healthgate.gateway.types import InlineImage
from healthgate.schemas.gateway import ErrorResponse, ProxyRequest

router = APIRouter(tags=["gateway"])

_ERROR_RESPONSES = {
    429: {"model": ErrorResponse, "description": "Cooldown active"},
    502: {"model": ErrorResponse, "description": "All keys failed or invalid model response"},
    503: {"model": ErrorResponse, "description": "No keys configured"},
}


@router.post("/gemini-proxy", responses=_ERROR_RESPONSES)
async def gemini_proxy(
    body: ProxyRequest,
    gateway: AiGateway = Depends(get_gateway),
):
    """Forward a prompt (and optional image) to the model through the key pool."""
    image = InlineImage(data=body.base64_image, mime_type=body.mime_type) if body.base64_image else None
    json_response = settings.gateway_json_response if body.json_response is None else body.json_response

    response = await gateway.invoke(
        body.type or settings.gateway_default_category,
        body.prompt,
        image=image,
        json_response=json_response,
    )
    return response.payload


@router.get("/gateway/status")
async def gateway_status(gateway: AiGateway = Depends(get_gateway)):
    """Pool sizes, rotation cursors and cooldown. Keys are never included."""
    return gateway.get_status()
