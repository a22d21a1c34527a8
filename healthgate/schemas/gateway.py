"""Proxy and config endpoint schemas."""

from pydantic import BaseModel, ConfigDict, Field

from healthgate.gateway.types import DEFAULT_IMAGE_MIME_TYPE


class ProxyRequest(BaseModel):
    """Body the frontend posts to the proxy (field names match the web client)."""

    model_config = ConfigDict(populate_by_name=True)

    prompt: str = Field(..., min_length=1)
    base64_image: str | None = Field(default=None, alias="base64Image")
    mime_type: str = Field(default=DEFAULT_IMAGE_MIME_TYPE, alias="mimeType")
    type: str | None = None  # credential pool category
    json_response: bool | None = Field(default=None, alias="jsonResponse")


class ErrorDetail(BaseModel):
    message: str
    kind: str = "gateway_error"
    retry_after_seconds: int | None = None


class ErrorResponse(BaseModel):
    error: ErrorDetail


class ClientConfigResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    firebase_config: dict[str, str] = Field(alias="firebaseConfig")
    gemini_api_keys: dict[str, list[str]] = Field(alias="geminiApiKeys")
