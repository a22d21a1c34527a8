"""Core types and DTOs for the AI Request Gateway."""

from __future__ import annotations

import json
import re
import uuid
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any

from healthgate.gateway.errors import InvalidResponseShape

DEFAULT_IMAGE_MIME_TYPE = "image/jpeg"

# Markdown code fences the model sometimes wraps JSON output in
_CODE_FENCE_PATTERN = re.compile(r"```(?:json)?\s*|\s*```")


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class GatewayCategory(str, Enum):
    """Credential pool categories used by the app's features."""

    ANALYZER = "analyzer"
    DASHBOARD = "dashboard"
    FOOD = "food"
    TOOLS = "tools"


class AttemptState(str, Enum):
    """States of the failover loop for a single invocation."""

    IDLE = "idle"
    ATTEMPTING = "attempting"
    SUCCEEDED = "succeeded"
    EXHAUSTED_FAILED = "exhausted_failed"
    ABORTED = "aborted"  # InvalidResponseShape: stopped without rotating


# ---------------------------------------------------------------------------
# Credentials & configuration snapshot
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CredentialPool:
    """Ordered, immutable set of interchangeable API keys for one category."""

    category: str
    credentials: tuple[str, ...] = ()

    @classmethod
    def from_raw(cls, category: str, raw: Iterable[Any] | None) -> CredentialPool:
        """Build a pool, dropping null, non-string and blank entries."""
        credentials = tuple(c.strip() for c in (raw or ()) if isinstance(c, str) and c.strip())
        return cls(category=category, credentials=credentials)

    def __len__(self) -> int:
        return len(self.credentials)

    def __getitem__(self, index: int) -> str:
        return self.credentials[index]


@dataclass(frozen=True)
class GatewayConfig:
    """Immutable snapshot of externally supplied gateway configuration."""

    pools: Mapping[str, CredentialPool] = field(default_factory=dict)
    extras: Mapping[str, Any] = field(default_factory=dict)  # e.g. firebaseConfig

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> GatewayConfig:
        """Build a snapshot from a config payload.

        Accepts ``{"geminiApiKeys": {category: [...]}, ...}`` (the config
        endpoint's shape) or a flat ``{category: [...]}`` object.
        """
        if isinstance(data.get("geminiApiKeys"), Mapping):
            raw_pools = data["geminiApiKeys"]
            extras = {k: v for k, v in data.items() if k != "geminiApiKeys"}
        else:
            raw_pools = {k: v for k, v in data.items() if isinstance(v, list)}
            extras = {k: v for k, v in data.items() if not isinstance(v, list)}

        pools = {
            str(category): CredentialPool.from_raw(str(category), raw)
            for category, raw in raw_pools.items()
            if raw is None or isinstance(raw, list)
        }
        return cls(pools=MappingProxyType(pools), extras=MappingProxyType(extras))

    def pool(self, category: str) -> CredentialPool:
        """Return the pool for a category, empty if unknown."""
        return self.pools.get(category) or CredentialPool(category=category)

    @property
    def categories(self) -> list[str]:
        return [name for name, pool in self.pools.items() if len(pool)]


# ---------------------------------------------------------------------------
# Gateway Request — input to the gateway
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class InlineImage:
    """Base64-encoded image sent alongside the prompt."""

    data: str
    mime_type: str = DEFAULT_IMAGE_MIME_TYPE


@dataclass
class GatewayRequest:
    """A single prompt to deliver through a category's credential pool."""

    prompt: str
    category: str = GatewayCategory.DASHBOARD.value
    image: InlineImage | None = None
    json_response: bool = False  # ask the model for application/json output
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex[:16])


# ---------------------------------------------------------------------------
# Gateway Response — validated output of the gateway
# ---------------------------------------------------------------------------


@dataclass
class GatewayResponse:
    """A validated upstream response.

    ``payload`` is the upstream JSON untouched; ``text`` is the first
    candidate's generated text, already checked to be non-empty.
    """

    request_id: str
    category: str
    text: str
    payload: dict[str, Any]
    credential_index: int = 0
    attempts: int = 1
    latency_ms: int = 0
    completed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def parse_json(self) -> Any:
        """Decode ``text`` as JSON, tolerating Markdown code fences around it."""
        cleaned = _CODE_FENCE_PATTERN.sub("", self.text).strip()
        try:
            return json.loads(cleaned)
        except ValueError as e:
            raise InvalidResponseShape(f"Model returned text that is not valid JSON: {e}") from e

    def to_dict(self) -> dict:
        """Serialize to JSON-compatible dict for API responses."""
        return {
            "request_id": self.request_id,
            "category": self.category,
            "text": self.text,
            "credential_index": self.credential_index,
            "attempts": self.attempts,
            "latency_ms": self.latency_ms,
            "completed_at": self.completed_at.isoformat(),
        }
