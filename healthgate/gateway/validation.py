"""Response validation — boundary check on 2xx upstream bodies.

A successful HTTP status is not enough: the body must carry at least one
candidate whose first content part has non-empty text. Anything else is an
``InvalidResponseShape``, which the gateway does NOT retry with another
credential (the failure does not depend on which key was used).
"""

from __future__ import annotations

from typing import Any

from healthgate.gateway.errors import InvalidResponseShape


def extract_candidate_text(data: Any) -> str:
    """Return ``candidates[0].content.parts[0].text`` or raise InvalidResponseShape."""
    if not isinstance(data, dict):
        raise InvalidResponseShape("Invalid response from AI service: body is not a JSON object.")

    candidates = data.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        block_reason = _block_reason(data)
        if block_reason:
            raise InvalidResponseShape(f"Prompt blocked by AI service: {block_reason}.")
        raise InvalidResponseShape("Invalid response from AI service: no candidates returned.")

    candidate = candidates[0]
    if not isinstance(candidate, dict):
        raise InvalidResponseShape("Invalid response from AI service: malformed candidate.")

    content = candidate.get("content")
    parts = content.get("parts") if isinstance(content, dict) else None
    first = parts[0] if isinstance(parts, list) and parts else None
    text = first.get("text") if isinstance(first, dict) else None

    if not isinstance(text, str) or not text.strip():
        finish_reason = candidate.get("finishReason", "")
        if finish_reason and finish_reason != "STOP":
            raise InvalidResponseShape(f"AI service returned no text (finish reason: {finish_reason}).")
        raise InvalidResponseShape("Invalid response from AI service: candidate has no text.")

    return text


def _block_reason(data: dict) -> str:
    feedback = data.get("promptFeedback")
    if isinstance(feedback, dict):
        return str(feedback.get("blockReason") or "")
    return ""
