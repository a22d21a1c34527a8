"""AI Request Gateway.

Turns a prompt (optionally with an inline image) into a validated model
response despite unreliable upstream keys, with:
  - Cooldown Gate (fixed spacing between calls, reject-not-queue)
  - Credential Rotation & Failover (persistent per-category cursor)
  - Request Payload Builder (text part first, inline image second)
  - Response Validation (shape errors are not retried)
  - Configuration Loader (once-only, fail-closed)
"""
