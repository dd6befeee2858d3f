"""
Key presented to internal collaborators (the RBAC service, order webhooks).

Uses a safe default with a loud warning so development still works but a
production misconfiguration is clearly surfaced, not silently accepted.
"""
import os
import warnings

_INTERNAL_API_KEY: str = os.getenv("INTERNAL_API_KEY", "")

if not _INTERNAL_API_KEY:
    warnings.warn(
        "INTERNAL_API_KEY is not set. Using an insecure default. "
        "Set this env var in production!",
        stacklevel=2,
    )
    _INTERNAL_API_KEY = "insecure-default-change-me"

INTERNAL_API_KEY: str = _INTERNAL_API_KEY


def internal_headers() -> dict:
    """Headers for service-to-service calls."""
    return {"X-Internal-API-Key": INTERNAL_API_KEY}
