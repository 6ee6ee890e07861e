from __future__ import annotations

from typing import Any

from .exceptions import InvalidRetryPolicy

#: Name of the Django setting holding the library configuration.
SETTINGS_NAME = "VERSIONED_MUTATION"

DEFAULTS: dict[str, Any] = {
    "MAX_ATTEMPTS": 3,
    "BACKOFF": "exponential",
    "BASE_DELAY": 0.01,
    "MAX_DELAY": 0.25,
    "JITTER": 0.0,
}


def get_settings() -> dict[str, Any]:
    """
    Return the effective configuration, merging ``settings.VERSIONED_MUTATION``
    over `DEFAULTS`.

    Settings are read lazily on every call so that ``override_settings`` in
    tests is honoured. When Django settings are not configured (plain
    scripts, DB-free tests) the defaults are returned unchanged.

    Example
    -------
    # settings.py
    VERSIONED_MUTATION = {"MAX_ATTEMPTS": 5, "BACKOFF": "fixed"}
    """
    from django.conf import settings

    values = dict(DEFAULTS)
    if not settings.configured:
        return values

    overrides = getattr(settings, SETTINGS_NAME, None) or {}
    unknown = set(overrides) - set(DEFAULTS)
    if unknown:
        raise InvalidRetryPolicy(
            f"{SETTINGS_NAME}: unknown keys {sorted(unknown)}. "
            f"Available: {sorted(DEFAULTS)}"
        )

    values.update(overrides)
    return values
