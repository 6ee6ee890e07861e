from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Any, Literal, Mapping

from .conf import DEFAULTS, get_settings
from .exceptions import InvalidRetryPolicy

Backoff = Literal["none", "fixed", "exponential"]

_BACKOFF_MODES = ("none", "fixed", "exponential")


@dataclass(frozen=True)
class RetryPolicy:
    """
    Decides how many times a version conflict is retried and how long to
    wait between attempts.

    Only conflicts (the conditional update reported ``applied=False``) are
    ever retried. Missing records, failed preconditions and store failures
    end the call immediately.

    Backoff modes
    -------------
    - "none": retry immediately
    - "fixed": wait ``base_delay`` seconds between attempts
    - "exponential" (default): ``base_delay * 2**(attempt - 1)``, capped at
      ``max_delay``

    A uniform random ``jitter`` in ``[0, jitter]`` seconds is added to any
    non-"none" delay to spread out writers that collided together.
    """
    max_attempts: int = DEFAULTS["MAX_ATTEMPTS"]
    backoff: Backoff = DEFAULTS["BACKOFF"]
    base_delay: float = DEFAULTS["BASE_DELAY"]
    max_delay: float = DEFAULTS["MAX_DELAY"]
    jitter: float = DEFAULTS["JITTER"]

    def __post_init__(self) -> None:
        if (
            isinstance(self.max_attempts, bool)
            or not isinstance(self.max_attempts, int)
            or self.max_attempts < 1
        ):
            raise InvalidRetryPolicy(
                f"max_attempts must be a positive integer, got {self.max_attempts!r}"
            )
        if self.backoff not in _BACKOFF_MODES:
            raise InvalidRetryPolicy(
                f"backoff must be one of {_BACKOFF_MODES}, got {self.backoff!r}"
            )
        for name in ("base_delay", "max_delay", "jitter"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InvalidRetryPolicy(f"{name} must be a number, got {value!r}")
            if value < 0:
                raise InvalidRetryPolicy(f"{name} must not be negative")

    def allows_retry(self, attempt: int) -> bool:
        """True if another attempt may follow the ``attempt``-th conflict."""
        return attempt < self.max_attempts

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the ``attempt``-th conflict (1-based)."""
        if self.backoff == "none":
            return 0.0

        if self.backoff == "fixed":
            delay = self.base_delay
        else:
            delay = min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)

        if self.jitter:
            delay += random.uniform(0, self.jitter)
        return delay

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "RetryPolicy":
        """Build a policy from a settings-style mapping (upper-case keys)."""
        merged = {**DEFAULTS, **values}
        return cls(
            max_attempts=merged["MAX_ATTEMPTS"],
            backoff=merged["BACKOFF"],
            base_delay=merged["BASE_DELAY"],
            max_delay=merged["MAX_DELAY"],
            jitter=merged["JITTER"],
        )

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls.from_mapping(get_settings())
