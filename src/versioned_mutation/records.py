from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Hashable, Mapping


@dataclass(frozen=True)
class Record:
    """
    Point-in-time view of a stored record.

    ``attributes`` holds the domain attributes only; the version counter
    lives in ``version`` and is owned by the store.
    """
    key: Hashable
    attributes: Mapping[str, Any] = field(default_factory=dict)
    version: int = 1


@dataclass(frozen=True)
class MutationAttempt:
    """One read-compute-write cycle inside a single ``apply`` call."""
    index: int
    observed_version: int
    new_attributes: Mapping[str, Any]

    @property
    def new_version(self) -> int:
        return self.observed_version + 1
