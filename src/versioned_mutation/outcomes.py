"""
Terminal results of a versioned mutation.

Every call to ``apply`` returns exactly one of these values. They are plain
return values rather than exceptions so that callers handle each case
explicitly:

- `Applied`: the mutation committed
- `PreconditionFailed`: a business rule rejected the request
- `NotFound`: the key does not exist
- `ConflictExhausted`: concurrent writers kept winning the race
- `StoreError`: the store itself failed

All variants carry the ``key`` and the number of ``attempts`` made.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Hashable, Mapping, Union


@dataclass(frozen=True)
class Applied:
    key: Hashable
    new_value: Mapping[str, Any]
    version: int
    attempts: int = 1


@dataclass(frozen=True)
class PreconditionFailed:
    """The current attributes did not satisfy the request's precondition."""
    key: Hashable
    attributes: Mapping[str, Any] = field(default_factory=dict)
    version: int | None = None
    attempts: int = 1


@dataclass(frozen=True)
class NotFound:
    key: Hashable
    attempts: int = 1


@dataclass(frozen=True)
class ConflictExhausted:
    """Every attempt lost its conditional update to another writer."""
    key: Hashable
    attempts: int = 1


@dataclass(frozen=True)
class StoreError:
    key: Hashable
    detail: str = ""
    attempts: int = 1


Outcome = Union[Applied, PreconditionFailed, NotFound, ConflictExhausted, StoreError]
