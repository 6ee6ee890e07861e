from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .outcomes import (
    Applied,
    ConflictExhausted,
    NotFound,
    Outcome,
    PreconditionFailed,
    StoreError,
)


@dataclass(frozen=True)
class Report:
    """Caller-facing view of an outcome, shaped for HTTP responses."""
    ok: bool
    status: int
    code: str
    message: str
    retryable: bool
    key: Any = None
    data: dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        payload = {"ok": self.ok, "code": self.code, "detail": self.message}
        if self.key is not None:
            payload["key"] = self.key
        payload.update(self.data)
        return payload


def report(outcome: Outcome) -> Report:
    """
    Map an outcome to a status code, message and retry hint.

    Pure function: no logging, no I/O.

    - Applied: 200, the committed attributes and version
    - PreconditionFailed: 422, caller should not retry
    - NotFound: 404, caller should not retry
    - ConflictExhausted: 409, caller may retry later
    - StoreError: 503, transient or fatal per store semantics
    """
    if isinstance(outcome, Applied):
        return Report(
            ok=True,
            status=200,
            code="applied",
            message="mutation committed",
            retryable=False,
            key=outcome.key,
            data={"value": dict(outcome.new_value), "version": outcome.version},
        )
    if isinstance(outcome, PreconditionFailed):
        return Report(
            ok=False,
            status=422,
            code="precondition_failed",
            message="business rule violated; do not retry",
            retryable=False,
            key=outcome.key,
            data={"value": dict(outcome.attributes), "version": outcome.version},
        )
    if isinstance(outcome, NotFound):
        return Report(
            ok=False,
            status=404,
            code="not_found",
            message="record does not exist",
            retryable=False,
            key=outcome.key,
        )
    if isinstance(outcome, ConflictExhausted):
        return Report(
            ok=False,
            status=409,
            code="conflict_exhausted",
            message=(
                f"concurrent updates won {outcome.attempts} time(s); "
                "retry later"
            ),
            retryable=True,
            key=outcome.key,
            data={"attempts": outcome.attempts},
        )
    if isinstance(outcome, StoreError):
        return Report(
            ok=False,
            status=503,
            code="store_error",
            message=outcome.detail or "store failure",
            retryable=True,
            key=outcome.key,
        )
    raise TypeError(f"Not an outcome: {outcome!r}")
