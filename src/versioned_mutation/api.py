from __future__ import annotations

import logging
import time
from typing import Any, Callable, Hashable, Mapping, Protocol

from .deltas import Delta, Precondition, Transform
from .exceptions import StoreFailure
from .outcomes import (
    Applied,
    ConflictExhausted,
    NotFound,
    Outcome,
    PreconditionFailed,
    StoreError,
)
from .records import MutationAttempt, Record
from .retry import RetryPolicy

logger = logging.getLogger(__name__)


class RecordStore(Protocol):
    """
    Protocol describing the minimal store interface.

    Any keyed store offering an atomic compare-and-swap on a version field
    satisfies it (a SQL ``UPDATE ... WHERE version = %s``, a document
    database conditional write, ...). The engine relies on
    ``conditional_update`` being atomic in the store itself; it never
    emulates that with locks of its own.

    Adapters raise `StoreFailure` when the store cannot answer.
    """
    def fetch(self, key: Hashable) -> Record | None: ...

    def conditional_update(
        self,
        key: Hashable,
        expected_version: int,
        new_attributes: Mapping[str, Any],
        new_version: int,
    ) -> bool: ...


def _combine(*checks: Precondition | None) -> Precondition | None:
    active = [check for check in checks if check is not None]
    if not active:
        return None
    if len(active) == 1:
        return active[0]
    return lambda attributes: all(check(attributes) for check in active)


class VersionedMutator:
    """
    Applies read-check-write mutations to a `RecordStore` using optimistic
    locking.

    Each attempt reads the record and its version, checks the precondition,
    computes the new attributes and asks the store to write them only if the
    version is still the one that was read. Losing that race costs one round
    trip; the policy then decides whether to try again with a fresh read.

    No lock is held between the read and the write, and the mutator keeps no
    per-call state on ``self``, so one instance may be shared by any number
    of threads.

    Parameters
    ----------
    store : RecordStore
        Adapter for the persistent store.

    policy : RetryPolicy | None
        Retry/backoff policy. Defaults to ``RetryPolicy.from_settings()``.

    sleep, clock : callables
        Injected for tests; default to ``time.sleep`` and ``time.monotonic``.
    """

    def __init__(
        self,
        store: RecordStore,
        policy: RetryPolicy | None = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.store = store
        self.policy = policy or RetryPolicy.from_settings()
        self._sleep = sleep
        self._clock = clock

    def apply(
        self,
        key: Hashable,
        transform: Transform | Delta,
        precondition: Precondition | None = None,
        *,
        timeout: float | None = None,
    ) -> Outcome:
        """
        Apply ``transform`` to the record stored under ``key``.

        Parameters
        ----------
        key : Hashable
            Record identifier.

        transform : callable | Delta
            Pure function mapping the current attributes to the new ones,
            or a `Delta` bundling a transform with its own precondition.

        precondition : callable | None
            Business rule over the current attributes. When it returns a
            falsy value the call ends with `PreconditionFailed` without
            writing and without consuming a retry.

        timeout : float | None
            Optional budget in seconds, checked before every attempt and
            before each backoff sleep. When the next attempt could not start
            in time the call ends with `ConflictExhausted` without touching
            the store again. An update already sent is never abandoned.

        Returns
        -------
        Outcome
            One of `Applied`, `PreconditionFailed`, `NotFound`,
            `ConflictExhausted` or `StoreError`. Expected conditions are
            never raised.
        """
        if isinstance(transform, Delta):
            precondition = _combine(transform.precondition, precondition)
            transform = transform.transform

        deadline = None if timeout is None else self._clock() + timeout
        policy = self.policy

        for attempt in range(1, policy.max_attempts + 1):
            if deadline is not None and self._clock() >= deadline:
                logger.warning(
                    "Timeout of %ss reached for key=%r before attempt %d",
                    timeout, key, attempt,
                )
                return ConflictExhausted(key=key, attempts=attempt - 1)

            try:
                record = self.store.fetch(key)
            except StoreFailure as e:
                logger.warning(
                    "Store fetch failed for key=%r on attempt %d",
                    key, attempt, exc_info=True,
                )
                return StoreError(key=key, detail=str(e), attempts=attempt)

            if record is None:
                return NotFound(key=key, attempts=attempt)

            if precondition is not None and not precondition(dict(record.attributes)):
                return PreconditionFailed(
                    key=key,
                    attributes=dict(record.attributes),
                    version=record.version,
                    attempts=attempt,
                )

            pending = MutationAttempt(
                index=attempt,
                observed_version=record.version,
                new_attributes=dict(transform(dict(record.attributes))),
            )

            try:
                applied = self.store.conditional_update(
                    key,
                    pending.observed_version,
                    pending.new_attributes,
                    pending.new_version,
                )
            except StoreFailure as e:
                logger.warning(
                    "Conditional update failed for key=%r on attempt %d",
                    key, attempt, exc_info=True,
                )
                return StoreError(key=key, detail=str(e), attempts=attempt)

            if applied:
                return Applied(
                    key=key,
                    new_value=pending.new_attributes,
                    version=pending.new_version,
                    attempts=attempt,
                )

            logger.debug(
                "Version conflict on key=%r: expected version %d, attempt %d/%d",
                key, pending.observed_version, attempt, policy.max_attempts,
            )

            if not policy.allows_retry(attempt):
                break

            delay = policy.delay_for(attempt)
            if deadline is not None and self._clock() + delay >= deadline:
                logger.warning(
                    "Timeout of %ss reached for key=%r after %d attempt(s)",
                    timeout, key, attempt,
                )
                return ConflictExhausted(key=key, attempts=attempt)

            if delay > 0:
                self._sleep(delay)

        logger.warning(
            "Version conflict unresolved for key=%r after %d attempt(s)",
            key, policy.max_attempts,
        )
        return ConflictExhausted(key=key, attempts=policy.max_attempts)


def apply(
    key: Hashable,
    transform: Transform | Delta,
    precondition: Precondition | None = None,
    *,
    store: RecordStore,
    policy: RetryPolicy | None = None,
    timeout: float | None = None,
) -> Outcome:
    """
    Apply a versioned mutation to ``key`` in ``store``.

    Shortcut for ``VersionedMutator(store, policy).apply(...)``.

    Example
    -------
    >>> outcome = apply(
    ...     "stock:ABC",
    ...     lambda attrs: {**attrs, "quantity": attrs["quantity"] - 10},
    ...     lambda attrs: attrs["quantity"] >= 10,
    ...     store=store,
    ... )
    >>> if isinstance(outcome, Applied):
    ...     ship(outcome.new_value)
    """
    return VersionedMutator(store, policy).apply(
        key, transform, precondition, timeout=timeout
    )
