"""
Exception hierarchy for versioned_mutation.

Expected conditions (missing record, failed precondition, exhausted
conflicts, store failure) are reported as outcomes returned by ``apply``.
The exceptions defined here cover the remaining cases:

- store adapters raise `StoreFailure` to signal infrastructure problems,
  which the engine converts into a ``StoreError`` outcome
- `InvalidRetryPolicy` is raised for bad retry configuration

Catch `VersionedMutationError` to handle any failure raised by the library.
"""


class VersionedMutationError(Exception):
    """
    Base exception for all versioned_mutation errors.

    Example
    -------
    >>> try:
    ...     policy = RetryPolicy.from_settings()
    ... except VersionedMutationError:
    ...     handle_failure()
    """

    #: Stable error code for programmatic handling.
    code: str = "versioned_mutation_error"

    def __init__(self, message: str | None = None) -> None:
        if message is None:
            message = "An unspecified versioned_mutation error occurred."
        super().__init__(message)


class StoreFailure(VersionedMutationError):
    """
    Raised by a store adapter when the underlying store cannot serve a
    fetch or conditional update (connection lost, timeout, constraint
    violation, ...).

    The engine never retries these; they surface as ``StoreError`` outcomes
    so callers can decide whether to retry at a higher level.

    Example
    -------
    >>> try:
    ...     rows = queryset.update(**values)
    ... except DatabaseError as e:
    ...     raise StoreFailure(str(e)) from e
    """

    code: str = "store_failure"


class InvalidRetryPolicy(VersionedMutationError, ValueError):
    """
    Raised when a retry policy is constructed with invalid parameters,
    either directly or from the ``VERSIONED_MUTATION`` Django setting.
    """

    code: str = "invalid_retry_policy"
