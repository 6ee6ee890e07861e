from .api import RecordStore, VersionedMutator, apply
from .decorators import versioned
from .deltas import Delta, assign, decrement, increment
from .exceptions import InvalidRetryPolicy, StoreFailure, VersionedMutationError
from .outcomes import (
    Applied,
    ConflictExhausted,
    NotFound,
    Outcome,
    PreconditionFailed,
    StoreError,
)
from .records import MutationAttempt, Record
from .reporter import Report, report
from .retry import RetryPolicy

__all__ = [
    "apply",
    "versioned",
    "VersionedMutator",
    "RecordStore",
    "Record",
    "MutationAttempt",
    "RetryPolicy",
    "Delta",
    "decrement",
    "increment",
    "assign",
    "Outcome",
    "Applied",
    "PreconditionFailed",
    "NotFound",
    "ConflictExhausted",
    "StoreError",
    "Report",
    "report",
    "VersionedMutationError",
    "StoreFailure",
    "InvalidRetryPolicy",
]
