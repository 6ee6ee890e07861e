"""
Declarative deltas: reusable transform + precondition pairs.

A `Delta` can be passed to ``apply`` in place of a transform function; its
precondition is then checked on every attempt alongside any explicit one.

>>> apply("ABC", decrement("quantity", 10), store=store)
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping

Attributes = Mapping[str, Any]
Transform = Callable[[Attributes], Attributes]
Precondition = Callable[[Attributes], bool]


@dataclass(frozen=True)
class Delta:
    transform: Transform
    precondition: Precondition | None = None


def _check_amount(amount: int | float) -> None:
    if amount < 0:
        raise ValueError(f"amount must not be negative, got {amount!r}")


def decrement(field: str, amount: int | float = 1) -> Delta:
    """
    Subtract ``amount`` from ``field``, refusing to go below zero.

    The precondition is ``attributes[field] >= amount``, so an insufficient
    quantity is reported as ``PreconditionFailed`` and never retried.
    """
    _check_amount(amount)

    def transform(attributes: Attributes) -> Attributes:
        return {**attributes, field: attributes.get(field, 0) - amount}

    def precondition(attributes: Attributes) -> bool:
        return attributes.get(field, 0) >= amount

    return Delta(transform=transform, precondition=precondition)


def increment(
    field: str,
    amount: int | float = 1,
    *,
    maximum: int | float | None = None,
) -> Delta:
    """Add ``amount`` to ``field``, optionally bounded by ``maximum``."""
    _check_amount(amount)

    def transform(attributes: Attributes) -> Attributes:
        return {**attributes, field: attributes.get(field, 0) + amount}

    precondition = None
    if maximum is not None:
        def precondition(attributes: Attributes) -> bool:
            return attributes.get(field, 0) + amount <= maximum

    return Delta(transform=transform, precondition=precondition)


def assign(**values: Any) -> Delta:
    """Overwrite the given attributes unconditionally."""
    def transform(attributes: Attributes) -> Attributes:
        return {**attributes, **values}

    return Delta(transform=transform)
