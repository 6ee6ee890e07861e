from __future__ import annotations

from functools import wraps
from inspect import signature
from typing import Any, Callable, Hashable, Mapping

from .api import RecordStore, VersionedMutator
from .outcomes import Outcome
from .retry import RetryPolicy


def _resolve_key(
    key: str | Callable[..., Hashable],
    fn: Callable[..., Any],
    args: tuple[Any, ...],
    kwargs: dict[str, Any],
) -> Hashable:
    """
    Resolve a record key from either:
    - a format string: "stock:{sku}"
    - a callable: lambda sku, qty: f"stock:{sku}"

    ``fn`` takes the current attributes as its first parameter, which the
    caller never passes. We bind a placeholder for it, then drop it so that
    templates only see the caller's arguments.
    """
    if callable(key):
        return key(*args, **kwargs)

    params = list(signature(fn).parameters)
    bound = signature(fn).bind_partial(None, *args, **kwargs)
    bound.apply_defaults()
    values: Mapping[str, Any] = {
        name: value for name, value in bound.arguments.items() if name != params[0]
    }

    try:
        return key.format(**values)
    except KeyError as e:
        missing = e.args[0]
        raise KeyError(
            f"versioned: key template references '{missing}', "
            f"but it is not present in the function arguments. "
            f"Available: {sorted(values.keys())}"
        ) from e


def versioned(
    *,
    store: RecordStore,
    key: str | Callable[..., Hashable],
    precondition: Callable[..., bool] | None = None,
    policy: RetryPolicy | None = None,
    timeout: float | None = None,
):
    """
    Decorator turning an attribute transform into a versioned mutation.

    The decorated function receives the current attributes followed by the
    caller's arguments and returns the new attributes. Calling it runs the
    full optimistic-locking protocol and returns an outcome.

    Examples
    --------
    @versioned(
        store=stock_store,
        key="{sku}",
        precondition=lambda attrs, sku, qty: attrs["quantity"] >= qty,
    )
    def sell(attrs, sku, qty):
        return {**attrs, "quantity": attrs["quantity"] - qty}

    outcome = sell("ABC", qty=10)
    """
    def decorator(fn: Callable[..., Mapping[str, Any]]):
        @wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Outcome:
            resolved_key = _resolve_key(key, fn, args, kwargs)

            def transform(attributes: Mapping[str, Any]) -> Mapping[str, Any]:
                return fn(attributes, *args, **kwargs)

            check = None
            if precondition is not None:
                def check(attributes: Mapping[str, Any]) -> bool:
                    return precondition(attributes, *args, **kwargs)

            mutator = VersionedMutator(store, policy)
            return mutator.apply(resolved_key, transform, check, timeout=timeout)

        return wrapper

    return decorator
