from __future__ import annotations

from typing import Any, Hashable, Iterable, Mapping

from django.core.exceptions import ImproperlyConfigured
from django.db import DatabaseError, router, transaction

from ..exceptions import StoreFailure
from ..records import Record


class DjangoModelStore:
    """
    Record store backed by a Django model with an integer version column.

    This adapter maps the two store operations onto single SQL statements:

    - fetch: ``SELECT ... WHERE <lookup> = %s``
    - conditional_update:
      ``UPDATE ... SET ..., version = %s WHERE <lookup> = %s AND version = %s``

    The database evaluates the version comparison and the write as one
    statement, which is what makes the compare-and-swap atomic. The update
    counts as applied iff exactly one row changed. The update runs in
    ``transaction.atomic``; should it ever match more than one row it is
    rolled back and reported as `StoreFailure`.

    Parameters
    ----------
    model : type[models.Model]
        Model class holding the records.

    lookup_field : str, default="pk"
        Field used as the record key, e.g. "sku". Must be the primary key
        or declared ``unique=True``; anything else raises
        ``ImproperlyConfigured``.

    version_field : str, default="version"
        Integer field holding the record version.

    fields : Iterable[str] | None
        Attributes exposed to transforms. Defaults to every concrete field
        except the version field.

    using : str | None
        Database alias for both reads and writes. Defaults to the router's
        write database.

    Notes
    -----
    The primary key, the lookup field and the version field are never
    written from transformed attributes; only the version is set, and only
    by `conditional_update`.

    Example
    -------
    >>> store = DjangoModelStore(Stock, lookup_field="sku")
    >>> apply("ABC", decrement("quantity", 1), store=store)
    """

    def __init__(
        self,
        model: Any,
        *,
        lookup_field: str = "pk",
        version_field: str = "version",
        fields: Iterable[str] | None = None,
        using: str | None = None,
    ) -> None:
        self.model = model
        self.lookup_field = lookup_field
        self.version_field = version_field
        self.fields = tuple(fields) if fields is not None else None
        self.using = using

        pk_name = model._meta.pk.attname
        lookup = pk_name if lookup_field == "pk" else lookup_field

        field = model._meta.get_field(lookup)
        if not (field.primary_key or field.unique):
            raise ImproperlyConfigured(
                f"DjangoModelStore: lookup_field '{lookup_field}' on "
                f"{model.__name__} must be the primary key or unique=True."
            )
        self._protected = {pk_name, model._meta.pk.name, lookup, version_field}

    def _alias(self) -> str:
        # Reads use the write database so every re-read sees the latest version.
        return self.using or router.db_for_write(self.model)

    def _queryset(self):
        return self.model._default_manager.using(self._alias())

    def fetch(self, key: Hashable) -> Record | None:
        columns = (*self.fields, self.version_field) if self.fields is not None else ()

        try:
            row = (
                self._queryset()
                .filter(**{self.lookup_field: key})
                .values(*columns)
                .first()
            )
        except DatabaseError as e:
            raise StoreFailure(f"fetch failed for key={key!r}: {e}") from e

        if row is None:
            return None

        version = row.pop(self.version_field)
        return Record(key=key, attributes=row, version=version)

    def conditional_update(
        self,
        key: Hashable,
        expected_version: int,
        new_attributes: Mapping[str, Any],
        new_version: int,
    ) -> bool:
        values = {
            name: value
            for name, value in new_attributes.items()
            if name not in self._protected
        }
        values[self.version_field] = new_version

        try:
            with transaction.atomic(using=self._alias()):
                rows = (
                    self._queryset()
                    .filter(**{self.lookup_field: key, self.version_field: expected_version})
                    .update(**values)
                )
                if rows > 1:
                    raise StoreFailure(
                        f"conditional update matched {rows} rows for key={key!r}; "
                        "changes rolled back"
                    )
        except DatabaseError as e:
            raise StoreFailure(f"conditional update failed for key={key!r}: {e}") from e

        return rows == 1
