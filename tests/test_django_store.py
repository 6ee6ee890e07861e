"""
Django ORM store integration tests.

These run the engine against a real database table:
- PostgreSQL when DATABASE_URL is set (CI, docker compose)
- otherwise a throwaway SQLite file
"""

import threading

import pytest

from versioned_mutation import (
    Applied,
    NotFound,
    PreconditionFailed,
    RetryPolicy,
    StoreError,
    VersionedMutator,
    decrement,
)

NO_BACKOFF = RetryPolicy(max_attempts=3, backoff="none")


_stock_model = None


def _get_stock_model():
    """Define the demo model lazily, after Django is configured."""
    global _stock_model

    if _stock_model is None:
        from django.db import models

        class Stock(models.Model):
            sku = models.CharField(max_length=64, unique=True)
            quantity = models.IntegerField(default=0)
            version = models.PositiveIntegerField(default=1)

            class Meta:
                app_label = "versioned_mutation_tests"

        _stock_model = Stock

    return _stock_model


@pytest.fixture(scope="module")
def stock_model(django_configured):
    from django.db import connection

    model = _get_stock_model()
    with connection.schema_editor() as editor:
        editor.create_model(model)
    yield model
    with connection.schema_editor() as editor:
        editor.delete_model(model)
    connection.close()


@pytest.fixture
def store(stock_model):
    from versioned_mutation.backends.django_orm import DjangoModelStore

    stock_model.objects.all().delete()
    stock_model.objects.create(sku="ABC", quantity=100, version=1)
    return DjangoModelStore(stock_model, lookup_field="sku", fields=["quantity"])


def test_fetch_returns_attributes_and_version(store):
    record = store.fetch("ABC")

    assert record.key == "ABC"
    assert record.attributes == {"quantity": 100}
    assert record.version == 1
    assert store.fetch("XYZ") is None


def test_fetch_without_fields_exposes_all_columns_but_version(stock_model):
    from versioned_mutation.backends.django_orm import DjangoModelStore

    stock_model.objects.all().delete()
    stock_model.objects.create(sku="ABC", quantity=7, version=4)

    record = DjangoModelStore(stock_model, lookup_field="sku").fetch("ABC")

    assert record.version == 4
    assert record.attributes["quantity"] == 7
    assert record.attributes["sku"] == "ABC"
    assert "version" not in record.attributes


def test_conditional_update_is_gated_on_version(store, stock_model):
    assert store.conditional_update("ABC", 2, {"quantity": 1}, 3) is False
    row = stock_model.objects.get(sku="ABC")
    assert (row.quantity, row.version) == (100, 1)

    assert store.conditional_update("ABC", 1, {"quantity": 90}, 2) is True
    row.refresh_from_db()
    assert (row.quantity, row.version) == (90, 2)


def test_protected_columns_are_never_written(store, stock_model):
    assert store.conditional_update(
        "ABC", 1, {"quantity": 1, "sku": "HIJACK", "version": 99, "id": 12345}, 2
    )

    row = stock_model.objects.get(sku="ABC")
    assert (row.quantity, row.version) == (1, 2)


def test_sequential_decrements(store, stock_model):
    mutator = VersionedMutator(store, NO_BACKOFF)

    first = mutator.apply("ABC", decrement("quantity", 10))
    second = mutator.apply("ABC", decrement("quantity", 10))

    assert first == Applied(key="ABC", new_value={"quantity": 90}, version=2)
    assert second == Applied(key="ABC", new_value={"quantity": 80}, version=3)
    row = stock_model.objects.get(sku="ABC")
    assert (row.quantity, row.version) == (80, 3)


def test_conflict_with_another_writer_is_retried(store, stock_model):
    competed = threading.Event()
    inner_fetch = store.fetch

    def fetch_then_compete(key):
        record = inner_fetch(key)
        if not competed.is_set():
            competed.set()
            stock_model.objects.filter(sku=key).update(quantity=90, version=2)
        return record

    store.fetch = fetch_then_compete
    outcome = VersionedMutator(store, NO_BACKOFF).apply("ABC", decrement("quantity", 10))

    assert outcome == Applied(key="ABC", new_value={"quantity": 80}, version=3, attempts=2)


def test_insufficient_quantity_and_missing_rows(store, stock_model):
    mutator = VersionedMutator(store, NO_BACKOFF)

    assert isinstance(mutator.apply("ABC", decrement("quantity", 500)), PreconditionFailed)
    assert isinstance(mutator.apply("XYZ", decrement("quantity", 1)), NotFound)
    assert stock_model.objects.get(sku="ABC").version == 1


def test_database_errors_become_store_errors(stock_model):
    from django.db import models

    from versioned_mutation.backends.django_orm import DjangoModelStore

    class Ghost(models.Model):
        version = models.PositiveIntegerField(default=1)

        class Meta:
            app_label = "versioned_mutation_tests"
            db_table = "versioned_mutation_missing_table"
            managed = False

    broken = DjangoModelStore(Ghost)
    outcome = VersionedMutator(broken, NO_BACKOFF).apply(1, decrement("quantity", 1))

    assert isinstance(outcome, StoreError)


def test_non_unique_lookup_field_is_rejected(stock_model):
    from django.core.exceptions import ImproperlyConfigured

    from versioned_mutation.backends.django_orm import DjangoModelStore

    with pytest.raises(ImproperlyConfigured):
        DjangoModelStore(stock_model, lookup_field="quantity")


def test_update_matching_several_rows_is_rolled_back(store, stock_model):
    from versioned_mutation import StoreFailure

    stock_model.objects.create(sku="XYZ", quantity=100, version=1)
    # Simulate a lookup column that lost its uniqueness after the store was built.
    store.lookup_field = "quantity"

    with pytest.raises(StoreFailure):
        store.conditional_update(100, 1, {"quantity": 0}, 2)

    rows = sorted(stock_model.objects.values_list("sku", "quantity", "version"))
    assert rows == [("ABC", 100, 1), ("XYZ", 100, 1)]


def test_reads_use_the_write_database(store, monkeypatch):
    from versioned_mutation.backends import django_orm

    # A replica alias that does not exist: any read routed there would fail.
    monkeypatch.setattr(django_orm.router, "db_for_read", lambda model, **hints: "replica")

    record = store.fetch("ABC")

    assert record.version == 1
    outcome = VersionedMutator(store, NO_BACKOFF).apply("ABC", decrement("quantity", 1))
    assert outcome == Applied(key="ABC", new_value={"quantity": 99}, version=2)


def test_empty_fields_expose_no_attributes(stock_model):
    from versioned_mutation.backends.django_orm import DjangoModelStore

    stock_model.objects.all().delete()
    stock_model.objects.create(sku="ABC", quantity=7, version=4)

    record = DjangoModelStore(stock_model, lookup_field="sku", fields=[]).fetch("ABC")

    assert record.attributes == {}
    assert record.version == 4
