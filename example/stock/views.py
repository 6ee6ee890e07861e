from __future__ import annotations

import time

from django.http import HttpRequest, HttpResponse, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from versioned_mutation import VersionedMutator, decrement, report
from versioned_mutation.backends.django_orm import DjangoModelStore

from .models import Stock


def _quantity(request: HttpRequest) -> int:
    try:
        return max(1, int(request.GET.get("qty", 1)))
    except ValueError:
        return 1


@csrf_exempt  # demo-only: curl-friendly
@require_POST
def buy_bad(request: HttpRequest, sku: str) -> HttpResponse:
    """
    Intentionally unsafe endpoint to demonstrate a lost update.

    Two concurrent requests can both read the same quantity and both write
    back their own result, so one sale silently disappears.
    """
    qty = _quantity(request)
    stock = Stock.objects.get(sku=sku)

    if stock.quantity < qty:
        return JsonResponse(
            {"ok": False, "sku": sku, "qty": stock.quantity, "detail": "out of stock"},
            status=422,
        )

    # Artificial delay to make the race condition easy to reproduce.
    time.sleep(0.8)

    stock.quantity -= qty
    stock.save(update_fields=["quantity"])

    return JsonResponse({"ok": True, "sku": sku, "qty": stock.quantity})


class SlowStore(DjangoModelStore):
    """Keeps the same delay as buy_bad between the read and the write."""

    def fetch(self, key):
        record = super().fetch(key)
        time.sleep(0.8)
        return record


stock_store = SlowStore(Stock, lookup_field="sku", fields=["quantity"])


@csrf_exempt  # demo-only: curl-friendly
@require_POST
def buy_versioned(request: HttpRequest, sku: str) -> HttpResponse:
    """
    Safe endpoint using optimistic locking.

    No lock is held while "processing": the write only lands if the row's
    version is unchanged, otherwise the purchase is re-read and retried.
    Retries are bounded by the VERSIONED_MUTATION setting; a request that
    keeps losing gets a 409 and may try again later.
    """
    outcome = VersionedMutator(stock_store).apply(
        sku, decrement("quantity", _quantity(request))
    )
    result = report(outcome)
    return JsonResponse(result.as_dict(), status=result.status)
