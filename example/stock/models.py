from django.db import models


class Stock(models.Model):
    """
    Minimal stock model used to demonstrate lost updates and optimistic locking.

    ``version`` is bumped by exactly one on every committed mutation; the
    versioned endpoint only writes when it still matches what it read.
    """

    sku = models.CharField(max_length=64, unique=True)
    quantity = models.IntegerField(default=0)
    version = models.PositiveIntegerField(default=1)

    def __str__(self) -> str:
        return f"{self.sku} ({self.quantity}, v{self.version})"
