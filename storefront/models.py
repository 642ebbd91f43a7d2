"""Key/value store for shop settings editable at runtime by admins."""

from django.db import models


class Setting(models.Model):
    """A single named setting; values are stored as text."""

    FREE_SHIPPING_THRESHOLD = "free_shipping_threshold"
    SHIPPING_FEE = "shipping_fee"

    key = models.CharField(max_length=100, unique=True)
    value = models.TextField()
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["key"]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.key}={self.value}"
