"""Inventory models (single-location).

Stock levels live on ``catalog.Product.stock`` and
``catalog.ProductVariant.stock``; this app only keeps the audit trail of
every change made to them.
"""

from common.choices import MovementReason
from django.conf import settings
from django.db import models


class StockMovement(models.Model):
    REASON_CHOICES = MovementReason.choices

    product = models.ForeignKey(
        "catalog.Product", null=True, blank=True, related_name="stock_movements", on_delete=models.SET_NULL
    )
    variant = models.ForeignKey(
        "catalog.ProductVariant", null=True, blank=True, related_name="stock_movements", on_delete=models.SET_NULL
    )
    change = models.IntegerField()  # signed: +restore/restock, -order/deduction
    reason = models.CharField(max_length=32, choices=REASON_CHOICES)
    reference = models.CharField(max_length=120, blank=True)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        constraints = [
            models.CheckConstraint(name="movement_non_zero", condition=~models.Q(change=0)),
        ]
        indexes = [
            models.Index(fields=["product", "created_at"], name="inventory_mv_product_idx"),
            models.Index(fields=["reference"], name="inventory_mv_reference_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        target = f"variant {self.variant_id}" if self.variant_id else f"product {self.product_id}"
        return f"{self.reason} {self.change:+d} for {target}"
