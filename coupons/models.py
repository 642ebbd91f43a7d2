"""Coupon model.

``used_count`` is only ever changed through the conditional updates in
``coupons.services``; never assign it from application code.
"""

from decimal import Decimal

from common.choices import DiscountType
from django.db import models
from django.db.models import F, Q


def normalize_code(code) -> str:
    """Canonical form of a coupon code: stripped and upper-cased."""

    return str(code or "").strip().upper()


class TimeStampedModel(models.Model):
    """Abstract base model adding created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Coupon(TimeStampedModel):
    """Discount code, optionally scoped to a category and/or a product set."""

    DISCOUNT_CHOICES = DiscountType.choices

    code = models.CharField(max_length=40, unique=True)
    discount_type = models.CharField(max_length=16, choices=DISCOUNT_CHOICES, default=DiscountType.PERCENTAGE)
    discount_value = models.DecimalField(max_digits=12, decimal_places=2)
    is_active = models.BooleanField(default=True)
    usage_limit = models.PositiveIntegerField(null=True, blank=True)
    used_count = models.PositiveIntegerField(default=0)
    expires_at = models.DateTimeField(null=True, blank=True)
    min_order_value = models.PositiveIntegerField(null=True, blank=True)
    category = models.ForeignKey(
        "catalog.Category", null=True, blank=True, related_name="coupons", on_delete=models.SET_NULL
    )
    products = models.ManyToManyField("catalog.Product", blank=True, related_name="coupons")

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(name="coupon_used_count_non_negative", condition=Q(used_count__gte=0)),
            models.CheckConstraint(
                name="coupon_used_count_within_limit",
                condition=Q(usage_limit__isnull=True) | Q(used_count__lte=F("usage_limit")),
            ),
            models.CheckConstraint(name="coupon_discount_value_positive", condition=Q(discount_value__gt=0)),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return self.code

    def save(self, *args, **kwargs):
        self.code = normalize_code(self.code)
        super().save(*args, **kwargs)

    @property
    def value(self) -> Decimal:
        return Decimal(self.discount_value)
