"""Catalog app models.

Catalog data is managed elsewhere (admin/import tooling); the checkout
engine only reads prices and names and moves ``stock`` through
``inventory.services``.
"""

from django.db import models
from django.utils import timezone


class TimeStampedModel(models.Model):
    """Abstract base model adding created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Category(TimeStampedModel):
    """Flat product categorization, used for coupon scoping."""

    name = models.CharField(max_length=120)
    slug = models.SlugField(max_length=140, unique=True)
    is_active = models.BooleanField(default=True, db_index=True)

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "categories"

    def __str__(self) -> str:  # pragma: no cover
        return self.name


class Product(TimeStampedModel):
    """Sellable product.

    Prices are integers in minor units. ``stock`` is the on-hand quantity for
    purchases that do not name a variant.
    """

    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=220, unique=True)
    category = models.ForeignKey(
        Category, related_name="products", null=True, blank=True, on_delete=models.SET_NULL
    )
    price = models.PositiveIntegerField()
    sale_price = models.PositiveIntegerField(null=True, blank=True)
    sale_start = models.DateTimeField(null=True, blank=True)
    sale_end = models.DateTimeField(null=True, blank=True)
    stock = models.IntegerField(default=0)
    is_archived = models.BooleanField(default=False)

    class Meta:
        ordering = ["name"]
        constraints = [
            models.CheckConstraint(name="product_stock_non_negative", condition=models.Q(stock__gte=0)),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return self.name

    def sale_active(self, now=None) -> bool:
        """Return True when a sale price is set and its window covers ``now``."""

        if self.sale_price is None:
            return False
        now = now or timezone.now()
        if self.sale_start and now < self.sale_start:
            return False
        if self.sale_end and now > self.sale_end:
            return False
        return True


class ProductVariant(TimeStampedModel):
    """Attribute combination of a product (e.g. color + size).

    ``attributes`` is a free-form ordered mapping of string to string; it is
    never interpreted by the checkout code.
    """

    product = models.ForeignKey(Product, related_name="variants", on_delete=models.CASCADE)
    sku = models.CharField(max_length=64, unique=True)
    price = models.PositiveIntegerField()
    stock = models.IntegerField(default=0)
    attributes = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ["sku"]
        constraints = [
            models.CheckConstraint(name="variant_stock_non_negative", condition=models.Q(stock__gte=0)),
        ]
        indexes = [
            models.Index(fields=["product"], name="catalog_variant_product_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.product.name} [{self.sku}]"

    @property
    def label(self) -> str:
        """Human readable attribute summary, e.g. ``Color: Black, Size: M``."""

        return ", ".join(f"{key}: {value}" for key, value in (self.attributes or {}).items())
