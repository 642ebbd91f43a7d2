"""Selectors for inventory domain (single-location)."""

from typing import Optional

from catalog.models import Product, ProductVariant

from .models import StockMovement


def current_stock(*, product_id: Optional[int] = None, variant_id: Optional[int] = None) -> int:
    """Return on-hand stock for a variant, or for a product when no variant is given.

    Missing rows count as zero stock.
    """

    if variant_id:
        stock = ProductVariant.objects.filter(id=variant_id).values_list("stock", flat=True).first()
    else:
        stock = Product.objects.filter(id=product_id).values_list("stock", flat=True).first()
    return int(stock or 0)


def movements_for_reference(reference: str):
    """Movements recorded under a reference such as an order number, oldest first."""

    return list(StockMovement.objects.filter(reference=reference).order_by("created_at", "id"))


def list_movements(*, product_id=None, variant_id=None, reason=None, reference=None, created_after=None):
    qs = StockMovement.objects.select_related("product", "variant").order_by("-created_at", "-id")
    if product_id:
        qs = qs.filter(product_id=product_id)
    if variant_id:
        qs = qs.filter(variant_id=variant_id)
    if reason:
        qs = qs.filter(reason=reason)
    if reference:
        qs = qs.filter(reference=reference)
    if created_after:
        qs = qs.filter(created_at__gte=created_after)
    return qs


# EOF
