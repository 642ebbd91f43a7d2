"""Selectors for the catalog domain.

Read-only lookups used by pricing and checkout. Selectors return model
instances or plain mappings and never write.
"""

from typing import Dict, Iterable, Optional

from .models import Product, ProductVariant


def get_product(product_id: int) -> Optional[Product]:
    """Return a single product by id, or None if it no longer exists."""

    return Product.objects.filter(id=product_id).first()


def get_variant(variant_id: int) -> Optional[ProductVariant]:
    """Return a single variant by id, or None if it no longer exists."""

    return ProductVariant.objects.select_related("product").filter(id=variant_id).first()


def get_products(product_ids: Iterable[int]) -> Dict[int, Product]:
    """Return the existing products among ``product_ids`` keyed by id."""

    ids = set(product_ids)
    if not ids:
        return {}
    return {p.id: p for p in Product.objects.filter(id__in=ids)}


def get_variants(variant_ids: Iterable[int]) -> Dict[int, ProductVariant]:
    """Return the existing variants among ``variant_ids`` keyed by id."""

    ids = set(variant_ids)
    if not ids:
        return {}
    return {v.id: v for v in ProductVariant.objects.filter(id__in=ids)}


def effective_unit_price(product: Product, variant: Optional[ProductVariant] = None, now=None) -> int:
    """Resolve the unit price a cart line pays right now.

    A variant's own price supersedes the product's. Without a variant, an
    active sale price wins over the base price.
    """

    if variant is not None:
        return int(variant.price)
    if product.sale_active(now):
        return int(product.sale_price)
    return int(product.price)
