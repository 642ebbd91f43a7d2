"""Pricing calculator for carts and orders.

``compute_totals`` is pure: it receives already-priced lines, the resolved
shipping settings, the customer's loyalty spend and a coupon snapshot, and
returns the breakdown. ``price_lines`` and ``preview_totals`` do the reads
around it.
"""

from dataclasses import asdict, dataclass, field
from typing import Dict, Iterable, List, Optional

from catalog.selectors import effective_unit_price, get_products, get_variants
from coupons.pricing import CouponTerms, compute_coupon_discount
from coupons.selectors import get_coupon_terms
from customer.loyalty import calculate_loyalty_discount_amount
from customer.selectors import get_total_spent
from django.utils import timezone
from inventory.services import UnknownItemError
from storefront.selectors import PricingSettings, get_pricing_settings


@dataclass(frozen=True)
class CartLine:
    product_id: int
    quantity: int
    variant_id: Optional[int] = None
    selected_options: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class PricedLine:
    """A cart line with its price and name resolved at a point in time."""

    product_id: int
    variant_id: Optional[int]
    name: str
    unit_price: int
    quantity: int
    category_id: Optional[int] = None
    variant_label: str = ""
    selected_options: Dict[str, str] = field(default_factory=dict)

    @property
    def line_total(self) -> int:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class Totals:
    subtotal: int
    loyalty_discount: int
    coupon_discount: int
    shipping_cost: int
    total: int

    def as_dict(self) -> dict:
        return asdict(self)


def price_lines(lines: Iterable[CartLine], now=None) -> List[PricedLine]:
    """Resolve the current unit price and name of every cart line.

    Raises UnknownItemError when a product or variant no longer exists, or
    when a variant belongs to a different product than the line names.
    """

    lines = list(lines)
    now = now or timezone.now()
    products = get_products(line.product_id for line in lines)
    variants = get_variants(line.variant_id for line in lines if line.variant_id)

    priced = []
    for line in lines:
        product = products.get(line.product_id)
        if product is None:
            raise UnknownItemError(product_id=line.product_id)
        variant = None
        if line.variant_id:
            variant = variants.get(line.variant_id)
            if variant is None or variant.product_id != product.id:
                raise UnknownItemError(product_id=line.product_id, variant_id=line.variant_id)
        priced.append(
            PricedLine(
                product_id=product.id,
                variant_id=variant.id if variant else None,
                name=product.name,
                unit_price=effective_unit_price(product, variant, now=now),
                quantity=int(line.quantity),
                category_id=product.category_id,
                variant_label=(variant.label or variant.sku) if variant else "",
                selected_options=dict(line.selected_options or {}),
            )
        )
    return priced


def shipping_cost_for(subtotal: int, pricing_settings: PricingSettings) -> int:
    if subtotal >= pricing_settings.free_shipping_threshold:
        return 0
    return pricing_settings.shipping_fee


def compute_totals(
    priced_lines: Iterable[PricedLine],
    pricing_settings: PricingSettings,
    total_spent: Optional[int] = None,
    coupon: Optional[CouponTerms] = None,
    now=None,
    coupon_discount: Optional[int] = None,
) -> Totals:
    """Compute the checkout breakdown.

    ``total = max(0, subtotal - loyalty - coupon) + shipping``. The coupon
    contributes nothing unless it is usable at ``now``. A caller that already
    holds the ledger's authoritative discount passes it as
    ``coupon_discount`` instead of a coupon.
    """

    priced_lines = list(priced_lines)
    subtotal = sum(line.line_total for line in priced_lines)
    loyalty = calculate_loyalty_discount_amount(subtotal, total_spent)

    if coupon_discount is None:
        coupon_discount = 0
        if coupon is not None and coupon.is_usable(now):
            coupon_discount = compute_coupon_discount(
                coupon, priced_lines, subtotal=subtotal, loyalty_discount=loyalty
            )

    shipping = shipping_cost_for(subtotal, pricing_settings)
    total = max(0, subtotal - loyalty - coupon_discount) + shipping
    return Totals(
        subtotal=subtotal,
        loyalty_discount=loyalty,
        coupon_discount=coupon_discount,
        shipping_cost=shipping,
        total=total,
    )


def preview_totals(lines: Iterable[CartLine], user_id: Optional[int] = None, coupon_code: Optional[str] = None):
    """Live cart preview: reads only, never mutates.

    An unknown or unusable coupon simply contributes no discount. Returns
    ``(priced_lines, totals)``.
    """

    now = timezone.now()
    priced = price_lines(lines, now=now)
    coupon = get_coupon_terms(coupon_code) if coupon_code else None
    totals = compute_totals(
        priced,
        get_pricing_settings(),
        total_spent=get_total_spent(user_id),
        coupon=coupon,
        now=now,
    )
    return priced, totals
