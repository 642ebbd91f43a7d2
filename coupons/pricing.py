"""Pure coupon discount calculation.

Works on a ``CouponTerms`` snapshot so the calculator never touches the
database. Lines are duck-typed: anything with ``product_id``,
``category_id`` and ``line_total``.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import FrozenSet, Iterable, Optional

from common.choices import DiscountType
from common.money import percent_of, to_minor_units
from django.utils import timezone


@dataclass(frozen=True)
class CouponTerms:
    id: int
    code: str
    discount_type: str
    discount_value: Decimal
    is_active: bool = True
    usage_limit: Optional[int] = None
    used_count: int = 0
    expires_at: Optional[datetime] = None
    min_order_value: Optional[int] = None
    category_id: Optional[int] = None
    product_ids: FrozenSet[int] = frozenset()

    @classmethod
    def from_coupon(cls, coupon) -> "CouponTerms":
        return cls(
            id=coupon.id,
            code=coupon.code,
            discount_type=coupon.discount_type,
            discount_value=Decimal(coupon.discount_value),
            is_active=coupon.is_active,
            usage_limit=coupon.usage_limit,
            used_count=coupon.used_count,
            expires_at=coupon.expires_at,
            min_order_value=coupon.min_order_value,
            category_id=coupon.category_id,
            product_ids=frozenset(coupon.products.values_list("id", flat=True)),
        )

    def is_expired(self, now=None) -> bool:
        return self.expires_at is not None and (now or timezone.now()) > self.expires_at

    def limit_reached(self) -> bool:
        return self.usage_limit is not None and self.used_count >= self.usage_limit

    def is_usable(self, now=None) -> bool:
        return self.is_active and not self.is_expired(now) and not self.limit_reached()

    def is_restricted(self) -> bool:
        return self.category_id is not None or bool(self.product_ids)

    def applies_to(self, line) -> bool:
        """A line is eligible when it satisfies every restriction the coupon declares."""

        if self.category_id is not None and line.category_id != self.category_id:
            return False
        if self.product_ids and line.product_id not in self.product_ids:
            return False
        return True


def eligible_subtotal(terms: CouponTerms, lines: Iterable) -> int:
    return sum(int(line.line_total) for line in lines if terms.applies_to(line))


def compute_coupon_discount(terms: CouponTerms, lines: Iterable, *, subtotal: int, loyalty_discount: int = 0) -> int:
    """Discount in minor units for a usable coupon; usability is the caller's check.

    The discount never exceeds the eligible subtotal nor what remains of the
    subtotal after the loyalty discount.
    """

    lines = list(lines)
    if terms.min_order_value and subtotal < terms.min_order_value:
        return 0
    base = eligible_subtotal(terms, lines)
    if base <= 0:
        return 0
    if terms.discount_type == DiscountType.PERCENTAGE:
        discount = percent_of(base, terms.discount_value)
    else:
        discount = to_minor_units(terms.discount_value)
    remaining = max(0, int(subtotal) - int(loyalty_discount))
    return max(0, min(discount, base, remaining))
