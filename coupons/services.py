"""Coupon ledger: validation and race-safe usage accounting.

``validate_and_reserve`` runs inside the checkout transaction and is the
authoritative check; preview-time coupon reads are advisory only.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from catalog.models import Product
from common.errors import DomainError
from django.db import transaction
from django.db.models import F, Q
from django.utils import timezone

from .models import Coupon, normalize_code
from .pricing import CouponTerms, compute_coupon_discount

logger = logging.getLogger("nexu.coupons")


class InvalidCouponError(DomainError):
    """Coupon is unknown, inactive, expired or not applicable to the cart.

    ``reason`` names the failed check: ``unknown``, ``inactive``, ``expired``,
    ``min_order_value``, ``category`` or ``products``.
    """

    code = "INVALID_COUPON"

    def __init__(self, message: str, *, reason: str = "unknown"):
        self.reason = reason
        super().__init__(message)

    def as_body(self) -> dict:
        body = super().as_body()
        body["reason"] = self.reason
        return body


class CouponLimitReachedError(DomainError):
    code = "COUPON_LIMIT_REACHED"


@dataclass(frozen=True)
class CouponReservation:
    coupon_id: int
    code: str
    discount: int


def _ensure_usable(terms: Optional[CouponTerms], code: str, now) -> CouponTerms:
    if terms is None:
        raise InvalidCouponError(f"Unknown coupon: {code}", reason="unknown")
    if not terms.is_active:
        raise InvalidCouponError(f"Coupon {terms.code} is no longer active", reason="inactive")
    if terms.limit_reached():
        raise CouponLimitReachedError(f"Coupon {terms.code} has reached its usage limit")
    if terms.is_expired(now):
        raise InvalidCouponError(f"Coupon {terms.code} has expired", reason="expired")
    return terms


@transaction.atomic
def validate_and_reserve(
    code,
    priced_lines: Iterable,
    *,
    subtotal: int,
    loyalty_discount: int = 0,
    now=None,
) -> Optional[CouponReservation]:
    """Re-validate the coupon against a fresh read and count one use.

    Returns None when the coupon is valid but contributes no discount for
    this cart; nothing is reserved in that case.
    """

    now = now or timezone.now()
    normalized = normalize_code(code)
    coupon = Coupon.objects.filter(code=normalized).first()
    terms = _ensure_usable(CouponTerms.from_coupon(coupon) if coupon else None, normalized, now)

    discount = compute_coupon_discount(terms, priced_lines, subtotal=subtotal, loyalty_discount=loyalty_discount)
    if discount <= 0:
        return None

    updated = (
        Coupon.objects.filter(id=terms.id, is_active=True)
        .filter(Q(usage_limit__isnull=True) | Q(used_count__lt=F("usage_limit")))
        .filter(Q(expires_at__isnull=True) | Q(expires_at__gt=now))
        .update(used_count=F("used_count") + 1, updated_at=now)
    )
    if updated == 0:
        logger.info("coupon_limit_reached", extra={"event": "coupon_limit_reached", "coupon": terms.code})
        raise CouponLimitReachedError(f"Coupon {terms.code} has reached its usage limit")

    logger.info(
        "coupon_reserved",
        extra={"event": "coupon_reserved", "coupon": terms.code, "coupon_id": terms.id, "discount": discount},
    )
    return CouponReservation(coupon_id=terms.id, code=terms.code, discount=discount)


def release(coupon_id: int) -> bool:
    """Give back one use of a coupon; never drops ``used_count`` below zero."""

    updated = Coupon.objects.filter(id=coupon_id, used_count__gt=0).update(
        used_count=F("used_count") - 1, updated_at=timezone.now()
    )
    if updated == 0:
        logger.warning("coupon_release_skipped", extra={"event": "coupon_release_skipped", "coupon_id": coupon_id})
        return False
    logger.info("coupon_released", extra={"event": "coupon_released", "coupon_id": coupon_id})
    return True


def check_coupon(code, cart_total: int, product_ids: Iterable[int], now=None) -> Coupon:
    """Explicit "apply coupon" check for the checkout form.

    Raises a specific error per failed rule. Category and product restrictions
    only need one matching product in the cart here; the discount itself is
    computed per eligible line by the pricing calculator.
    """

    now = now or timezone.now()
    normalized = normalize_code(code)
    coupon = Coupon.objects.select_related("category").filter(code=normalized).first()
    terms = _ensure_usable(CouponTerms.from_coupon(coupon) if coupon else None, normalized, now)

    if terms.min_order_value and int(cart_total) < terms.min_order_value:
        raise InvalidCouponError(
            f"Coupon {terms.code} needs an order of at least {terms.min_order_value}",
            reason="min_order_value",
        )

    product_ids = {int(pid) for pid in product_ids}
    if terms.category_id is not None:
        in_category = Product.objects.filter(id__in=product_ids, category_id=terms.category_id).exists()
        if not in_category:
            raise InvalidCouponError(
                f"Coupon {terms.code} only applies to the {coupon.category.name} category",
                reason="category",
            )
    if terms.product_ids and not (product_ids & terms.product_ids):
        names = ", ".join(coupon.products.order_by("name").values_list("name", flat=True))
        raise InvalidCouponError(f"Coupon {terms.code} only applies to: {names}", reason="products")
    return coupon
