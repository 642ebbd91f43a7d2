"""Read-only coupon lookups."""

from typing import Optional

from .models import Coupon, normalize_code
from .pricing import CouponTerms


def get_coupon(code) -> Optional[Coupon]:
    """Return the coupon for ``code`` (case-insensitive), or None."""

    normalized = normalize_code(code)
    if not normalized:
        return None
    return Coupon.objects.select_related("category").filter(code=normalized).first()


def get_coupon_terms(code) -> Optional[CouponTerms]:
    coupon = get_coupon(code)
    return CouponTerms.from_coupon(coupon) if coupon is not None else None
