"""Customer domain services for mutations.

Keep business rules here and keep views thin.
"""

import logging
from typing import Mapping, Optional

from common.choices import OrderStatus
from django.db import IntegrityError, transaction
from django.db.models import Sum

from .models import DEFAULT_COUNTRY, Address, Profile
from .selectors import find_matching_address

logger = logging.getLogger("nexu.customer")

SPENDING_STATUSES = (OrderStatus.PAID, OrderStatus.SHIPPED, OrderStatus.COMPLETED)


def save_address_if_new(user_id: int, address: Mapping) -> Optional[Address]:
    """Store a shipping address for the user unless an identical one exists.

    ``address`` needs ``name``, ``street``, ``city`` and ``zip_code``; when any
    of them is missing nothing is saved and None is returned. ``country``
    defaults to the shop's home country. Returns the new or existing address.
    """

    name = address.get("name")
    street = address.get("street")
    city = address.get("city")
    zip_code = address.get("zip_code")
    if not (name and street and city and zip_code):
        return None
    country = address.get("country") or DEFAULT_COUNTRY

    existing = find_matching_address(user_id, name=name, street=street, city=city, zip_code=zip_code, country=country)
    if existing is not None:
        return existing
    try:
        # Savepoint: a concurrent duplicate must not abort the caller's transaction
        with transaction.atomic():
            return Address.objects.create(
                user_id=user_id,
                name=name,
                street=street,
                city=city,
                zip_code=zip_code,
                country=country,
                phone_number=address.get("phone_number") or "",
                is_default=False,
            )
    except IntegrityError:
        return find_matching_address(user_id, name=name, street=street, city=city, zip_code=zip_code, country=country)


def refresh_total_spent(user_id: int) -> int:
    """Recompute a user's loyalty spend from their paid and later orders.

    Returns the stored total.
    """

    from orders.models import Order

    total = (
        Order.objects.filter(user_id=user_id, status__in=SPENDING_STATUSES).aggregate(total=Sum("total_price"))[
            "total"
        ]
        or 0
    )
    profile, _ = Profile.objects.get_or_create(user_id=user_id)
    if profile.total_spent != total:
        profile.total_spent = total
        profile.save(update_fields=["total_spent", "updated_at"])
        logger.info(
            "loyalty_spend_updated",
            extra={"event": "loyalty_spend_updated", "user_id": user_id, "total": total},
        )
    return int(total)
