"""Read-only data access helpers for the customer app."""

from typing import Optional

from .models import Address, Profile


def get_profile(user_id: int) -> Optional[Profile]:
    """Return a profile for the given user id, if it exists."""

    return Profile.objects.filter(user_id=user_id).first()


def get_total_spent(user_id: Optional[int]) -> Optional[int]:
    """Return the loyalty spend for a user.

    None for anonymous checkouts; zero for users without a profile yet.
    """

    if not user_id:
        return None
    value = Profile.objects.filter(user_id=user_id).values_list("total_spent", flat=True).first()
    return int(value or 0)


def find_matching_address(user_id: int, *, name, street, city, zip_code, country) -> Optional[Address]:
    """Return the user's saved address with exactly these fields, if any."""

    return Address.objects.filter(
        user_id=user_id, name=name, street=street, city=city, zip_code=zip_code, country=country
    ).first()
