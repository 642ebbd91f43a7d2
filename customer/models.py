"""Customer domain models.

Holds the loyalty state kept per user and the saved shipping addresses
offered at checkout.
"""

from django.conf import settings
from django.db import models

DEFAULT_COUNTRY = "Magyarország"


class TimeStampedModel(models.Model):
    """Abstract base model adding created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Address(TimeStampedModel):
    """Saved shipping address tied to a user.

    Two addresses of a user are duplicates when name, street, city, zip code
    and country all match exactly.
    """

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="addresses")
    name = models.CharField(max_length=120)
    street = models.CharField(max_length=200)
    city = models.CharField(max_length=80)
    zip_code = models.CharField(max_length=12)
    country = models.CharField(max_length=80, default=DEFAULT_COUNTRY)
    phone_number = models.CharField(max_length=32, blank=True)
    is_default = models.BooleanField(default=False)

    class Meta:
        indexes = [
            models.Index(fields=["user", "city"], name="customer_addr_user_city_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["user", "name", "street", "city", "zip_code", "country"],
                name="unique_address_per_user",
            )
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.name} - {self.zip_code} {self.city}, {self.street} ({self.country})"


class Profile(TimeStampedModel):
    """Per-user loyalty state.

    ``total_spent`` is the cumulative value (minor units) of the user's
    paid, shipped and completed orders. It is maintained by
    ``customer.services.refresh_total_spent`` and only read at checkout.
    """

    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="profile")
    total_spent = models.PositiveBigIntegerField(default=0)

    def __str__(self) -> str:  # pragma: no cover
        return f"Profile<{self.user_id}> spent={self.total_spent}"
