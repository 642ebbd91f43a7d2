from django.apps import AppConfig


class CouponsConfig(AppConfig):
    """App configuration for coupons and their usage ledger."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "coupons"
    verbose_name = "Coupons"
