from django.apps import AppConfig


class StorefrontConfig(AppConfig):
    """App configuration for shop-wide runtime settings."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "storefront"
    verbose_name = "Storefront settings"
