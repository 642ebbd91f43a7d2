from django.apps import AppConfig


class InventoryConfig(AppConfig):
    """App configuration for stock reservation and the movement log."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "inventory"
    verbose_name = "Inventory"
