"""Admin registrations for inventory app."""

from django.contrib import admin

from .models import StockMovement


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    list_display = ("id", "product", "variant", "change", "reason", "reference", "user", "created_at")
    list_filter = ("reason",)
    search_fields = ("variant__sku", "product__name", "reference")
    date_hierarchy = "created_at"

    def has_change_permission(self, request, obj=None):
        return False


# EOF
