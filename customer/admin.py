from django.contrib import admin

from .models import Address, Profile


@admin.register(Address)
class AddressAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "name", "city", "zip_code", "country", "is_default")
    search_fields = ("name", "street", "city", "zip_code", "user__email", "user__username")
    ordering = ("-updated_at", "id")


@admin.register(Profile)
class ProfileAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "total_spent", "updated_at")
    search_fields = ("user__email", "user__username")
    readonly_fields = ("total_spent",)
    ordering = ("-updated_at", "id")
