from django.contrib import admin

from .models import IdempotencyKey, Order, OrderItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    fields = ("product", "variant", "name", "price", "quantity", "selected_options")
    readonly_fields = fields
    can_delete = False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("id", "number", "status", "user", "customer_email", "payment_method", "total_price", "created_at")
    list_filter = ("status", "payment_method", "created_at")
    search_fields = ("number", "customer_email", "customer_name", "coupon_code")
    date_hierarchy = "created_at"
    inlines = [OrderItemInline]
    # Status changes go through the API so stock and coupons stay consistent
    readonly_fields = (
        "status",
        "subtotal",
        "shipping_cost",
        "loyalty_discount",
        "discount_amount",
        "total_price",
        "coupon",
        "coupon_code",
    )


@admin.register(IdempotencyKey)
class IdempotencyKeyAdmin(admin.ModelAdmin):
    list_display = ("id", "key", "scope", "path", "method", "response_code", "created_at")
    list_filter = ("method", "response_code", "created_at")
    search_fields = ("key", "scope", "path")
    date_hierarchy = "created_at"
