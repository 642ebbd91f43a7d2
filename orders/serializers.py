"""DRF serializers for Orders.

Input serializers validate cart and checkout payloads before any
transaction opens; output serializers expose the persisted snapshot.
"""

from common.choices import OrderStatus, PaymentMethod
from rest_framework import serializers

from .models import Order, OrderItem
from .pricing import CartLine
from .state import status_label


class CartLineSerializer(serializers.Serializer):
    product_id = serializers.IntegerField(min_value=1)
    variant_id = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    quantity = serializers.IntegerField(min_value=1, max_value=1000)
    selected_options = serializers.DictField(child=serializers.CharField(), required=False, default=dict)


class CartSerializer(serializers.Serializer):
    items = CartLineSerializer(many=True, allow_empty=False)

    def cart_lines(self):
        return [
            CartLine(
                product_id=item["product_id"],
                variant_id=item.get("variant_id"),
                quantity=item["quantity"],
                selected_options=dict(item.get("selected_options") or {}),
            )
            for item in self.validated_data["items"]
        ]


class PreviewSerializer(CartSerializer):
    coupon_code = serializers.CharField(max_length=40, required=False, allow_blank=True, allow_null=True)


class AddressSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=120)
    street = serializers.CharField(max_length=200)
    city = serializers.CharField(max_length=80)
    zip_code = serializers.CharField(max_length=12)
    country = serializers.CharField(max_length=80, required=False, allow_blank=True)
    phone_number = serializers.CharField(max_length=32, required=False, allow_blank=True)


class CheckoutSerializer(PreviewSerializer):
    customer_name = serializers.CharField(max_length=200)
    customer_email = serializers.EmailField()
    customer_phone = serializers.CharField(max_length=32)
    customer_address = serializers.CharField()
    billing_name = serializers.CharField(max_length=200, required=False, allow_blank=True, allow_null=True)
    billing_address = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    tax_number = serializers.CharField(max_length=32, required=False, allow_blank=True, allow_null=True)
    payment_method = serializers.ChoiceField(choices=PaymentMethod.choices)
    save_address = serializers.BooleanField(required=False, default=False)
    address = AddressSerializer(required=False, allow_null=True)

    def validate(self, attrs):
        if attrs.get("save_address") and not attrs.get("address"):
            raise serializers.ValidationError({"address": "Address is required when save_address is set."})
        return attrs


class TotalsSerializer(serializers.Serializer):
    subtotal = serializers.IntegerField()
    loyalty_discount = serializers.IntegerField()
    coupon_discount = serializers.IntegerField()
    shipping_cost = serializers.IntegerField()
    total = serializers.IntegerField()


class PricedLineSerializer(serializers.Serializer):
    product_id = serializers.IntegerField()
    variant_id = serializers.IntegerField(allow_null=True)
    name = serializers.CharField()
    unit_price = serializers.IntegerField()
    quantity = serializers.IntegerField()
    line_total = serializers.IntegerField()


class CartIssueSerializer(serializers.Serializer):
    kind = serializers.CharField()
    product_id = serializers.IntegerField()
    variant_id = serializers.IntegerField(allow_null=True)
    message = serializers.CharField()
    requested = serializers.IntegerField()
    available = serializers.IntegerField(allow_null=True)


class OrderItemSerializer(serializers.ModelSerializer):
    """Order line with its snapshot price; ``line_total`` is price times quantity."""

    line_total = serializers.IntegerField(read_only=True)

    class Meta:
        model = OrderItem
        fields = ["id", "product", "variant", "name", "price", "quantity", "selected_options", "line_total"]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)
    status_display = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            "id",
            "number",
            "status",
            "status_display",
            "customer_name",
            "customer_email",
            "customer_phone",
            "customer_address",
            "billing_name",
            "billing_address",
            "tax_number",
            "payment_method",
            "subtotal",
            "shipping_cost",
            "loyalty_discount",
            "discount_amount",
            "total_price",
            "coupon_code",
            "created_at",
            "items",
        ]
        read_only_fields = fields

    def get_status_display(self, obj: Order) -> str:
        return status_label(obj.status)


class AdminOrderSerializer(OrderSerializer):
    class Meta(OrderSerializer.Meta):
        fields = OrderSerializer.Meta.fields + ["user", "updated_at"]
        read_only_fields = fields


class StatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=OrderStatus.choices)


class PaymentWebhookSerializer(serializers.Serializer):
    order_id = serializers.IntegerField(min_value=1)
    event = serializers.CharField(max_length=64)

    def validate_event(self, value: str) -> str:
        if value.lower() not in {"payment_succeeded", "payment.succeeded"}:
            raise serializers.ValidationError("Unsupported event")
        return value.lower()
