from rest_framework import serializers

from .models import Coupon


class CouponCheckSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=40)
    cart_total = serializers.IntegerField(min_value=0)
    product_ids = serializers.ListField(child=serializers.IntegerField(min_value=1), allow_empty=True, default=list)

    def validate_code(self, value: str) -> str:
        value = value.strip()
        if not value:
            raise serializers.ValidationError("This field may not be blank.")
        return value


class CouponSerializer(serializers.ModelSerializer):
    """Public view of a coupon: no usage counters."""

    category = serializers.IntegerField(source="category_id", read_only=True, allow_null=True)
    products = serializers.PrimaryKeyRelatedField(many=True, read_only=True)

    class Meta:
        model = Coupon
        fields = ["code", "discount_type", "discount_value", "min_order_value", "expires_at", "category", "products"]
        read_only_fields = fields
