"""Serializers for inventory domain.

Input validation for manual adjustments and read-only movement rows.
"""

from common.choices import MovementReason
from rest_framework import serializers

from .models import StockMovement


class StockAdjustmentSerializer(serializers.Serializer):
    """Manual restock or correction for a product or one of its variants."""

    product_id = serializers.IntegerField(min_value=1)
    variant_id = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    change = serializers.IntegerField()
    reason = serializers.ChoiceField(
        choices=[MovementReason.MANUAL_ADJUSTMENT, MovementReason.RESTOCK],
        default=MovementReason.MANUAL_ADJUSTMENT,
    )
    reference = serializers.CharField(max_length=64, required=False, allow_blank=True, default="")

    def validate_change(self, value: int) -> int:
        if value == 0:
            raise serializers.ValidationError("Change must be non-zero")
        return value


class StockMovementSerializer(serializers.ModelSerializer):
    """Read-only representation of stock movements."""

    class Meta:
        model = StockMovement
        fields = [
            "id",
            "product",
            "variant",
            "change",
            "reason",
            "reference",
            "user",
            "created_at",
        ]
        read_only_fields = fields


# EOF
