"""Serializers for customer-facing loyalty data."""

from rest_framework import serializers


class LoyaltyTierSerializer(serializers.Serializer):
    name = serializers.CharField()
    min_spent = serializers.IntegerField()
    percent = serializers.DecimalField(max_digits=5, decimal_places=2)
    description = serializers.CharField()


class LoyaltyStatusSerializer(serializers.Serializer):
    """Current tier, next tier and the spend still missing to reach it."""

    total_spent = serializers.IntegerField()
    tier = LoyaltyTierSerializer()
    next_tier = LoyaltyTierSerializer(allow_null=True)
    missing_for_next = serializers.IntegerField(allow_null=True)
