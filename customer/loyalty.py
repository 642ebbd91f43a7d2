"""Loyalty tiers: cumulative spend mapped to a percentage discount."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from common.money import percent_of


@dataclass(frozen=True)
class LoyaltyTier:
    name: str
    min_spent: int
    percent: Decimal
    description: str


LOYALTY_TIERS = (
    LoyaltyTier("Starter", 0, Decimal("0"), "Entry level"),
    LoyaltyTier("Bronze", 50_000, Decimal("2"), "2% off every purchase"),
    LoyaltyTier("Silver", 200_000, Decimal("4"), "4% off every purchase"),
    LoyaltyTier("Gold", 400_000, Decimal("6"), "6% off every purchase"),
    LoyaltyTier("Platinum", 800_000, Decimal("8"), "8% off every purchase"),
    LoyaltyTier("Diamond", 1_000_000, Decimal("10"), "10% off every purchase"),
)


def get_loyalty_tier(total_spent: int) -> LoyaltyTier:
    """Return the highest tier whose threshold ``total_spent`` reaches."""

    for tier in reversed(LOYALTY_TIERS):
        if total_spent >= tier.min_spent:
            return tier
    return LOYALTY_TIERS[0]


def get_next_loyalty_tier(total_spent: int) -> Optional[LoyaltyTier]:
    for tier in LOYALTY_TIERS:
        if total_spent < tier.min_spent:
            return tier
    return None


def calculate_loyalty_discount_amount(subtotal: int, total_spent: Optional[int]) -> int:
    """Discount in minor units for a cart ``subtotal``; zero without history."""

    if total_spent is None:
        return 0
    tier = get_loyalty_tier(total_spent)
    if not tier.percent:
        return 0
    return percent_of(subtotal, tier.percent)
