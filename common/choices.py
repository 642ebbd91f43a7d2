"""Shared enumerations and choices used across apps."""

from django.db import models


class OrderStatus(models.TextChoices):
    """Lifecycle statuses for orders (persisted wire values)."""

    PENDING = "pending", "Pending"
    PAID = "paid", "Paid"
    SHIPPED = "shipped", "Shipped"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"


class PaymentMethod(models.TextChoices):
    CASH_ON_DELIVERY = "cod", "Cash on delivery"
    STRIPE = "stripe", "Card (Stripe)"


class DiscountType(models.TextChoices):
    PERCENTAGE = "PERCENTAGE", "Percentage"
    FIXED = "FIXED", "Fixed amount"


class MovementReason(models.TextChoices):
    """Why a stock level changed; recorded on every stock movement."""

    ORDER_PLACED = "ORDER_PLACED", "Order placed"
    ORDER_CANCELLED = "ORDER_CANCELLED", "Order cancelled"
    MANUAL_ADJUSTMENT = "MANUAL_ADJUSTMENT", "Manual adjustment"
    RESTOCK = "RESTOCK", "Restock"
