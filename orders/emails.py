"""Email receivers for the orders app.

Uses Django's email backend, with links composed from FRONTEND_URL.
"""

import logging

from common.choices import OrderStatus, PaymentMethod
from django.conf import settings
from django.core.mail import send_mail

logger = logging.getLogger("nexu.orders")


def _order_url(order) -> str:
    frontend = getattr(settings, "FRONTEND_URL", "")
    if not frontend:
        return ""
    return f"{frontend.rstrip('/')}/orders/{order.id}"


def _format_amount(value: int) -> str:
    return f"{int(value):,} Ft".replace(",", " ")


def send_order_confirmation(sender, order, totals, **kwargs) -> None:
    """Order confirmation for cash-on-delivery orders.

    Card orders are confirmed once payment succeeds (see ``send_order_paid``).
    """

    if order.payment_method != PaymentMethod.CASH_ON_DELIVERY or not order.customer_email:
        return

    lines = [f"- {item.name} x {item.quantity}: {_format_amount(item.line_total)}" for item in order.items.all()]
    body = (
        f"Dear {order.customer_name},\n\n"
        "Thank you for your order!\n\n"
        f"Order: {order.number}\n" + "\n".join(lines) + "\n\n"
        f"Subtotal: {_format_amount(totals.subtotal)}\n"
        f"Loyalty discount: -{_format_amount(totals.loyalty_discount)}\n"
        f"Coupon discount: -{_format_amount(totals.coupon_discount)}\n"
        f"Shipping: {_format_amount(totals.shipping_cost)}\n"
        f"Total: {_format_amount(totals.total)}\n\n"
        "Payment: cash on delivery\n"
    )
    url = _order_url(order)
    if url:
        body += f"\nYou can view your order here: {url}\n"

    send_mail(
        f"Your order {order.number} has been received",
        body,
        getattr(settings, "DEFAULT_FROM_EMAIL", None),
        [order.customer_email],
    )
    logger.info("order_confirmation_sent", extra={"event": "order_confirmation_sent", "order_id": order.id})


def send_order_paid(sender, order, status_from, status_to, **kwargs) -> None:
    """Payment confirmation when an order moves to ``paid``."""

    if status_to != OrderStatus.PAID or not order.customer_email:
        return

    body = (
        "Thank you for your purchase!\n\n"
        f"Order: {order.number or order.id}\n"
        f"Status: {order.status}\n"
        f"Total: {_format_amount(order.total_price)}\n"
    )
    url = _order_url(order)
    if url:
        body += f"\nYou can view your order here: {url}\n"

    send_mail(
        f"Your order {order.number or order.id} is confirmed",
        body,
        getattr(settings, "DEFAULT_FROM_EMAIL", None),
        [order.customer_email],
    )
