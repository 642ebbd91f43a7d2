"""Order lifecycle services.

Checkout and cancellation each run as one ``transaction.atomic()`` block:
every stock, coupon and order write inside it commits together or not at
all. Side effects (emails, payment metadata) hang off signals that fire
only after commit.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional

from common.choices import OrderStatus
from common.errors import DomainError
from coupons import services as coupon_ledger
from coupons.models import normalize_code
from coupons.selectors import get_coupon_terms
from customer.selectors import get_total_spent
from customer.services import save_address_if_new
from django.db import transaction
from django.utils import timezone
from inventory import services as inventory
from storefront.selectors import get_pricing_settings

from .models import Order, OrderItem
from .pricing import CartLine, Totals, compute_totals, price_lines
from .signals import order_created, order_status_changed, send_after_commit
from .state import InvalidTransitionError, ensure_transition, parse_status

logger = logging.getLogger("nexu.orders")

CUSTOMER_FIELDS = (
    "customer_name",
    "customer_email",
    "customer_phone",
    "customer_address",
    "billing_name",
    "billing_address",
    "tax_number",
)


class OrderNotFoundError(DomainError):
    code = "NOT_FOUND"


class OrderForbiddenError(DomainError):
    code = "FORBIDDEN"


@dataclass(frozen=True)
class CheckoutResult:
    order: Order
    totals: Totals


def _order_number(order_id: int) -> str:
    return f"ORD-{int(order_id):06d}"


def create_order(
    lines: Iterable[CartLine],
    *,
    customer: Mapping,
    payment_method: str,
    coupon_code: Optional[str] = None,
    user_id: Optional[int] = None,
    save_address: bool = False,
    address: Optional[Mapping] = None,
) -> CheckoutResult:
    """Turn a cart into a persisted pending order.

    Prices and names are resolved and stock is pre-checked before the
    transaction opens. Inside it the coupon is re-validated and counted,
    the order and its items are written with snapshotted prices, and stock
    is decremented with conditional updates. Any failure rolls back all of it.

    Raises UnknownItemError, InsufficientStockError (stock visibly short),
    StockConflictError (lost a race), or InvalidCouponError /
    CouponLimitReachedError when a coupon that priced a discount stops being
    usable before it is counted.
    """

    now = timezone.now()
    priced = price_lines(lines, now=now)
    inventory.check_availability(priced)

    pricing_settings = get_pricing_settings()
    total_spent = get_total_spent(user_id)
    code = normalize_code(coupon_code) or None

    # An unknown, unusable or non-applicable coupon prices at zero here and is
    # left off the order. Only a discounting coupon goes through the ledger,
    # which re-reads it inside the transaction.
    preview = compute_totals(
        priced,
        pricing_settings,
        total_spent=total_spent,
        coupon=get_coupon_terms(code) if code else None,
        now=now,
    )

    with transaction.atomic():
        reservation = None
        if code and preview.coupon_discount > 0:
            reservation = coupon_ledger.validate_and_reserve(
                code,
                priced,
                subtotal=preview.subtotal,
                loyalty_discount=preview.loyalty_discount,
                now=now,
            )
        totals = compute_totals(
            priced,
            pricing_settings,
            total_spent=total_spent,
            coupon_discount=reservation.discount if reservation else 0,
        )

        order = Order.objects.create(
            user_id=user_id,
            status=OrderStatus.PENDING,
            payment_method=payment_method,
            subtotal=totals.subtotal,
            shipping_cost=totals.shipping_cost,
            loyalty_discount=totals.loyalty_discount,
            discount_amount=totals.coupon_discount,
            total_price=totals.total,
            coupon_id=reservation.coupon_id if reservation else None,
            coupon_code=reservation.code if reservation else "",
            **{name: customer.get(name) or "" for name in CUSTOMER_FIELDS},
        )
        order.number = _order_number(order.id)
        order.save(update_fields=["number"])

        OrderItem.objects.bulk_create(
            [
                OrderItem(
                    order=order,
                    product_id=line.product_id,
                    variant_id=line.variant_id,
                    name=line.name,
                    price=line.unit_price,
                    quantity=line.quantity,
                    selected_options=line.selected_options,
                )
                for line in priced
            ]
        )

        inventory.reserve(priced, reference=order.number, user_id=user_id)

        if save_address and user_id and address:
            save_address_if_new(user_id, address)

        send_after_commit(order_created, sender=Order, order=order, totals=totals)

    logger.info(
        "order_created",
        extra={
            "event": "order_created",
            "order_id": order.id,
            "order_number": order.number,
            "user_id": user_id,
            "total": totals.total,
            "coupon": order.coupon_code or None,
            "payment_method": payment_method,
        },
    )
    return CheckoutResult(order=order, totals=totals)


def get_order(order_id) -> Order:
    order = Order.objects.filter(id=order_id).first()
    if order is None:
        raise OrderNotFoundError(f"Order {order_id} not found")
    return order


def cancel_order(order_id, requested_by: Optional[int] = None, privileged: bool = False) -> Order:
    """Cancel a pending order and give back its stock and coupon use.

    Owners may cancel their own orders; guest orders only through the
    ``privileged`` (staff) path. The order and its items are kept. The
    pending check is the conditional update itself, so of two racing
    cancellations only one runs the compensation.
    """

    order = get_order(order_id)
    if not privileged and (order.user_id is None or order.user_id != requested_by):
        raise OrderForbiddenError("You cannot cancel this order")

    with transaction.atomic():
        updated = Order.objects.filter(id=order.id, status=OrderStatus.PENDING).update(
            status=OrderStatus.CANCELLED, updated_at=timezone.now()
        )
        if updated == 0:
            current = Order.objects.values_list("status", flat=True).get(id=order.id)
            raise InvalidTransitionError(current, OrderStatus.CANCELLED)

        inventory.release(list(order.items.all()), reference=order.number or "", user_id=requested_by)
        if order.coupon_id:
            coupon_ledger.release(order.coupon_id)

        order.refresh_from_db()
        send_after_commit(
            order_status_changed,
            sender=Order,
            order=order,
            status_from=OrderStatus.PENDING,
            status_to=OrderStatus.CANCELLED,
        )

    logger.info(
        "order_cancelled",
        extra={
            "event": "order_cancelled",
            "order_id": order.id,
            "user_id": order.user_id,
            "requested_by": requested_by,
            "privileged": privileged,
            "coupon_released": bool(order.coupon_id),
        },
    )
    return order


def update_order_status(order_id, status, changed_by: Optional[int] = None) -> Order:
    """Move an order forward through the state machine.

    Never touches stock or coupons. Cancellation is not accepted here; it
    always goes through ``cancel_order``.
    """

    order = get_order(order_id)
    target = parse_status(status)
    if target is None or target == OrderStatus.CANCELLED:
        raise InvalidTransitionError(order.status, status)
    previous = order.status
    ensure_transition(previous, target)

    with transaction.atomic():
        updated = Order.objects.filter(id=order.id, status=previous).update(status=target, updated_at=timezone.now())
        if updated == 0:
            # Someone else moved the order since it was read
            current = Order.objects.values_list("status", flat=True).get(id=order.id)
            raise InvalidTransitionError(current, target)
        order.refresh_from_db()
        send_after_commit(order_status_changed, sender=Order, order=order, status_from=previous, status_to=target)

    logger.info(
        "order_status_changed",
        extra={
            "event": "order_status_changed",
            "order_id": order.id,
            "user_id": order.user_id,
            "status_from": previous,
            "status_to": str(target),
            "changed_by": changed_by,
        },
    )
    return order


def mark_paid(order_id) -> Order:
    """Payment provider callback: a pending order becomes paid."""

    return update_order_status(order_id, OrderStatus.PAID)
