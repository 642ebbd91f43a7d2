from unittest import mock

import pytest
from catalog.tests.factories import ProductFactory, ProductVariantFactory
from common.choices import MovementReason, OrderStatus, PaymentMethod
from coupons.tests.factories import CouponFactory
from customer.tests.factories import StaffUserFactory, UserFactory
from inventory.models import StockMovement
from orders.models import Order
from orders.pricing import CartLine
from orders.services import (
    OrderForbiddenError,
    OrderNotFoundError,
    cancel_order,
    create_order,
    mark_paid,
    update_order_status,
)
from orders.state import InvalidTransitionError
from orders.tests.factories import CUSTOMER, OrderFactory

pytestmark = pytest.mark.django_db


@pytest.fixture
def placed():
    """A pending order for a signed-in user, with a coupon and a variant line."""

    user = UserFactory()
    product = ProductFactory(price=1000, stock=5)
    variant = ProductVariantFactory(price=500, stock=3)
    coupon = CouponFactory(code="SAVE10", usage_limit=5, used_count=2)
    result = create_order(
        [
            CartLine(product_id=product.id, quantity=2),
            CartLine(product_id=variant.product_id, variant_id=variant.id, quantity=3),
        ],
        customer=CUSTOMER,
        payment_method=PaymentMethod.CASH_ON_DELIVERY,
        coupon_code="SAVE10",
        user_id=user.id,
    )
    return user, product, variant, coupon, result.order


def test_cancel_restores_stock_and_coupon(placed):
    user, product, variant, coupon, order = placed
    coupon.refresh_from_db()
    assert coupon.used_count == 3

    cancelled = cancel_order(order.id, requested_by=user.id)

    assert cancelled.status == OrderStatus.CANCELLED
    product.refresh_from_db()
    variant.refresh_from_db()
    coupon.refresh_from_db()
    assert product.stock == 5
    assert variant.stock == 3
    assert coupon.used_count == 2
    # kept for audit
    assert Order.objects.get(id=order.id).items.count() == 2
    restored = StockMovement.objects.filter(reference=order.number, reason=MovementReason.ORDER_CANCELLED)
    assert sorted(restored.values_list("change", flat=True)) == [2, 3]


def test_double_cancel_is_rejected_without_side_effects(placed):
    user, product, _, coupon, order = placed
    cancel_order(order.id, requested_by=user.id)
    movements = StockMovement.objects.count()

    with pytest.raises(InvalidTransitionError):
        cancel_order(order.id, requested_by=user.id)

    product.refresh_from_db()
    coupon.refresh_from_db()
    assert product.stock == 5
    assert coupon.used_count == 2
    assert StockMovement.objects.count() == movements


def test_paid_order_cannot_be_cancelled(placed):
    user, product, _, _, order = placed
    mark_paid(order.id)

    with pytest.raises(InvalidTransitionError) as exc:
        cancel_order(order.id, requested_by=user.id)

    assert exc.value.current == OrderStatus.PAID
    product.refresh_from_db()
    assert product.stock == 3
    assert Order.objects.get(id=order.id).status == OrderStatus.PAID


def test_cancel_checks_ownership(placed):
    _, product, _, _, order = placed

    with pytest.raises(OrderForbiddenError):
        cancel_order(order.id, requested_by=UserFactory().id)
    with pytest.raises(OrderForbiddenError):
        cancel_order(order.id, requested_by=None)
    with pytest.raises(OrderNotFoundError):
        cancel_order(999999, requested_by=None)

    product.refresh_from_db()
    assert product.stock == 3


def test_guest_orders_only_cancel_through_privileged_path():
    product = ProductFactory(stock=2)
    order = create_order(
        [CartLine(product_id=product.id, quantity=2)],
        customer=CUSTOMER,
        payment_method=PaymentMethod.CASH_ON_DELIVERY,
    ).order

    with pytest.raises(OrderForbiddenError):
        cancel_order(order.id, requested_by=UserFactory().id)

    staff = StaffUserFactory()
    cancel_order(order.id, requested_by=staff.id, privileged=True)
    product.refresh_from_db()
    assert product.stock == 2


def test_cancel_skips_deleted_products():
    product = ProductFactory(stock=1)
    kept = ProductFactory(stock=1)
    user = UserFactory()
    order = create_order(
        [CartLine(product_id=product.id, quantity=1), CartLine(product_id=kept.id, quantity=1)],
        customer=CUSTOMER,
        payment_method=PaymentMethod.CASH_ON_DELIVERY,
        user_id=user.id,
    ).order
    product.delete()

    cancel_order(order.id, requested_by=user.id)

    kept.refresh_from_db()
    assert kept.stock == 1
    assert Order.objects.get(id=order.id).status == OrderStatus.CANCELLED


def test_status_update_walks_forward_only(placed):
    _, product, _, coupon, order = placed

    assert update_order_status(order.id, "paid").status == OrderStatus.PAID
    with pytest.raises(InvalidTransitionError):
        update_order_status(order.id, "completed")
    assert update_order_status(order.id, "shipped").status == OrderStatus.SHIPPED
    assert update_order_status(order.id, "completed").status == OrderStatus.COMPLETED

    # forward moves never touch stock or coupons
    product.refresh_from_db()
    coupon.refresh_from_db()
    assert product.stock == 3
    assert coupon.used_count == 3


def test_status_update_never_cancels(placed):
    _, product, _, _, order = placed
    with pytest.raises(InvalidTransitionError):
        update_order_status(order.id, "cancelled")
    with pytest.raises(InvalidTransitionError):
        update_order_status(order.id, "refunded")
    assert Order.objects.get(id=order.id).status == OrderStatus.PENDING
    product.refresh_from_db()
    assert product.stock == 3


def test_status_update_unknown_order():
    with pytest.raises(OrderNotFoundError):
        update_order_status(123456, "paid")


def test_stale_status_read_is_rejected():
    order = OrderFactory(status=OrderStatus.PAID)
    stale = Order.objects.get(id=order.id)
    Order.objects.filter(id=order.id).update(status=OrderStatus.CANCELLED)

    with mock.patch("orders.services.get_order", return_value=stale):
        with pytest.raises(InvalidTransitionError) as exc:
            update_order_status(order.id, "shipped")

    assert exc.value.current == OrderStatus.CANCELLED
    assert Order.objects.get(id=order.id).status == OrderStatus.CANCELLED
