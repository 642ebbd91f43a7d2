import logging
from datetime import timedelta
from decimal import Decimal
from unittest import mock

import pytest
from catalog.models import Product
from catalog.tests.factories import ProductFactory, ProductVariantFactory
from common.choices import MovementReason, OrderStatus, PaymentMethod
from coupons.models import Coupon
from coupons.pricing import CouponTerms
from coupons.services import CouponLimitReachedError, InvalidCouponError
from coupons.tests.factories import CouponFactory
from customer.models import Address
from customer.tests.factories import ProfileFactory, UserFactory
from django.core import mail
from django.utils import timezone
from inventory.models import StockMovement
from inventory.services import InsufficientStockError, StockConflictError, UnknownItemError
from orders.models import Order, OrderItem
from orders.pricing import CartLine
from orders.services import create_order
from orders.signals import order_created
from orders.tests.factories import CUSTOMER

pytestmark = pytest.mark.django_db


def checkout(lines, **kwargs):
    kwargs.setdefault("customer", CUSTOMER)
    kwargs.setdefault("payment_method", PaymentMethod.CASH_ON_DELIVERY)
    return create_order(lines, **kwargs)


@pytest.fixture
def cart():
    product = ProductFactory(name="Product A", price=1000, stock=5)
    variant = ProductVariantFactory(price=500, stock=3)
    lines = [
        CartLine(product_id=product.id, quantity=2),
        CartLine(product_id=variant.product_id, variant_id=variant.id, quantity=1, selected_options={"Size": "M"}),
    ]
    return product, variant, lines


def test_checkout_persists_snapshot_and_reserves_stock(cart):
    product, variant, lines = cart

    result = checkout(lines)

    order = result.order
    assert order.status == OrderStatus.PENDING
    assert order.number == f"ORD-{order.id:06d}"
    assert (order.subtotal, order.shipping_cost, order.total_price) == (2500, 2990, 5490)
    assert result.totals.total == 5490
    assert order.customer_email == CUSTOMER["customer_email"]
    assert order.user_id is None

    items = list(order.items.order_by("id"))
    assert [(i.product_id, i.variant_id, i.price, i.quantity) for i in items] == [
        (product.id, None, 1000, 2),
        (variant.product_id, variant.id, 500, 1),
    ]
    assert items[0].name == "Product A"
    assert items[1].selected_options == {"Size": "M"}

    product.refresh_from_db()
    variant.refresh_from_db()
    assert product.stock == 3
    assert variant.stock == 2
    movements = StockMovement.objects.filter(reference=order.number, reason=MovementReason.ORDER_PLACED)
    assert sorted(movements.values_list("change", flat=True)) == [-2, -1]


def test_checkout_with_coupon_reaches_limit(cart):
    _, _, lines = cart
    coupon = CouponFactory(code="SAVE10", discount_value=Decimal("10"), usage_limit=5, used_count=4)

    result = checkout(lines, coupon_code=" save10 ")

    assert result.totals.coupon_discount == 250
    assert result.order.total_price == 5240
    assert result.order.discount_amount == 250
    assert result.order.coupon_id == coupon.id
    assert result.order.coupon_code == "SAVE10"
    coupon.refresh_from_db()
    assert coupon.used_count == 5

    # Exhausted coupons price at zero, so the next order goes through at full price
    second = checkout(lines, coupon_code="SAVE10")
    assert second.order.coupon_id is None
    assert second.order.discount_amount == 0
    assert second.order.total_price == 5490
    coupon.refresh_from_db()
    assert coupon.used_count == 5


@pytest.mark.parametrize("code", ["NOPE", "OFF", "OLD"])
def test_unusable_coupon_checks_out_without_discount(cart, code):
    _, _, lines = cart
    CouponFactory(code="OFF", is_active=False)
    CouponFactory(code="OLD", expires_at=timezone.now() - timedelta(days=1))

    result = checkout(lines, coupon_code=code)

    assert result.order.coupon_id is None
    assert result.order.coupon_code == ""
    assert result.order.discount_amount == 0
    assert result.order.total_price == 5490


def test_coupon_deactivated_after_pricing_rolls_back_everything(cart):
    product, variant, lines = cart
    coupon = CouponFactory(code="SAVE10", discount_value=Decimal("10"))
    priced_terms = CouponTerms.from_coupon(coupon)
    Coupon.objects.filter(id=coupon.id).update(is_active=False)

    with mock.patch("orders.services.get_coupon_terms", return_value=priced_terms):
        with pytest.raises(InvalidCouponError):
            checkout(lines, coupon_code="SAVE10")

    product.refresh_from_db()
    variant.refresh_from_db()
    assert (product.stock, variant.stock) == (5, 3)
    assert Order.objects.count() == 0
    assert OrderItem.objects.count() == 0
    assert StockMovement.objects.count() == 0


def test_coupon_exhausted_after_pricing_is_limit_error(cart):
    _, _, lines = cart
    coupon = CouponFactory(code="LAST", discount_value=Decimal("10"), usage_limit=1, used_count=0)
    priced_terms = CouponTerms.from_coupon(coupon)
    Coupon.objects.filter(id=coupon.id).update(used_count=1)

    with mock.patch("orders.services.get_coupon_terms", return_value=priced_terms):
        with pytest.raises(CouponLimitReachedError):
            checkout(lines, coupon_code="LAST")

    assert Order.objects.count() == 0
    assert Coupon.objects.get(id=coupon.id).used_count == 1


def test_zero_discount_coupon_is_not_recorded(cart):
    _, _, lines = cart
    elsewhere = ProductFactory()
    coupon = CouponFactory(code="ONLYTHAT", products=[elsewhere], usage_limit=1)

    result = checkout(lines, coupon_code="onlythat")

    assert result.order.coupon_id is None
    assert result.order.coupon_code == ""
    assert result.order.discount_amount == 0
    coupon.refresh_from_db()
    assert coupon.used_count == 0


def test_insufficient_stock_names_items_and_persists_nothing(cart):
    product, variant, _ = cart
    lines = [
        CartLine(product_id=product.id, quantity=6),
        CartLine(product_id=variant.product_id, variant_id=variant.id, quantity=1),
    ]

    with pytest.raises(InsufficientStockError) as exc:
        checkout(lines)

    assert exc.value.names == ["Product A"]
    assert Order.objects.count() == 0
    product.refresh_from_db()
    assert product.stock == 5


def test_unknown_item_fails_before_reservation(cart):
    product, _, _ = cart
    with pytest.raises(UnknownItemError):
        checkout([CartLine(product_id=product.id, quantity=1), CartLine(product_id=999999, quantity=1)])
    product.refresh_from_db()
    assert product.stock == 5


def test_lost_race_is_conflict_and_rolls_back_coupon(cart):
    product, _, _ = cart
    coupon = CouponFactory(code="RACE", usage_limit=10)
    lines = [CartLine(product_id=product.id, quantity=5)]
    # Another checkout took the stock after this one's pre-check
    Product.objects.filter(id=product.id).update(stock=4)

    with mock.patch("orders.services.inventory.check_availability"):
        with pytest.raises(StockConflictError) as exc:
            checkout(lines, coupon_code="RACE")

    assert exc.value.code == "OUT_OF_STOCK"
    product.refresh_from_db()
    coupon.refresh_from_db()
    assert product.stock == 4
    assert coupon.used_count == 0
    assert Order.objects.count() == 0


def test_price_snapshot_survives_catalog_changes(cart):
    product, variant, lines = cart
    order = checkout(lines).order

    product.price = 99999
    product.name = "Renamed"
    product.save()
    variant.price = 1
    variant.save()

    order.refresh_from_db()
    item_prices = list(order.items.order_by("id").values_list("name", "price"))
    assert item_prices == [("Product A", 1000), (variant.product.name, 500)]
    assert order.total_price == 5490


def test_loyalty_discount_for_signed_in_user(cart):
    _, _, lines = cart
    profile = ProfileFactory(total_spent=400_000)

    result = checkout(lines, user_id=profile.user_id)

    assert result.order.user_id == profile.user_id
    assert result.order.loyalty_discount == 150
    assert result.order.total_price == 2500 - 150 + 2990


def test_save_address_only_when_new(cart):
    product, _, lines = cart
    Product.objects.filter(id=product.id).update(stock=50)
    user = UserFactory()
    address = {"name": "Kiss Anna", "street": "Fő utca 1.", "city": "Budapest", "zip_code": "1051"}

    checkout(lines, user_id=user.id, save_address=True, address=address)
    checkout([lines[0]], user_id=user.id, save_address=True, address=address)
    checkout([lines[0]], user_id=user.id, save_address=False, address={**address, "street": "Other 2."})

    saved = Address.objects.filter(user=user)
    assert saved.count() == 1
    assert saved.get().country == "Magyarország"


def test_cash_on_delivery_confirmation_sent_after_commit(cart, django_capture_on_commit_callbacks):
    _, _, lines = cart
    with django_capture_on_commit_callbacks(execute=True) as callbacks:
        order = checkout(lines).order

    assert len(callbacks) == 1
    assert len(mail.outbox) == 1
    message = mail.outbox[0]
    assert message.to == [CUSTOMER["customer_email"]]
    assert order.number in message.subject
    assert "5 490 Ft" in message.body


def test_card_orders_get_no_confirmation_at_checkout(cart, django_capture_on_commit_callbacks):
    _, _, lines = cart
    with django_capture_on_commit_callbacks(execute=True):
        checkout(lines, payment_method=PaymentMethod.STRIPE)
    assert mail.outbox == []


def test_failing_receiver_is_logged_not_raised(cart, django_capture_on_commit_callbacks, caplog):
    _, _, lines = cart

    def broken(sender, **kwargs):
        raise RuntimeError("smtp down")

    order_created.connect(broken, dispatch_uid="test.broken")
    try:
        with caplog.at_level(logging.ERROR, logger="nexu.orders"):
            with django_capture_on_commit_callbacks(execute=True):
                result = checkout(lines)
    finally:
        order_created.disconnect(dispatch_uid="test.broken")

    assert Order.objects.filter(id=result.order.id).exists()
    assert any(r.getMessage() == "order_signal_receiver_failed" for r in caplog.records)
