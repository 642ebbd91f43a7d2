import factory
from common.choices import OrderStatus, PaymentMethod
from factory.django import DjangoModelFactory
from orders.models import Order, OrderItem

CUSTOMER = {
    "customer_name": "Kiss Anna",
    "customer_email": "anna@example.com",
    "customer_phone": "+36301234567",
    "customer_address": "1051 Budapest, Fő utca 1.",
}


class OrderFactory(DjangoModelFactory):
    class Meta:
        model = Order

    user = None
    status = OrderStatus.PENDING
    customer_name = CUSTOMER["customer_name"]
    customer_email = CUSTOMER["customer_email"]
    customer_phone = CUSTOMER["customer_phone"]
    customer_address = CUSTOMER["customer_address"]
    payment_method = PaymentMethod.CASH_ON_DELIVERY
    number = factory.Sequence(lambda n: f"ORD-T{n:05d}")
    subtotal = 2000
    shipping_cost = 2990
    total_price = 4990


class OrderItemFactory(DjangoModelFactory):
    class Meta:
        model = OrderItem

    order = factory.SubFactory(OrderFactory)
    product = None
    variant = None
    name = factory.LazyAttribute(lambda o: o.product.name if o.product else "Item")
    price = 1000
    quantity = 2
