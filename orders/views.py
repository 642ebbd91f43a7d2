"""Orders API endpoints.

Views validate input with serializers, call ``orders.services`` and turn
domain errors into ``{"detail", "code"}`` responses.
"""

from coupons.services import CouponLimitReachedError, InvalidCouponError
from customer.services import refresh_total_spent
from django.http import Http404
from drf_spectacular.utils import OpenApiExample, OpenApiParameter, extend_schema
from inventory.services import InsufficientStockError, StockConflictError, UnknownItemError, validate_cart
from rest_framework import generics, status
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import AllowAny, IsAdminUser, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .filters import AdminOrderFilterSet, OrderFilterSet
from .idempotency import compute_request_hash, with_idempotency
from .models import Order
from .permissions import HasWebhookSecret
from .pricing import preview_totals
from .serializers import (
    AdminOrderSerializer,
    CartIssueSerializer,
    CartSerializer,
    CheckoutSerializer,
    OrderSerializer,
    PaymentWebhookSerializer,
    PreviewSerializer,
    PricedLineSerializer,
    StatusUpdateSerializer,
    TotalsSerializer,
)
from .services import (
    CUSTOMER_FIELDS,
    OrderForbiddenError,
    OrderNotFoundError,
    cancel_order,
    create_order,
    mark_paid,
    update_order_status,
)
from .state import InvalidTransitionError

ERROR_STATUS = (
    (UnknownItemError, status.HTTP_400_BAD_REQUEST),
    (InsufficientStockError, status.HTTP_400_BAD_REQUEST),
    (StockConflictError, status.HTTP_409_CONFLICT),
    (InvalidCouponError, status.HTTP_409_CONFLICT),
    (CouponLimitReachedError, status.HTTP_409_CONFLICT),
    (OrderNotFoundError, status.HTTP_404_NOT_FOUND),
    (OrderForbiddenError, status.HTTP_403_FORBIDDEN),
    (InvalidTransitionError, status.HTTP_400_BAD_REQUEST),
)
HANDLED_ERRORS = tuple(cls for cls, _ in ERROR_STATUS)

IDEMPOTENCY_HEADER = OpenApiParameter(
    name="Idempotency-Key",
    location=OpenApiParameter.HEADER,
    required=False,
    description="Makes the request idempotent within scope+path+method",
    type=str,
)
WEBHOOK_SECRET_HEADER = OpenApiParameter(
    name="X-Webhook-Secret",
    location=OpenApiParameter.HEADER,
    required=False,
    description="Shared secret configured as PAYMENT_WEBHOOK_SECRET",
    type=str,
)


def error_payload(exc) -> tuple:
    for cls, code in ERROR_STATUS:
        if isinstance(exc, cls):
            return exc.as_body(), code
    raise exc


def run_idempotent(request, handler):
    """Run ``handler`` honouring the Idempotency-Key header when present."""

    idem_key = request.headers.get("Idempotency-Key")
    if idem_key:
        body, code = with_idempotency(
            key=idem_key,
            user=request.user,
            path=str(request.path),
            method=str(request.method),
            request_hash=compute_request_hash(getattr(request, "data", None)),
            handler=handler,
        )
        return Response(body, status=code)
    body, code = handler()
    return Response(body, status=code)


def refresh_spend(order: Order) -> None:
    if order.user_id:
        refresh_total_spent(order.user_id)


class OrderPreviewView(APIView):
    """Price a cart without touching stock, coupons or orders."""

    permission_classes = [AllowAny]
    throttle_scope = "orders"

    @extend_schema(
        tags=["Orders"],
        summary="Preview cart totals",
        description=(
            "Resolves current prices and returns subtotal, loyalty and coupon discounts, shipping and total. "
            "An unknown or expired coupon gives no discount instead of an error."
        ),
        request=PreviewSerializer,
        examples=[
            OpenApiExample(
                "Cart",
                value={"items": [{"product_id": 1, "quantity": 2}, {"product_id": 2, "variant_id": 7, "quantity": 1}]},
                request_only=True,
            ),
            OpenApiExample(
                "Totals",
                value={
                    "items": [],
                    "totals": {
                        "subtotal": 2500,
                        "loyalty_discount": 0,
                        "coupon_discount": 0,
                        "shipping_cost": 2990,
                        "total": 5490,
                    },
                },
                response_only=True,
            ),
        ],
    )
    def post(self, request):
        s = PreviewSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        try:
            priced, totals = preview_totals(
                s.cart_lines(), user_id=request.user.id, coupon_code=s.validated_data.get("coupon_code")
            )
        except UnknownItemError as exc:
            return Response(exc.as_body(), status=status.HTTP_400_BAD_REQUEST)
        return Response(
            {
                "items": PricedLineSerializer(priced, many=True).data,
                "totals": TotalsSerializer(totals).data,
            }
        )


class CartValidateView(APIView):
    """Check a whole cart against the catalog and current stock.

    Unlike preview, nothing is raised for cart content: every missing or
    short item comes back as an issue so the client can fix the cart in one go.
    """

    permission_classes = [AllowAny]
    throttle_scope = "orders"

    @extend_schema(
        tags=["Orders"],
        summary="Validate cart items and stock",
        request=CartSerializer,
        examples=[
            OpenApiExample(
                "Issues",
                value={
                    "valid": False,
                    "issues": [
                        {
                            "kind": "insufficient_stock",
                            "product_id": 1,
                            "variant_id": None,
                            "message": "Only 2 of Desk Lamp in stock.",
                            "requested": 3,
                            "available": 2,
                        }
                    ],
                },
                response_only=True,
            ),
        ],
    )
    def post(self, request):
        s = CartSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        issues = validate_cart(s.cart_lines())
        return Response({"valid": not issues, "issues": CartIssueSerializer(issues, many=True).data})


class CheckoutView(APIView):
    """Create an order from a cart. Guests and signed-in users alike.

    Idempotent when `Idempotency-Key` is provided. Returns 409 on key reuse with different payload.
    """

    permission_classes = [AllowAny]
    throttle_scope = "orders_write"

    @extend_schema(
        tags=["Orders"],
        summary="Checkout",
        description=(
            "Creates a pending order, reserves stock and counts the coupon in one transaction.\n\n"
            "Errors: 400 `UNKNOWN_ITEM` / `INSUFFICIENT_STOCK`, 409 `OUT_OF_STOCK` when a concurrent checkout "
            "took the last units, 409 `INVALID_COUPON` / `COUPON_LIMIT_REACHED`."
        ),
        parameters=[IDEMPOTENCY_HEADER],
        request=CheckoutSerializer,
        examples=[
            OpenApiExample(
                "Out of stock",
                value={"detail": "One or more items sold out during checkout (product 1)", "code": "OUT_OF_STOCK"},
                response_only=True,
            ),
        ],
    )
    def post(self, request):
        s = CheckoutSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data
        user_id = request.user.id

        def _handler():
            try:
                result = create_order(
                    s.cart_lines(),
                    customer={name: data.get(name) for name in CUSTOMER_FIELDS},
                    payment_method=data["payment_method"],
                    coupon_code=data.get("coupon_code"),
                    user_id=user_id,
                    save_address=data.get("save_address", False),
                    address=data.get("address"),
                )
            except HANDLED_ERRORS as exc:
                return error_payload(exc)
            body = {
                "order": OrderSerializer(result.order, context={"request": request}).data,
                "totals": TotalsSerializer(result.totals).data,
            }
            return body, status.HTTP_201_CREATED

        return run_idempotent(request, _handler)


class DefaultPagination(PageNumberPagination):
    page_size = 20
    page_size_query_param = "page_size"


class OrderListView(generics.ListAPIView):
    """List authenticated user's orders with basic filters.

    Filters:
    - `status`: one of the OrderStatus values
    - `number`: exact match of order number
    - `start`: ISO date/time string; filters `created_at >= start`
    - `end`: ISO date/time string; filters `created_at <= end`
    """

    permission_classes = [IsAuthenticated]
    serializer_class = OrderSerializer
    pagination_class = DefaultPagination
    filterset_class = OrderFilterSet
    throttle_scope = "orders"

    def get_queryset(self):
        return Order.objects.filter(user_id=self.request.user.id).order_by("-id").prefetch_related("items")

    @extend_schema(tags=["Orders"], summary="List orders", description="List current user's orders.")
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)


class OrderDetailView(generics.RetrieveAPIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "orders"
    serializer_class = OrderSerializer

    def get_queryset(self):
        return Order.objects.filter(user_id=self.request.user.id).prefetch_related("items")

    def get_object(self):
        try:
            return self.get_queryset().get(id=int(self.kwargs["order_id"]))
        except (Order.DoesNotExist, ValueError):
            raise Http404("Not found.")

    @extend_schema(tags=["Orders"], summary="Get order detail")
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)


class OrderCancelView(APIView):
    """Cancel a pending order for the authenticated owner.

    Stock and coupon use are given back; the order is kept with status `cancelled`.
    Idempotent when `Idempotency-Key` is provided.
    """

    permission_classes = [IsAuthenticated]
    throttle_scope = "orders_write"

    @extend_schema(
        tags=["Orders"],
        summary="Cancel order",
        description="Cancels a pending order. 400 `INVALID_TRANSITION` for any other status.",
        parameters=[IDEMPOTENCY_HEADER],
        request=None,
        responses={200: OrderSerializer},
        examples=[
            OpenApiExample("Cancelled", value={"id": 1, "status": "cancelled"}, response_only=True),
            OpenApiExample(
                "Not pending",
                value={"detail": "Cannot change order status from paid to cancelled", "code": "INVALID_TRANSITION"},
                response_only=True,
            ),
        ],
    )
    def post(self, request, order_id: int):
        def _handler():
            try:
                order = cancel_order(order_id, requested_by=request.user.id)
            except HANDLED_ERRORS as exc:
                return error_payload(exc)
            return OrderSerializer(order, context={"request": request}).data, status.HTTP_200_OK

        return run_idempotent(request, _handler)


class OrderPaymentWebhookView(APIView):
    """Payment provider callback: moves a pending order to paid.

    Callers authenticate with the shared secret checked by HasWebhookSecret,
    not with user credentials. A repeat delivery for a paid order answers 200
    with the order unchanged, and the `Idempotency-Key` header replays the
    first response.
    """

    authentication_classes = []
    permission_classes = [HasWebhookSecret]
    throttle_scope = "orders_write"

    @extend_schema(
        tags=["Orders"],
        summary="Payment webhook",
        description=(
            "Consumes a payment provider webhook and marks the order as paid.\n"
            "Expects JSON with `order_id` and `event`='payment_succeeded'.\n"
            "An order that is already paid is returned unchanged."
        ),
        parameters=[IDEMPOTENCY_HEADER, WEBHOOK_SECRET_HEADER],
        request=PaymentWebhookSerializer,
        examples=[
            OpenApiExample(
                "Webhook Success",
                value={"order_id": 123, "event": "payment_succeeded"},
                request_only=True,
            ),
            OpenApiExample("Paid", value={"id": 123, "status": "paid"}, response_only=True),
        ],
    )
    def post(self, request):
        s = PaymentWebhookSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        order_id = s.validated_data["order_id"]

        def _handler():
            try:
                order = mark_paid(order_id)
            except InvalidTransitionError as exc:
                order = Order.objects.get(id=order_id)
                if order.status != Order.STATUS_PAID:
                    return error_payload(exc)
            except HANDLED_ERRORS as exc:
                return error_payload(exc)
            else:
                refresh_spend(order)
            return OrderSerializer(order, context={"request": request}).data, status.HTTP_200_OK

        return run_idempotent(request, _handler)


class AdminOrderListView(generics.ListAPIView):
    """All orders for staff, with django-filter filters, search and ordering."""

    permission_classes = [IsAdminUser]
    serializer_class = AdminOrderSerializer
    pagination_class = DefaultPagination
    filterset_class = AdminOrderFilterSet
    throttle_scope = "orders"
    search_fields = ["number", "customer_name", "customer_email"]
    ordering_fields = ["created_at", "total_price", "id"]
    ordering = ["-id"]

    def get_queryset(self):
        return Order.objects.all().select_related("user").prefetch_related("items")

    @extend_schema(
        tags=["Orders Admin"],
        summary="List all orders",
        parameters=[
            OpenApiParameter(name="status", description="Order status filter", required=False, type=str),
            OpenApiParameter(name="email", description="Customer email (exact)", required=False, type=str),
            OpenApiParameter(name="coupon", description="Coupon code (exact)", required=False, type=str),
            OpenApiParameter(name="min_total", description="Total >= value", required=False, type=int),
            OpenApiParameter(name="max_total", description="Total <= value", required=False, type=int),
        ],
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)


class AdminOrderStatusView(APIView):
    """Staff status change.

    Forward moves follow the state machine and never touch stock or coupons.
    `cancelled` runs the full cancellation (stock and coupon given back) and
    also works for guest orders.
    """

    permission_classes = [IsAdminUser]
    throttle_scope = "orders_write"

    @extend_schema(
        tags=["Orders Admin"],
        summary="Update order status",
        request=StatusUpdateSerializer,
        responses={200: AdminOrderSerializer},
        examples=[OpenApiExample("Ship", value={"status": "shipped"}, request_only=True)],
    )
    def patch(self, request, order_id: int):
        s = StatusUpdateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        target = s.validated_data["status"]
        try:
            if target == Order.STATUS_CANCELLED:
                order = cancel_order(order_id, requested_by=request.user.id, privileged=True)
            else:
                order = update_order_status(order_id, target, changed_by=request.user.id)
        except HANDLED_ERRORS as exc:
            body, code = error_payload(exc)
            return Response(body, status=code)
        refresh_spend(order)
        return Response(AdminOrderSerializer(order, context={"request": request}).data)
