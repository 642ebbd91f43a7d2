"""Coupon endpoints."""

from drf_spectacular.utils import OpenApiExample, extend_schema
from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import CouponCheckSerializer, CouponSerializer
from .services import CouponLimitReachedError, InvalidCouponError, check_coupon


class CouponValidateView(APIView):
    """Check a coupon code against the current cart.

    Advisory only: the coupon is counted once, at checkout.
    """

    permission_classes = [permissions.AllowAny]
    throttle_scope = "coupons"

    @extend_schema(
        tags=["Coupons"],
        summary="Validate coupon",
        request=CouponCheckSerializer,
        responses={200: CouponSerializer},
        examples=[
            OpenApiExample(
                "Check",
                value={"code": "save10", "cart_total": 2500, "product_ids": [1, 2]},
                request_only=True,
            ),
            OpenApiExample(
                "Valid",
                value={
                    "code": "SAVE10",
                    "discount_type": "PERCENTAGE",
                    "discount_value": "10.00",
                    "min_order_value": None,
                    "expires_at": None,
                    "category": None,
                    "products": [],
                },
                response_only=True,
            ),
            OpenApiExample(
                "Expired",
                value={"detail": "Coupon SAVE10 has expired", "code": "INVALID_COUPON", "reason": "expired"},
                response_only=True,
            ),
        ],
    )
    def post(self, request):
        s = CouponCheckSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        try:
            coupon = check_coupon(
                s.validated_data["code"],
                s.validated_data["cart_total"],
                s.validated_data["product_ids"],
            )
        except (InvalidCouponError, CouponLimitReachedError) as exc:
            return Response(exc.as_body(), status=status.HTTP_400_BAD_REQUEST)
        return Response(CouponSerializer(coupon).data, status=status.HTTP_200_OK)
