"""Inventory admin endpoints: manual adjustments and the movement log."""

from django.utils.dateparse import parse_datetime
from drf_spectacular.utils import OpenApiExample, extend_schema
from rest_framework import generics, permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from .selectors import list_movements
from .serializers import StockAdjustmentSerializer, StockMovementSerializer
from .services import MovementError, UnknownItemError, adjust_stock


class StockAdjustmentView(APIView):
    permission_classes = [permissions.IsAdminUser]
    throttle_scope = "inventory_write"

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Adjust stock",
        description=(
            "Apply a signed stock change to a product or variant. Negative changes never take "
            "stock below zero; the movement is written to the audit log."
        ),
        request=StockAdjustmentSerializer,
        examples=[
            OpenApiExample(
                "Restock",
                value={"product_id": 1, "variant_id": 10, "change": 5, "reason": "RESTOCK"},
                request_only=True,
            ),
            OpenApiExample(
                "Adjusted",
                value={"product_id": 1, "variant_id": 10, "change": 5, "stock": 12},
                response_only=True,
            ),
        ],
    )
    def post(self, request):
        s = StockAdjustmentSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data
        try:
            stock = adjust_stock(
                product_id=data["product_id"],
                variant_id=data.get("variant_id"),
                change=data["change"],
                reason=data["reason"],
                reference=data.get("reference", ""),
                user_id=request.user.id,
            )
        except UnknownItemError as exc:
            return Response(exc.as_body(), status=status.HTTP_404_NOT_FOUND)
        except MovementError as exc:
            return Response(exc.as_body(), status=status.HTTP_400_BAD_REQUEST)
        return Response(
            {
                "product_id": data["product_id"],
                "variant_id": data.get("variant_id"),
                "change": data["change"],
                "stock": stock,
            },
            status=status.HTTP_200_OK,
        )


class MovementListView(generics.ListAPIView):
    permission_classes = [permissions.IsAdminUser]
    serializer_class = StockMovementSerializer

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="List stock movements",
        description="Filters: product_id, variant_id, reason, reference, created_after (ISO).",
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def get_queryset(self):
        params = self.request.query_params
        created_after = params.get("created_after")
        return list_movements(
            product_id=params.get("product_id"),
            variant_id=params.get("variant_id"),
            reason=params.get("reason"),
            reference=params.get("reference"),
            created_after=parse_datetime(created_after) if created_after else None,
        )


# EOF
