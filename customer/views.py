"""Customer API views.

Endpoints are authenticated and scoped to the current user.
"""

from drf_spectacular.utils import OpenApiExample, extend_schema
from rest_framework import permissions
from rest_framework.response import Response
from rest_framework.views import APIView

from .loyalty import get_loyalty_tier, get_next_loyalty_tier
from .selectors import get_total_spent
from .serializers import LoyaltyStatusSerializer


class LoyaltyStatusView(APIView):
    """Return the authenticated user's loyalty tier.

    The checkout page uses ``tier.percent`` to preview the loyalty discount.
    """

    permission_classes = [permissions.IsAuthenticated]
    throttle_scope = "customer"

    @extend_schema(
        tags=["Customer Endpoints"],
        summary="Get loyalty status",
        responses={200: LoyaltyStatusSerializer},
        examples=[
            OpenApiExample(
                "Bronze",
                value={
                    "total_spent": 75000,
                    "tier": {"name": "Bronze", "min_spent": 50000, "percent": "2.00", "description": "2% off"},
                    "next_tier": {"name": "Silver", "min_spent": 200000, "percent": "4.00", "description": "4% off"},
                    "missing_for_next": 125000,
                },
                response_only=True,
            )
        ],
    )
    def get(self, request):
        total_spent = get_total_spent(request.user.id) or 0
        next_tier = get_next_loyalty_tier(total_spent)
        payload = {
            "total_spent": total_spent,
            "tier": get_loyalty_tier(total_spent),
            "next_tier": next_tier,
            "missing_for_next": (next_tier.min_spent - total_spent) if next_tier else None,
        }
        return Response(LoyaltyStatusSerializer(payload).data)
