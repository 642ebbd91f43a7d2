import hmac

from django.conf import settings
from rest_framework.permissions import BasePermission


class HasWebhookSecret(BasePermission):
    """Payment provider calls must carry the shared secret in ``X-Webhook-Secret``.

    With ``PAYMENT_WEBHOOK_SECRET`` unset (local development) every caller passes.
    """

    message = "Invalid webhook secret."

    def has_permission(self, request, view) -> bool:
        expected = getattr(settings, "PAYMENT_WEBHOOK_SECRET", "")
        if not expected:
            return True
        provided = request.headers.get("X-Webhook-Secret", "")
        return hmac.compare_digest(provided.encode(), expected.encode())
