"""URL routes for the customer app."""

from django.urls import path

from .views import LoyaltyStatusView

urlpatterns = [
    path("loyalty/", LoyaltyStatusView.as_view(), name="loyalty-status"),
]
