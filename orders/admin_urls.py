"""Staff order routes, mounted under /api/v1/admin/orders/."""

from django.urls import path

from .views import AdminOrderListView, AdminOrderStatusView

app_name = "orders_admin"

urlpatterns = [
    path("", AdminOrderListView.as_view(), name="admin-order-list"),
    path("<int:order_id>/status/", AdminOrderStatusView.as_view(), name="admin-order-status"),
]
