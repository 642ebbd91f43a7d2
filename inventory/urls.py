from django.urls import path

from .views import MovementListView, StockAdjustmentView

urlpatterns = [
    path("adjustments/", StockAdjustmentView.as_view(), name="stock-adjustment"),
    path("movements/", MovementListView.as_view(), name="movement-list"),
]

# EOF
