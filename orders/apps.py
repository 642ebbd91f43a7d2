from django.apps import AppConfig


class OrdersConfig(AppConfig):
    """Orders app: checkout, cancellation and status changes."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "orders"
    verbose_name = "Orders"

    def ready(self):
        from .emails import send_order_confirmation, send_order_paid
        from .signals import order_created, order_status_changed

        order_created.connect(send_order_confirmation, dispatch_uid="orders.send_order_confirmation")
        order_status_changed.connect(send_order_paid, dispatch_uid="orders.send_order_paid")
