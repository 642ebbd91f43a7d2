"""Order lifecycle signals.

Both are sent with ``send_robust`` after the surrounding transaction
commits, so receivers never see rolled-back orders and a failing receiver
cannot undo a committed checkout.

- ``order_created``: kwargs ``order`` and ``totals`` (``orders.pricing.Totals``).
- ``order_status_changed``: kwargs ``order``, ``status_from`` and ``status_to``.
"""

import logging

from django.db import transaction
from django.dispatch import Signal

logger = logging.getLogger("nexu.orders")

order_created = Signal()
order_status_changed = Signal()


def send_after_commit(signal: Signal, sender, **kwargs) -> None:
    """Send ``signal`` once the current transaction commits; log receiver errors."""

    def _send():
        for receiver, response in signal.send_robust(sender=sender, **kwargs):
            if isinstance(response, Exception):
                logger.error(
                    "order_signal_receiver_failed",
                    exc_info=(type(response), response, response.__traceback__),
                    extra={
                        "event": "order_signal_receiver_failed",
                        "receiver": getattr(receiver, "__name__", str(receiver)),
                    },
                )

    transaction.on_commit(_send)
