"""Read helpers for runtime shop settings."""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable

from django.conf import settings

from .models import Setting

logger = logging.getLogger("nexu.storefront")


@dataclass(frozen=True)
class PricingSettings:
    """Shipping configuration resolved once per pricing operation."""

    free_shipping_threshold: int
    shipping_fee: int


def get_settings(keys: Iterable[str]) -> Dict[str, str]:
    """Return stored values for the requested keys; missing keys are omitted."""

    return dict(Setting.objects.filter(key__in=list(keys)).values_list("key", "value"))


def _as_int(raw, key: str, default: int) -> int:
    if raw is None or str(raw).strip() == "":
        return default
    try:
        return int(str(raw).strip())
    except ValueError:
        logger.warning("invalid_setting_value", extra={"event": "invalid_setting_value", "key": key, "value": raw})
        return default


def get_pricing_settings() -> PricingSettings:
    """Resolve shipping threshold and fee.

    Values stored in the ``Setting`` table win; otherwise the
    ``FREE_SHIPPING_THRESHOLD`` / ``SHIPPING_FEE`` Django settings apply.
    """

    stored = get_settings([Setting.FREE_SHIPPING_THRESHOLD, Setting.SHIPPING_FEE])
    return PricingSettings(
        free_shipping_threshold=_as_int(
            stored.get(Setting.FREE_SHIPPING_THRESHOLD),
            Setting.FREE_SHIPPING_THRESHOLD,
            int(getattr(settings, "FREE_SHIPPING_THRESHOLD", 20000)),
        ),
        shipping_fee=_as_int(
            stored.get(Setting.SHIPPING_FEE),
            Setting.SHIPPING_FEE,
            int(getattr(settings, "SHIPPING_FEE", 2990)),
        ),
    )
