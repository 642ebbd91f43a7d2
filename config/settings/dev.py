from decouple import config as _config

from .base import *  # noqa
from .base import REST_FRAMEWORK as BASE_REST_FRAMEWORK

DEBUG = True

# Order emails print to the runserver console
EMAIL_BACKEND = "django.core.mail.backends.console.EmailBackend"

# Redis is optional locally; the idempotency table does not need it
_REDIS_URL = _config("REDIS_URL", default="")
if _REDIS_URL:
    CACHES = {
        "default": {
            "BACKEND": "django.core.cache.backends.redis.RedisCache",
            "LOCATION": _REDIS_URL,
        }
    }

# Human readable lines with the event name up front
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {"format": "%(asctime)s %(levelname)-7s %(name)s %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "plain"},
    },
    "root": {"handlers": ["console"], "level": "INFO"},
    "loggers": {
        "nexu": {"handlers": ["console"], "level": _config("LOG_LEVEL", default="DEBUG"), "propagate": False},
    },
}

REST_FRAMEWORK = {**BASE_REST_FRAMEWORK}
REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"] = {
    **BASE_REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"],
    "orders": "120/min",
    "orders_write": "60/min",
    "coupons": "60/min",
}
