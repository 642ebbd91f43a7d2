import sentry_sdk
from decouple import Csv, config
from sentry_sdk.integrations.django import DjangoIntegration

from .base import REST_FRAMEWORK as BASE_REST_FRAMEWORK
from .base import *  # noqa

DEBUG = False

# No defaults: a deployment without these must fail at import time
SECRET_KEY = config("SECRET_KEY")
ALLOWED_HOSTS = config("ALLOWED_HOSTS", cast=Csv())
PAYMENT_WEBHOOK_SECRET = config("PAYMENT_WEBHOOK_SECRET")

CORS_ALLOW_ALL_ORIGINS = False
CORS_ALLOWED_ORIGINS = config("CORS_ALLOWED_ORIGINS", default="", cast=Csv())
CSRF_TRUSTED_ORIGINS = config("CSRF_TRUSTED_ORIGINS", default="", cast=Csv())

SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
SECURE_SSL_REDIRECT = config("SECURE_SSL_REDIRECT", default=True, cast=bool)
SESSION_COOKIE_SECURE = True
CSRF_COOKIE_SECURE = True
SECURE_HSTS_SECONDS = config("SECURE_HSTS_SECONDS", default=31536000, cast=int)
SECURE_HSTS_INCLUDE_SUBDOMAINS = True

EMAIL_BACKEND = config("EMAIL_BACKEND", default="django.core.mail.backends.smtp.EmailBackend")

_REDIS_URL = config("REDIS_URL", default="")
if _REDIS_URL:
    CACHES = {
        "default": {
            "BACKEND": "django.core.cache.backends.redis.RedisCache",
            "LOCATION": _REDIS_URL,
        }
    }
    SESSION_ENGINE = "django.contrib.sessions.backends.cached_db"

# One JSON line per record. Order, stock and coupon events are the audit
# trail of checkout and are never sampled; other INFO chatter can be.
AUDIT_EVENTS = [
    "order_created",
    "order_cancelled",
    "order_status_changed",
    "stock_conflict",
    "stock_adjusted",
    "coupon_reserved",
    "coupon_released",
]
_LOG_LEVEL = config("LOG_LEVEL", default="INFO")
_NEXU_LOGGERS = ["nexu.orders", "nexu.inventory", "nexu.coupons", "nexu.customer", "nexu.storefront"]

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "json": {"()": "config.logging.JsonFormatter"},
    },
    "filters": {
        "audit_sample": {
            "()": "config.logging.SamplingFilter",
            "rate": config("LOG_SAMPLE_RATE", default=1.0, cast=float),
            "levels": ["INFO"],
            "allow_events": AUDIT_EVENTS,
        },
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "json"},
        "sampled_console": {
            "class": "logging.StreamHandler",
            "formatter": "json",
            "filters": ["audit_sample"],
        },
    },
    "root": {"handlers": ["console"], "level": _LOG_LEVEL},
    "loggers": {
        name: {"handlers": ["sampled_console"], "level": _LOG_LEVEL, "propagate": False} for name in _NEXU_LOGGERS
    },
}

SENTRY_DSN = config("SENTRY_DSN", default="")
if SENTRY_DSN:
    sentry_sdk.init(
        dsn=SENTRY_DSN,
        environment=config("SENTRY_ENV", default="production"),
        integrations=[DjangoIntegration()],
        traces_sample_rate=config("SENTRY_TRACES_SAMPLE_RATE", default=0.0, cast=float),
        # Orders carry customer names, emails and addresses
        send_default_pii=False,
    )

REST_FRAMEWORK = {**BASE_REST_FRAMEWORK}
REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"] = {
    **BASE_REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"],
    "orders_write": "30/min",
}
