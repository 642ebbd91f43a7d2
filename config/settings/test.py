from decouple import config

from .base import *  # noqa
from .base import BASE_DIR
from .base import REST_FRAMEWORK as BASE_REST_FRAMEWORK

DEBUG = False

# SQLite keeps the suite self-contained; race tests that need real
# concurrent transactions skip themselves on it. DATABASE_ENGINE=postgres
# keeps the PostgreSQL connection from base settings so they run.
if config("DATABASE_ENGINE", default="sqlite").lower() != "postgres":
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "test_db.sqlite3",
        }
    }

EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"

# Manifest storage would require collectstatic
STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {"BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage"},
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

# Pin the shipping defaults so pricing assertions do not depend on the env
FREE_SHIPPING_THRESHOLD = 20000
SHIPPING_FEE = 2990

REST_FRAMEWORK = {**BASE_REST_FRAMEWORK}
_RATES = BASE_REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"]
REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"] = {scope: "1000/min" for scope in _RATES}
