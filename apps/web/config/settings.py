"""
Django settings for the Tilda → iiko order bridge.

Secrets come from the environment (Doppler in production) - never hardcode credentials.
Run with: doppler run -- uv run gunicorn apps.web.config.wsgi
"""

from pathlib import Path

import environ  # type: ignore[import-untyped]

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent

# Initialize environ
env = environ.Env(
    DEBUG=(bool, False),
    ALLOWED_HOSTS=(list, ["*"]),
    IIKO_BASE_URL=(str, "https://api-ru.iiko.services"),
    POS_TOKEN_TIMEOUT=(float, 15.0),
    POS_ORDER_TIMEOUT=(float, 20.0),
    POS_TOKEN_LIFETIME=(int, 3600),
    POS_TOKEN_SAFETY_MARGIN=(int, 600),
    RECONCILE_LOOKBACK_DAYS=(float, 7),
    RECONCILE_LOOKAHEAD_DAYS=(float, 1),
    TILDA_WEBHOOK_SECRET=(str, ""),
    TILDA_IIKO_MAPPING_MODE=(str, "env"),
    TILDA_IIKO_MAPPING_FILE=(str, ""),
    TILDA_IIKO_MAPPING_CSV_URL=(str, ""),
    TILDA_IIKO_MAPPING_CACHE_TTL=(int, 300),
    CATALOG_FETCH_TIMEOUT=(float, 15.0),
    PAYMENT_CREATES_POS_ORDER=(bool, False),
    TILDA_LOGIN=(str, "ziina_shop"),
    TILDA_SECRET=(str, ""),
    TILDA_NOTIFICATION_URL=(str, ""),
    ZIINA_API_TOKEN=(str, ""),
    ZIINA_WEBHOOK_SECRET=(str, ""),
    ZIINA_SUCCESS_URL=(str, ""),
    ZIINA_CANCEL_URL=(str, ""),
    PAYMENT_CURRENCY=(str, "AED"),
)

# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = env("SECRET_KEY", default="insecure-dev-key-change-me")

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = env("DEBUG")

ALLOWED_HOSTS = env("ALLOWED_HOSTS")

# Application definition
INSTALLED_APPS = [
    # Local apps
    "apps.web.tenants",
    "apps.web.orders",
    "apps.web.pos",
    "apps.web.payments",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
]

ROOT_URLCONF = "apps.web.config.urls"

WSGI_APPLICATION = "apps.web.config.wsgi.application"

# No local persistence: tenants and catalog come from configuration, orders
# live in the POS.
DATABASES: dict = {}

# Internationalization
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = False
USE_TZ = True

# Webhook senders post without trailing slashes
APPEND_SLASH = False

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# =============================================================================
# Logging
# =============================================================================

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": env("LOG_LEVEL", default="INFO"),
    },
    "loggers": {
        "httpx": {"level": "WARNING"},
        "httpcore": {"level": "WARNING"},
    },
}

# =============================================================================
# iiko (POS)
# =============================================================================

IIKO_BASE_URL = env("IIKO_BASE_URL")
POS_TOKEN_TIMEOUT = env("POS_TOKEN_TIMEOUT")
POS_ORDER_TIMEOUT = env("POS_ORDER_TIMEOUT")
POS_TOKEN_LIFETIME = env("POS_TOKEN_LIFETIME")
POS_TOKEN_SAFETY_MARGIN = env("POS_TOKEN_SAFETY_MARGIN")
RECONCILE_LOOKBACK_DAYS = env("RECONCILE_LOOKBACK_DAYS")
RECONCILE_LOOKAHEAD_DAYS = env("RECONCILE_LOOKAHEAD_DAYS")

# Tenants per city: {"defaultCity", "projectIdToCity", "pageIdToCity", "cities"}
TILDA_IIKO_CITIES = env.json("TILDA_IIKO_CITIES_JSON", default={})

# =============================================================================
# Tilda (storefront)
# =============================================================================

# Comma-separated list of accepted order webhook secrets; empty disables the check
TILDA_WEBHOOK_SECRET = env("TILDA_WEBHOOK_SECRET")

# Catalog mapping source: env | file | csv_url
TILDA_IIKO_MAPPING_MODE = env("TILDA_IIKO_MAPPING_MODE")
TILDA_IIKO_MAPPING_JSON = env.json("TILDA_IIKO_MAPPING_JSON", default=[])
TILDA_IIKO_MAPPING_FILE = env("TILDA_IIKO_MAPPING_FILE")
TILDA_IIKO_MAPPING_CSV_URL = env("TILDA_IIKO_MAPPING_CSV_URL")
TILDA_IIKO_MAPPING_CACHE_TTL = env("TILDA_IIKO_MAPPING_CACHE_TTL")
CATALOG_FETCH_TIMEOUT = env("CATALOG_FETCH_TIMEOUT")

# Payment notification relay
TILDA_LOGIN = env("TILDA_LOGIN")
TILDA_SECRET = env("TILDA_SECRET")
TILDA_NOTIFICATION_URL = env("TILDA_NOTIFICATION_URL")

# =============================================================================
# Ziina (payment gateway)
# =============================================================================

ZIINA_API_TOKEN = env("ZIINA_API_TOKEN")
ZIINA_WEBHOOK_SECRET = env("ZIINA_WEBHOOK_SECRET")
ZIINA_SUCCESS_URL = env("ZIINA_SUCCESS_URL")
ZIINA_CANCEL_URL = env("ZIINA_CANCEL_URL")
PAYMENT_CURRENCY = env("PAYMENT_CURRENCY")

# Forward paid payment events into the POS order pipeline
PAYMENT_CREATES_POS_ORDER = env("PAYMENT_CREATES_POS_ORDER")
