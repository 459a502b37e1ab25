"""
POS Checkout – Django Settings (Infrastructure Only)
=====================================================
Django serves as the framework container for the checkout
engines. Engines never import settings; adapters read the
POS_CHECKOUT and MOBILE_MONEY_GATEWAY blocks and hand frozen
rules objects down.

Every POS_* value can be overridden from the environment.
"""

import os
from pathlib import Path

# ── Paths ─────────────────────────────────────────────────────
BASE_DIR = Path(__file__).resolve().parent.parent

# ── Security ──────────────────────────────────────────────────
SECRET_KEY = os.environ.get("POS_SECRET_KEY", "pos-dev-key-replace-before-deployment")

DEBUG = os.environ.get("POS_DEBUG", "1") == "1"

ALLOWED_HOSTS = [
    host for host in os.environ.get("POS_ALLOWED_HOSTS", "").split(",") if host
]

# ── Installed Apps ────────────────────────────────────────────
INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    # ── POS Modules ───────────────────────────────────────
    "adapters.django_store",
]

# ── Middleware ────────────────────────────────────────────────
MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
]

# ── URL & WSGI ────────────────────────────────────────────────
ROOT_URLCONF = "config.urls"

# ── Database ──────────────────────────────────────────────────
# SQLite for development. Production DB configured separately.
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.environ.get("POS_DB_PATH", str(BASE_DIR / "db.sqlite3")),
    }
}

# ── Internationalization ──────────────────────────────────────
LANGUAGE_CODE = "en-us"
TIME_ZONE = "Africa/Nairobi"
USE_I18N = True
USE_TZ = True

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# ── Checkout Rules ────────────────────────────────────────────
# Read by core.config.load_checkout_rules.
POS_CHECKOUT = {
    "CURRENCY": os.environ.get("POS_CURRENCY", "KES"),
    "TAX_TYPE": os.environ.get("POS_TAX_TYPE", "VAT"),
    "TAX_RATE": os.environ.get("POS_TAX_RATE", "0.16"),
    "POINTS_PER_REDEMPTION_UNIT": int(os.environ.get("POS_POINTS_PER_REDEMPTION_UNIT", "100")),
    "REDEMPTION_UNIT_VALUE": os.environ.get("POS_REDEMPTION_UNIT_VALUE", "100"),
    "EARN_UNIT": os.environ.get("POS_EARN_UNIT", "100"),
    "EARN_POINTS_PER_UNIT": int(os.environ.get("POS_EARN_POINTS_PER_UNIT", "1")),
    "POLL_INITIAL_DELAY_SECONDS": float(os.environ.get("POS_POLL_INITIAL_DELAY_SECONDS", "5")),
    "POLL_INTERVAL_SECONDS": float(os.environ.get("POS_POLL_INTERVAL_SECONDS", "5")),
    "POLL_MAX_ATTEMPTS": int(os.environ.get("POS_POLL_MAX_ATTEMPTS", "12")),
    "ROUNDING_TOLERANCE": os.environ.get("POS_ROUNDING_TOLERANCE", "1"),
}

POS_BUSINESS_PROFILE = {
    "BUSINESS_NAME": os.environ.get("POS_BUSINESS_NAME", ""),
    "TAX_PIN": os.environ.get("POS_TAX_PIN", ""),
    "TAX_REGISTERED": os.environ.get("POS_TAX_REGISTERED", "1") == "1",
    "PHONE": os.environ.get("POS_BUSINESS_PHONE", ""),
    "EMAIL": os.environ.get("POS_BUSINESS_EMAIL", ""),
    "ADDRESS": os.environ.get("POS_BUSINESS_ADDRESS", ""),
    "LOGO_URL": os.environ.get("POS_LOGO_URL", ""),
    "TIMEZONE": os.environ.get("POS_BUSINESS_TIMEZONE", ""),
}

# ── Mobile Money Gateway ──────────────────────────────────────
MOBILE_MONEY_GATEWAY = {
    "BASE_URL": os.environ.get("POS_MOBILE_MONEY_BASE_URL", "http://127.0.0.1:54321/functions/v1"),
    "API_KEY": os.environ.get("POS_MOBILE_MONEY_API_KEY", ""),
    "TIMEOUT_SECONDS": float(os.environ.get("POS_MOBILE_MONEY_TIMEOUT_SECONDS", "15")),
}

# ── Logging ───────────────────────────────────────────────────
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {
            "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "plain",
        },
    },
    "loggers": {
        "pos": {
            "handlers": ["console"],
            "level": os.environ.get("POS_LOG_LEVEL", "INFO"),
            "propagate": True,
        },
    },
}
