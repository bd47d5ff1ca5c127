"""
PATH: backend/settings/base.py

BASE SETTINGS (shared by dev + prod + test)

Operational maturity:
- Throttling (public write / poll / webhook scopes)
- Frontend redirect base + checkout redirect paths
- Stripe gateway config (secret key, webhook secret, bounded timeout)
- Shipping rate tiers + free shipping threshold
- Sentry (optional): error visibility in production
"""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import environ
from corsheaders.defaults import default_headers, default_methods

# -----------------------------------------
# BASE DIRECTORY
# -----------------------------------------
BASE_DIR = Path(__file__).resolve().parent.parent.parent

# -----------------------------------------
# ENV (django-environ)
# -----------------------------------------
env = environ.Env(
    DEBUG=(bool, True),
    SECRET_KEY=(str, ""),
    TIME_ZONE=(str, "UTC"),
    ALLOWED_HOSTS=(list, ["localhost", "127.0.0.1"]),
    CORS_ALLOWED_ORIGINS=(list, ["http://localhost:5173"]),
    CSRF_TRUSTED_ORIGINS=(list, ["http://localhost:5173"]),
    DATABASE_URL=(str, f"sqlite:///{BASE_DIR / 'db.sqlite3'}"),
    LOG_LEVEL=(str, "INFO"),
    ADMIN_PATH=(str, "admin/"),
    # Stripe
    STRIPE_SECRET_KEY=(str, ""),
    STRIPE_WEBHOOK_SECRET=(str, ""),
    STRIPE_API_BASE=(str, "https://api.stripe.com"),
    STRIPE_API_TIMEOUT_SECONDS=(int, 20),
    STRIPE_WEBHOOK_TOLERANCE_SECONDS=(int, 300),
    CHECKOUT_CURRENCY=(str, "eur"),
    # Shipping (minor units)
    SHIPPING_RATE_DOMESTIC=(int, 600),
    SHIPPING_RATE_ISLAND=(int, 1000),
    SHIPPING_RATE_INTERNATIONAL=(int, 1500),
    FREE_SHIPPING_THRESHOLD=(int, 5000),
    # Returns
    RETURN_WINDOW_DAYS=(int, 14),
    # Throttling
    THROTTLE_ANON_RATE=(str, "60/min"),
    THROTTLE_USER_RATE=(str, "600/min"),
    THROTTLE_PUBLIC_POLL_RATE=(str, "120/min"),
    THROTTLE_PUBLIC_WRITE_RATE=(str, "10/min"),
    THROTTLE_WEBHOOK_RATE=(str, "600/min"),
    FRONTEND_BASE_URL=(str, "http://localhost:5173"),
    # Sentry (optional; enable by setting SENTRY_DSN)
    SENTRY_DSN=(str, ""),
    SENTRY_ENVIRONMENT=(str, "development"),
    SENTRY_TRACES_SAMPLE_RATE=(float, 0.0),
    SENTRY_SEND_PII=(bool, False),
)

# -----------------------------------------
# LOAD .env
# -----------------------------------------
env_file_1 = BASE_DIR / ".env"
env_file_2 = BASE_DIR.parent / ".env"

if env_file_1.exists():
    env.read_env(str(env_file_1))
elif env_file_2.exists():
    env.read_env(str(env_file_2))

# -----------------------------------------
# CORE SECURITY
# -----------------------------------------
SECRET_KEY = (env("SECRET_KEY") or "dev-insecure-change-me").strip()
DEBUG = env.bool("DEBUG")
ALLOWED_HOSTS = env.list("ALLOWED_HOSTS")
ADMIN_PATH = (env("ADMIN_PATH") or "admin/").strip()

# -----------------------------------------
# I18N / TZ
# -----------------------------------------
LANGUAGE_CODE = "en-us"
TIME_ZONE = (env("TIME_ZONE") or "UTC").strip()
USE_I18N = True
USE_TZ = True

# -----------------------------------------
# AUTH USER MODEL (custom)
# -----------------------------------------
AUTH_USER_MODEL = "users.User"

# -----------------------------------------
# INSTALLED APPS
# -----------------------------------------
INSTALLED_APPS = [
    "corsheaders",
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
    "rest_framework_simplejwt",
    "drf_spectacular",
    "django_filters",
    "users.apps.UsersConfig",
    "products.apps.ProductsConfig",
    "orders.apps.OrdersConfig",
    "public.apps.PublicConfig",
]

# -----------------------------------------
# MIDDLEWARE
# -----------------------------------------
MIDDLEWARE = [
    "corsheaders.middleware.CorsMiddleware",
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "backend.urls"
WSGI_APPLICATION = "backend.wsgi.application"
APPEND_SLASH = True

# -----------------------------------------
# TEMPLATES (required for Django admin)
# -----------------------------------------
TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [str(BASE_DIR / "templates")],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    }
]

# -----------------------------------------
# REST FRAMEWORK
# -----------------------------------------
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": (
        "rest_framework_simplejwt.authentication.JWTAuthentication",
    ),
    "DEFAULT_PERMISSION_CLASSES": ("rest_framework.permissions.IsAuthenticated",),
    "DEFAULT_FILTER_BACKENDS": ("django_filters.rest_framework.DjangoFilterBackend",),
    "DEFAULT_PAGINATION_CLASS": "rest_framework.pagination.PageNumberPagination",
    "PAGE_SIZE": 20,
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
    "DEFAULT_THROTTLE_CLASSES": (
        "rest_framework.throttling.AnonRateThrottle",
        "rest_framework.throttling.UserRateThrottle",
    ),
    "DEFAULT_THROTTLE_RATES": {
        "anon": env("THROTTLE_ANON_RATE"),
        "user": env("THROTTLE_USER_RATE"),
        "public_poll": env("THROTTLE_PUBLIC_POLL_RATE"),
        "public_write": env("THROTTLE_PUBLIC_WRITE_RATE"),
        "webhook": env("THROTTLE_WEBHOOK_RATE"),
    },
}

# -----------------------------------------
# SIMPLE JWT
# -----------------------------------------
SIMPLE_JWT = {
    "ACCESS_TOKEN_LIFETIME": timedelta(minutes=30),
    "REFRESH_TOKEN_LIFETIME": timedelta(days=1),
    "ROTATE_REFRESH_TOKENS": True,
}

# -----------------------------------------
# DATABASE
# -----------------------------------------
DATABASES = {
    "default": env.db("DATABASE_URL"),
}

# -----------------------------------------
# FRONTEND BASE URL + CHECKOUT REDIRECTS
# -----------------------------------------
FRONTEND_BASE_URL = (env("FRONTEND_BASE_URL") or "http://localhost:5173").strip()

CHECKOUT_REDIRECTS = {
    "CHECKOUT": "/checkout",
    "CONFIRMATION": "/checkout/confirmation",
    "CANCELLATION": "/checkout/cancellation",
}

# -----------------------------------------
# PAYMENTS
# -----------------------------------------
PAYMENTS = {
    "STRIPE": {
        "SECRET_KEY": (env("STRIPE_SECRET_KEY") or "").strip(),
        "WEBHOOK_SECRET": (env("STRIPE_WEBHOOK_SECRET") or "").strip(),
        "API_BASE": (env("STRIPE_API_BASE") or "https://api.stripe.com").strip(),
        "TIMEOUT_SECONDS": env.int("STRIPE_API_TIMEOUT_SECONDS"),
        "WEBHOOK_TOLERANCE_SECONDS": env.int("STRIPE_WEBHOOK_TOLERANCE_SECONDS"),
        "CURRENCY": (env("CHECKOUT_CURRENCY") or "eur").strip().lower(),
    }
}

# -----------------------------------------
# SHIPPING + RETURNS
# -----------------------------------------
SHIPPING_RATES = {
    "DOMESTIC": env.int("SHIPPING_RATE_DOMESTIC"),
    "ISLAND": env.int("SHIPPING_RATE_ISLAND"),
    "INTERNATIONAL": env.int("SHIPPING_RATE_INTERNATIONAL"),
}
FREE_SHIPPING_THRESHOLD = env.int("FREE_SHIPPING_THRESHOLD")
RETURN_WINDOW_DAYS = env.int("RETURN_WINDOW_DAYS")

# -----------------------------------------
# LOGGING
# -----------------------------------------
LOG_LEVEL = (env("LOG_LEVEL") or "INFO").strip().upper()

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {
            "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "simple",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
    "loggers": {
        "orders": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "public": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "products": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
    },
}

# -----------------------------------------
# SENTRY (optional)
# -----------------------------------------
SENTRY_DSN = (env("SENTRY_DSN") or "").strip()
SENTRY_ENVIRONMENT = (env("SENTRY_ENVIRONMENT") or "development").strip()
SENTRY_TRACES_SAMPLE_RATE = float(env("SENTRY_TRACES_SAMPLE_RATE"))
SENTRY_SEND_PII = env.bool("SENTRY_SEND_PII")

if SENTRY_DSN:
    import sentry_sdk
    from sentry_sdk.integrations.django import DjangoIntegration

    sentry_sdk.init(
        dsn=SENTRY_DSN,
        environment=SENTRY_ENVIRONMENT,
        integrations=[DjangoIntegration()],
        traces_sample_rate=SENTRY_TRACES_SAMPLE_RATE,
        send_default_pii=SENTRY_SEND_PII,
    )

# -----------------------------------------
# CORS / CSRF
# -----------------------------------------
CORS_ALLOWED_ORIGINS = env.list("CORS_ALLOWED_ORIGINS")
CORS_ALLOW_CREDENTIALS = True
CORS_ALLOW_METHODS = list(default_methods)
CORS_ALLOW_HEADERS = list(default_headers)

CSRF_TRUSTED_ORIGINS = env.list("CSRF_TRUSTED_ORIGINS")

# -----------------------------------------
# STATIC FILES
# -----------------------------------------
STATIC_URL = "static/"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# -----------------------------------------
# SWAGGER
# -----------------------------------------
SPECTACULAR_SETTINGS = {
    "TITLE": "Storefront Backend API",
    "DESCRIPTION": "Order lifecycle, refunds and checkout reconciliation API",
    "VERSION": "1.0.0",
    "SERVE_INCLUDE_SCHEMA": False,
}
