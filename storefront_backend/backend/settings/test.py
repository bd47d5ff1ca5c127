# backend/settings/test.py
"""
PATH: backend/settings/test.py

TEST SETTINGS
- In-memory SQLite
- Dummy gateway credentials (gateway calls are patched in tests)
- Fast password hashing
- Throttling effectively off so API tests are not rate limited
"""

from __future__ import annotations

from .base import *  # noqa: F403
from .base import PAYMENTS, REST_FRAMEWORK

DEBUG = False

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

PAYMENTS["STRIPE"].update(
    {
        "SECRET_KEY": "sk_test_dummy",
        "WEBHOOK_SECRET": "whsec_test_dummy",
    }
)

FRONTEND_BASE_URL = "http://testserver-frontend"

REST_FRAMEWORK = {
    **REST_FRAMEWORK,
    "DEFAULT_THROTTLE_CLASSES": (),
    "DEFAULT_THROTTLE_RATES": {
        scope: "10000/min"
        for scope in ("anon", "user", "public_poll", "public_write", "webhook")
    },
}

SENTRY_DSN = ""
