import os

# Mock SECRET_KEY for tests BEFORE importing settings to bypass validation
os.environ.setdefault("SECRET_KEY", "django-insecure-test-key-for-unit-tests-only")

from .settings import *  # noqa: F403

# Override Database to use SQLite for tests
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "db.sqlite3",  # noqa: F405
    }
}

# Disable external services
INFRASTRUCTURE["PAYMENT_PROVIDER"] = "mock"  # noqa: F405
INFRASTRUCTURE["SHIPPING_PROVIDER"] = "mock"  # noqa: F405

STRIPE_SECRET_KEY = "sk_test_mock_key"
STRIPE_WEBHOOK_SECRET = "whsec_test_mock_secret"
SHIPPO_WEBHOOK_SECRET = "shippo_test_webhook_secret"

TRACING_ENABLED = False

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

# Enable SessionAuthentication for tests to support client.force_login()
REST_FRAMEWORK["DEFAULT_AUTHENTICATION_CLASSES"].append(  # noqa: F405
    "rest_framework.authentication.SessionAuthentication"
)
