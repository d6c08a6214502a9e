"""
Django settings for cardvaultBackend project.

All deployment-specific values come from environment variables (a local
``.env`` file is loaded for development). Marketplace business-policy
constants live in the ``MARKETPLACE`` dict and are read through
``marketplace.policy``.
"""

import os
from decimal import Decimal
from pathlib import Path

from django.core.exceptions import ImproperlyConfigured
from dotenv import load_dotenv


BASE_DIR = Path(__file__).resolve().parent.parent

load_dotenv(BASE_DIR / ".env")


def env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


DEBUG = env_bool("DEBUG", False)

SECRET_KEY = os.getenv("SECRET_KEY", "")
if not SECRET_KEY:
    if DEBUG:
        SECRET_KEY = "django-insecure-local-development-key"
    else:
        raise ImproperlyConfigured("SECRET_KEY environment variable must be set")

ALLOWED_HOSTS = [host.strip() for host in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1").split(",") if host]

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    # Third party
    "rest_framework",
    "rest_framework_simplejwt",
    "drf_spectacular",
    # Local apps
    "authentication",
    "marketplace",
    "payment_system",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "cardvaultBackend.middleware.JWTCSRFBypassMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "cardvaultBackend.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "cardvaultBackend.wsgi.application"
ASGI_APPLICATION = "cardvaultBackend.asgi.application"

# Database
if os.getenv("DB_ENGINE", "sqlite") == "postgresql":
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.getenv("DB_NAME", "cardvault"),
            "USER": os.getenv("DB_USER", "cardvault"),
            "PASSWORD": os.getenv("DB_PASSWORD", ""),
            "HOST": os.getenv("DB_HOST", "localhost"),
            "PORT": os.getenv("DB_PORT", "5432"),
            "ATOMIC_REQUESTS": False,
            "CONN_MAX_AGE": int(os.getenv("DB_CONN_MAX_AGE", "60")),
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }
    }

AUTH_USER_MODEL = "authentication.CustomUser"

AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"},
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
    {"NAME": "django.contrib.auth.password_validation.CommonPasswordValidator"},
    {"NAME": "django.contrib.auth.password_validation.NumericPasswordValidator"},
]

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# REST framework
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "rest_framework_simplejwt.authentication.JWTAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.IsAuthenticated",
    ],
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
}

SPECTACULAR_SETTINGS = {
    "TITLE": "Card Vault Marketplace API",
    "DESCRIPTION": "Listings, offers, checkout, shipping and trust endpoints",
    "VERSION": "1.0.0",
    "SERVE_INCLUDE_SCHEMA": False,
}

FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5000")

# Infrastructure providers
INFRASTRUCTURE = {
    "PAYMENT_PROVIDER": os.getenv("PAYMENT_PROVIDER", "stripe"),
    "SHIPPING_PROVIDER": os.getenv("SHIPPING_PROVIDER", "shippo"),
}

# Stripe
STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY", "")
STRIPE_PUBLISHABLE_KEY = os.getenv("STRIPE_PUBLISHABLE_KEY", "")
STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET", "")

# Shippo
SHIPPO_API_KEY = os.getenv("SHIPPO_API_KEY", "")
SHIPPO_API_URL = os.getenv("SHIPPO_API_URL", "https://api.goshippo.com")
SHIPPO_WEBHOOK_SECRET = os.getenv("SHIPPO_WEBHOOK_SECRET", "")

# Marketplace business policy
MARKETPLACE = {
    "PLATFORM_FEE_RATE": Decimal(os.getenv("MARKETPLACE_PLATFORM_FEE_RATE", "0.06")),
    "PROCESSOR_FEE_RATE": Decimal(os.getenv("MARKETPLACE_PROCESSOR_FEE_RATE", "0.029")),
    "PROCESSOR_FEE_FIXED": Decimal(os.getenv("MARKETPLACE_PROCESSOR_FEE_FIXED", "0.30")),
    "OFFER_EXPIRY_HOURS": int(os.getenv("MARKETPLACE_OFFER_EXPIRY_HOURS", "48")),
    "SUSPENSION_REPORT_THRESHOLD": int(os.getenv("MARKETPLACE_SUSPENSION_REPORT_THRESHOLD", "3")),
    "SUSPENSION_WINDOW_DAYS": int(os.getenv("MARKETPLACE_SUSPENSION_WINDOW_DAYS", "90")),
    "CURRENCY": os.getenv("MARKETPLACE_CURRENCY", "usd"),
    "ORDER_NUMBER_PREFIX": os.getenv("MARKETPLACE_ORDER_NUMBER_PREFIX", "CV"),
    "CARRIER_NAME": os.getenv("MARKETPLACE_CARRIER_NAME", "USPS"),
    "PROVIDER_TIMEOUT_SECONDS": int(os.getenv("MARKETPLACE_PROVIDER_TIMEOUT_SECONDS", "15")),
    # Local development only: accept carrier webhooks when no secret is configured.
    "CARRIER_WEBHOOK_ALLOW_UNSIGNED": env_bool("MARKETPLACE_CARRIER_WEBHOOK_ALLOW_UNSIGNED", False),
}

# Observability
TRACING_ENABLED = env_bool("TRACING_ENABLED", False)
OTEL_SERVICE_NAME = os.getenv("OTEL_SERVICE_NAME", "cardvault-marketplace")
OTEL_EXPORTER_OTLP_TRACES_ENDPOINT = os.getenv("OTEL_EXPORTER_OTLP_TRACES_ENDPOINT", "http://localhost:4318/v1/traces")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{levelname} {asctime} {name} {process:d} {thread:d} {message}",
            "style": "{",
        },
        "simple": {
            "format": "{levelname} {name} {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
    "loggers": {
        "django": {"handlers": ["console"], "level": "INFO", "propagate": False},
        "marketplace": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "payment_system": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "infrastructure": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "authentication": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
    },
}
