"""
Marketplace business policy.

Typed accessors over ``settings.MARKETPLACE`` so services never hard-code
rates, windows or thresholds. Values are read on each call, which keeps
``override_settings`` effective in tests.
"""

from datetime import timedelta
from decimal import Decimal

from django.conf import settings

DEFAULTS = {
    "PLATFORM_FEE_RATE": Decimal("0.06"),
    "PROCESSOR_FEE_RATE": Decimal("0.029"),
    "PROCESSOR_FEE_FIXED": Decimal("0.30"),
    "OFFER_EXPIRY_HOURS": 48,
    "SUSPENSION_REPORT_THRESHOLD": 3,
    "SUSPENSION_WINDOW_DAYS": 90,
    "CURRENCY": "usd",
    "ORDER_NUMBER_PREFIX": "CV",
    "CARRIER_NAME": "USPS",
    "PROVIDER_TIMEOUT_SECONDS": 15,
    "CARRIER_WEBHOOK_ALLOW_UNSIGNED": False,
}


def _get(key):
    return getattr(settings, "MARKETPLACE", {}).get(key, DEFAULTS[key])


def platform_fee_rate() -> Decimal:
    return Decimal(str(_get("PLATFORM_FEE_RATE")))


def processor_fee_rate() -> Decimal:
    return Decimal(str(_get("PROCESSOR_FEE_RATE")))


def processor_fee_fixed() -> Decimal:
    return Decimal(str(_get("PROCESSOR_FEE_FIXED")))


def offer_expiry() -> timedelta:
    return timedelta(hours=int(_get("OFFER_EXPIRY_HOURS")))


def suspension_report_threshold() -> int:
    return int(_get("SUSPENSION_REPORT_THRESHOLD"))


def suspension_window() -> timedelta:
    return timedelta(days=int(_get("SUSPENSION_WINDOW_DAYS")))


def currency() -> str:
    return str(_get("CURRENCY")).lower()


def order_number_prefix() -> str:
    return str(_get("ORDER_NUMBER_PREFIX"))


def carrier_name() -> str:
    return str(_get("CARRIER_NAME"))
