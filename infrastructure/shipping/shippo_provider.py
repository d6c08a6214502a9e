"""
Shippo Shipping Provider
========================

Concrete implementation of ShippingProviderInterface using the Shippo REST API.
"""

import hashlib
import hmac
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

import requests
from django.conf import settings
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from .interface import (
    Address,
    CarrierException,
    CarrierShipment,
    Label,
    Parcel,
    Rate,
    ShippingProviderInterface,
)

logger = logging.getLogger(__name__)


class CarrierUnavailable(CarrierException):
    """Transport failure or 5xx response; safe to retry."""


def verify_hmac_signature(secret: str, payload: bytes, signature: str, allow_unsigned: bool = False) -> bool:
    """
    Constant-time HMAC-SHA256 (hex digest) check of ``payload``.

    Without a configured secret the webhook is rejected, unless
    ``allow_unsigned`` is set for local development.
    """
    if not secret:
        if allow_unsigned:
            logger.warning(
                "SHIPPO_WEBHOOK_SECRET not configured: accepting UNSIGNED carrier webhook "
                "(CARRIER_WEBHOOK_ALLOW_UNSIGNED is on, never enable this in production)"
            )
            return True
        logger.error("SHIPPO_WEBHOOK_SECRET not configured, rejecting carrier webhook")
        return False

    if not signature:
        return False

    expected = hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature.strip())


class ShippoProvider(ShippingProviderInterface):
    """
    Shippo carrier integration.

    Configuration (in settings.py):
        SHIPPO_API_KEY: API token sent as ``Authorization: ShippoToken <key>``
        SHIPPO_API_URL: API base URL
        SHIPPO_WEBHOOK_SECRET: Shared secret for tracking webhook signatures
        MARKETPLACE["CARRIER_NAME"]: Only rates from this provider are returned
        MARKETPLACE["PROVIDER_TIMEOUT_SECONDS"]: HTTP timeout per request
    """

    def __init__(self):
        self.api_key = getattr(settings, "SHIPPO_API_KEY", "")
        self.api_url = getattr(settings, "SHIPPO_API_URL", "https://api.goshippo.com").rstrip("/")
        self.webhook_secret = getattr(settings, "SHIPPO_WEBHOOK_SECRET", "")
        self.carrier_name = settings.MARKETPLACE.get("CARRIER_NAME", "USPS")
        self.timeout = settings.MARKETPLACE.get("PROVIDER_TIMEOUT_SECONDS", 15)
        self.allow_unsigned = settings.MARKETPLACE.get("CARRIER_WEBHOOK_ALLOW_UNSIGNED", False)

        if not self.api_key:
            logger.warning("SHIPPO_API_KEY not configured")

    def _send(self, method: str, endpoint: str, body: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Internal method performing exactly one Shippo API call."""
        try:
            response = requests.request(
                method,
                f"{self.api_url}{endpoint}",
                json=body,
                headers={
                    "Authorization": f"ShippoToken {self.api_key}",
                    "Content-Type": "application/json",
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Shippo request {method} {endpoint} failed: {e}")
            raise CarrierUnavailable(f"Carrier unreachable: {e}") from e

        if response.status_code >= 500:
            logger.error(f"Shippo API error: {response.status_code} {response.text}")
            raise CarrierUnavailable(f"Carrier API error: {response.status_code}")

        if response.status_code >= 400:
            logger.error(f"Shippo API rejected request: {response.status_code} {response.text}")
            raise CarrierException(f"Carrier API error: {response.status_code}", retryable=False)

        return response.json()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        retry=retry_if_exception_type(CarrierUnavailable),
        reraise=True,
    )
    def _request(self, method: str, endpoint: str, body: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Shippo API call retried on outages. Not for requests that spend money."""
        return self._send(method, endpoint, body)

    def create_shipment(self, address_from: Address, address_to: Address, parcel: Parcel) -> CarrierShipment:
        """
        Create a Shippo shipment and return rates from the configured carrier only.
        """
        shipment = self._request(
            "POST",
            "/shipments",
            {
                "address_from": address_from.to_dict(),
                "address_to": address_to.to_dict(),
                "parcels": [parcel.to_dict()],
                "async": False,
            },
        )

        rates = []
        for raw_rate in shipment.get("rates", []):
            if raw_rate.get("provider") != self.carrier_name:
                continue
            try:
                amount = Decimal(str(raw_rate["amount"]))
            except (KeyError, InvalidOperation):
                logger.warning(f"Skipping malformed Shippo rate {raw_rate.get('object_id')}")
                continue
            rates.append(
                Rate(
                    rate_id=raw_rate["object_id"],
                    provider=raw_rate["provider"],
                    service_name=(raw_rate.get("servicelevel") or {}).get("name", ""),
                    amount=amount,
                    currency=raw_rate.get("currency", "USD"),
                    estimated_days=raw_rate.get("estimated_days"),
                )
            )

        logger.info(f"Created Shippo shipment {shipment.get('object_id')} with {len(rates)} {self.carrier_name} rates")

        return CarrierShipment(shipment_id=shipment["object_id"], rates=rates)

    def purchase_label(self, rate_id: str) -> Label:
        # Single attempt: a timed-out POST may still have bought the label
        transaction = self._send(
            "POST",
            "/transactions",
            {"rate": rate_id, "label_file_type": "PDF", "async": False},
        )

        if transaction.get("status") != "SUCCESS":
            messages = transaction.get("messages") or []
            logger.error(f"Shippo label purchase for rate {rate_id} failed: {messages}")
            raise CarrierException("Failed to purchase shipping label", retryable=False)

        logger.info(f"Purchased Shippo label {transaction['object_id']} for rate {rate_id}")

        return Label(
            transaction_id=transaction["object_id"],
            tracking_number=transaction.get("tracking_number", ""),
            tracking_url=transaction.get("tracking_url_provider", ""),
            label_url=transaction.get("label_url", ""),
        )

    def verify_webhook(self, payload: bytes, signature: str) -> bool:
        return verify_hmac_signature(self.webhook_secret, payload, signature, self.allow_unsigned)
