"""
Mock Shipping Provider
======================

Deterministic carrier for tests and local development. Returns fixed rates,
issues fake labels and verifies webhooks exactly like the real provider.
"""

import logging
import uuid
from decimal import Decimal
from typing import List, Optional, Tuple

from django.conf import settings

from .interface import (
    Address,
    CarrierException,
    CarrierShipment,
    Label,
    Parcel,
    Rate,
    ShippingProviderInterface,
)
from .shippo_provider import verify_hmac_signature

logger = logging.getLogger(__name__)

MOCK_RATES = (
    ("First Class Package", Decimal("4.50"), 3),
    ("Priority Mail", Decimal("9.85"), 2),
)


class MockShippingProvider(ShippingProviderInterface):
    """
    Mock carrier.

    - Stores shipments and purchased labels for verification
    - ``fail_next`` makes the next carrier call raise CarrierException
    """

    def __init__(self, webhook_secret: Optional[str] = None):
        self.webhook_secret = webhook_secret if webhook_secret is not None else settings.SHIPPO_WEBHOOK_SECRET
        self.carrier_name = settings.MARKETPLACE.get("CARRIER_NAME", "USPS")
        self.allow_unsigned = settings.MARKETPLACE.get("CARRIER_WEBHOOK_ALLOW_UNSIGNED", False)
        self.shipments: List[Tuple[Address, Address, Parcel]] = []
        self.labels: List[Label] = []
        self.fail_next = False

    def _maybe_fail(self, operation: str):
        if self.fail_next:
            self.fail_next = False
            raise CarrierException(f"[MOCK CARRIER] {operation} failed")

    def create_shipment(self, address_from: Address, address_to: Address, parcel: Parcel) -> CarrierShipment:
        self._maybe_fail("create_shipment")

        shipment_id = f"shp_mock_{uuid.uuid4().hex[:12]}"
        self.shipments.append((address_from, address_to, parcel))

        rates = [
            Rate(
                rate_id=f"rate_mock_{index}_{shipment_id}",
                provider=self.carrier_name,
                service_name=service_name,
                amount=amount,
                currency="USD",
                estimated_days=days,
            )
            for index, (service_name, amount, days) in enumerate(MOCK_RATES)
        ]

        logger.info(f"[MOCK CARRIER] Created shipment {shipment_id}")
        return CarrierShipment(shipment_id=shipment_id, rates=rates)

    def purchase_label(self, rate_id: str) -> Label:
        self._maybe_fail("purchase_label")

        tracking_number = f"9400{uuid.uuid4().int % 10**18:018d}"
        label = Label(
            transaction_id=f"txn_mock_{uuid.uuid4().hex[:12]}",
            tracking_number=tracking_number,
            tracking_url=f"https://tracking.mock.local/{tracking_number}",
            label_url=f"https://labels.mock.local/{rate_id}.pdf",
        )
        self.labels.append(label)

        logger.info(f"[MOCK CARRIER] Purchased label {label.transaction_id} for {rate_id}")
        return label

    def verify_webhook(self, payload: bytes, signature: str) -> bool:
        return verify_hmac_signature(self.webhook_secret, payload, signature, self.allow_unsigned)
