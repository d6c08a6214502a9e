"""
Shipping Provider Factory
=========================

Factory pattern for creating carrier integrations based on configuration.
"""

import logging
from typing import Literal

from django.conf import settings

from .interface import ShippingProviderInterface
from .mock_provider import MockShippingProvider
from .shippo_provider import ShippoProvider

logger = logging.getLogger(__name__)

ShippingBackend = Literal["shippo", "mock"]


class ShippingFactory:
    """
    Factory for creating shipping provider instances.

    Usage:
        # In settings.py
        INFRASTRUCTURE = {"SHIPPING_PROVIDER": "shippo"}  # or "mock"

        # In your code
        carrier = ShippingFactory.create()
    """

    @staticmethod
    def create(backend: ShippingBackend | None = None) -> ShippingProviderInterface:
        backend_type = backend or settings.INFRASTRUCTURE.get("SHIPPING_PROVIDER", "shippo")

        logger.info(f"Creating shipping provider: {backend_type}")

        if backend_type == "shippo":
            return ShippoProvider()
        elif backend_type == "mock":
            return MockShippingProvider()
        else:
            raise ValueError(f"Invalid shipping provider: {backend_type}. Use 'shippo' or 'mock'")
