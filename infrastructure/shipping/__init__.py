"""
Shipping Carrier Abstraction Layer
==================================

Unified interface for rate quotes, label purchase and tracking webhooks.
"""

from .factory import ShippingFactory
from .interface import (
    Address,
    CarrierException,
    CarrierShipment,
    Label,
    Parcel,
    Rate,
    ShippingProviderInterface,
)
from .mock_provider import MockShippingProvider
from .shippo_provider import ShippoProvider, verify_hmac_signature

__all__ = [
    "ShippingProviderInterface",
    "Address",
    "Parcel",
    "Rate",
    "Label",
    "CarrierShipment",
    "CarrierException",
    "ShippoProvider",
    "MockShippingProvider",
    "ShippingFactory",
    "verify_hmac_signature",
]
