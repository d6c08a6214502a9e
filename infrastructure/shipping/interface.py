"""
Shipping Carrier Interface
==========================

Abstract base class defining the contract for carrier operations: rate
quotes, label purchase and signed tracking webhooks.
"""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional


@dataclass
class Address:
    """
    Postal address as sent to the carrier.

    Attributes mirror the carrier's address object; ``street2``, ``phone`` and
    ``email`` are optional.
    """

    name: str
    street1: str
    city: str
    state: str
    zip: str
    country: str = "US"
    street2: str = ""
    phone: str = ""
    email: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Address":
        return cls(
            name=data.get("name", ""),
            street1=data.get("street1", ""),
            street2=data.get("street2", "") or "",
            city=data.get("city", ""),
            state=data.get("state", ""),
            zip=data.get("zip", ""),
            country=data.get("country", "US") or "US",
            phone=data.get("phone", "") or "",
            email=data.get("email", "") or "",
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def missing_fields(self) -> List[str]:
        return [name for name in ("name", "street1", "city", "state", "zip") if not getattr(self, name)]


@dataclass
class Parcel:
    """
    Parcel dimensions.

    Attributes:
        length, width, height: Dimensions in ``distance_unit``
        weight: Weight in ``mass_unit``
    """

    length: Decimal
    width: Decimal
    height: Decimal
    weight: Decimal
    distance_unit: str = "in"
    mass_unit: str = "oz"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "length": str(self.length),
            "width": str(self.width),
            "height": str(self.height),
            "weight": str(self.weight),
            "distance_unit": self.distance_unit,
            "mass_unit": self.mass_unit,
        }


@dataclass
class Rate:
    rate_id: str
    provider: str
    service_name: str
    amount: Decimal
    currency: str
    estimated_days: Optional[int] = None


@dataclass
class CarrierShipment:
    shipment_id: str
    rates: List[Rate]


@dataclass
class Label:
    """
    A purchased shipping label.

    Attributes:
        transaction_id: Carrier transaction identifier
        tracking_number: Carrier tracking number
        tracking_url: Public tracking page
        label_url: Printable label (PDF)
    """

    transaction_id: str
    tracking_number: str
    tracking_url: str
    label_url: str


class ShippingProviderInterface(ABC):
    """
    Abstract interface for shipping carrier operations.

    Concrete implementations:
        - ShippoProvider: Shippo REST API
        - MockShippingProvider: deterministic in-memory carrier for tests
    """

    @abstractmethod
    def create_shipment(self, address_from: Address, address_to: Address, parcel: Parcel) -> CarrierShipment:
        """
        Create a carrier shipment and return its rate quotes.

        Raises:
            CarrierException: If the carrier rejects the request or is unreachable
        """
        pass

    @abstractmethod
    def purchase_label(self, rate_id: str) -> Label:
        """
        Purchase a label for a previously quoted rate.

        Raises:
            CarrierException: If the purchase does not succeed
        """
        pass

    @abstractmethod
    def verify_webhook(self, payload: bytes, signature: str) -> bool:
        """
        Check a tracking webhook signature against the raw request body.

        Returns:
            True only when the signature is valid
        """
        pass


class CarrierException(Exception):
    """Base exception for carrier operations."""

    def __init__(self, message: str, retryable: bool = True):
        super().__init__(message)
        self.retryable = retryable
