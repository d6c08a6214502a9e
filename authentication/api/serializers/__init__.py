from .address_serializers import ShippingAddressSerializer


__all__ = [
    "ShippingAddressSerializer",
]
