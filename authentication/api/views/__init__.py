from .address_views import ShippingAddressView


__all__ = [
    "ShippingAddressView",
]
