from django.urls import path
from rest_framework_simplejwt.views import TokenRefreshView

from authentication.api.views import ShippingAddressView

urlpatterns = [
    path("token/refresh/", TokenRefreshView.as_view(), name="token_refresh"),
    path("shipping-address/", ShippingAddressView.as_view(), name="shipping_address"),
]
