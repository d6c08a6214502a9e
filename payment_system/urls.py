from django.urls import path

from payment_system.api.views import payment_views

app_name = "payment_system"

urlpatterns = [
    # Checkout
    path("checkout/", payment_views.create_checkout, name="checkout"),
    # Webhook endpoints
    path("webhooks/stripe/", payment_views.StripeWebhookView.as_view(), name="stripe_webhook"),
    # Internal confirmation callback (staff only)
    path("payment-confirmed/", payment_views.payment_confirmed, name="payment_confirmed"),
]
