from prometheus_client import Counter, Histogram


# Define Prometheus metrics
payment_volume_total = Counter("payment_volume_total", "Total payment volume processed", ["currency", "status"])

checkout_sessions_total = Counter("payment_checkout_sessions_total", "Checkout sessions opened", ["status"])

payment_webhooks_total = Counter("payment_webhooks_total", "Payment webhooks received", ["event_type", "result"])

refunds_total = Counter("payment_refunds_total", "Refund requests", ["reason", "status"])

payment_provider_latency_seconds = Histogram(
    "payment_provider_latency_seconds", "Payment provider call time", ["operation"]
)
