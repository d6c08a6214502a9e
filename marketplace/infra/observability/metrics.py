from prometheus_client import Counter, Histogram


# Listing Metrics
listings_created_total = Counter("marketplace_listings_created_total", "Total listings created")
listing_oversell_total = Counter(
    "marketplace_listing_oversell_total", "Paid orders whose listing had no stock left at confirmation"
)

# Offer Metrics
offers_total = Counter("marketplace_offers_total", "Offer lifecycle events", ["action"])

# Order Metrics
orders_placed_total = Counter("marketplace_orders_placed_total", "Total orders placed", ["status"])
order_transitions_total = Counter(
    "marketplace_order_transitions_total", "Applied order status transitions", ["to_status"]
)
order_value = Histogram(
    "marketplace_order_value",
    "Order value distribution",
    buckets=[5, 10, 25, 50, 100, 250, 500, 1000, 5000, float("inf")],
)

# Shipping Metrics
carrier_calls_total = Counter("marketplace_carrier_calls_total", "Carrier API calls", ["operation", "status"])
carrier_webhooks_total = Counter("marketplace_carrier_webhooks_total", "Carrier webhooks received", ["result"])
carrier_call_duration = Histogram("marketplace_carrier_call_seconds", "Carrier API call time", ["operation"])

# Trust Metrics
reports_total = Counter("marketplace_reports_total", "Reports submitted")
suspensions_total = Counter("marketplace_suspensions_total", "Marketplace suspensions applied", ["source"])
