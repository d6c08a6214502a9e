from django.apps import AppConfig
from django.conf import settings


class MarketplaceConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "marketplace"

    def ready(self):
        # Exporter setup is opt-in; spans are no-ops without a provider
        if not getattr(settings, "TRACING_ENABLED", False):
            return

        from infrastructure.observability import setup_tracing

        setup_tracing(
            service_name=settings.OTEL_SERVICE_NAME,
            otlp_endpoint=settings.OTEL_EXPORTER_OTLP_TRACES_ENDPOINT,
        )
