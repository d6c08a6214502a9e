"""
Infrastructure Package
======================

Provides abstraction layers for external dependencies following the Dependency Inversion Principle.

Modules:
    - payments: Payment provider abstraction (Stripe, mock)
    - shipping: Carrier abstraction (Shippo, mock)
    - observability: OpenTelemetry tracing helpers

This package enables:
    - Easy testing with mock implementations
    - Switching between providers without code changes
    - Loose coupling between business logic and infrastructure
"""
