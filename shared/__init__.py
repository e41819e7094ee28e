"""
Shared utilities for the Prism edge gateway.

This package aggregates common building blocks consumed by the gateway:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- retry: Retry decorator for upstream calls
- circuit_breaker: Resilient external call protection
- base_service: FastAPI application scaffolding

Do not import from service_gateway into shared/.
"""
