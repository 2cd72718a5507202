"""
Shared utilities for the cache gateway services.

This package aggregates common building blocks consumed by all services:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types
- base_service: FastAPI service skeleton with health and metrics routes

Do not import from service_* packages into shared/.
"""
