"""
Shared utilities for the EV Catalog services.

This package aggregates common building blocks consumed by all services:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- base_service: FastAPI host with health, metrics and lifecycle hooks

Do not import from service packages into shared/.
"""
