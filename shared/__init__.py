"""
Shared utilities for the live-reload server.

This package aggregates common building blocks used by the service:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- base_service: FastAPI application shell
- test_helpers: Channel doubles and an ASGI stream driver for tests

Do not import from service_* packages into shared/.
"""
