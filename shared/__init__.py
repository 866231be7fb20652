"""
Shared utilities for the Janus gateway.

This package aggregates common building blocks consumed by the service:

- config: Settings via pydantic-settings (TOML file + environment)
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Error taxonomy and the opaque error response
- middleware: ASGI middleware (request body timeout)
- base_service: FastAPI application scaffolding

Do not import from service packages into shared/.
"""
