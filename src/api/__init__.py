"""
RivalMap FastAPI Application.

This package contains the REST API for RivalMap:

- main: FastAPI application factory, exception handlers and router wiring
- routes/: API endpoint definitions organized by domain
- models: Pydantic response envelopes and payloads
- responses: helpers building success/error envelopes
- dependencies: FastAPI dependency injection providers

API Structure:
- /health, /health/live, /health/ready - Health and readiness probes
- /api/test-db - Backing-store connectivity probe
- /api/v1/auth/me - Current user
- /api/v1/competitors/search - Competitor search and map rendering
- /metrics - Prometheus metrics

Example:
    # Run with: uvicorn src.api.main:app --reload
"""
