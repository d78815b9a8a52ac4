"""
RivalMap Test Suite.

- unit/: validation, map contract, auth gate, connectivity probe, search seam
- api/: endpoint tests through FastAPI's TestClient
- conftest.py: Shared fixtures and test configuration

Run tests with: pytest
Run with coverage: pytest --cov=src
"""
