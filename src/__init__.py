"""
RivalMap - local competitor discovery.

This package contains the core modules for the RivalMap service:
- search: search request models, validation and the search collaborator seam
- maps: map view model, marker rendering and map sinks
- auth: principal resolution and the authenticated request gate
- api: FastAPI application and endpoints
- config: Pydantic settings
- core: exception hierarchy
- monitoring: Prometheus metrics
"""

__version__ = "0.1.0"
