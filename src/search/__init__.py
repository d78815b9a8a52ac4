"""
Competitor search: request validation, data models and the collaborator seam.

- models: SearchRequest, GeoPoint, Competitor, CompetitorSearchResult
- validation: field-by-field validation with aggregated violations
- provider: CompetitorSearchProvider protocol and the bounded call wrapper
"""

from src.search.models import (
    Competitor,
    CompetitorSearchResult,
    GeoPoint,
    SearchRequest,
)
from src.search.provider import CompetitorSearchProvider, run_search
from src.search.validation import (
    ValidationResult,
    Violation,
    parse_search_request,
    validate_search_request,
)

__all__ = [
    "Competitor",
    "CompetitorSearchResult",
    "GeoPoint",
    "SearchRequest",
    "CompetitorSearchProvider",
    "run_search",
    "ValidationResult",
    "Violation",
    "parse_search_request",
    "validate_search_request",
]
