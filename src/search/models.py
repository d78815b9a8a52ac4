"""Data models for competitor searches.

These are the shapes that flow from a validated search request, through the
external competitor-search collaborator, to the map contract. Wire names are
camelCase (``competitorCount``, ``distanceMiles``); Python attributes are
snake_case.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


# =============================================================================
# Bounds
# =============================================================================

ADDRESS_MIN_LENGTH = 5
ADDRESS_MAX_LENGTH = 200
RADIUS_MIN_MILES = 1
RADIUS_MAX_MILES = 50
COMPETITOR_COUNT_MIN = 1
COMPETITOR_COUNT_MAX = 20


# =============================================================================
# Value Types
# =============================================================================


class GeoPoint(BaseModel):
    """Latitude/longitude pair in decimal degrees."""

    model_config = ConfigDict(frozen=True)

    lat: float = Field(..., ge=-90, le=90, description="Latitude")
    lng: float = Field(..., ge=-180, le=180, description="Longitude")


class SearchRequest(BaseModel):
    """A search request that has passed validation.

    Build these with ``src.search.validation.validate_search_request``; the
    field constraints here restate the length and range bounds so a hand-built
    instance cannot carry out-of-range values.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    address: str = Field(
        ...,
        min_length=ADDRESS_MIN_LENGTH,
        max_length=ADDRESS_MAX_LENGTH,
        json_schema_extra={"example": "123 Main St, Springfield"},
    )
    radius: float = Field(
        ...,
        ge=RADIUS_MIN_MILES,
        le=RADIUS_MAX_MILES,
        description="Search radius in miles",
    )
    competitor_count: int = Field(
        ...,
        alias="competitorCount",
        ge=COMPETITOR_COUNT_MIN,
        le=COMPETITOR_COUNT_MAX,
        description="Maximum number of competitors to return",
    )


class Competitor(BaseModel):
    """A nearby business returned by the search collaborator."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., min_length=1, description="Unique within one result set")
    name: str = Field(..., description="Business name")
    location: GeoPoint
    rating: Optional[float] = Field(None, ge=0, le=5, description="Advisory 0-5 rating")
    distance_miles: Optional[float] = Field(
        None,
        alias="distanceMiles",
        ge=0,
        description="Distance from the search center, as computed by the collaborator",
    )


class CompetitorSearchResult(BaseModel):
    """What a competitor-search collaborator hands back for one request."""

    center: GeoPoint
    competitors: list[Competitor] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_unique_ids(self) -> "CompetitorSearchResult":
        seen: set[str] = set()
        for competitor in self.competitors:
            if competitor.id in seen:
                raise ValueError(f"duplicate competitor id: {competitor.id}")
            seen.add(competitor.id)
        return self

    def limited_to(self, count: int) -> "CompetitorSearchResult":
        """Return a copy holding at most ``count`` competitors, order kept."""
        if len(self.competitors) <= count:
            return self
        return CompetitorSearchResult(
            center=self.center,
            competitors=self.competitors[:count],
        )
