"""Competitor map contract.

Turns a ``MapViewModel`` into a flat list of drawable primitives. Nothing here
talks to a map library; a ``MapSink`` (see ``src.maps.sinks``) does the drawing.

Marker rules:
- the "your location" marker is always present, always first, and stacks above
  every competitor marker;
- each competitor yields exactly one marker, labelled by its 1-based position;
- stacking follows input order, so the first competitor sits on top of the
  second, and so on.
"""

from typing import Any, Literal, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.search.models import Competitor, GeoPoint

YOUR_LOCATION_Z_INDEX = 1000
YOUR_LOCATION_TITLE = "Your Location"
DEFAULT_ZOOM = 13

MarkerKind = Literal["your_location", "competitor"]


class MapViewModel(BaseModel):
    """Everything needed to draw one search result."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    center: GeoPoint
    competitors: list[Competitor] = Field(default_factory=list)
    your_location: Optional[GeoPoint] = Field(None, alias="yourLocation")

    @model_validator(mode="before")
    @classmethod
    def default_your_location(cls, data: Any) -> Any:
        if isinstance(data, dict):
            if data.get("your_location") is None and data.get("yourLocation") is None:
                data = {**data, "your_location": data.get("center")}
        return data


class InfoWindow(BaseModel):
    """Popup content attached to a marker."""

    model_config = ConfigDict(populate_by_name=True)

    title: str
    subtitle: Optional[str] = None
    rating: Optional[float] = None
    distance_text: Optional[str] = Field(None, alias="distanceText")


class Marker(BaseModel):
    """One drawable point on the map."""

    model_config = ConfigDict(populate_by_name=True)

    kind: MarkerKind
    position: GeoPoint
    title: str
    label: Optional[str] = None
    z_index: int = Field(..., alias="zIndex")
    competitor_id: Optional[str] = Field(None, alias="competitorId")
    info: InfoWindow


class MapBounds(BaseModel):
    """Smallest box containing every marker."""

    south: float
    west: float
    north: float
    east: float

    @classmethod
    def around(cls, points: Sequence[GeoPoint]) -> "MapBounds":
        return cls(
            south=min(p.lat for p in points),
            west=min(p.lng for p in points),
            north=max(p.lat for p in points),
            east=max(p.lng for p in points),
        )


class MapRender(BaseModel):
    """Drawable output of the map contract."""

    center: GeoPoint
    zoom: int
    bounds: MapBounds
    markers: list[Marker]

    @property
    def competitor_markers(self) -> list[Marker]:
        return [m for m in self.markers if m.kind == "competitor"]


def format_distance(distance_miles: Optional[float]) -> Optional[str]:
    if distance_miles is None:
        return None
    return f"{round(distance_miles, 1):g} miles away"


def _your_location_marker(position: GeoPoint, total: int) -> Marker:
    return Marker(
        kind="your_location",
        position=position,
        title=YOUR_LOCATION_TITLE,
        # Competitors take 1..total, so this stays on top of any list length.
        z_index=max(YOUR_LOCATION_Z_INDEX, total + 1),
        info=InfoWindow(title=YOUR_LOCATION_TITLE, subtitle="Search center"),
    )


def _competitor_marker(competitor: Competitor, index: int, total: int) -> Marker:
    return Marker(
        kind="competitor",
        position=competitor.location,
        title=competitor.name,
        label=str(index + 1),
        z_index=total - index,
        competitor_id=competitor.id,
        info=InfoWindow(
            title=competitor.name,
            rating=competitor.rating,
            distance_text=format_distance(competitor.distance_miles),
        ),
    )


def render_map(view: MapViewModel, zoom: int = DEFAULT_ZOOM) -> MapRender:
    """
    Build the drawable primitives for a map view.

    Competitors are not validated or re-ordered. An empty list is a valid
    result and renders the your-location marker alone.

    Args:
        view: Center, ranked competitors and the viewer's location.
        zoom: Initial zoom level handed to the sink.

    Returns:
        MapRender with ``len(view.competitors) + 1`` markers.
    """
    your_location = view.your_location or view.center
    total = len(view.competitors)

    markers = [_your_location_marker(your_location, total)]
    markers.extend(
        _competitor_marker(competitor, index, total)
        for index, competitor in enumerate(view.competitors)
    )

    return MapRender(
        center=view.center,
        zoom=zoom,
        bounds=MapBounds.around([view.center] + [m.position for m in markers]),
        markers=markers,
    )


def render(
    center: GeoPoint,
    competitors: Sequence[Competitor],
    zoom: int = DEFAULT_ZOOM,
) -> MapRender:
    """Render a search result whose origin also anchors "your location"."""
    view = MapViewModel(center=center, competitors=list(competitors), your_location=center)
    return render_map(view, zoom=zoom)
