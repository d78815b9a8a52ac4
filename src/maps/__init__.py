"""
Competitor map rendering.

- contract: MapViewModel -> MapRender (markers, bounds, zoom); pure, no I/O
- sinks: MapSink protocol and the Jinja2-backed HtmlMapSink

Example:
    from src.maps import render, HtmlMapSink

    page = HtmlMapSink().draw(render(center, competitors))
"""

from src.maps.contract import (
    InfoWindow,
    MapBounds,
    MapRender,
    MapViewModel,
    Marker,
    render,
    render_map,
)
from src.maps.sinks import HtmlMapSink, MapSink

__all__ = [
    "InfoWindow",
    "MapBounds",
    "MapRender",
    "MapViewModel",
    "Marker",
    "render",
    "render_map",
    "HtmlMapSink",
    "MapSink",
]
