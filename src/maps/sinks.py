"""Map sinks - the pluggable drawing side of the map contract.

A sink receives a ``MapRender`` and produces whatever its rendering technology
needs. ``HtmlMapSink`` writes a standalone Leaflet page through Jinja2.
"""

from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import structlog
from jinja2 import Environment, FileSystemLoader, select_autoescape

from src.maps.contract import MapRender

logger = structlog.get_logger(__name__)

TEMPLATES_DIR = Path(__file__).parent / "templates"

LEAFLET_CSS = "https://unpkg.com/leaflet@1.9.4/dist/leaflet.css"
LEAFLET_JS = "https://unpkg.com/leaflet@1.9.4/dist/leaflet.js"
OSM_TILE_URL = "https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png"
OSM_ATTRIBUTION = "&copy; OpenStreetMap contributors"


@runtime_checkable
class MapSink(Protocol):
    """Anything that can draw a ``MapRender``."""

    def draw(self, render: MapRender) -> Any:
        ...


class HtmlMapSink:
    """Renders a map as a self-contained HTML page."""

    def __init__(
        self,
        title: str = "Location Map",
        height_px: int = 400,
        tile_url: str = OSM_TILE_URL,
        tile_attribution: str = OSM_ATTRIBUTION,
    ) -> None:
        self.title = title
        self.height_px = height_px
        self.tile_url = tile_url
        self.tile_attribution = tile_attribution
        self._env = Environment(
            loader=FileSystemLoader(str(TEMPLATES_DIR)),
            autoescape=select_autoescape(enabled_extensions=["html"]),
        )
        self._template = self._env.get_template("competitor_map.html")

    def draw(self, render: MapRender) -> str:
        html = self._template.render(
            title=self.title,
            height_px=self.height_px,
            leaflet_css=LEAFLET_CSS,
            leaflet_js=LEAFLET_JS,
            tile_url=self.tile_url,
            tile_attribution=self.tile_attribution,
            markers=render.markers,
            payload=render.model_dump(mode="json", by_alias=True),
        )
        logger.debug("map_rendered", sink="html", markers=len(render.markers))
        return html
