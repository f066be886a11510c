"""Utilitários geográficos: coordenadas em texto, distância e bounding boxes.

Tudo aqui é puro (sem rede) para poder ser testado isoladamente.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

EARTH_RADIUS_M = 6_371_000.0

_COORD_SPLIT = re.compile(r",\s*")


@dataclass(frozen=True)
class GeoBBox:
    """(south, west, north, east)"""

    south: float
    west: float
    north: float
    east: float

    def contains(self, lat: float, lon: float) -> bool:
        return self.south <= lat <= self.north and self.west <= lon <= self.east

    @property
    def center(self) -> tuple[float, float]:
        return (self.south + self.north) / 2.0, (self.west + self.east) / 2.0

    def to_folium(self) -> list[list[float]]:
        """Formato aceito por `folium.Map.fit_bounds`: [[s, w], [n, e]]."""
        return [[self.south, self.west], [self.north, self.east]]


def parse_coordinates(text: str | None) -> tuple[float, float] | None:
    """Converte `"lat,lon"` em floats.

    Retorna None quando o texto está vazio, tem menos de duas partes ou
    alguma das duas primeiras partes não é um número finito.

    Exemplos:
    - "-23.18, -45.88" -> (-23.18, -45.88)
    - "abc" -> None
    - "" -> None
    """

    raw = (text or "").strip()
    if not raw:
        return None

    parts = _COORD_SPLIT.split(raw)
    if len(parts) < 2:
        return None

    try:
        lat = float(parts[0])
        lon = float(parts[1])
    except ValueError:
        return None

    if not (math.isfinite(lat) and math.isfinite(lon)):
        return None
    return lat, lon


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Distância de grande círculo em metros (Terra esférica, R = 6.371.000 m)."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def bbox_of_points(points: Iterable[tuple[float, float]]) -> GeoBBox | None:
    lats: list[float] = []
    lons: list[float] = []
    for lat, lon in points:
        lats.append(lat)
        lons.append(lon)
    if not lats:
        return None
    return GeoBBox(south=min(lats), west=min(lons), north=max(lats), east=max(lons))


def bbox_from_leaflet_bounds(bounds: Any) -> GeoBBox | None:
    """Converte o `bounds` devolvido pelo st_folium em GeoBBox.

    Formato esperado:
    {"_southWest": {"lat": .., "lng": ..}, "_northEast": {"lat": .., "lng": ..}}
    """

    if not isinstance(bounds, Mapping):
        return None
    sw = bounds.get("_southWest")
    ne = bounds.get("_northEast")
    if not isinstance(sw, Mapping) or not isinstance(ne, Mapping):
        return None

    try:
        south = float(sw["lat"])
        west = float(sw["lng"])
        north = float(ne["lat"])
        east = float(ne["lng"])
    except (KeyError, TypeError, ValueError):
        return None

    if not all(math.isfinite(v) for v in (south, west, north, east)):
        return None
    return GeoBBox(south=south, west=west, north=north, east=east)


def street_view_url(lat: float, lon: float) -> str:
    """Link público do Google Street View (sem API key)."""
    return f"https://www.google.com/maps/@?api=1&map_action=pano&viewpoint={lat},{lon}"
