"""Cache de marcadores e camada agrupada (cluster).

- `MarkerCache`: dono exclusivo de `id → PosteMarker`. Cada marcador é criado
  no máximo uma vez por sessão e nunca é destruído.
- `ClusterLayer`: contêiner exibido no mapa. Guarda apenas referências; um
  redesenho remove e readiciona referências, sem recriar marcadores.

Os objetos folium são descartáveis (o Streamlit refaz a página a cada
interação), por isso `to_folium()` monta objetos novos a partir do estado.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING

import folium
from folium.plugins import MarkerCluster

from postes_map.core.config import settings
from postes_map.ui.components import marker_tooltip, occupancy_color

if TYPE_CHECKING:
    from postes_map.data.models import Poste

logger = logging.getLogger(__name__)

# Ícone do cluster mostra só o número (sem anel de cobertura).
CLUSTER_ICON_JS = """
function(cluster) {
    var count = cluster.getChildCount();
    var size = count < 100 ? 34 : (count < 1000 ? 40 : 48);
    return L.divIcon({
        html: '<div class="poste-cluster"><span>' + count + '</span></div>',
        className: 'poste-cluster-icon',
        iconSize: L.point(size, size)
    });
}
"""

CLUSTER_CSS = """
<style>
.poste-cluster-icon { background: transparent; }
.poste-cluster {
    width: 100%; height: 100%; border-radius: 50%;
    background: rgba(31, 111, 235, 0.85); border: 2px solid #fff;
    display: flex; align-items: center; justify-content: center;
    color: #fff; font-weight: 700; font-size: 12px;
}
</style>
"""


class PosteMarker:
    """Marcador de um poste. `activate()` equivale ao clique no mapa."""

    def __init__(self, poste: Poste, on_open: Callable[[Poste], object]) -> None:
        self.poste = poste
        self._on_open = on_open

    @property
    def id(self) -> str:
        return self.poste.id

    @property
    def tooltip(self) -> str:
        return marker_tooltip(self.poste)

    @property
    def color(self) -> str:
        return occupancy_color(self.poste)

    def activate(self) -> None:
        self._on_open(self.poste)

    def to_folium(
        self,
        fill_color: str | None = None,
        border_color: str = "#fff",
    ) -> folium.CircleMarker:
        return folium.CircleMarker(
            location=[self.poste.lat, self.poste.lon],
            radius=6,
            color=border_color,
            weight=1,
            fill=True,
            fill_color=fill_color or self.color,
            fill_opacity=0.95,
            tooltip=self.tooltip,
        )


class MarkerCache:
    def __init__(self, on_open: Callable[[Poste], object]) -> None:
        self._on_open = on_open
        self._markers: dict[str, PosteMarker] = {}
        self.created_count = 0

    def __len__(self) -> int:
        return len(self._markers)

    def __contains__(self, poste_id: object) -> bool:
        return poste_id in self._markers

    def get(self, poste_id: str) -> PosteMarker | None:
        return self._markers.get(poste_id)

    def get_or_create(self, poste: Poste) -> PosteMarker:
        marker = self._markers.get(poste.id)
        if marker is None:
            marker = PosteMarker(poste, self._on_open)
            self._markers[poste.id] = marker
            self.created_count += 1
        return marker

    def values(self) -> list[PosteMarker]:
        return list(self._markers.values())


class ClusterLayer:
    def __init__(
        self,
        max_cluster_radius: int | None = None,
        disable_clustering_at_zoom: int | None = None,
        on_clear: Callable[[], None] | None = None,
    ) -> None:
        self.max_cluster_radius = (
            settings.cluster_max_radius if max_cluster_radius is None else max_cluster_radius
        )
        self.disable_clustering_at_zoom = (
            settings.cluster_disable_at_zoom
            if disable_clustering_at_zoom is None
            else disable_clustering_at_zoom
        )
        self._on_clear = on_clear
        # dict mantém a ordem de inserção
        self._refs: dict[str, PosteMarker] = {}

    def __len__(self) -> int:
        return len(self._refs)

    def add_layer(self, marker: PosteMarker) -> None:
        if marker.id not in self._refs:
            self._refs[marker.id] = marker

    def add_layers(self, markers: Iterable[PosteMarker]) -> None:
        for marker in markers:
            self.add_layer(marker)

    def clear_layers(self) -> None:
        self._refs.clear()
        if self._on_clear is not None:
            self._on_clear()

    def has_layer(self, marker: PosteMarker | str) -> bool:
        key = marker if isinstance(marker, str) else marker.id
        return key in self._refs

    def markers(self) -> list[PosteMarker]:
        return list(self._refs.values())

    def ids(self) -> list[str]:
        return list(self._refs)

    def cluster_options(self) -> dict[str, object]:
        return {
            "maxClusterRadius": self.max_cluster_radius,
            "disableClusteringAtZoom": self.disable_clustering_at_zoom,
            "showCoverageOnHover": False,
            "chunkedLoading": True,
        }

    def to_folium(
        self,
        fill_color: str | None = None,
        border_color: str = "#fff",
        name: str = "Postes",
    ) -> MarkerCluster:
        cluster = MarkerCluster(
            name=name,
            options=self.cluster_options(),
            icon_create_function=CLUSTER_ICON_JS,
        )
        for marker in self._refs.values():
            marker.to_folium(fill_color=fill_color, border_color=border_color).add_to(cluster)
        logger.debug("Cluster montado com %d marcadores", len(self._refs))
        return cluster
