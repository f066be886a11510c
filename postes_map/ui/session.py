"""Estado do mapa por sessão e os pontos de entrada das ações do usuário.

`MapSession` junta a coleção de postes, o cache de marcadores, a camada
agrupada, o carregador gradual, o popup fixo, o modo censo e a sobreposição
de traçado. Vive em `st.session_state` e é o único lugar onde esse estado
muda; as funções de busca e agregação em `postes_map.data` são puras.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from postes_map.core.config import settings
from postes_map.core.exceptions import NoResultsError, PosteMapError
from postes_map.data.bi import aggregate_by_municipio
from postes_map.data.filters import (
    CoordinateHit,
    filter_by_attributes,
    find_by_id,
    index_by_id,
    parse_coordinate_query,
    parse_id_list,
)
from postes_map.data.geo import GeoBBox, bbox_from_leaflet_bounds, bbox_of_points
from postes_map.data.models import BIResult, Poste
from postes_map.data.normalizer import PosteLookups, build_lookups
from postes_map.data.route import RouteResult, resolve_route
from postes_map.ui.loader import IdleScheduler, IncrementalLoader
from postes_map.ui.markers import ClusterLayer, MarkerCache
from postes_map.ui.popup import PinnedPopupController, render_coordinate_popup_html

logger = logging.getLogger(__name__)

_TOOLTIP_ID = re.compile(r"^\s*ID:\s*(\S+)")
# Tolerância para casar a coordenada do clique com a de um poste.
_CLICK_EPS = 1e-7
# Carimbo da geração do mapa que produziu o evento (ver `close_popup`).
MAP_GENERATION_FIELD = "map_generation"


@dataclass
class ViewState:
    center: tuple[float, float] = (settings.default_center_lat, settings.default_center_lon)
    zoom: int = settings.default_zoom
    # pedido de enquadramento vindo de uma ação (traçado, filtro)
    fit_bounds: GeoBBox | None = None
    # área visível informada pelo mapa na última interação
    viewport: GeoBBox | None = None

    def center_on(self, lat: float, lon: float, zoom: int | None = None) -> None:
        self.center = (lat, lon)
        if zoom is not None:
            self.zoom = zoom
        self.fit_bounds = None

    def fit(self, bbox: GeoBBox) -> None:
        self.center = bbox.center
        self.fit_bounds = bbox


@dataclass
class ActiveOverlay:
    """Sobreposição de traçado: criada e descartada como uma unidade."""

    route: RouteResult
    numbered: list[tuple[int, Poste]] = field(default_factory=list)

    @classmethod
    def from_route(cls, route: RouteResult) -> ActiveOverlay:
        return cls(route=route, numbered=list(enumerate(route.found, start=1)))

    def postes(self) -> list[Poste]:
        return [p for _, p in self.numbered] + list(self.route.intermediates)


def clicked_poste_id(event: Mapping[str, Any]) -> str | None:
    """ID do poste a partir do tooltip do objeto clicado (`ID: <id> ...`)."""
    tooltip = event.get("last_object_clicked_tooltip")
    if not isinstance(tooltip, str):
        return None
    m = _TOOLTIP_ID.match(tooltip)
    return m.group(1) if m else None


def _click_key(event: Mapping[str, Any]) -> tuple[Any, ...] | None:
    clicked = event.get("last_object_clicked")
    if not isinstance(clicked, Mapping):
        return None
    return (clicked.get("lat"), clicked.get("lng"), event.get("last_object_clicked_tooltip"))


class MapSession:
    def __init__(
        self,
        postes: Sequence[Poste] = (),
        scheduler: IdleScheduler | None = None,
    ) -> None:
        self.popup = PinnedPopupController()
        self.scheduler = scheduler or IdleScheduler()
        self.view = ViewState()
        self.censo_mode = False
        self.censo_ids: set[str] | None = None
        self.overlay: ActiveOverlay | None = None
        self.result: list[Poste] = []
        self._last_click: tuple[Any, ...] | None = None
        self.map_generation = 0
        self._last_view_event: tuple[Any, ...] | None = None
        self.set_postes(postes)

    # ------------------------------------------------------------------
    # Coleção
    # ------------------------------------------------------------------
    def set_postes(self, postes: Sequence[Poste]) -> None:
        """Instala uma coleção já normalizada. O popup fixo é preservado."""
        self.postes: list[Poste] = list(postes)
        self._by_id = index_by_id(self.postes)
        self.lookups: PosteLookups = build_lookups(self.postes)

        self.cache = MarkerCache(on_open=self.popup.open)
        self.layer = ClusterLayer(on_clear=lambda: self.popup.on_popup_closed(by_user=False))
        self.loader = IncrementalLoader(self.cache, self.layer, self.popup, self.scheduler)
        self.loader.reset(self.postes)

        self.overlay = None
        self.result = []
        self.censo_mode = False
        logger.info("Sessão com %d postes", len(self.postes))

    def get(self, poste_id: str) -> Poste | None:
        return self._by_id.get(poste_id)

    @property
    def displayed_ids(self) -> list[str]:
        return self.layer.ids()

    # ------------------------------------------------------------------
    # Carregamento / redesenho
    # ------------------------------------------------------------------
    def load_all(self, is_visible: bool = True) -> None:
        self.loader.load_all(is_visible=is_visible)

    def show_all(self) -> None:
        self.censo_mode = False
        self.result = []
        self.loader.show_all()
        if not self.loader.all_loaded:
            self.loader.load_all()

    # ------------------------------------------------------------------
    # Censo
    # ------------------------------------------------------------------
    def toggle_censo(self, fetch_ids: Callable[[], set[str]]) -> bool:
        """Liga/desliga o modo censo e devolve o novo estado.

        Os IDs do censo são buscados uma vez por sessão. Se a busca falhar,
        o modo volta a desligado, todos os postes são redesenhados e o erro
        segue para a UI.
        """
        self.censo_mode = not self.censo_mode
        self.layer.clear_layers()
        if not self.censo_mode:
            self.show_all()
            return False

        if self.censo_ids is None:
            try:
                self.censo_ids = set(fetch_ids())
            except PosteMapError:
                logger.warning("Falha ao carregar censo; voltando à visão completa")
                self.show_all()
                raise

        ids = self.censo_ids
        self.layer.add_layers(self.cache.get_or_create(p) for p in self.postes if p.id in ids)
        self.popup.resynchronize()
        logger.info("Modo censo: %d postes", len(self.layer))
        return True

    # ------------------------------------------------------------------
    # Buscas
    # ------------------------------------------------------------------
    def search_id(self, text: str) -> Poste:
        poste = find_by_id(self.postes, text)
        self.view.center_on(poste.lat, poste.lon, settings.detail_zoom)
        self.popup.open(poste)
        return poste

    def search_coordinate(self, text: str) -> CoordinateHit:
        hit = parse_coordinate_query(text)
        self.view.center_on(hit.lat, hit.lon, settings.detail_zoom)
        self.popup.show_transient(hit.lat, hit.lon, render_coordinate_popup_html(hit.lat, hit.lon))
        return hit

    def search_attributes(
        self,
        municipio: str | None = None,
        bairro: str | None = None,
        logradouro: str | None = None,
        empresa: str | None = None,
    ) -> list[Poste]:
        found = filter_by_attributes(self.postes, municipio, bairro, logradouro, empresa)
        if not found:
            raise NoResultsError()

        self.censo_mode = False
        self.layer.clear_layers()
        self.layer.add_layers(self.cache.get_or_create(p) for p in found)
        self.popup.resynchronize()
        self.result = found

        bbox = bbox_of_points((p.lat, p.lon) for p in found)
        if bbox is not None:
            self.view.fit(bbox)
        logger.info("Filtro: %d postes", len(found))
        return found

    # ------------------------------------------------------------------
    # Traçado
    # ------------------------------------------------------------------
    def run_route(self, ids: str | Sequence[str]) -> RouteResult:
        id_list = parse_id_list(ids) if isinstance(ids, str) else list(ids)
        route = resolve_route(self.postes, id_list)

        self.layer.clear_layers()
        self.overlay = ActiveOverlay.from_route(route)
        if route.has_line and route.bounds is not None:
            self.view.fit(route.bounds)
        else:
            first = route.found[0]
            self.view.center_on(first.lat, first.lon, settings.detail_zoom)
        self.popup.resynchronize()
        return route

    def clear_overlays(self) -> None:
        self.overlay = None
        self.show_all()

    # ------------------------------------------------------------------
    # BI
    # ------------------------------------------------------------------
    def aggregate(self, empresa: str = "", apenas_visiveis: bool = False) -> BIResult:
        return aggregate_by_municipio(
            self.postes,
            empresa=empresa,
            apenas_visiveis=apenas_visiveis,
            bounds=self.view.viewport,
        )

    # ------------------------------------------------------------------
    # Eventos do mapa
    # ------------------------------------------------------------------
    def handle_map_event(self, event: Mapping[str, Any] | None) -> Poste | None:
        """Interpreta o estado devolvido pelo mapa.

        Atualiza área visível e, quando o usuário mexeu no mapa, centro e zoom.
        Um clique novo em qualquer poste abre o popup fixo; cliques já
        tratados em execuções anteriores são ignorados.
        """
        if not event:
            return None

        viewport = bbox_from_leaflet_bounds(event.get("bounds"))
        if viewport is not None:
            self.view.viewport = viewport
        self._apply_view_event(event)

        generation = event.get(MAP_GENERATION_FIELD, self.map_generation)
        if generation != self.map_generation:
            # estado de um mapa já descartado (antes de fechar o popup)
            return None

        key = _click_key(event)
        if key is None or key == self._last_click:
            return None
        self._last_click = key

        poste = self._poste_from_click(event)
        if poste is None:
            return None
        marker = self.cache.get(poste.id)
        if marker is not None:
            marker.activate()
        else:
            self.popup.open(poste)
        return poste

    def _apply_view_event(self, event: Mapping[str, Any]) -> None:
        center = event.get("center")
        zoom = event.get("zoom")
        if not isinstance(center, Mapping) or not isinstance(zoom, (int, float)):
            return
        key = (center.get("lat"), center.get("lng"), zoom)
        if key == self._last_view_event:
            return
        self._last_view_event = key
        try:
            lat = float(center["lat"])
            lon = float(center["lng"])
        except (KeyError, TypeError, ValueError):
            return
        self.view.center_on(lat, lon, int(zoom))

    def _poste_from_click(self, event: Mapping[str, Any]) -> Poste | None:
        poste_id = clicked_poste_id(event)
        if poste_id is not None and poste_id in self._by_id:
            return self._by_id[poste_id]

        clicked = event.get("last_object_clicked")
        try:
            lat = float(clicked["lat"])  # type: ignore[index]
            lon = float(clicked["lng"])  # type: ignore[index]
        except (KeyError, TypeError, ValueError):
            return None
        for p in self.postes:
            if abs(p.lat - lat) < _CLICK_EPS and abs(p.lon - lon) < _CLICK_EPS:
                return p
        return None

    def close_popup(self) -> None:
        """Fechamento pelo usuário.

        Um popup avulso (coordenada) só some; o popup fixo, se houver, volta.
        O mapa ganha uma nova geração: o componente é recriado e o último
        clique deixa de valer, então o mesmo poste pode ser aberto de novo.
        """
        content = self.popup.popup.content
        if content is not None and content.transient:
            self.popup.dismiss_transient()
        else:
            self.popup.close_by_user()
        self.map_generation += 1
        self._last_click = None
