"""Mapa interativo (folium + streamlit-folium).

A cada execução o mapa é montado de novo a partir do `MapSession`:
camada base escolhida, cluster de postes, sobreposição de traçado e o popup
fixo (ou avulso) aberto. O estado devolvido pelo `st_folium` volta para
`MapSession.handle_map_event`.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import folium
from folium.plugins import LocateControl
import streamlit as st
from streamlit_folium import st_folium

from postes_map.core.config import settings
from postes_map.ui.components import (
    COLOR_CENSO,
    COLOR_DISPONIVEL,
    COLOR_INTERMEDIARIO,
    COLOR_OCUPADO,
    COLOR_ROTA,
    format_empresas,
    marker_tooltip,
)
from postes_map.ui.markers import CLUSTER_CSS
from postes_map.ui.session import MAP_GENERATION_FIELD

if TYPE_CHECKING:
    from postes_map.data.models import Poste
    from postes_map.ui.popup import PopupState
    from postes_map.ui.session import ActiveOverlay, MapSession

logger = logging.getLogger(__name__)

_OSM = (
    "https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png",
    "&copy; OpenStreetMap contributors",
)
_ESRI_SAT = (
    "https://server.arcgisonline.com/ArcGIS/rest/services/World_Imagery/MapServer/tile/{z}/{y}/{x}",
    "Tiles &copy; Esri",
)
_CARTO_LABELS = (
    "https://{s}.basemaps.cartocdn.com/light_only_labels/{z}/{x}/{y}{r}.png",
    "&copy; CARTO",
)

# nome exibido → camadas de tiles (a primeira é a base, as demais sobrepostas)
BASE_LAYERS: dict[str, list[tuple[str, str]]] = {
    "Ruas": [_OSM],
    "Satélite": [_ESRI_SAT],
    "Satélite + rótulos": [_ESRI_SAT, _CARTO_LABELS],
}
DEFAULT_BASE_LAYER = "Ruas"

MAP_HEIGHT = 620
MAP_KEY = "mapa_postes"
RETURNED_OBJECTS = [
    "last_object_clicked",
    "last_object_clicked_tooltip",
    "bounds",
    "center",
    "zoom",
]


def _numbered_icon(poste: Poste, number: int) -> folium.DivIcon:
    color = COLOR_OCUPADO if poste.ocupado else COLOR_DISPONIVEL
    return folium.DivIcon(
        html=(
            f'<div style="background:{color};color:white;width:22px;height:22px;'
            "border-radius:50%;display:flex;align-items:center;justify-content:center;"
            f'font-size:12px;border:2px solid white">{number}</div>'
        ),
        icon_size=(22, 22),
        icon_anchor=(11, 11),
    )


def add_route_overlay(fmap: folium.Map, overlay: ActiveOverlay) -> None:
    """Marcadores numerados, linha tracejada e intermediários (dourados)."""
    route = overlay.route
    group = folium.FeatureGroup(name="Traçado")

    if route.has_line:
        folium.PolyLine(
            route.path,
            color=COLOR_ROTA,
            weight=3,
            dash_array="4,6",
        ).add_to(group)

    for p in route.intermediates:
        folium.CircleMarker(
            location=[p.lat, p.lon],
            radius=6,
            color="gold",
            weight=2,
            fill=True,
            fill_color=COLOR_INTERMEDIARIO,
            fill_opacity=0.8,
            tooltip=f"{marker_tooltip(p)} · intermediário: {format_empresas(p)}",
        ).add_to(group)

    for number, p in overlay.numbered:
        folium.Marker(
            location=[p.lat, p.lon],
            icon=_numbered_icon(p, number),
            tooltip=marker_tooltip(p),
        ).add_to(group)

    group.add_to(fmap)


def add_popup(fmap: folium.Map, state: PopupState) -> None:
    popup = folium.Popup(
        state.html,
        max_width=360,
        show=True,
        auto_close=False,
        close_on_click=False,
    )
    folium.Marker(
        location=[state.lat, state.lon],
        icon=folium.DivIcon(html="", icon_size=(0, 0)),
        popup=popup,
    ).add_to(fmap)


def add_locate_control(fmap: folium.Map) -> None:
    """Botão "Minha localização" (geolocalização do navegador).

    Sem permissão ou após o tempo limite, o mapa fica onde estava (centro
    padrão da configuração).
    """
    LocateControl(
        position="topleft",
        fly_to=False,
        keep_current_zoom_level=False,
        strings={"title": "Minha localização", "popup": "📍 Você está aqui!"},
        locate_options={
            "enableHighAccuracy": True,
            "timeout": settings.locate_timeout_ms,
            "maxZoom": settings.locate_zoom,
        },
    ).add_to(fmap)


def build_map(session: MapSession, base_layer: str = DEFAULT_BASE_LAYER) -> folium.Map:
    view = session.view
    fmap = folium.Map(
        location=list(view.center),
        zoom_start=view.zoom,
        tiles=None,
        max_zoom=20,
        control_scale=True,
    )

    tiles = BASE_LAYERS.get(base_layer) or BASE_LAYERS[DEFAULT_BASE_LAYER]
    for i, (url, attr) in enumerate(tiles):
        folium.TileLayer(
            tiles=url,
            attr=attr,
            name=base_layer if i == 0 else f"{base_layer} (rótulos)",
            overlay=i > 0,
            control=False,
            max_zoom=20,
        ).add_to(fmap)

    fmap.get_root().header.add_child(folium.Element(CLUSTER_CSS))
    add_locate_control(fmap)

    if session.censo_mode:
        cluster = session.layer.to_folium(fill_color=COLOR_CENSO, border_color="#666", name="Censo")
    else:
        cluster = session.layer.to_folium()
    cluster.add_to(fmap)

    if session.overlay is not None:
        add_route_overlay(fmap, session.overlay)

    state = session.popup.popup.content
    if state is not None:
        add_popup(fmap, state)

    if view.fit_bounds is not None:
        fmap.fit_bounds(view.fit_bounds.to_folium())
    return fmap


def render_map(session: MapSession, base_layer: str = DEFAULT_BASE_LAYER) -> dict[str, Any] | None:
    """Desenha o mapa e devolve o estado informado pelo navegador.

    A chave do componente muda a cada geração do mapa; o estado devolvido
    leva o carimbo da geração que o produziu.
    """
    fmap = build_map(session, base_layer)
    generation = session.map_generation
    event = st_folium(
        fmap,
        key=f"{MAP_KEY}-{generation}",
        width=None,
        height=MAP_HEIGHT,
        returned_objects=RETURNED_OBJECTS,
    )
    if not isinstance(event, dict):
        return None
    return {**event, MAP_GENERATION_FIELD: generation}


def render_legend(session: MapSession) -> None:
    if session.censo_mode:
        st.caption(
            f'<span style="color:{COLOR_CENSO}">●</span> Modo censo: postes recenseados',
            unsafe_allow_html=True,
        )
        return
    st.caption(
        f'<span style="color:{COLOR_DISPONIVEL}">●</span> Disponível (até 4 empresas) &nbsp; '
        f'<span style="color:{COLOR_OCUPADO}">●</span> Ocupado (5 ou mais)',
        unsafe_allow_html=True,
    )


def render_popup_controls(session: MapSession) -> None:
    """O clique no X do popup não volta para o Python; o fechamento é por botão."""
    state = session.popup.popup.content
    if state is None:
        return
    col1, col2 = st.columns([4, 1])
    col1.markdown(state.html, unsafe_allow_html=True)
    label = "Fechar" if state.transient else "Fechar detalhe"
    if col2.button(label, use_container_width=True):
        session.close_popup()
        st.rerun()
