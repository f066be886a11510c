"""Popup fixo do poste: uma única instância, que sobrevive a redesenhos.

Estados:
- solto (unpinned): nenhum poste selecionado;
- fixo (pinned): `open(poste)` guardou `{lat, lon, html}`.

Só o fechamento explícito do usuário volta ao estado solto. Quando a camada
de marcadores é limpa (redesenho em massa), o popup é apenas desanexado e
`resynchronize()` o reconstrói a partir do estado guardado.
"""

from __future__ import annotations

import html
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from postes_map.data.geo import street_view_url

if TYPE_CHECKING:
    from postes_map.data.models import Poste

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PopupState:
    lat: float
    lon: float
    html: str
    transient: bool = False


class SharedPopup:
    """A instância única de popup do mapa (anexada ou não)."""

    def __init__(self) -> None:
        self._content: PopupState | None = None

    @property
    def content(self) -> PopupState | None:
        return self._content

    @property
    def is_open(self) -> bool:
        return self._content is not None

    def attach(self, state: PopupState) -> None:
        self._content = state

    def detach(self) -> None:
        self._content = None


def render_poste_popup_html(poste: Poste) -> str:
    """HTML do popup. Todo texto vindo dos dados é escapado."""

    def esc(value: object) -> str:
        return html.escape(str(value or ""))

    items = "".join(f"<li>{esc(e)}</li>" for e in poste.empresas)
    empresas_html = f"<ul>{items}</ul>" if items else " —"
    sv_url = html.escape(street_view_url(poste.lat, poste.lon), quote=True)

    return (
        f"<b>ID:</b> {esc(poste.id)}<br>"
        f"<b>Coord:</b> {poste.lat:.6f}, {poste.lon:.6f}<br>"
        f"<b>Município:</b> {esc(poste.nome_municipio)}<br>"
        f"<b>Bairro:</b> {esc(poste.nome_bairro)}<br>"
        f"<b>Logradouro:</b> {esc(poste.nome_logradouro)}<br>"
        f"<b>Empresas:</b>{empresas_html}"
        f'<a href="{sv_url}" target="_blank" rel="noopener">Abrir no Street View</a>'
    )


def render_coordinate_popup_html(lat: float, lon: float) -> str:
    return f"<b>Coordenada:</b> {lat}, {lon}"


class PinnedPopupController:
    def __init__(self, popup: SharedPopup | None = None) -> None:
        self._popup = popup or SharedPopup()
        self._state: PopupState | None = None

    @property
    def popup(self) -> SharedPopup:
        return self._popup

    @property
    def pinned(self) -> bool:
        return self._state is not None

    @property
    def state(self) -> PopupState | None:
        return self._state

    def open(self, poste: Poste) -> PopupState:
        state = PopupState(lat=poste.lat, lon=poste.lon, html=render_poste_popup_html(poste))
        self._state = state
        self._popup.attach(state)
        logger.debug("Popup fixo aberto: poste %s", poste.id)
        return state

    def show_transient(self, lat: float, lon: float, content: str) -> None:
        """Popup avulso (ex.: busca por coordenada). Não mexe no estado fixo."""
        self._popup.attach(PopupState(lat=lat, lon=lon, html=content, transient=True))

    def dismiss_transient(self) -> None:
        """Tira o popup avulso da tela e devolve o fixo, se houver."""
        content = self._popup.content
        if content is None or not content.transient:
            return
        self._popup.detach()
        self.resynchronize()

    def on_popup_closed(self, by_user: bool) -> None:
        self._popup.detach()
        if by_user and self._state is not None:
            logger.debug("Popup fechado pelo usuário")
            self._state = None

    def close_by_user(self) -> None:
        self.on_popup_closed(by_user=True)

    def resynchronize(self) -> None:
        """Reanexa o popup fixo, se houver. Idempotente."""
        if self._state is None:
            return
        if self._popup.content != self._state:
            self._popup.attach(self._state)
