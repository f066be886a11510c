"""Sidebar — painel de busca (ID, coordenada, filtros em cascata, traçado)."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

import streamlit as st

if TYPE_CHECKING:
    from postes_map.data.models import Poste
    from postes_map.data.normalizer import PosteLookups


@dataclass
class SearchRequest:
    """Ação pedida pelo usuário nesta execução (no máximo uma)."""

    action: str
    text: str = ""
    municipio: str = ""
    bairro: str = ""
    logradouro: str = ""
    empresa: str = ""


def bairros_for(postes: Iterable[Poste], municipio: str | None) -> list[str]:
    return sorted(
        {p.nome_bairro for p in postes if p.nome_bairro and (not municipio or p.nome_municipio == municipio)}
    )


def logradouros_for(postes: Iterable[Poste], municipio: str | None, bairro: str | None) -> list[str]:
    return sorted(
        {
            p.nome_logradouro
            for p in postes
            if p.nome_logradouro
            and (not municipio or p.nome_municipio == municipio)
            and (not bairro or p.nome_bairro == bairro)
        }
    )


def empresa_suggestions(lookups: PosteLookups, typed: str, limit: int = 8) -> list[str]:
    """Empresas cujo nome contém o texto digitado, com a contagem de postes."""
    needle = (typed or "").strip().lower()
    nomes = [e for e in lookups.empresas_contagem if needle in e.lower()]
    return [lookups.empresa_label(e) for e in nomes[:limit]]


_INPUT_KEYS = {
    "busca_id": "",
    "busca_coord": "",
    "ids_multiplos": "",
    "busca_municipio": None,
    "busca_bairro": None,
    "busca_logradouro": None,
    "busca_empresa": "",
}


def _clear_inputs() -> None:
    for key, empty in _INPUT_KEYS.items():
        st.session_state[key] = empty


def render_search_panel(postes: list[Poste], lookups: PosteLookups) -> SearchRequest | None:
    """Renderiza a busca na sidebar e devolve a ação pedida, se houver."""
    request: SearchRequest | None = None

    st.sidebar.header("🔎 Busca")
    poste_id = st.sidebar.text_input("ID do poste", key="busca_id")
    if st.sidebar.button("Buscar ID", use_container_width=True):
        request = SearchRequest(action="id", text=poste_id)

    coord = st.sidebar.text_input("Coordenada", key="busca_coord", placeholder="-23.18, -45.88")
    if st.sidebar.button("Ir para coordenada", use_container_width=True):
        request = SearchRequest(action="coord", text=coord)

    st.sidebar.divider()
    st.sidebar.subheader("📍 Filtro por local")
    municipio = st.sidebar.selectbox(
        "Município",
        options=lookups.municipios,
        index=None,
        placeholder="Todos",
        key="busca_municipio",
    )
    bairro = st.sidebar.selectbox(
        "Bairro",
        options=bairros_for(postes, municipio),
        index=None,
        placeholder="Todos",
        key="busca_bairro",
    )
    logradouro = st.sidebar.selectbox(
        "Logradouro",
        options=logradouros_for(postes, municipio, bairro),
        index=None,
        placeholder="Todos",
        key="busca_logradouro",
    )
    empresa = st.sidebar.text_input(
        "Empresa",
        key="busca_empresa",
        placeholder="Todas (parte do nome também serve)",
    )
    sugestoes = empresa_suggestions(lookups, empresa)
    if sugestoes:
        st.sidebar.caption("Sugestões: " + " · ".join(sugestoes))
    if st.sidebar.button("Filtrar e exportar", use_container_width=True, type="primary"):
        request = SearchRequest(
            action="filtro",
            municipio=municipio or "",
            bairro=bairro or "",
            logradouro=logradouro or "",
            empresa=empresa or "",
        )

    st.sidebar.divider()
    st.sidebar.subheader("📐 Verificar traçado")
    ids_text = st.sidebar.text_area(
        "IDs em ordem",
        key="ids_multiplos",
        help="Um ID por linha (vírgulas e espaços também separam).",
    )
    if st.sidebar.button("Verificar IDs", use_container_width=True):
        request = SearchRequest(action="tracado", text=ids_text)

    st.sidebar.divider()
    col1, col2 = st.sidebar.columns(2)
    if col1.button("Censo", use_container_width=True, help="Liga/desliga o modo censo"):
        request = SearchRequest(action="censo")
    if col2.button("Limpar", use_container_width=True, on_click=_clear_inputs):
        request = SearchRequest(action="limpar")

    return request
