"""Painel principal — métricas, tabela de resultado e resumo do traçado."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pandas as pd
import streamlit as st

from postes_map.ui.components import format_empresas, occupancy_emoji, occupancy_label

if TYPE_CHECKING:
    from postes_map.data.models import Poste, RouteSummary
    from postes_map.ui.session import MapSession


def render_summary_metrics(session: MapSession) -> None:
    """Total carregado, exibidos no mapa, disponíveis/ocupados."""
    total = len(session.postes)
    ocupados = sum(1 for p in session.postes if p.ocupado)

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Postes", f"{total:,}".replace(",", "."))
    col2.metric("No mapa", f"{len(session.layer):,}".replace(",", "."))
    col3.metric("Disponíveis", f"{total - ocupados:,}".replace(",", "."))
    col4.metric("Ocupados", f"{ocupados:,}".replace(",", "."))


def postes_to_dataframe(postes: list[Poste]) -> pd.DataFrame:
    rows = [
        {
            "Status": f"{occupancy_emoji(p)} {occupancy_label(p)}",
            "ID": p.id,
            "Município": p.nome_municipio,
            "Bairro": p.nome_bairro,
            "Logradouro": p.nome_logradouro,
            "Empresas": format_empresas(p),
            "Qtd. empresas": p.qtd_empresas,
            "Coordenadas": p.coordenadas,
        }
        for p in postes
    ]
    return pd.DataFrame(
        rows,
        columns=[
            "Status",
            "ID",
            "Município",
            "Bairro",
            "Logradouro",
            "Empresas",
            "Qtd. empresas",
            "Coordenadas",
        ],
    )


def render_result_table(postes: list[Poste], title: str = "Resultado do filtro") -> None:
    if not postes:
        return
    st.subheader(f"{title} ({len(postes)})")
    st.dataframe(postes_to_dataframe(postes), use_container_width=True, hide_index=True)


def render_route_summary(summary: RouteSummary) -> None:
    st.subheader("📐 Resumo da verificação")
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("IDs informados", summary.total)
    col2.metric("✔️ Disponíveis", summary.disponiveis)
    col3.metric("❌ Ocupados", summary.ocupados)
    col4.metric("🟡 Intermediários", summary.intermediarios)

    if summary.nao_encontrados:
        st.warning(
            f"⚠️ Não encontrados ({len(summary.nao_encontrados)}): "
            + ", ".join(summary.nao_encontrados)
        )
    else:
        st.caption("⚠️ Não encontrados: 0")
