"""Gráficos Plotly."""

from __future__ import annotations

from typing import TYPE_CHECKING

import plotly.graph_objects as go
import streamlit as st

from postes_map.core.config import settings

if TYPE_CHECKING:
    from postes_map.data.models import BIResult


def municipios_bar_figure(result: BIResult, top_n: int | None = None) -> go.Figure:
    """Barras com os N municípios com mais postes (20 por padrão)."""
    top = result.rows[: top_n or settings.bi_chart_top_n]
    fig = go.Figure(
        go.Bar(
            x=[r.municipio for r in top],
            y=[r.quantidade for r in top],
            marker_color="#1f6feb",
            text=[f"{r.quantidade:,}".replace(",", ".") for r in top],
            textposition="auto",
        )
    )
    fig.update_layout(
        title="Postes por município",
        xaxis_title="",
        yaxis_title="Qtd. de postes",
        height=380,
        margin=dict(l=10, r=10, t=40, b=30),
    )
    return fig


def render_municipios_chart(result: BIResult) -> None:
    if not result.rows:
        return
    st.plotly_chart(municipios_bar_figure(result), use_container_width=True)
