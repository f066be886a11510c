"""Painel de indicadores (BI): postes por município."""

from __future__ import annotations

from typing import TYPE_CHECKING

import streamlit as st

from postes_map.data.bi import bi_dataframe, csv_filename, rows_to_csv
from postes_map.ui.charts import render_municipios_chart

if TYPE_CHECKING:
    from postes_map.ui.session import MapSession


def render_bi_panel(session: MapSession) -> None:
    """Reagrega a cada execução (filtro de empresa / só área visível)."""
    col1, col2 = st.columns([3, 1])
    empresa = col1.text_input("Empresa (contém)", key="bi_empresa")
    apenas_visiveis = col2.checkbox("Só área visível", key="bi_visiveis")

    result = session.aggregate(empresa=empresa, apenas_visiveis=apenas_visiveis)
    if apenas_visiveis and session.view.viewport is None:
        st.caption("Área visível ainda desconhecida; mova o mapa para restringir.")

    alvo = f" da empresa “{empresa.strip()}”" if empresa.strip() else ""
    total = f"{result.total:,}".replace(",", ".")
    st.markdown(f"**{total}** postes{alvo} em **{len(result.rows)}** municípios")

    if not result.rows:
        st.info("Nenhum poste para os critérios atuais.")
        return

    render_municipios_chart(result)
    st.dataframe(bi_dataframe(result), use_container_width=True, hide_index=True)
    st.download_button(
        label="📥 CSV por município",
        data=rows_to_csv(result.rows).encode("utf-8"),
        file_name=csv_filename(empresa),
        mime="text/csv",
    )
