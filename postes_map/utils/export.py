"""Exportações: planilha gerada no navegador, relatório do servidor e CSV.

As duas exportações do filtro (servidor e cliente) são independentes: a falha
de uma não impede a outra e nenhuma delas mexe no estado do mapa. A exceção é
a sessão expirada, que sempre sobe para a UI (volta ao login).
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

import pandas as pd
import streamlit as st

from postes_map.core.exceptions import ReportExportError

if TYPE_CHECKING:
    from postes_map.data.models import Poste
    from postes_map.data.poste_api import PosteApiClient

logger = logging.getLogger(__name__)

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
EXPORT_COLUMNS = ["ID POSTE", "Município", "Bairro", "Logradouro", "Empresas", "Coordenadas"]


def postes_to_export_df(postes: list[Poste]) -> pd.DataFrame:
    rows = [
        {
            "ID POSTE": p.id,
            "Município": p.nome_municipio,
            "Bairro": p.nome_bairro,
            "Logradouro": p.nome_logradouro,
            "Empresas": ", ".join(p.empresas),
            "Coordenadas": p.coordenadas,
        }
        for p in postes
    ]
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS)


def build_client_xlsx(postes: list[Poste], sheet_name: str = "Filtro") -> bytes:
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        postes_to_export_df(postes).to_excel(writer, index=False, sheet_name=sheet_name)
    return buffer.getvalue()


@dataclass
class ReportExports:
    server_xlsx: bytes | None = None
    client_xlsx: bytes | None = None
    errors: list[str] = field(default_factory=list)


def _server_report(client: PosteApiClient, ids: list[str], result: ReportExports) -> None:
    try:
        result.server_xlsx = client.export_report(ids)
    except ReportExportError as exc:
        logger.error("Erro ao exportar relatório no servidor: %s", exc.message)
        result.errors.append(f"Falha ao gerar Excel backend: {exc.message}")


def export_filter_reports(client: PosteApiClient | None, postes: list[Poste]) -> ReportExports:
    """Gera o relatório do servidor e a planilha local para os postes filtrados.

    Sem cliente (dados offline) só a planilha local é gerada.
    `AuthExpiredError` não é tratada aqui.
    """
    result = ReportExports()
    if client is not None:
        _server_report(client, [p.id for p in postes], result)

    try:
        result.client_xlsx = build_client_xlsx(postes)
    except (ValueError, OSError) as exc:
        logger.exception("Erro ao gerar planilha local")
        result.errors.append(f"Falha ao gerar planilha local: {exc}")

    return result



def export_route_report(client: PosteApiClient, ids: list[str]) -> ReportExports:
    """Relatório do servidor para a lista de IDs do traçado (como foi digitada)."""
    result = ReportExports()
    _server_report(client, ids, result)
    return result


def render_filter_downloads(exports: ReportExports) -> None:
    for msg in exports.errors:
        st.error(msg)

    col1, col2 = st.columns(2)
    if exports.server_xlsx is not None:
        col1.download_button(
            label="📥 Relatório (servidor)",
            data=exports.server_xlsx,
            file_name="relatorio_postes_filtro_backend.xlsx",
            mime=XLSX_MIME,
        )
    if exports.client_xlsx is not None:
        col2.download_button(
            label="📥 Planilha do filtro",
            data=exports.client_xlsx,
            file_name="relatorio_postes_filtrados.xlsx",
            mime=XLSX_MIME,
        )


def render_route_downloads(postes: list[Poste], server_report: ReportExports | None = None) -> None:
    """Planilha e CSV dos postes encontrados no traçado, mais o relatório do servidor."""
    if server_report is not None:
        for msg in server_report.errors:
            st.error(msg)
    if not postes:
        return

    df = postes_to_export_df(postes)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")

    col1, col2, col3 = st.columns(3)
    col1.download_button(
        label="📥 CSV do traçado",
        data=df.to_csv(index=False, encoding="utf-8-sig"),
        file_name=f"tracado_postes_{timestamp}.csv",
        mime="text/csv",
    )
    col2.download_button(
        label="📥 Excel do traçado",
        data=build_client_xlsx(postes, sheet_name="Traçado"),
        file_name=f"tracado_postes_{timestamp}.xlsx",
        mime=XLSX_MIME,
    )
    if server_report is not None and server_report.server_xlsx is not None:
        col3.download_button(
            label="📥 Relatório (servidor)",
            data=server_report.server_xlsx,
            file_name="relatorio_postes.xlsx",
            mime=XLSX_MIME,
        )
