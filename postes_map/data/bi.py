"""Indicadores (BI): quantidade de postes por município."""

from __future__ import annotations

import csv
import logging
import re
from collections.abc import Iterable

import pandas as pd

from postes_map.data.geo import GeoBBox
from postes_map.data.models import BIResult, MunicipioCount, Poste

logger = logging.getLogger(__name__)

MUNICIPIO_PLACEHOLDER = "—"
CSV_HEADER = "Municipio,Quantidade"


def aggregate_by_municipio(
    postes: Iterable[Poste],
    empresa: str = "",
    apenas_visiveis: bool = False,
    bounds: GeoBBox | None = None,
) -> BIResult:
    """Conta postes por município, opcionalmente por empresa e/ou área visível.

    Linhas em ordem decrescente de quantidade; empates mantêm a ordem em que
    o município apareceu primeiro (ordenação estável).
    """

    empresa_norm = (empresa or "").strip().lower()
    if apenas_visiveis and bounds is None:
        logger.debug("Área visível desconhecida; considerando todos os postes")

    counts: dict[str, int] = {}
    total = 0
    for p in postes:
        if apenas_visiveis and bounds is not None and not bounds.contains(p.lat, p.lon):
            continue
        if empresa_norm and not any(empresa_norm in e.lower() for e in p.empresas):
            continue
        key = p.nome_municipio or MUNICIPIO_PLACEHOLDER
        counts[key] = counts.get(key, 0) + 1
        total += 1

    rows = [
        MunicipioCount(municipio=m, quantidade=q)
        for m, q in sorted(counts.items(), key=lambda kv: kv[1], reverse=True)
    ]
    return BIResult(rows=rows, total=total)


def bi_dataframe(result: BIResult) -> pd.DataFrame:
    return pd.DataFrame(
        [{"Município": r.municipio, "Qtd. de Postes": r.quantidade} for r in result.rows],
        columns=["Município", "Qtd. de Postes"],
    )


def rows_to_csv(rows: Iterable[MunicipioCount]) -> str:
    """CSV `Municipio,Quantidade`: município entre aspas (aspas internas dobradas)."""
    df = pd.DataFrame(
        [
            {"municipio": r.municipio or MUNICIPIO_PLACEHOLDER, "quantidade": int(r.quantidade)}
            for r in rows
        ],
        columns=["municipio", "quantidade"],
    )
    body = df.to_csv(
        index=False,
        header=False,
        quoting=csv.QUOTE_NONNUMERIC,
        lineterminator="\n",
    )
    return f"{CSV_HEADER}\n{body}"


def csv_filename(empresa: str = "") -> str:
    empresa = (empresa or "").strip()
    if not empresa:
        return "postes_por_municipio.csv"
    return "postes_por_municipio_" + re.sub(r"\W+", "_", empresa, flags=re.ASCII) + ".csv"
