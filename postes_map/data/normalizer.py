"""Normalizador de entidades — linhas brutas (poste × empresa) → um Poste por id.

A API devolve o resultado de um LEFT JOIN entre `dados_poste` e
`empresa_poste`: o mesmo poste aparece uma vez para cada empresa ocupante.
Este módulo agrupa essas linhas antes que qualquer poste chegue ao mapa,
aos filtros ou aos indicadores.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from postes_map.core.config import settings
from postes_map.data.geo import parse_coordinates
from postes_map.data.models import Poste, RawPosteRow

logger = logging.getLogger(__name__)


@dataclass
class _Group:
    first: RawPosteRow
    lat: float
    lon: float
    # dict preserva a ordem de chegada e elimina duplicatas
    empresas: dict[str, None] = field(default_factory=dict)


def _coerce_row(row: RawPosteRow | Mapping[str, Any]) -> RawPosteRow | None:
    if isinstance(row, RawPosteRow):
        return row
    try:
        return RawPosteRow.model_validate(dict(row))
    except ValidationError as e:
        logger.warning("Linha de poste inválida (skip): %s — %s", row, e)
        return None


def is_available_sentinel(empresa: str) -> bool:
    return empresa.strip().casefold() == settings.available_sentinel.casefold()


def normalize_rows(rows: Iterable[RawPosteRow | Mapping[str, Any]]) -> list[Poste]:
    """Agrupa linhas por `id` e devolve um Poste por grupo válido.

    - as coordenadas vêm da primeira linha do grupo; se não forem válidas,
      o grupo inteiro é descartado (inclusive linhas posteriores);
    - campos escalares: vence a primeira ocorrência;
    - empresas: união sem duplicatas, sem nulos/vazios e sem "DISPONÍVEL".
    """

    groups: dict[str, _Group] = {}
    discarded: set[str] = set()
    skipped_rows = 0

    for item in rows:
        row = _coerce_row(item)
        if row is None:
            skipped_rows += 1
            continue

        if row.id in discarded:
            continue

        group = groups.get(row.id)
        if group is None:
            coords = parse_coordinates(row.coordenadas)
            if coords is None:
                discarded.add(row.id)
                continue
            group = _Group(first=row, lat=coords[0], lon=coords[1])
            groups[row.id] = group

        empresa = (row.empresa or "").strip()
        if empresa and not is_available_sentinel(empresa):
            group.empresas[empresa] = None

    postes = [
        Poste(
            id=poste_id,
            lat=g.lat,
            lon=g.lon,
            nome_municipio=g.first.nome_municipio or "",
            nome_bairro=g.first.nome_bairro or "",
            nome_logradouro=g.first.nome_logradouro or "",
            material=g.first.material or "",
            altura=g.first.altura or "",
            tensao_mecanica=g.first.tensao_mecanica or "",
            coordenadas=(g.first.coordenadas or "").strip(),
            empresas=list(g.empresas),
        )
        for poste_id, g in groups.items()
    ]

    if discarded:
        logger.info("Postes sem coordenada válida descartados: %d", len(discarded))
    if skipped_rows:
        logger.warning("Linhas inválidas ignoradas: %d", skipped_rows)
    logger.info("Normalização concluída: %d postes", len(postes))
    return postes


@dataclass(frozen=True)
class PosteLookups:
    """Listas para autocompletar os campos de busca."""

    municipios: list[str]
    bairros: list[str]
    logradouros: list[str]
    empresas_contagem: dict[str, int]

    def empresa_label(self, empresa: str) -> str:
        return f"{empresa} ({self.empresas_contagem.get(empresa, 0)} postes)"


def build_lookups(postes: Iterable[Poste]) -> PosteLookups:
    municipios: set[str] = set()
    bairros: set[str] = set()
    logradouros: set[str] = set()
    contagem: dict[str, int] = {}

    for p in postes:
        if p.nome_municipio:
            municipios.add(p.nome_municipio)
        if p.nome_bairro:
            bairros.add(p.nome_bairro)
        if p.nome_logradouro:
            logradouros.add(p.nome_logradouro)
        for e in p.empresas:
            contagem[e] = contagem.get(e, 0) + 1

    return PosteLookups(
        municipios=sorted(municipios),
        bairros=sorted(bairros),
        logradouros=sorted(logradouros),
        empresas_contagem=dict(sorted(contagem.items())),
    )
