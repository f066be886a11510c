"""Busca e filtros sobre a coleção de postes em memória.

Funções puras: nenhuma delas mexe no mapa. A orquestração (redesenho da
camada, exportações) fica em `postes_map.ui.session`.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from postes_map.core.exceptions import CoordinateFormatError, EmptyInputError, PosteNotFoundError
from postes_map.data.geo import parse_coordinates
from postes_map.data.models import Poste

_ID_SEPARATOR = re.compile(r"[^0-9]+")


@dataclass(frozen=True)
class CoordinateHit:
    """Resultado de busca por coordenada: só um local, não um poste."""

    lat: float
    lon: float

    @property
    def label(self) -> str:
        return f"{self.lat}, {self.lon}"


def find_by_id(postes: Iterable[Poste], poste_id: str) -> Poste:
    target = (poste_id or "").strip()
    if not target:
        raise EmptyInputError("Informe o ID do poste.")
    for p in postes:
        if p.id == target:
            return p
    raise PosteNotFoundError(ids=[target])


def parse_coordinate_query(text: str) -> CoordinateHit:
    coords = parse_coordinates(text)
    if coords is None:
        raise CoordinateFormatError()
    return CoordinateHit(lat=coords[0], lon=coords[1])


def _norm(value: str | None) -> str:
    return (value or "").strip().lower()


def filter_by_attributes(
    postes: Iterable[Poste],
    municipio: str | None = None,
    bairro: str | None = None,
    logradouro: str | None = None,
    empresa: str | None = None,
) -> list[Poste]:
    """Conjunção dos critérios informados; critério vazio casa com tudo.

    Município/bairro/logradouro: igualdade sem diferenciar maiúsculas.
    Empresa: substring na lista de empresas unida por ", ".
    """

    mun = _norm(municipio)
    bai = _norm(bairro)
    log = _norm(logradouro)
    emp = _norm(empresa)

    return [
        p
        for p in postes
        if (not mun or p.nome_municipio.lower() == mun)
        and (not bai or p.nome_bairro.lower() == bai)
        and (not log or p.nome_logradouro.lower() == log)
        and (not emp or emp in ", ".join(p.empresas).lower())
    ]


def parse_id_list(text: str) -> list[str]:
    """Extrai IDs de um texto livre (quebras de linha, vírgulas, espaços...).

    Ordem e duplicatas são preservadas.
    """

    ids = [part for part in _ID_SEPARATOR.split(text or "") if part]
    if not ids:
        raise EmptyInputError()
    return ids


def index_by_id(postes: Sequence[Poste]) -> dict[str, Poste]:
    return {p.id: p for p in postes}
