"""Verificação de traçado: IDs em ordem → caminho + postes intermediários.

Dado um traçado (lista ordenada de IDs), liga os postes encontrados na ordem
informada e, para cada trecho longo, procura postes fora da lista que estejam
praticamente sobre o trecho — candidatos a ponto intermediário.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from postes_map.core.config import settings
from postes_map.core.exceptions import EmptyInputError, PosteNotFoundError
from postes_map.data.filters import index_by_id
from postes_map.data.geo import GeoBBox, bbox_of_points, haversine_m
from postes_map.data.models import Poste, RouteSummary

logger = logging.getLogger(__name__)


@dataclass
class RouteResult:
    requested: list[str]
    found: list[Poste]
    intermediates: list[Poste] = field(default_factory=list)
    summary: RouteSummary = field(default_factory=RouteSummary)

    @property
    def path(self) -> list[tuple[float, float]]:
        return [(p.lat, p.lon) for p in self.found]

    @property
    def has_line(self) -> bool:
        """Um único poste não gera linha: a vista só centraliza nele."""
        return len(self.found) >= 2

    @property
    def bounds(self) -> GeoBBox | None:
        return bbox_of_points(self.path)


def is_intermediate(
    a: Poste,
    b: Poste,
    p: Poste,
    segment_m: float,
    tolerance_m: float,
) -> bool:
    """Desviar por `p` acrescenta no máximo `tolerance_m` ao trecho a→b."""
    detour = haversine_m(a.lat, a.lon, p.lat, p.lon) + haversine_m(p.lat, p.lon, b.lat, b.lon)
    return detour <= segment_m + tolerance_m


def resolve_route(
    postes: Sequence[Poste],
    ids: Sequence[str],
    min_segment_m: float | None = None,
    detour_tolerance_m: float | None = None,
) -> RouteResult:
    if not ids:
        raise EmptyInputError()

    min_seg = settings.route_min_segment_m if min_segment_m is None else min_segment_m
    tolerance = (
        settings.route_detour_tolerance_m if detour_tolerance_m is None else detour_tolerance_m
    )

    by_id = index_by_id(postes)
    found = [by_id[i] for i in ids if i in by_id]
    nao_encontrados = [i for i in ids if i not in by_id]
    if not found:
        raise PosteNotFoundError("Nenhum poste encontrado.", ids=nao_encontrados)

    requested = set(ids)
    intermediates: dict[str, Poste] = {}
    for a, b in zip(found, found[1:]):
        d = haversine_m(a.lat, a.lon, b.lat, b.lon)
        if d <= min_seg:
            continue
        for p in postes:
            if p.id in requested or p.id in intermediates:
                continue
            if is_intermediate(a, b, p, d, tolerance):
                intermediates[p.id] = p

    summary = RouteSummary(
        total=len(ids),
        disponiveis=sum(1 for p in found if p.disponivel),
        ocupados=sum(1 for p in found if p.ocupado),
        nao_encontrados=nao_encontrados,
        intermediarios=len(intermediates),
    )
    logger.info(
        "Traçado: %d IDs, %d encontrados, %d intermediários",
        summary.total,
        len(found),
        summary.intermediarios,
    )
    return RouteResult(
        requested=list(ids),
        found=found,
        intermediates=list(intermediates.values()),
        summary=summary,
    )
