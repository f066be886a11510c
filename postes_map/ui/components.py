"""Componentes de UI reutilizáveis — cores de ocupação, rótulos, tooltips."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from postes_map.data.models import Poste

COLOR_DISPONIVEL = "#24a148"
COLOR_OCUPADO = "#d64545"
COLOR_ROTA = "#1f6feb"
COLOR_INTERMEDIARIO = "#f2b705"
COLOR_CENSO = "#bbbbbb"


def occupancy_color(poste: Poste) -> str:
    """Cor do marcador pela ocupação.

    Regra de negócio:
    - até 4 empresas → verde (disponível)
    - 5 ou mais      → vermelho (ocupado)
    """
    return COLOR_OCUPADO if poste.ocupado else COLOR_DISPONIVEL


def occupancy_emoji(poste: Poste) -> str:
    return "🔴" if poste.ocupado else "🟢"


def occupancy_label(poste: Poste) -> str:
    return "Ocupado" if poste.ocupado else "Disponível"


def format_empresas(poste: Poste) -> str:
    """Lista de empresas para exibição. Ex.: 'VIVO, CLARO' ou '—'."""
    return ", ".join(poste.empresas) if poste.empresas else "—"


def marker_tooltip(poste: Poste) -> str:
    """Tooltip do marcador. Também usado para identificar o poste no clique."""
    return f"ID: {poste.id} — {poste.qtd_empresas} empresa{'s' if poste.qtd_empresas != 1 else ''}"
