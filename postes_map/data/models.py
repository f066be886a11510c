"""Modelos de dados Pydantic

Todo dado externo (linhas da API de postes, censo, arquivos enviados) é
validado por estes modelos antes de entrar no pipeline.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from postes_map.core.config import settings


class RawPosteRow(BaseModel):
    """Linha bruta de `/api/postes`

    Uma linha por par (poste × empresa ocupante); `empresa` é nula quando o
    poste não tem ocupante registrado.
    """

    model_config = {
        # A API devolve id/altura como número em alguns bancos; normaliza para str.
        "coerce_numbers_to_str": True,
    }

    id: str
    nome_municipio: str | None = None
    nome_bairro: str | None = None
    nome_logradouro: str | None = None
    material: str | None = None
    altura: str | None = None
    tensao_mecanica: str | None = None
    coordenadas: str | None = None
    empresa: str | None = None

    @field_validator("id")
    @classmethod
    def _strip_id(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("id vazio")
        return value


class Poste(BaseModel):
    """Poste normalizado: um por `id`, com o conjunto de empresas ocupantes."""

    id: str
    lat: float
    lon: float
    nome_municipio: str = ""
    nome_bairro: str = ""
    nome_logradouro: str = ""
    material: str = ""
    altura: str = ""
    tensao_mecanica: str = ""
    coordenadas: str = ""
    empresas: list[str] = Field(default_factory=list)

    @property
    def qtd_empresas(self) -> int:
        return len(self.empresas)

    @property
    def ocupado(self) -> bool:
        """Poste lotado (>= limite de empresas; 5 por padrão)."""
        return self.qtd_empresas >= settings.occupied_threshold

    @property
    def disponivel(self) -> bool:
        return not self.ocupado


class CensoRow(BaseModel):
    """Linha de `/api/censo`. Só `poste` é usado pelo painel."""

    model_config = {"coerce_numbers_to_str": True}

    poste: str
    cidade: str | None = None
    coordenadas: str | None = None


class MunicipioCount(BaseModel):
    municipio: str
    quantidade: int


class BIResult(BaseModel):
    """Resultado da agregação de indicadores por município."""

    rows: list[MunicipioCount] = Field(default_factory=list)
    total: int = 0


class RouteSummary(BaseModel):
    """Resumo da verificação de um traçado (lista de IDs)."""

    total: int = 0
    disponiveis: int = 0
    ocupados: int = 0
    nao_encontrados: list[str] = Field(default_factory=list)
    intermediarios: int = 0


class SessionUser(BaseModel):
    id: int | str | None = None
    username: str = ""
