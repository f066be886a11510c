"""Carregador de dados offline — arquivo enviado (CSV/Excel/JSON) e dados de exemplo.

Permite usar o painel sem a API: o usuário envia uma planilha com as linhas
de postes (inclusive o próprio relatório exportado pelo painel) ou usa a
amostra embutida.
"""

from __future__ import annotations

import io
import json
import logging
import math
from pathlib import Path
from typing import TYPE_CHECKING, Any

from postes_map.core.config import settings
from postes_map.core.exceptions import DataLoadError
from postes_map.data.models import RawPosteRow

if TYPE_CHECKING:
    import pandas as pd

logger = logging.getLogger(__name__)

# Mapeamento de colunas: (campo de RawPosteRow) → nomes aceitos no arquivo.
# Inclui os cabeçalhos do relatório Excel para que ele possa ser reimportado.
_COLUMN_ALIASES: dict[str, list[str]] = {
    "id": ["id", "ID", "ID POSTE", "id_poste", "poste"],
    "nome_municipio": ["nome_municipio", "MUNICÍPIO", "Município", "municipio", "Municipio"],
    "nome_bairro": ["nome_bairro", "BAIRRO", "Bairro", "bairro"],
    "nome_logradouro": ["nome_logradouro", "LOGRADOURO", "Logradouro", "logradouro"],
    "material": ["material", "MATERIAL", "Material"],
    "altura": ["altura", "ALTURA", "Altura"],
    "tensao_mecanica": ["tensao_mecanica", "TENSÃO", "Tensão", "tensao"],
    "coordenadas": ["coordenadas", "COORDENADAS", "Coordenadas"],
    "empresa": ["empresa", "EMPRESA", "Empresa"],
}
# Coluna com várias empresas separadas por vírgula ("A, B"): uma linha por empresa.
_MULTI_EMPRESA_ALIASES = ["empresas", "EMPRESAS", "Empresas"]


def _resolve_column(df_columns: list[str], target_key: str) -> str | None:
    """Nome real da coluna do DataFrame que corresponde a target_key."""
    for alias in _COLUMN_ALIASES.get(target_key, [target_key]):
        if alias in df_columns:
            return alias
    return None


def _cell(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, float):
        if math.isnan(value):
            return None
        if value.is_integer():
            return str(int(value))
    text = str(value).strip()
    return text or None


def _to_rows(item: dict[str, Any], empresas_cell: str | None) -> list[dict[str, Any]]:
    if not empresas_cell:
        return [item]
    empresas = [e.strip() for e in empresas_cell.split(",") if e.strip()]
    if not empresas:
        return [item]
    return [{**item, "empresa": e} for e in empresas]


def load_rows_from_dataframe(df: pd.DataFrame) -> list[RawPosteRow]:
    """Converte um DataFrame em linhas brutas, aceitando vários nomes de coluna."""
    columns = [str(c).strip() for c in df.columns.tolist()]
    df.columns = columns

    column_map: dict[str, str] = {}
    for target_key in _COLUMN_ALIASES:
        resolved = _resolve_column(columns, target_key)
        if resolved:
            column_map[target_key] = resolved
    multi_col = next((c for c in _MULTI_EMPRESA_ALIASES if c in columns), None)

    if "id" not in column_map or "coordenadas" not in column_map:
        logger.error("Arquivo sem colunas de id/coordenadas reconhecíveis: %s", columns)
        return []

    rows: list[RawPosteRow] = []
    for _, record in df.iterrows():
        item = {key: _cell(record.get(col)) for key, col in column_map.items()}
        empresas_cell = _cell(record.get(multi_col)) if multi_col else None
        for raw in _to_rows(item, empresas_cell):
            try:
                rows.append(RawPosteRow.model_validate(raw))
            except ValueError as e:
                logger.warning("Linha inválida (skip): %s — %s", raw, e)

    logger.info("Arquivo carregado: %d linhas", len(rows))
    return rows


def _rows_from_json(raw: Any) -> list[RawPosteRow]:
    if isinstance(raw, dict):
        raw = [raw]
    if not isinstance(raw, list):
        raise DataLoadError("JSON deve conter uma lista de linhas de postes.")

    rows: list[RawPosteRow] = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        try:
            rows.append(RawPosteRow.model_validate(item))
        except ValueError as e:
            logger.warning("Linha JSON inválida (skip): %s — %s", item, e)
    return rows


def load_rows_from_uploaded_file(file_content: bytes, filename: str) -> list[RawPosteRow]:
    """Arquivo enviado (CSV/Excel/JSON) → linhas brutas.

    Levanta DataLoadError quando o arquivo não pode ser lido.
    """
    import pandas as pd

    lower_name = filename.lower()
    try:
        if lower_name.endswith(".json"):
            return _rows_from_json(json.loads(file_content.decode("utf-8")))
        if lower_name.endswith(".csv"):
            text = file_content.decode("utf-8-sig")
            df = pd.read_csv(io.StringIO(text), dtype=str, keep_default_na=True)
        elif lower_name.endswith((".xlsx", ".xls")):
            df = pd.read_excel(io.BytesIO(file_content), dtype=str)
        else:
            raise DataLoadError(f"Formato de arquivo não suportado: {filename}")
    except DataLoadError:
        raise
    except Exception as e:
        logger.error("Falha ao ler arquivo (%s): %s", filename, e)
        raise DataLoadError(f"Não foi possível ler {filename}: {e}") from e

    return load_rows_from_dataframe(df)


def load_sample_rows(path: Path | None = None) -> list[RawPosteRow]:
    """Amostra embutida (data/sample_postes.json)."""
    sample_path = path or settings.sample_data_path
    try:
        raw = json.loads(sample_path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        logger.error("Arquivo de exemplo não encontrado: %s", sample_path)
        raise DataLoadError("Dados de exemplo indisponíveis.") from e
    except (OSError, ValueError) as e:
        logger.error("Falha ao carregar dados de exemplo: %s", e)
        raise DataLoadError("Dados de exemplo inválidos.") from e

    rows = _rows_from_json(raw)
    logger.info("Dados de exemplo carregados: %d linhas", len(rows))
    return rows
