"""data_loader — arquivos enviados e dados de exemplo."""

from __future__ import annotations

import io
import json

import pandas as pd
import pytest

from postes_map.core.exceptions import DataLoadError
from postes_map.data.data_loader import (
    load_rows_from_dataframe,
    load_rows_from_uploaded_file,
    load_sample_rows,
)
from postes_map.data.models import RawPosteRow
from postes_map.data.normalizer import normalize_rows


class TestLoadSampleRows:
    def test_returns_rows(self) -> None:
        rows = load_sample_rows()
        assert rows
        assert all(isinstance(r, RawPosteRow) for r in rows)

    def test_sample_normalizes(self) -> None:
        postes = normalize_rows(load_sample_rows())
        ids = [p.id for p in postes]
        assert len(ids) == len(set(ids))
        # linhas com coordenada inválida ficam de fora
        assert "1006" not in ids
        assert "3002" not in ids
        # um poste lotado na amostra
        assert any(p.ocupado for p in postes)

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(DataLoadError):
            load_sample_rows(tmp_path / "nao_existe.json")

    def test_invalid_json(self, tmp_path) -> None:
        path = tmp_path / "ruim.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(DataLoadError):
            load_sample_rows(path)


class TestLoadRowsFromDataframe:
    def test_api_column_names(self) -> None:
        df = pd.DataFrame(
            [{"id": "1", "nome_municipio": "X", "coordenadas": "1,2", "empresa": "VIVO"}]
        )
        rows = load_rows_from_dataframe(df)
        assert rows[0].nome_municipio == "X"
        assert rows[0].empresa == "VIVO"

    def test_report_headers_expand_companies(self) -> None:
        df = pd.DataFrame(
            [
                {
                    "ID POSTE": "10",
                    "Município": "Jacareí",
                    "Bairro": "Centro",
                    "Logradouro": "Rua A",
                    "Empresas": "VIVO, CLARO",
                    "Coordenadas": "-23.3,-45.9",
                }
            ]
        )
        rows = load_rows_from_dataframe(df)
        assert [(r.id, r.empresa) for r in rows] == [("10", "VIVO"), ("10", "CLARO")]
        assert normalize_rows(rows)[0].empresas == ["VIVO", "CLARO"]

    def test_numeric_ids_from_excel(self) -> None:
        df = pd.DataFrame([{"ID": 1001.0, "COORDENADAS": "1,2"}])
        assert load_rows_from_dataframe(df)[0].id == "1001"

    def test_missing_required_columns(self) -> None:
        df = pd.DataFrame([{"municipio": "X"}])
        assert load_rows_from_dataframe(df) == []

    def test_blank_id_row_is_skipped(self) -> None:
        df = pd.DataFrame([{"id": None, "coordenadas": "1,2"}, {"id": "2", "coordenadas": "1,2"}])
        assert [r.id for r in load_rows_from_dataframe(df)] == ["2"]


class TestLoadRowsFromUploadedFile:
    def test_json(self) -> None:
        content = json.dumps([{"id": 5, "coordenadas": "1,2"}]).encode("utf-8")
        assert load_rows_from_uploaded_file(content, "postes.json")[0].id == "5"

    def test_csv_with_bom(self) -> None:
        content = "\ufeffid,coordenadas,empresa\n7,\"1,2\",TIM\n".encode()
        rows = load_rows_from_uploaded_file(content, "postes.CSV")
        assert rows[0].id == "7"
        assert rows[0].coordenadas == "1,2"

    def test_xlsx(self) -> None:
        buffer = io.BytesIO()
        pd.DataFrame([{"ID POSTE": "8", "Coordenadas": "1,2", "Empresas": "OI"}]).to_excel(
            buffer, index=False
        )
        rows = load_rows_from_uploaded_file(buffer.getvalue(), "relatorio.xlsx")
        assert [(r.id, r.empresa) for r in rows] == [("8", "OI")]

    def test_unsupported_extension(self) -> None:
        with pytest.raises(DataLoadError):
            load_rows_from_uploaded_file(b"", "postes.txt")

    def test_unreadable_json(self) -> None:
        with pytest.raises(DataLoadError):
            load_rows_from_uploaded_file(b"\xff\xfe", "postes.json")

    def test_json_must_be_list(self) -> None:
        with pytest.raises(DataLoadError):
            load_rows_from_uploaded_file(b'"texto"', "postes.json")
