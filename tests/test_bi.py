"""Indicadores por município e CSV."""

from __future__ import annotations

from postes_map.data.bi import (
    aggregate_by_municipio,
    bi_dataframe,
    csv_filename,
    rows_to_csv,
)
from postes_map.data.geo import GeoBBox
from postes_map.data.models import MunicipioCount, Poste


class TestAggregate:
    def test_counts_by_municipio(self, route_postes: list[Poste]) -> None:
        result = aggregate_by_municipio(route_postes)
        assert [(r.municipio, r.quantidade) for r in result.rows] == [("X", 2), ("Y", 1)]
        assert result.total == 3

    def test_company_filter_case_insensitive(self, route_postes: list[Poste]) -> None:
        result = aggregate_by_municipio(route_postes, empresa="  vivo ")
        assert [(r.municipio, r.quantidade) for r in result.rows] == [("X", 2)]
        assert result.total == 2

    def test_non_matching_company(self, route_postes: list[Poste]) -> None:
        result = aggregate_by_municipio(route_postes, empresa="NET")
        assert result.rows == []
        assert result.total == 0

    def test_visible_only(self, route_postes: list[Poste]) -> None:
        bounds = GeoBBox(south=-1.0, west=0.0001, north=1.0, east=0.001)
        result = aggregate_by_municipio(route_postes, apenas_visiveis=True, bounds=bounds)
        assert result.total == 2
        assert {r.municipio for r in result.rows} == {"X", "Y"}

    def test_visible_only_without_bounds_counts_all(self, route_postes: list[Poste]) -> None:
        assert aggregate_by_municipio(route_postes, apenas_visiveis=True).total == 3

    def test_missing_municipio_placeholder(self, poste_factory) -> None:
        result = aggregate_by_municipio([poste_factory("1", 0.0, 0.0)])
        assert result.rows[0].municipio == "—"

    def test_ties_keep_first_seen_order(self, poste_factory) -> None:
        postes = [
            poste_factory("1", 0.0, 0.0, nome_municipio="B"),
            poste_factory("2", 0.0, 0.0, nome_municipio="A"),
        ]
        assert [r.municipio for r in aggregate_by_municipio(postes).rows] == ["B", "A"]

    def test_source_is_not_mutated(self, route_postes: list[Poste]) -> None:
        before = [p.id for p in route_postes]
        aggregate_by_municipio(route_postes, empresa="tim")
        assert [p.id for p in route_postes] == before


class TestRowsToCsv:
    def test_quote_escaping(self) -> None:
        csv_text = rows_to_csv([MunicipioCount(municipio='São "José"', quantidade=3)])
        assert csv_text == 'Municipio,Quantidade\n"São ""José""",3\n'

    def test_multiple_rows(self) -> None:
        rows = [MunicipioCount(municipio="X", quantidade=2), MunicipioCount(municipio="Y", quantidade=1)]
        assert rows_to_csv(rows) == 'Municipio,Quantidade\n"X",2\n"Y",1\n'

    def test_empty_municipio_falls_back(self) -> None:
        assert rows_to_csv([MunicipioCount(municipio="", quantidade=1)]).endswith('"—",1\n')

    def test_empty_rows(self) -> None:
        assert rows_to_csv([]) == "Municipio,Quantidade\n"


def test_csv_filename() -> None:
    assert csv_filename() == "postes_por_municipio.csv"
    assert csv_filename("VIVO") == "postes_por_municipio_VIVO.csv"
    assert csv_filename("Algar Telecom/SA") == "postes_por_municipio_Algar_Telecom_SA.csv"


def test_bi_dataframe(route_postes: list[Poste]) -> None:
    df = bi_dataframe(aggregate_by_municipio(route_postes))
    assert list(df.columns) == ["Município", "Qtd. de Postes"]
    assert df["Qtd. de Postes"].tolist() == [2, 1]


def test_csv_filename_replaces_accented_letters() -> None:
    assert csv_filename("TELEFÔNICA") == "postes_por_municipio_TELEF_NICA.csv"
