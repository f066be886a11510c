"""Normalizador: linhas (poste × empresa) → um Poste por id."""

from __future__ import annotations

from postes_map.data.models import Poste, RawPosteRow
from postes_map.data.normalizer import build_lookups, is_available_sentinel, normalize_rows


def _row(poste_id: str, coord: str | None = "1,2", empresa: str | None = None, **kw) -> dict:
    return {"id": poste_id, "coordenadas": coord, "empresa": empresa, **kw}


class TestNormalizeRows:
    def test_groups_rows_by_id(self, sample_postes: list[Poste]) -> None:
        ids = [p.id for p in sample_postes]
        assert ids == ["1001", "1002", "2001"]
        assert len(ids) == len(set(ids))

    def test_merges_companies_without_duplicates(self, sample_postes: list[Poste]) -> None:
        p = sample_postes[0]
        assert p.empresas == ["VIVO", "CLARO"]
        assert (p.lat, p.lon) == (-23.1812, -45.8863)

    def test_available_sentinel_is_excluded(self, sample_postes: list[Poste]) -> None:
        assert sample_postes[1].empresas == []

    def test_invalid_coordinates_never_appear(self, sample_postes: list[Poste]) -> None:
        assert "3002" not in {p.id for p in sample_postes}

    def test_dedup_invariant_example(self) -> None:
        rows = [
            _row("1", "10,20", "A"),
            _row("1", "10,20", "B"),
            _row("1", "10,20", "A"),
            _row("1", "10,20", None),
            _row("1", "10,20", "DISPONÍVEL"),
        ]
        postes = normalize_rows(rows)
        assert len(postes) == 1
        assert postes[0].empresas == ["A", "B"]

    def test_first_row_with_bad_coordinates_discards_group(self) -> None:
        rows = [_row("9", "abc", "A"), _row("9", "1,2", "B")]
        assert normalize_rows(rows) == []

    def test_first_row_wins_for_scalar_fields(self) -> None:
        rows = [
            _row("1", "1,2", "A", nome_municipio="Primeiro"),
            _row("1", "3,4", "B", nome_municipio="Segundo"),
        ]
        p = normalize_rows(rows)[0]
        assert p.nome_municipio == "Primeiro"
        assert (p.lat, p.lon) == (1.0, 2.0)

    def test_none_fields_become_empty_strings(self) -> None:
        p = normalize_rows([_row("1")])[0]
        assert p.nome_bairro == ""
        assert p.material == ""

    def test_blank_and_sentinel_case_variants(self) -> None:
        rows = [_row("1", "1,2", "  "), _row("1", "1,2", " disponível "), _row("1", "1,2", "X")]
        assert normalize_rows(rows)[0].empresas == ["X"]

    def test_invalid_mapping_is_skipped(self) -> None:
        rows = [{"coordenadas": "1,2"}, _row("2", "1,2", "A")]
        assert [p.id for p in normalize_rows(rows)] == ["2"]

    def test_accepts_model_instances(self) -> None:
        rows = [RawPosteRow(id="5", coordenadas="-1, -2", empresa="A")]
        assert normalize_rows(rows)[0].lat == -1.0

    def test_deterministic_for_same_input(self, sample_rows: list[RawPosteRow]) -> None:
        assert normalize_rows(sample_rows) == normalize_rows(sample_rows)


def test_is_available_sentinel() -> None:
    assert is_available_sentinel("DISPONÍVEL")
    assert is_available_sentinel("Disponível ")
    assert not is_available_sentinel("VIVO")


def test_build_lookups(sample_postes: list[Poste]) -> None:
    lookups = build_lookups(sample_postes)
    assert lookups.municipios == ["Jacareí", "São José dos Campos"]
    assert lookups.bairros == ["Centro"]
    assert lookups.empresas_contagem == {"CLARO": 2, "VIVO": 1}
    assert lookups.empresa_label("CLARO") == "CLARO (2 postes)"
