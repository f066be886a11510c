"""Busca e filtros."""

from __future__ import annotations

import pytest

from postes_map.core.exceptions import CoordinateFormatError, EmptyInputError, PosteNotFoundError
from postes_map.data.filters import (
    filter_by_attributes,
    find_by_id,
    parse_coordinate_query,
    parse_id_list,
)
from postes_map.data.models import Poste


class TestFindById:
    def test_exact_match_after_trim(self, sample_postes: list[Poste]) -> None:
        assert find_by_id(sample_postes, " 1002 ").id == "1002"

    def test_not_found(self, sample_postes: list[Poste]) -> None:
        with pytest.raises(PosteNotFoundError) as exc:
            find_by_id(sample_postes, "999")
        assert exc.value.ids == ["999"]

    def test_prefix_is_not_a_match(self, sample_postes: list[Poste]) -> None:
        with pytest.raises(PosteNotFoundError):
            find_by_id(sample_postes, "100")

    def test_blank(self, sample_postes: list[Poste]) -> None:
        with pytest.raises(EmptyInputError):
            find_by_id(sample_postes, "  ")


class TestCoordinateQuery:
    def test_valid(self) -> None:
        hit = parse_coordinate_query("-23.2, -45.9")
        assert (hit.lat, hit.lon) == (-23.2, -45.9)
        assert hit.label == "-23.2, -45.9"

    @pytest.mark.parametrize("text", ["abc", "", "-23.2"])
    def test_invalid(self, text: str) -> None:
        with pytest.raises(CoordinateFormatError) as exc:
            parse_coordinate_query(text)
        assert exc.value.message == "Use o formato: lat,lon"


class TestFilterByAttributes:
    def test_no_criteria_matches_all(self, sample_postes: list[Poste]) -> None:
        assert filter_by_attributes(sample_postes) == sample_postes

    def test_municipio_case_insensitive_exact(self, sample_postes: list[Poste]) -> None:
        found = filter_by_attributes(sample_postes, municipio="JACAREÍ")
        assert [p.id for p in found] == ["2001"]

    def test_municipio_partial_does_not_match(self, sample_postes: list[Poste]) -> None:
        assert filter_by_attributes(sample_postes, municipio="Jaca") == []

    def test_empresa_is_substring(self, sample_postes: list[Poste]) -> None:
        found = filter_by_attributes(sample_postes, empresa="cla")
        assert [p.id for p in found] == ["1001", "2001"]

    def test_empresa_matches_across_joined_list(self, sample_postes: list[Poste]) -> None:
        found = filter_by_attributes(sample_postes, empresa="vivo, claro")
        assert [p.id for p in found] == ["1001"]

    def test_conjunction(self, sample_postes: list[Poste]) -> None:
        found = filter_by_attributes(
            sample_postes, municipio="são josé dos campos", bairro="centro", empresa="VIVO"
        )
        assert [p.id for p in found] == ["1001"]

    def test_empty_result(self, sample_postes: list[Poste]) -> None:
        assert filter_by_attributes(sample_postes, empresa="inexistente") == []


class TestParseIdList:
    def test_any_non_digit_separates(self) -> None:
        assert parse_id_list("10\n20, 30;40 abc 50") == ["10", "20", "30", "40", "50"]

    def test_keeps_order_and_duplicates(self) -> None:
        assert parse_id_list("3,1,3") == ["3", "1", "3"]

    @pytest.mark.parametrize("text", ["", " , ;", "abc"])
    def test_no_ids(self, text: str) -> None:
        with pytest.raises(EmptyInputError) as exc:
            parse_id_list(text)
        assert exc.value.message == "Nenhum ID fornecido."
