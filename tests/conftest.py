import pytest

from postes_map.data.models import Poste, RawPosteRow
from postes_map.data.normalizer import normalize_rows

SAMPLE_ROWS = [
    {
        "id": 1001,
        "nome_municipio": "São José dos Campos",
        "nome_bairro": "Centro",
        "nome_logradouro": "Rua Sete de Setembro",
        "material": "Concreto",
        "altura": 11,
        "tensao_mecanica": "600 daN",
        "coordenadas": "-23.18120, -45.88630",
        "empresa": "VIVO",
    },
    {
        "id": 1001,
        "nome_municipio": "São José dos Campos",
        "nome_bairro": "Centro",
        "nome_logradouro": "Rua Sete de Setembro",
        "coordenadas": "-23.18120, -45.88630",
        "empresa": "CLARO",
    },
    {
        "id": 1001,
        "nome_municipio": "São José dos Campos",
        "coordenadas": "-23.18120, -45.88630",
        "empresa": "VIVO",
    },
    {
        "id": "1002",
        "nome_municipio": "São José dos Campos",
        "nome_bairro": "Centro",
        "nome_logradouro": "Rua Sete de Setembro",
        "coordenadas": "-23.18160,-45.88590",
        "empresa": "DISPONÍVEL",
    },
    {
        "id": "2001",
        "nome_municipio": "Jacareí",
        "nome_bairro": "Centro",
        "nome_logradouro": "Rua Barão de Jacareí",
        "coordenadas": "-23.30520, -45.96580",
        "empresa": "CLARO",
    },
    {
        "id": "3002",
        "nome_municipio": "Taubaté",
        "coordenadas": "abc",
        "empresa": "TIM",
    },
]


def make_poste(poste_id: str, lat: float, lon: float, empresas: list[str] | None = None, **kwargs) -> Poste:
    return Poste(
        id=poste_id,
        lat=lat,
        lon=lon,
        coordenadas=f"{lat},{lon}",
        empresas=list(empresas or []),
        **kwargs,
    )


@pytest.fixture
def sample_rows() -> list[RawPosteRow]:
    return [RawPosteRow.model_validate(item) for item in SAMPLE_ROWS]


@pytest.fixture
def sample_postes(sample_rows: list[RawPosteRow]) -> list[Poste]:
    return normalize_rows(sample_rows)


@pytest.fixture
def route_postes() -> list[Poste]:
    """A e B a ~50 m um do outro no equador; C praticamente sobre o trecho."""
    return [
        make_poste("1", 0.0, 0.0, ["VIVO"], nome_municipio="X"),
        make_poste("2", 0.0, 0.00045, ["VIVO", "CLARO", "TIM", "OI", "ALGAR"], nome_municipio="X"),
        make_poste("3", 0.0, 0.0002, ["TIM"], nome_municipio="Y"),
    ]


@pytest.fixture
def poste_factory():
    return make_poste
