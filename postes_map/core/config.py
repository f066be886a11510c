"""Configurações do app: variáveis de ambiente, `.env` e Secrets do Streamlit.

Ordem de prioridade de cada chave:

1) variáveis de ambiente (o `.env` da raiz é carregado nelas sem sobrescrever)
2) `.streamlit/secrets.toml` do projeto, depois o da home do usuário

Valores que não convertem para o tipo do padrão são ignorados (fica o padrão).
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TypeVar

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

_SECRETS_FILES = (
    _PROJECT_ROOT / ".streamlit" / "secrets.toml",
    Path.home() / ".streamlit" / "secrets.toml",
)
_TRUE_VALUES = {"1", "true", "yes", "sim", "on"}

T = TypeVar("T", str, bool, int, float)


def _read_secrets() -> dict[str, Any]:
    """Primeiro secrets.toml legível; chaves aninhadas são ignoradas."""
    for path in _SECRETS_FILES:
        if not path.is_file():
            continue
        try:
            with path.open("rb") as fh:
                data = tomllib.load(fh)
        except (OSError, tomllib.TOMLDecodeError):
            logger.warning("secrets.toml ilegível: %s", path)
            continue
        return {k: v for k, v in data.items() if isinstance(v, (str, int, float, bool))}
    return {}


_SECRETS = _read_secrets()


def _env(key: str, default: T) -> T:
    raw = os.getenv(key)
    if raw is None:
        secret = _SECRETS.get(key)
        if secret is None:
            return default
        raw = str(secret)

    raw = raw.strip()
    if isinstance(default, bool):
        return raw.lower() in _TRUE_VALUES
    if isinstance(default, (int, float)):
        try:
            return type(default)(raw)
        except ValueError:
            logger.warning("Valor inválido para %s: %r (usando %r)", key, raw, default)
            return default
    return raw


@dataclass(frozen=True)
class Settings:
    """Configuração global. frozen=True impede alteração em tempo de execução."""

    debug: bool = field(default_factory=lambda: _env("DEBUG", False))

    postes_api_base_url: str = field(
        default_factory=lambda: _env("POSTES_API_BASE_URL", "http://localhost:3000")
    )
    postes_api_timeout_seconds: float = field(
        default_factory=lambda: _env("POSTES_API_TIMEOUT_SECONDS", 30.0)
    )
    postes_api_username: str = field(default_factory=lambda: _env("POSTES_API_USERNAME", ""))
    postes_api_password: str = field(default_factory=lambda: _env("POSTES_API_PASSWORD", ""))
    postes_cache_ttl: int = field(default_factory=lambda: _env("POSTES_CACHE_TTL", 600))

    # "DISPONÍVEL" na coluna empresa significa poste sem ocupante
    available_sentinel: str = "DISPONÍVEL"
    occupied_threshold: int = 5

    loader_batch_size: int = field(default_factory=lambda: _env("LOADER_BATCH_SIZE", 1200))
    loader_hidden_batch_size: int = field(
        default_factory=lambda: _env("LOADER_HIDDEN_BATCH_SIZE", 3500)
    )

    cluster_max_radius: int = field(default_factory=lambda: _env("CLUSTER_MAX_RADIUS", 60))
    cluster_disable_at_zoom: int = 17

    route_min_segment_m: float = field(
        default_factory=lambda: _env("ROUTE_MIN_SEGMENT_M", 50.0)
    )
    route_detour_tolerance_m: float = field(
        default_factory=lambda: _env("ROUTE_DETOUR_TOLERANCE_M", 20.0)
    )

    default_center_lat: float = field(
        default_factory=lambda: _env("DEFAULT_CENTER_LAT", -23.2)
    )
    default_center_lon: float = field(
        default_factory=lambda: _env("DEFAULT_CENTER_LON", -45.9)
    )
    default_zoom: int = 12
    detail_zoom: int = 18

    # botão "Minha localização"
    locate_timeout_ms: int = field(default_factory=lambda: _env("LOCATE_TIMEOUT_MS", 10000))
    locate_zoom: int = 17

    bi_chart_top_n: int = 20

    sample_data_path: Path = field(
        default_factory=lambda: _PROJECT_ROOT / "data" / "sample_postes.json"
    )


settings = Settings()
