"""Cache Streamlit da carga de postes.

- /api/postes: TTL de 10 minutos (`POSTES_CACHE_TTL`), por URL + cookie de sessão
"""

from __future__ import annotations

import streamlit as st
from streamlit import runtime

from postes_map.core.config import settings
from postes_map.data.models import RawPosteRow
from postes_map.data.poste_api import PosteApiClient


@st.cache_data(ttl=settings.postes_cache_ttl, show_spinner=False)
def _fetch_rows(base_url: str, session_cookie: str) -> list[dict]:
    client = PosteApiClient(base_url=base_url)
    client.set_session_cookie(session_cookie)
    try:
        rows = client.fetch_raw_rows()
    finally:
        client.close()
    return [r.model_dump() for r in rows]


def fetch_rows_cached(client: PosteApiClient) -> list[RawPosteRow]:
    """Linhas de /api/postes com cache por TTL.

    A chave inclui o cookie de sessão: usuários diferentes não compartilham
    dados. Fora do runtime do Streamlit (testes/CLI) chama a API direto.
    """
    if not runtime.exists():
        return client.fetch_raw_rows()

    raw = _fetch_rows(client.base_url, client.session_cookie)
    return [RawPosteRow(**d) for d in raw]


def clear_rows_cache() -> None:
    _fetch_rows.clear()

