"""Mapa de Postes — app Streamlit principal.

Inventário de postes (material, altura, tensão, empresas ocupantes) em mapa
com cluster, filtros, modo censo, verificação de traçado e indicadores.
"""

from __future__ import annotations

import logging

import streamlit as st

from postes_map.core.config import settings
from postes_map.core.exceptions import (
    AuthExpiredError,
    CoordinateFormatError,
    DataLoadError,
    EmptyInputError,
    NoResultsError,
    PosteAPIError,
    PosteNotFoundError,
)
from postes_map.data.data_loader import load_rows_from_uploaded_file, load_sample_rows
from postes_map.data.models import RawPosteRow, SessionUser
from postes_map.data.normalizer import normalize_rows
from postes_map.data.poste_api import PosteApiClient
from postes_map.ui.bi_panel import render_bi_panel
from postes_map.ui.dashboard import render_result_table, render_route_summary, render_summary_metrics
from postes_map.ui.login import render_login_form
from postes_map.ui.map_view import (
    BASE_LAYERS,
    DEFAULT_BASE_LAYER,
    render_legend,
    render_map,
    render_popup_controls,
)
from postes_map.ui.session import MapSession
from postes_map.ui.sidebar import SearchRequest, render_search_panel
from postes_map.utils.cache import clear_rows_cache, fetch_rows_cached
from postes_map.utils.export import (
    export_filter_reports,
    export_route_report,
    render_filter_downloads,
    render_route_downloads,
)

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)
logger = logging.getLogger(__name__)

SOURCE_API = "API de postes"
SOURCE_UPLOAD = "Arquivo (CSV/Excel/JSON)"
SOURCE_SAMPLE = "Dados de exemplo"

_CLIENT_KEY = "_api_client"
_USER_KEY = "_user"
_SESSION_KEY = "_map_session"
_SOURCE_SIG_KEY = "_source_sig"
_EXPORTS_KEY = "_filter_exports"
_ROUTE_REPORT_KEY = "_route_report"


def _get_client() -> PosteApiClient:
    client = st.session_state.get(_CLIENT_KEY)
    if isinstance(client, PosteApiClient):
        return client
    client = PosteApiClient()
    st.session_state[_CLIENT_KEY] = client
    return client


def _reset_session_state() -> None:
    for key in (_USER_KEY, _SESSION_KEY, _SOURCE_SIG_KEY, _EXPORTS_KEY, _ROUTE_REPORT_KEY):
        st.session_state.pop(key, None)


def _logout(client: PosteApiClient) -> None:
    client.logout()
    clear_rows_cache()
    _reset_session_state()


def _ensure_user(client: PosteApiClient) -> SessionUser | None:
    user = st.session_state.get(_USER_KEY)
    if isinstance(user, SessionUser):
        return user

    if settings.postes_api_username and settings.postes_api_password:
        try:
            user = client.login(settings.postes_api_username, settings.postes_api_password)
        except PosteAPIError as exc:
            logger.warning("Login automático falhou: %s", exc.message)
            user = None
    if user is None:
        user = render_login_form(client)
    if user is not None:
        st.session_state[_USER_KEY] = user
    return user


def _render_source_selector() -> tuple[list[RawPosteRow] | None, str]:
    """Fonte dos dados na sidebar. Devolve (linhas, assinatura da fonte)."""
    st.sidebar.header("🗂️ Dados")
    source = st.sidebar.radio(
        "Fonte",
        options=[SOURCE_API, SOURCE_UPLOAD, SOURCE_SAMPLE],
        index=0,
        label_visibility="collapsed",
    )

    if source == SOURCE_UPLOAD:
        uploaded_file = st.sidebar.file_uploader(
            "CSV / Excel / JSON",
            type=["csv", "xlsx", "xls", "json"],
            help="Aceita o relatório exportado pelo próprio painel.",
        )
        if uploaded_file is None:
            return None, ""
        sig = f"upload:{uploaded_file.name}:{uploaded_file.size}"
        if st.session_state.get(_SOURCE_SIG_KEY) == sig:
            return [], sig
        return load_rows_from_uploaded_file(uploaded_file.getvalue(), uploaded_file.name), sig

    if source == SOURCE_SAMPLE:
        sig = "sample"
        if st.session_state.get(_SOURCE_SIG_KEY) == sig:
            return [], sig
        return load_sample_rows(), sig

    client = _get_client()
    user = _ensure_user(client)
    if user is None:
        return None, ""

    st.sidebar.caption(f"Conectado como **{user.username or '—'}**")
    if st.sidebar.button("Sair", use_container_width=True):
        _logout(client)
        st.rerun()

    sig = f"api:{client.base_url}:{user.username}"
    if st.session_state.get(_SOURCE_SIG_KEY) == sig:
        return [], sig
    with st.spinner("Carregando postes..."):
        return fetch_rows_cached(client), sig


def _install_session(rows: list[RawPosteRow], sig: str) -> MapSession | None:
    session = st.session_state.get(_SESSION_KEY)
    if isinstance(session, MapSession) and st.session_state.get(_SOURCE_SIG_KEY) == sig:
        return session

    postes = normalize_rows(rows)
    if not postes:
        st.warning("Nenhum poste com coordenada válida nos dados carregados.")
        return None

    session = MapSession(postes)
    session.load_all()
    st.session_state[_SESSION_KEY] = session
    st.session_state[_SOURCE_SIG_KEY] = sig
    st.session_state.pop(_EXPORTS_KEY, None)
    st.session_state.pop(_ROUTE_REPORT_KEY, None)
    return session


def _drain_loader(session: MapSession) -> None:
    """Roda os lotes pendentes, atualizando a barra de progresso entre eles."""
    if not session.scheduler.pending:
        return
    loader = session.loader
    bar = st.progress(0.0, text="Carregando postes no mapa...")

    def on_step() -> None:
        bar.progress(loader.progress, text=f"Carregando postes no mapa... {loader.loaded}/{loader.total}")

    session.scheduler.drain(on_step=on_step)
    bar.empty()


def _dispatch(session: MapSession, request: SearchRequest, client: PosteApiClient | None) -> None:
    try:
        if request.action == "id":
            session.search_id(request.text)
        elif request.action == "coord":
            session.search_coordinate(request.text)
        elif request.action == "filtro":
            found = session.search_attributes(
                request.municipio, request.bairro, request.logradouro, request.empresa
            )
            st.session_state[_EXPORTS_KEY] = export_filter_reports(client, found)
        elif request.action == "tracado":
            route = session.run_route(request.text)
            if client is not None:
                st.session_state[_ROUTE_REPORT_KEY] = export_route_report(client, route.requested)
            else:
                st.session_state.pop(_ROUTE_REPORT_KEY, None)
        elif request.action == "censo":
            if client is None:
                st.sidebar.info("O modo censo precisa da API de postes.")
                return
            session.toggle_censo(client.fetch_censo_ids)
        elif request.action == "limpar":
            session.clear_overlays()
            st.session_state.pop(_EXPORTS_KEY, None)
            st.session_state.pop(_ROUTE_REPORT_KEY, None)
    except AuthExpiredError:
        raise
    except (CoordinateFormatError, EmptyInputError) as exc:
        st.sidebar.error(exc.message)
    except (PosteNotFoundError, NoResultsError) as exc:
        st.sidebar.warning(exc.message)
    except PosteAPIError as exc:
        logger.error("Erro na ação %s: %s", request.action, exc.message)
        if request.action == "censo":
            st.sidebar.error("Não foi possível carregar dados do censo.")
        else:
            st.sidebar.error(exc.message)


def _render_map_tab(session: MapSession) -> None:
    base_layer = st.radio(
        "Camada base",
        options=list(BASE_LAYERS),
        index=list(BASE_LAYERS).index(DEFAULT_BASE_LAYER),
        horizontal=True,
        label_visibility="collapsed",
    )
    render_legend(session)

    event = render_map(session, base_layer)
    if session.handle_map_event(event) is not None:
        st.rerun()

    render_popup_controls(session)

    if session.overlay is not None:
        st.divider()
        render_route_summary(session.overlay.route.summary)
        render_route_downloads(
            session.overlay.route.found, st.session_state.get(_ROUTE_REPORT_KEY)
        )

    exports = st.session_state.get(_EXPORTS_KEY)
    if session.result:
        st.divider()
        if exports is not None:
            render_filter_downloads(exports)
        render_result_table(session.result)


def main() -> None:
    st.set_page_config(
        page_title="Mapa de Postes",
        page_icon="🗼",
        layout="wide",
        initial_sidebar_state="expanded",
    )

    st.title("🗼 Mapa de Postes")
    st.caption("Inventário de postes e ocupação por empresas.")

    try:
        rows, sig = _render_source_selector()
        if rows is None:
            st.info("👈 Escolha a fonte de dados na barra lateral.")
            return
        session = _install_session(rows, sig)
        if session is None:
            return

        _drain_loader(session)
        request = render_search_panel(session.postes, session.lookups)
        api_client = _get_client() if sig.startswith("api:") else None
        if request is not None:
            _dispatch(session, request, api_client)
            _drain_loader(session)
    except AuthExpiredError as exc:
        logger.info("Sessão expirada")
        client = st.session_state.get(_CLIENT_KEY)
        if isinstance(client, PosteApiClient):
            client.logout()
        clear_rows_cache()
        _reset_session_state()
        st.warning(exc.message)
        st.button("Voltar ao login")
        return
    except DataLoadError as exc:
        st.error(exc.message)
        return
    except PosteAPIError as exc:
        logger.error("Erro ao carregar postes: %s", exc.message)
        st.error("Erro ao carregar postes. Tente novamente em instantes.")
        return

    render_summary_metrics(session)
    tab_mapa, tab_bi = st.tabs(["🗺️ Mapa", "📊 Indicadores"])
    with tab_mapa:
        _render_map_tab(session)
    with tab_bi:
        render_bi_panel(session)


if __name__ == "__main__":
    main()
