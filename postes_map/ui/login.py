"""Tela de login (porta de entrada para a API de postes)."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import streamlit as st

from postes_map.core.exceptions import PosteAPIError

if TYPE_CHECKING:
    from postes_map.data.models import SessionUser
    from postes_map.data.poste_api import PosteApiClient

logger = logging.getLogger(__name__)


def render_login_form(client: PosteApiClient) -> SessionUser | None:
    """Formulário de login. Devolve o usuário quando autenticado."""
    st.subheader("🔐 Entrar")
    with st.form("login"):
        username = st.text_input("Usuário")
        password = st.text_input("Senha", type="password")
        submitted = st.form_submit_button("Entrar", type="primary")

    if not submitted:
        return None

    try:
        user = client.login(username.strip(), password)
    except PosteAPIError as exc:
        logger.info("Login recusado: %s", exc.message)
        st.error(exc.message)
        return None

    logger.info("Login: %s", user.username)
    return user
