"""Cliente HTTP da API de postes.

Endpoints (servidor Express + sessão por cookie):
- POST /api/auth/login      {username, password} → cookie de sessão
- POST /api/auth/logout
- GET  /api/auth/me
- GET  /api/postes          linhas brutas (poste × empresa)
- GET  /api/censo           [{poste, cidade, coordenadas}]
- POST /api/postes/report   {ids: [...]} → planilha .xlsx

Qualquer 401 vira `AuthExpiredError`: a UI volta para o login.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from postes_map.core.config import settings
from postes_map.core.exceptions import AuthExpiredError, PosteAPIError, ReportExportError
from postes_map.data.models import CensoRow, RawPosteRow, SessionUser

logger = logging.getLogger(__name__)

SESSION_COOKIE = "connect.sid"


def _error_message(resp: httpx.Response) -> str | None:
    try:
        payload = resp.json()
    except ValueError:
        return None
    if isinstance(payload, dict):
        msg = payload.get("error") or payload.get("message")
        if msg:
            return str(msg)
    return None


def _extract_list(payload: Any, what: str, status_code: int) -> list[dict[str, Any]]:
    if not isinstance(payload, list):
        raise PosteAPIError(f"Resposta inesperada de {what} (esperava lista)", status_code=status_code)
    return [item for item in payload if isinstance(item, dict)]


class PosteApiClient:
    def __init__(
        self,
        base_url: str | None = None,
        timeout_seconds: float | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self._base_url = (base_url or settings.postes_api_base_url).rstrip("/")
        self._timeout = (
            timeout_seconds
            if timeout_seconds is not None
            else settings.postes_api_timeout_seconds
        )
        self._client = client or httpx.Client(base_url=self._base_url, timeout=self._timeout)

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def session_cookie(self) -> str:
        return self._client.cookies.get(SESSION_COOKIE) or ""

    def set_session_cookie(self, value: str) -> None:
        if value:
            self._client.cookies.set(SESSION_COOKIE, value)

    def close(self) -> None:
        self._client.close()

    def _url(self, path: str) -> str:
        return f"{self._base_url}{path}"

    @retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        retry=retry_if_exception_type((httpx.TimeoutException, httpx.NetworkError)),
    )
    def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        return self._client.request(method, self._url(path), **kwargs)

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            resp = self._send(method, path, **kwargs)
        except httpx.TimeoutException as exc:
            raise PosteAPIError(f"Tempo esgotado em {path}", status_code=None) from exc
        except httpx.NetworkError as exc:
            raise PosteAPIError(f"Erro de rede em {path}", status_code=None) from exc
        except httpx.TransportError as exc:
            # conexão derrubada, proxy, URL sem esquema...
            logger.error("Falha de transporte em %s: %r", path, exc)
            raise PosteAPIError(f"Falha de comunicação em {path}", status_code=None) from exc

        if resp.status_code == 401:
            raise AuthExpiredError()
        return resp

    # ------------------------------------------------------------------
    # Autenticação
    # ------------------------------------------------------------------
    def login(self, username: str, password: str) -> SessionUser:
        if not username or not password:
            raise PosteAPIError("Informe usuário e senha.", status_code=400)

        try:
            resp = self._request(
                "POST", "/api/auth/login", json={"username": username, "password": password}
            )
        except AuthExpiredError as exc:
            raise AuthExpiredError("Credenciais inválidas.") from exc

        if resp.status_code >= 400:
            raise PosteAPIError(
                _error_message(resp) or f"Falha no login: HTTP {resp.status_code}",
                status_code=resp.status_code,
            )
        try:
            payload = resp.json()
        except ValueError as exc:
            raise PosteAPIError("Resposta de login inválida", status_code=resp.status_code) from exc

        user = payload.get("user") if isinstance(payload, dict) else None
        return SessionUser.model_validate(user if isinstance(user, dict) else {"username": username})

    def me(self) -> SessionUser:
        resp = self._request("GET", "/api/auth/me")
        if resp.status_code >= 400:
            raise PosteAPIError(f"HTTP {resp.status_code}", status_code=resp.status_code)
        try:
            payload = resp.json()
        except ValueError as exc:
            raise PosteAPIError("Resposta inválida de /api/auth/me", status_code=200) from exc
        user = payload.get("user") if isinstance(payload, dict) else None
        return SessionUser.model_validate(user if isinstance(user, dict) else {})

    def logout(self) -> None:
        """Avisa o servidor; falhas são ignoradas e o cookie local é sempre limpo."""
        try:
            self._client.post(self._url("/api/auth/logout"))
        except httpx.HTTPError:
            logger.info("Logout no servidor falhou; limpando sessão local mesmo assim")
        self._client.cookies.clear()

    # ------------------------------------------------------------------
    # Dados
    # ------------------------------------------------------------------
    def fetch_raw_rows(self) -> list[RawPosteRow]:
        """Linhas brutas de /api/postes. Linhas inválidas são ignoradas."""
        resp = self._request("GET", "/api/postes")
        if resp.status_code >= 400:
            raise PosteAPIError(
                f"Erro ao carregar postes: HTTP {resp.status_code}",
                status_code=resp.status_code,
            )

        try:
            payload = resp.json()
        except ValueError as exc:
            raise PosteAPIError(
                "Falha ao interpretar JSON de /api/postes", status_code=resp.status_code
            ) from exc

        rows: list[RawPosteRow] = []
        for item in _extract_list(payload, "/api/postes", resp.status_code):
            try:
                rows.append(RawPosteRow.model_validate(item))
            except ValueError:
                # uma linha ruim não derruba o lote
                logger.warning("Linha de /api/postes inválida (skip): %s", item)
        logger.info("/api/postes: %d linhas", len(rows))
        return rows

    def fetch_censo_ids(self) -> set[str]:
        resp = self._request("GET", "/api/censo")
        if resp.status_code >= 400:
            raise PosteAPIError(
                f"Não foi possível carregar dados do censo: HTTP {resp.status_code}",
                status_code=resp.status_code,
            )

        try:
            payload = resp.json()
        except ValueError as exc:
            raise PosteAPIError(
                "Falha ao interpretar JSON de /api/censo", status_code=resp.status_code
            ) from exc

        ids: set[str] = set()
        for item in _extract_list(payload, "/api/censo", resp.status_code):
            try:
                ids.add(CensoRow.model_validate(item).poste.strip())
            except ValueError:
                continue
        logger.info("/api/censo: %d postes", len(ids))
        return ids

    def export_report(self, ids: list[str]) -> bytes:
        """Planilha gerada no servidor para os IDs informados."""
        clean = [str(i).strip() for i in ids if str(i).strip()]
        if not clean:
            raise ReportExportError("Nenhum ID válido", status_code=None)

        try:
            resp = self._request("POST", "/api/postes/report", json={"ids": clean})
        except AuthExpiredError:
            raise
        except PosteAPIError as exc:
            raise ReportExportError(exc.message, status_code=exc.status_code) from exc

        if resp.status_code >= 400:
            raise ReportExportError(
                _error_message(resp) or f"HTTP {resp.status_code}",
                status_code=resp.status_code,
            )
        return resp.content
