"""poste_api — cliente HTTP (httpx MockTransport)."""

from __future__ import annotations

import json

import httpx
import pytest
from tenacity import wait_none

from postes_map.core.exceptions import AuthExpiredError, PosteAPIError, ReportExportError
from postes_map.data.poste_api import SESSION_COOKIE, PosteApiClient

BASE_URL = "http://postes.test"


def _make_client(handler) -> PosteApiClient:
    http_client = httpx.Client(transport=httpx.MockTransport(handler), timeout=1.0)
    return PosteApiClient(base_url=BASE_URL, client=http_client)


@pytest.fixture(autouse=True)
def _no_retry_wait(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(PosteApiClient._send.retry, "wait", wait_none())


class TestFetchRawRows:
    def test_parses_list(self) -> None:
        payload = [
            {"id": 1001, "coordenadas": "-23.1,-45.8", "empresa": "VIVO", "altura": 11},
            {"id": "1002", "coordenadas": "-23.2,-45.9", "empresa": None},
        ]

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/postes"
            return httpx.Response(200, json=payload)

        client = _make_client(handler)
        rows = client.fetch_raw_rows()
        assert [r.id for r in rows] == ["1001", "1002"]
        assert rows[0].altura == "11"
        client.close()

    def test_skips_invalid_rows(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[{"id": ""}, "lixo", {"id": "7", "coordenadas": "1,2"}])

        client = _make_client(handler)
        assert [r.id for r in client.fetch_raw_rows()] == ["7"]
        client.close()

    def test_401_raises_auth_expired(self) -> None:
        client = _make_client(lambda request: httpx.Response(401, json={"error": "Não autorizado"}))
        with pytest.raises(AuthExpiredError) as exc:
            client.fetch_raw_rows()
        assert exc.value.status_code == 401
        client.close()

    def test_http_error_raises(self) -> None:
        client = _make_client(lambda request: httpx.Response(500, text="boom"))
        with pytest.raises(PosteAPIError) as exc:
            client.fetch_raw_rows()
        assert exc.value.status_code == 500
        assert not isinstance(exc.value, AuthExpiredError)
        client.close()

    def test_invalid_json_raises(self) -> None:
        client = _make_client(lambda request: httpx.Response(200, content=b"not json"))
        with pytest.raises(PosteAPIError):
            client.fetch_raw_rows()
        client.close()

    def test_non_list_body_raises(self) -> None:
        client = _make_client(lambda request: httpx.Response(200, json={"rows": []}))
        with pytest.raises(PosteAPIError):
            client.fetch_raw_rows()
        client.close()

    def test_network_error_is_retried_then_raised(self) -> None:
        calls = {"n": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            calls["n"] += 1
            raise httpx.ConnectError("down", request=request)

        client = _make_client(handler)
        with pytest.raises(PosteAPIError) as exc:
            client.fetch_raw_rows()
        assert calls["n"] == 3
        assert exc.value.status_code is None
        client.close()


class TestCenso:
    def test_ids_as_strings(self) -> None:
        payload = [
            {"poste": 10, "cidade": "X", "coordenadas": "1,2"},
            {"poste": "20", "cidade": "Y"},
            {"cidade": "sem poste"},
        ]
        client = _make_client(lambda request: httpx.Response(200, json=payload))
        assert client.fetch_censo_ids() == {"10", "20"}
        client.close()

    def test_failure_raises(self) -> None:
        client = _make_client(lambda request: httpx.Response(503))
        with pytest.raises(PosteAPIError):
            client.fetch_censo_ids()
        client.close()


class TestExportReport:
    def test_posts_ids_and_returns_bytes(self) -> None:
        seen: dict = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            seen["path"] = request.url.path
            return httpx.Response(200, content=b"PK\x03\x04xlsx")

        client = _make_client(handler)
        data = client.export_report(["1", " 2 ", ""])
        assert data.startswith(b"PK")
        assert seen == {"body": {"ids": ["1", "2"]}, "path": "/api/postes/report"}
        client.close()

    def test_server_error_message(self) -> None:
        client = _make_client(
            lambda request: httpx.Response(500, json={"error": "Falha ao consultar banco"})
        )
        with pytest.raises(ReportExportError) as exc:
            client.export_report(["1"])
        assert exc.value.message == "Falha ao consultar banco"
        assert exc.value.status_code == 500
        client.close()

    def test_non_json_error_body(self) -> None:
        client = _make_client(lambda request: httpx.Response(502, text="bad gateway"))
        with pytest.raises(ReportExportError) as exc:
            client.export_report(["1"])
        assert exc.value.message == "HTTP 502"
        client.close()

    def test_401_is_not_a_report_error(self) -> None:
        client = _make_client(lambda request: httpx.Response(401))
        with pytest.raises(AuthExpiredError):
            client.export_report(["1"])
        client.close()

    def test_no_valid_ids(self) -> None:
        client = _make_client(lambda request: httpx.Response(200))
        with pytest.raises(ReportExportError):
            client.export_report([" ", ""])
        client.close()


class TestAuth:
    def test_login_keeps_session_cookie(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/api/auth/login":
                assert json.loads(request.content) == {"username": "ana", "password": "x"}
                return httpx.Response(
                    200,
                    json={"ok": True, "user": {"id": 1, "username": "ana"}},
                    headers={"set-cookie": f"{SESSION_COOKIE}=abc123; Path=/; HttpOnly"},
                )
            assert request.headers.get("cookie") == f"{SESSION_COOKIE}=abc123"
            return httpx.Response(200, json={"user": {"id": 1, "username": "ana"}})

        client = _make_client(handler)
        user = client.login("ana", "x")
        assert user.username == "ana"
        assert client.session_cookie == "abc123"
        assert client.me().id == 1
        client.close()

    def test_login_invalid_credentials(self) -> None:
        client = _make_client(lambda request: httpx.Response(401, json={"error": "inválido"}))
        with pytest.raises(AuthExpiredError) as exc:
            client.login("ana", "errada")
        assert exc.value.message == "Credenciais inválidas."
        client.close()

    def test_login_requires_fields(self) -> None:
        client = _make_client(lambda request: httpx.Response(200))
        with pytest.raises(PosteAPIError):
            client.login("", "")
        client.close()

    def test_logout_clears_cookie_even_on_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("down", request=request)

        client = _make_client(handler)
        client.set_session_cookie("abc")
        assert client.session_cookie == "abc"
        client.logout()
        assert client.session_cookie == ""
        client.close()


class TestTransportFailures:
    @staticmethod
    def _dropped(request: httpx.Request) -> httpx.Response:
        raise httpx.RemoteProtocolError("Server disconnected", request=request)

    def test_fetch_raises_api_error(self) -> None:
        client = _make_client(self._dropped)
        with pytest.raises(PosteAPIError) as exc:
            client.fetch_raw_rows()
        assert isinstance(exc.value.__cause__, httpx.RemoteProtocolError)
        client.close()

    def test_censo_raises_api_error(self) -> None:
        client = _make_client(self._dropped)
        with pytest.raises(PosteAPIError):
            client.fetch_censo_ids()
        client.close()

    def test_export_raises_report_error(self) -> None:
        client = _make_client(self._dropped)
        with pytest.raises(ReportExportError):
            client.export_report(["1"])
        client.close()

    def test_base_url_without_scheme(self) -> None:
        client = PosteApiClient(base_url="postes.test")
        with pytest.raises(PosteAPIError):
            client.fetch_raw_rows()
        client.close()
