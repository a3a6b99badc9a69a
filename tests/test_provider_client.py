# tests/test_provider_client.py
"""Tests for the provider session client, driven through httpx.MockTransport."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import hashlib
import pytest
import httpx
from urllib.parse import parse_qs
from app.exceptions import ProviderAuthenticationError, ProviderFetchError, ProviderSessionExpired
from app.models.vehicle_movement import ENTRY, EXIT
from app.services.provider_client import ProviderClient, hash_password, SEARCH_PATH, LOGIN_PATH

BASE_URL = "https://provider.example.com"
LOGIN_PAGE = "<html><body><form action='/login'>Please login</form></body></html>"

ROWS = [
    {"acPlate": "12가3456", "iInOutStatus": "0", "dtTrnsDate": "2025-12-22 09:00:00.0", "acEqpmName": "RF IN LPR"},
    {"acPlate": "12가3456", "iInOutStatus": "1", "dtTrnsDate": "2025-12-22 18:00:00.0", "acEqpmName": "RF OUT LPR"},
]


class FakeProvider:
    """Minimal stand-in for the LPR console: cookie session + grid endpoint."""

    def __init__(self, search_responses=None, login_response=None):
        self.search_responses = list(search_responses or [])
        self.login_response = login_response
        self.logins = 0
        self.login_forms = []
        self.search_forms = []
        self.search_cookies = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == LOGIN_PATH and request.method == "GET":
            self.logins += 1
            return httpx.Response(200, text=LOGIN_PAGE,
                                  headers={"Set-Cookie": f"SESSION=s{self.logins}; Path=/"})
        if request.url.path == LOGIN_PATH and request.method == "POST":
            self.login_forms.append((parse_qs(request.content.decode()), dict(request.headers)))
            return self.login_response or httpx.Response(200, json={"result": "ok"})
        if request.url.path == SEARCH_PATH:
            self.search_forms.append(parse_qs(request.content.decode()))
            self.search_cookies.append(request.headers.get("cookie", ""))
            if self.search_responses:
                return self.search_responses.pop(0)
            return httpx.Response(200, json={"rows": ROWS})
        return httpx.Response(404)


def make_client(provider: FakeProvider) -> ProviderClient:
    return ProviderClient(BASE_URL, "operator", "s3cret", transport=httpx.MockTransport(provider), row_limit=500)


class TestLogin:
    def test_password_is_sha256_hex(self):
        assert hash_password("s3cret") == hashlib.sha256(b"s3cret").hexdigest()

    @pytest.mark.asyncio
    async def test_login_posts_hashed_credentials_as_ajax(self):
        provider = FakeProvider()
        client = make_client(provider)
        await client.login()

        form, headers = provider.login_forms[0]
        assert form["userId"] == ["operator"]
        assert form["userPwd"] == [hashlib.sha256(b"s3cret").hexdigest()]
        assert headers["amano_http_ajax"] == "true"
        assert headers["ajax"] == "true"
        assert client.is_authenticated
        await client.aclose()

    @pytest.mark.asyncio
    async def test_error_code_rejects_login(self):
        provider = FakeProvider(login_response=httpx.Response(200, json={"errorCode": "E01", "errorMsg": "bad pw"}))
        client = make_client(provider)
        with pytest.raises(ProviderAuthenticationError) as exc:
            await client.login()
        assert exc.value.code == "E01"
        assert not client.is_authenticated

    @pytest.mark.asyncio
    async def test_http_error_rejects_login(self):
        client = make_client(FakeProvider(login_response=httpx.Response(500, text="boom")))
        with pytest.raises(ProviderAuthenticationError):
            await client.login()

    @pytest.mark.asyncio
    async def test_network_error_rejects_login(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        client = ProviderClient(BASE_URL, "operator", "s3cret", transport=httpx.MockTransport(handler))
        with pytest.raises(ProviderAuthenticationError):
            await client.login()
        assert not client.is_authenticated


class TestFetchMovements:
    @pytest.mark.asyncio
    async def test_logs_in_lazily_and_parses_rows(self):
        provider = FakeProvider()
        client = make_client(provider)
        movements = await client.fetch_movements("2025-12-22", "2025-12-22")

        assert provider.logins == 1
        assert [m.movement_type for m in movements] == [ENTRY, EXIT]
        form = provider.search_forms[0]
        assert form["searchStartDt"] == ["2025-12-22 00:00:00"]
        assert form["searchEndDt"] == ["2025-12-22 23:59:59"]
        assert form["rowcount"] == ["500"]
        await client.aclose()

    @pytest.mark.asyncio
    async def test_session_reused_between_fetches(self):
        provider = FakeProvider()
        client = make_client(provider)
        await client.fetch_movements("2025-12-22", "2025-12-22")
        await client.fetch_movements("2025-12-23", "2025-12-23")
        assert provider.logins == 1
        await client.aclose()

    @pytest.mark.asyncio
    async def test_expired_session_relogs_once_with_fresh_cookies(self):
        provider = FakeProvider(search_responses=[httpx.Response(200, text=LOGIN_PAGE)])
        client = make_client(provider)
        movements = await client.fetch_movements("2025-12-22", "2025-12-22")

        assert len(movements) == 2
        assert provider.logins == 2
        assert "SESSION=s1" in provider.search_cookies[0]
        assert "SESSION=s2" in provider.search_cookies[1]
        assert "s1" not in provider.search_cookies[1]
        await client.aclose()

    @pytest.mark.asyncio
    async def test_second_expiry_is_raised(self):
        provider = FakeProvider(search_responses=[
            httpx.Response(200, text=LOGIN_PAGE),
            httpx.Response(200, text=LOGIN_PAGE),
        ])
        client = make_client(provider)
        with pytest.raises(ProviderSessionExpired):
            await client.fetch_movements("2025-12-22", "2025-12-22")
        assert provider.logins == 2
        assert not client.is_authenticated

    @pytest.mark.asyncio
    async def test_http_error_raises_fetch_error(self):
        provider = FakeProvider(search_responses=[httpx.Response(502, json={"message": "bad gateway"})])
        client = make_client(provider)
        with pytest.raises(ProviderFetchError) as exc:
            await client.fetch_movements("2025-12-22", "2025-12-22")
        assert exc.value.status_code == 502
        assert exc.value.endpoint == SEARCH_PATH
        await client.aclose()

    @pytest.mark.asyncio
    async def test_empty_body_is_no_movements(self):
        client = make_client(FakeProvider(search_responses=[httpx.Response(200, text="")]))
        assert await client.fetch_movements("2025-12-22", "2025-12-22") == []
        await client.aclose()

    @pytest.mark.asyncio
    async def test_garbage_body_raises(self):
        client = make_client(FakeProvider(search_responses=[httpx.Response(200, text="<html>maintenance</html>")]))
        with pytest.raises(ProviderFetchError):
            await client.fetch_movements("2025-12-22", "2025-12-22")
        await client.aclose()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [ROWS, {"rows": ROWS}, {"list": ROWS}, {"data": ROWS}])
    async def test_payload_shapes(self, payload):
        client = make_client(FakeProvider(search_responses=[httpx.Response(200, json=payload)]))
        movements = await client.fetch_movements("2025-12-22", "2025-12-22")
        assert [m.plate_number for m in movements] == ["12가3456", "12가3456"]
        await client.aclose()
