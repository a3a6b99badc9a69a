# app/services/provider_client.py
"""
Session client for the parking provider's LPR web console.

The console has no API tokens: a browser-style login sets session cookies,
and the grid endpoint answers with JSON while the session is alive. Once the
session dies, the same endpoint returns the HTML login page instead.

Login:   GET /login (primes cookies), then POST /login with userId and
         SHA-256(password) as hex, sent as an ajax form post.
Search:  POST /search/lprtrns/doListGrid with a start/end datetime range.

Each login builds a fresh httpx client, so the cookie jar is replaced rather
than appended to. A detected expiry triggers exactly one re-login + retry.
"""

import hashlib
from enum import Enum
from functools import lru_cache
from typing import Optional, Union
from datetime import date
import httpx
from app.config import settings
from app.exceptions import ProviderAuthenticationError, ProviderFetchError, ProviderSessionExpired
from app.services.movement_parser import ParsedMovement, parse_movements
from app.utils.dates import to_date, DATE_FORMAT
from app.utils.logger import get_logger

logger = get_logger(__name__)

LOGIN_PATH = "/login"
SEARCH_PATH = "/search/lprtrns/doListGrid"
LOGIN_MARKER = "login"    # appears in the HTML login page served on expiry
USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
AJAX_HEADERS = {"amano_http_ajax": "true", "ajax": "true"}
MAX_REDIRECTS = 5


class ProviderState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"


def hash_password(password: str) -> str:
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


def _day(value: Union[str, date]) -> str:
    return to_date(value).strftime(DATE_FORMAT)


class ProviderClient:
    def __init__(
        self,
        base_url: str,
        login_id: str,
        password: str,
        *,
        verify_ssl: bool = False,
        timeout: float = 30.0,
        row_limit: int = 50000,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._login_id = login_id
        self._password_hash = hash_password(password)
        self._verify_ssl = verify_ssl
        self._timeout = timeout
        self._row_limit = row_limit
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self.state = ProviderState.UNAUTHENTICATED

    @property
    def is_authenticated(self) -> bool:
        return self.state is ProviderState.AUTHENTICATED

    def _new_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            verify=self._verify_ssl,
            timeout=self._timeout,
            follow_redirects=True,
            max_redirects=MAX_REDIRECTS,
            headers={"User-Agent": USER_AGENT},
            transport=self._transport,
        )

    async def _reset(self):
        """Drop the session: close the client and forget its cookies."""
        client, self._client = self._client, None
        self.state = ProviderState.UNAUTHENTICATED
        if client is not None:
            await client.aclose()

    async def login(self) -> None:
        """
        Authenticate with a brand-new cookie jar.
        Raises ProviderAuthenticationError and stays UNAUTHENTICATED on failure.
        """
        await self._reset()
        client = self._new_client()
        try:
            await client.get(LOGIN_PATH)
            response = await client.post(
                LOGIN_PATH,
                data={"userId": self._login_id, "userPwd": self._password_hash},
                headers=AJAX_HEADERS,
            )
        except httpx.HTTPError as e:
            await client.aclose()
            raise ProviderAuthenticationError(f"Login request failed: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = None

        if isinstance(body, dict) and body.get("errorCode"):
            await client.aclose()
            raise ProviderAuthenticationError(
                body.get("errorMsg") or f"Login rejected (errorCode={body['errorCode']})",
                code=str(body["errorCode"]),
            )
        if response.is_error:
            await client.aclose()
            raise ProviderAuthenticationError(f"Login returned HTTP {response.status_code}")

        self._client = client
        self.state = ProviderState.AUTHENTICATED
        logger.info(f"🔑 Provider login OK ({self._login_id})")

    async def fetch_movements(self, start_date: Union[str, date], end_date: Union[str, date]) -> list[ParsedMovement]:
        """
        All movements between start_date 00:00:00 and end_date 23:59:59.
        Re-authenticates once if the session has expired; a second expiry is raised.
        """
        if not self.is_authenticated:
            await self.login()

        try:
            return await self._fetch_once(start_date, end_date)
        except ProviderSessionExpired:
            logger.warning("⚠️  Provider session expired — logging in again")
            await self.login()
            return await self._fetch_once(start_date, end_date)

    async def _fetch_once(self, start_date, end_date) -> list[ParsedMovement]:
        form = {
            "searchStartDt": f"{_day(start_date)} 00:00:00",
            "searchEndDt": f"{_day(end_date)} 23:59:59",
            "iInOutStatus": "",
            "iCardType": "",
            "acPlate": "",
            "rowcount": str(self._row_limit),
        }
        try:
            response = await self._client.post(SEARCH_PATH, data=form)
        except httpx.HTTPError as e:
            raise ProviderFetchError(f"Request to {SEARCH_PATH} failed: {e}", endpoint=SEARCH_PATH) from e

        try:
            payload = response.json()
        except ValueError:
            payload = response.text

        if isinstance(payload, str):
            if LOGIN_MARKER in payload.lower():
                await self._reset()
                raise ProviderSessionExpired("Provider returned the login page")
            if response.is_error:
                raise ProviderFetchError(f"HTTP {response.status_code} from {SEARCH_PATH}",
                                         status_code=response.status_code, endpoint=SEARCH_PATH)
            if not payload.strip():
                return []
            raise ProviderFetchError(f"Non-JSON response from {SEARCH_PATH}: {payload[:200]}",
                                     status_code=response.status_code, endpoint=SEARCH_PATH)

        if response.is_error:
            raise ProviderFetchError(f"HTTP {response.status_code} from {SEARCH_PATH}",
                                     status_code=response.status_code, endpoint=SEARCH_PATH)

        movements = parse_movements(payload)
        logger.debug(f"Fetched {len(movements)} movement(s) for {_day(start_date)} ~ {_day(end_date)}")
        return movements

    async def aclose(self):
        await self._reset()


@lru_cache()
def get_provider_client() -> ProviderClient:
    """Process-wide client, created on first use."""
    return ProviderClient(
        settings.PROVIDER_BASE_URL,
        settings.PROVIDER_LOGIN_ID,
        settings.PROVIDER_LOGIN_PASSWORD,
        verify_ssl=settings.PROVIDER_VERIFY_SSL,
        timeout=settings.PROVIDER_TIMEOUT_SECONDS,
        row_limit=settings.PROVIDER_ROW_LIMIT,
    )
