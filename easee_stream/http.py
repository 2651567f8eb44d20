"""HTTP client for the Easee cloud REST API."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

import aiohttp

from .errors import (
    EaseeConnectionError,
    EaseeInvalidIdError,
    EaseeResponseError,
    EaseeTimeout,
    EaseeUnexpectedDataError,
    TokenParseError,
)
from .models import (
    Charger,
    ChargerState,
    ChargingSession,
    Circuit,
    LoginResponse,
    Site,
    SiteDetails,
    Triphase,
)

_LOGGER = logging.getLogger(__name__)

API_BASE = "https://api.easee.com/api/"


class EaseeHttpClient:
    """Authenticated wrapper around the Easee REST API.

    Tracks access token expiry, refreshes it ahead of a request once it has
    expired, and retries a request exactly once after a refresh when the
    server answers 401.

    Usage:
        async with aiohttp.ClientSession() as session:
            client = await EaseeHttpClient.login(session, "user", "password")
            chargers = await client.chargers()
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        access_token: str,
        refresh_token: str,
        token_expiration: float,
        *,
        api_base: str = API_BASE,
        timeout: float = 30.0,
    ) -> None:
        """Initialize the client from an existing token set.

        Args:
            session: aiohttp session owned by the caller
            access_token: Bearer token, without the "Bearer " prefix
            refresh_token: Token used to obtain a new access token
            token_expiration: Epoch seconds after which the access token is stale
            api_base: Base URL for relative resource paths
            timeout: Total timeout for each HTTP request (seconds)
        """
        self._session = session
        self._access_token = access_token
        self._refresh_token = refresh_token
        self._token_expiration = token_expiration
        self._api_base = api_base
        self._timeout = timeout
        self._refresh_callback: Callable[[EaseeHttpClient], None] | None = None

    # -------------------------------------------------------------------------
    # Credentials
    # -------------------------------------------------------------------------

    @classmethod
    async def login(
        cls,
        session: aiohttp.ClientSession,
        user_name: str,
        password: str,
        *,
        api_base: str = API_BASE,
        timeout: float = 30.0,
    ) -> EaseeHttpClient:
        """Retrieve access tokens online by logging in with credentials."""
        _LOGGER.info("Logging into API")
        tokens = await _fetch_tokens(
            session,
            f"{api_base}accounts/login",
            {"userName": user_name, "password": password},
            timeout,
        )
        return cls(
            session,
            tokens.access_token,
            tokens.refresh_token,
            time.time() + tokens.expires_in,
            api_base=api_base,
            timeout=timeout,
        )

    @classmethod
    def from_saved(
        cls,
        session: aiohttp.ClientSession,
        saved: str,
        *,
        api_base: str = API_BASE,
        timeout: float = 30.0,
    ) -> EaseeHttpClient:
        """Restore a client from the text produced by ``save()``.

        Raises:
            TokenParseError: If the text is not three lines or the expiry
                is not an integer.
        """
        lines = saved.splitlines()
        if len(lines) != 3:
            raise TokenParseError("Bad line count")
        access_token, refresh_token, expire = lines
        try:
            expiration = int(expire)
        except ValueError as err:
            raise TokenParseError(f"Bad expiration {expire!r}") from err
        return cls(
            session,
            access_token,
            refresh_token,
            float(expiration),
            api_base=api_base,
            timeout=timeout,
        )

    def save(self) -> str:
        """Serialize the token set so it can be restored with ``from_saved()``."""
        return (
            f"{self._access_token}\n{self._refresh_token}\n"
            f"{int(self._token_expiration)}\n"
        )

    def on_refresh(self, callback: Callable[[EaseeHttpClient], None]) -> None:
        """Register callback invoked after every successful token refresh.

        Typically used to persist ``save()`` output.
        """
        self._refresh_callback = callback

    def auth_token(self) -> str:
        """Return the bearer token without the "Bearer " prefix."""
        return self._access_token

    @property
    def token_expiration(self) -> float:
        """Epoch seconds at which the access token expires."""
        return self._token_expiration

    async def refresh_token(self) -> None:
        """Use the refresh token to obtain fresh credentials."""
        _LOGGER.info("Refreshing access token")
        tokens = await _fetch_tokens(
            self._session,
            f"{self._api_base}accounts/refresh_token",
            {"refreshToken": self._refresh_token},
            self._timeout,
        )
        self._access_token = tokens.access_token
        self._refresh_token = tokens.refresh_token
        self._token_expiration = time.time() + tokens.expires_in
        if self._refresh_callback is not None:
            self._refresh_callback(self)

    async def _check_expired(self) -> None:
        if self._token_expiration < time.time():
            _LOGGER.debug("Token has expired")
            await self.refresh_token()

    # -------------------------------------------------------------------------
    # Raw requests
    # -------------------------------------------------------------------------

    async def get(self, path: str) -> Any:
        """GET a path relative to the API base and return decoded JSON."""
        return await self._authenticated("GET", f"{self._api_base}{path}", None)

    async def maybe_get(self, path: str) -> Any | None:
        """Like ``get``, but return ``None`` when the API answers 404."""
        try:
            return await self.get(path)
        except EaseeResponseError as err:
            if err.status == 404:
                return None
            raise

    async def post(self, path: str, body: Any = None) -> Any:
        """POST to a path relative to the API base and return decoded JSON."""
        return await self.post_raw(f"{self._api_base}{path}", body)

    async def post_raw(self, url: str, body: Any = None) -> Any:
        """POST JSON to an absolute URL and return decoded JSON.

        A ``None`` body sends an empty request body.
        """
        return await self._authenticated("POST", url, body)

    async def _authenticated(self, method: str, url: str, body: Any) -> Any:
        await self._check_expired()
        status, data = await self._send(method, url, body, retry_on_401=True)
        if status == 401:
            _LOGGER.debug("%s %s rejected with 401, refreshing token", method, url)
            await self.refresh_token()
            _, data = await self._send(method, url, body, retry_on_401=False)
        return data

    async def _send(
        self, method: str, url: str, body: Any, *, retry_on_401: bool
    ) -> tuple[int, Any]:
        headers = {
            "Accept": "application/json",
            "Authorization": f"Bearer {self._access_token}",
        }
        request = self._session.post if method == "POST" else self._session.get
        try:
            async with request(
                url,
                headers=headers,
                json=body,
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            ) as resp:
                if resp.status == 401 and retry_on_401:
                    return resp.status, None
                if not 200 <= resp.status < 300:
                    text = await resp.text()
                    raise EaseeResponseError(
                        resp.status, f"{method} {url} failed with {resp.status}: {text}"
                    )
                return resp.status, await _decode_json(resp)
        except TimeoutError as err:
            raise EaseeTimeout(f"{method} {url} timed out") from err
        except aiohttp.ClientError as err:
            raise EaseeConnectionError(f"{method} {url} failed") from err

    # -------------------------------------------------------------------------
    # Resources
    # -------------------------------------------------------------------------

    async def sites(self) -> list[Site]:
        """List all sites available to the user."""
        data = await self.get("sites")
        return [Site.from_dict(item) for item in _require_list(data)]

    async def site(self, site_id: int) -> SiteDetails:
        """Fetch a site with its circuits and chargers."""
        return SiteDetails.from_dict(await self.get(f"sites/{site_id}"))

    async def chargers(self) -> list[Charger]:
        """List all chargers available to the user."""
        data = await self.get("chargers")
        return [Charger.from_dict(item) for item in _require_list(data)]

    async def charger(self, charger_id: str) -> Charger:
        """Fetch a single charger.

        Raises:
            EaseeInvalidIdError: If ``charger_id`` is not alphanumeric.
        """
        _validate_id(charger_id)
        return Charger.from_dict(await self.get(f"chargers/{charger_id}"))

    async def charger_state(self, charger_id: str) -> ChargerState:
        """Fetch the live state of a charger."""
        _validate_id(charger_id)
        return ChargerState.from_dict(await self.get(f"chargers/{charger_id}/state"))

    async def ongoing_session(self, charger_id: str) -> ChargingSession | None:
        """Fetch the ongoing charging session, or ``None`` if there is none."""
        _validate_id(charger_id)
        data = await self.maybe_get(f"chargers/{charger_id}/sessions/ongoing")
        return None if data is None else ChargingSession.from_dict(data)

    async def latest_session(self, charger_id: str) -> ChargingSession | None:
        """Fetch the last finished charging session, or ``None``.

        The ongoing session, if any, is not included.
        """
        _validate_id(charger_id)
        data = await self.maybe_get(f"chargers/{charger_id}/sessions/latest")
        return None if data is None else ChargingSession.from_dict(data)

    async def circuit(self, site_id: int, circuit_id: int) -> Circuit:
        """Fetch a single circuit of a site."""
        data = await self.get(f"site/{site_id}/circuit/{circuit_id}")
        return Circuit.from_dict(data)

    async def circuit_dynamic_current(self, site_id: int, circuit_id: int) -> Triphase:
        """Read the dynamic current limit of a circuit."""
        data = await self.get(f"sites/{site_id}/circuits/{circuit_id}/dynamicCurrent")
        return Triphase.from_dict(data)


def _validate_id(charger_id: str) -> None:
    if not charger_id or not charger_id.isalnum():
        raise EaseeInvalidIdError(charger_id)


def _require_list(data: Any) -> list[Any]:
    if not isinstance(data, list):
        raise EaseeUnexpectedDataError(data, "expecting a JSON array")
    return data


async def _decode_json(resp: aiohttp.ClientResponse) -> Any:
    try:
        return await resp.json(content_type=None)
    except ValueError as err:
        raise EaseeUnexpectedDataError(None, "response body is not JSON") from err


async def _fetch_tokens(
    session: aiohttp.ClientSession,
    url: str,
    payload: dict[str, str],
    timeout: float,
) -> LoginResponse:
    try:
        async with session.post(
            url,
            json=payload,
            timeout=aiohttp.ClientTimeout(total=timeout),
        ) as resp:
            if resp.status != 200:
                raise EaseeResponseError(
                    resp.status, f"Token request failed with {resp.status}"
                )
            data = await _decode_json(resp)
    except TimeoutError as err:
        raise EaseeTimeout("Token request timed out") from err
    except aiohttp.ClientError as err:
        raise EaseeConnectionError("Token request failed") from err
    return LoginResponse.from_dict(data)
