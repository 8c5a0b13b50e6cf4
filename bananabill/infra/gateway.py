# bananabill/infra/gateway.py
"""
Authenticated request gateway.

Every call to the REST API goes through `AuthGateway`, which:
- attaches ``Authorization: Bearer <access token>`` when a session exists;
- on a 401 from a non-auth endpoint runs a single token refresh, parks
  every other 401 that arrives meanwhile, and replays all of them once
  the new pair is stored;
- when the refresh is impossible or fails, clears the session and sends
  the user back to the login route.

Only one refresh is ever in flight. The guard is a plain flag: all of
this runs on one event loop, so the check-and-set cannot interleave.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Iterable, List, Mapping, Optional

import httpx

from bananabill.config import DEFAULTS
from bananabill.domain.models import TokenPair
from bananabill.infra.credentials import CredentialStore
from bananabill.infra.errors import RefreshError
from bananabill.infra.logger import log_refresh, log_request, log_system_event, mask_token, print_system


def unwrap_data(body: Any) -> Any:
    """Returns ``body["data"]`` for ``{"success": ..., "data": ...}`` envelopes."""
    if isinstance(body, dict) and body.get("data") is not None:
        return body["data"]
    return body


def _unauthorized(response: httpx.Response) -> httpx.HTTPStatusError:
    message = (
        f"Client error '{response.status_code} {response.reason_phrase}' "
        f"for url '{response.request.url}'"
    )
    return httpx.HTTPStatusError(message, request=response.request, response=response)


class LoginRedirect:
    """Tracks the current location and sends it to the login route."""

    def __init__(self, login_route: str = DEFAULTS.login_route, current_path: str = "/"):
        self.login_route = login_route
        self.current_path = current_path
        self.redirects = 0

    def redirect(self) -> bool:
        """Moves to the login route unless already there. Returns True on a move."""
        if self.login_route in self.current_path:
            return False
        self.current_path = self.login_route
        self.redirects += 1
        return True


class AuthGateway:
    def __init__(
        self,
        store: CredentialStore,
        base_url: str = DEFAULTS.api_url,
        timeout: float = DEFAULTS.timeout_seconds,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        on_logout: Optional[Callable[[], None]] = None,
        redirect: Optional[LoginRedirect] = None,
        exempt_paths: Iterable[str] = DEFAULTS.exempt_paths,
        refresh_path: str = DEFAULTS.refresh_path,
    ):
        self.store = store
        self.on_logout = on_logout
        self.redirect = redirect or LoginRedirect()
        self.exempt_paths = tuple(exempt_paths)
        self.refresh_path = refresh_path
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout),
            transport=transport,
            headers={"Content-Type": "application/json"},
        )
        self._refreshing = False
        self._pending: List[asyncio.Future] = []

    async def __aenter__(self) -> "AuthGateway":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    @property
    def refreshing(self) -> bool:
        return self._refreshing

    def is_exempt(self, url: str) -> bool:
        return any(path in url for path in self.exempt_paths)

    # -----------------------
    # public API
    # -----------------------

    async def request(
        self,
        method: str,
        url: str,
        *,
        json: Any = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> httpx.Response:
        """Sends a request; raises httpx.HTTPStatusError for non-2xx responses."""
        response = await self._send(method, url, json, params, self.store.get_access_token())
        if response.status_code == 401 and not self.is_exempt(url):
            return await self._recover(method, url, json, params, response)
        response.raise_for_status()
        return response

    async def get(self, url: str, *, params: Optional[Mapping[str, Any]] = None) -> httpx.Response:
        return await self.request("GET", url, params=params)

    async def post(self, url: str, *, json: Any = None, params: Optional[Mapping[str, Any]] = None) -> httpx.Response:
        return await self.request("POST", url, json=json, params=params)

    async def put(self, url: str, *, json: Any = None) -> httpx.Response:
        return await self.request("PUT", url, json=json)

    async def delete(self, url: str) -> httpx.Response:
        return await self.request("DELETE", url)

    # -----------------------
    # internals
    # -----------------------

    async def _send(self, method, url, json, params, token, retried: bool = False) -> httpx.Response:
        headers = {}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        try:
            response = await self._client.request(method, url, json=json, params=params, headers=headers)
        except httpx.TransportError as exc:
            log_request(method, url, None, retried=retried, token=mask_token(token), error=type(exc).__name__)
            raise
        log_request(method, url, response.status_code, retried=retried, token=mask_token(token))
        return response

    async def _replay(self, method, url, json, params, token: str) -> httpx.Response:
        # Replays are never intercepted again: a second 401 goes to the caller.
        response = await self._send(method, url, json, params, token, retried=True)
        response.raise_for_status()
        return response

    async def _recover(self, method, url, json, params, response: httpx.Response) -> httpx.Response:
        unauthorized = _unauthorized(response)

        if self._refreshing:
            future = asyncio.get_running_loop().create_future()
            self._pending.append(future)
            log_refresh("queued", queued=len(self._pending))
            token = await future
            return await self._replay(method, url, json, params, token)

        refresh_token = self.store.get_refresh_token()
        if not refresh_token:
            log_refresh("skipped", error="no refresh token")
            self._force_logout()
            raise unauthorized

        self._refreshing = True
        log_refresh("start")
        try:
            pair = await self._refresh(refresh_token)
        except Exception as exc:
            log_refresh("failure", queued=len(self._pending), error=str(exc))
            self._settle(error=exc)
            self._force_logout()
            raise unauthorized from exc
        else:
            self.store.set(pair)
            log_refresh("success", queued=len(self._pending))
            self._settle(token=pair.access_token)
        finally:
            self._refreshing = False
            if self._pending:
                # only reachable when the refreshing task was cancelled
                self._settle(error=RefreshError("Token refresh was interrupted"))

        return await self._replay(method, url, json, params, pair.access_token)

    async def _refresh(self, refresh_token: str) -> TokenPair:
        response = await self._client.post(self.refresh_path, json={"refreshToken": refresh_token})
        if response.is_error:
            raise RefreshError(f"Token refresh rejected with status {response.status_code}", response)
        try:
            data = unwrap_data(response.json())
        except ValueError as exc:
            raise RefreshError("Token refresh returned invalid JSON", response) from exc
        if not isinstance(data, dict) or not data.get("accessToken"):
            raise RefreshError("Token refresh response has no access token", response)
        return TokenPair(
            access_token=data["accessToken"],
            refresh_token=data.get("refreshToken") or refresh_token,
        )

    def _settle(self, token: Optional[str] = None, error: Optional[BaseException] = None) -> None:
        """Releases every parked request in arrival order."""
        pending, self._pending = self._pending, []
        for future in pending:
            if future.done():
                continue
            if error is not None:
                future.set_exception(error)
            else:
                future.set_result(token)

    def _force_logout(self) -> None:
        self.store.clear()
        moved = self.redirect.redirect()
        print_system(f"Session ended, redirect to {self.redirect.login_route}: {moved}")
        log_system_event("forced_logout", {"redirected": moved}, level="warning")
        if self.on_logout is not None:
            self.on_logout()
