import asyncio
import json

import httpx

from bananabill.domain.models import TokenPair, UserProfile
from bananabill.infra.credentials import MemoryCredentialStore
from bananabill.infra.gateway import AuthGateway
from bananabill.usecases.auth import AuthService

BASE = "http://api.test/api"

SESSION = {"accessToken": "acc-1", "refreshToken": "ref-1", "userId": "u-1", "userName": "Ravi Traders"}


def _run(routes, store, work):
    """Runs `work(service)` against a fake API answering from `routes` (path -> (status, body))."""
    calls = []

    def handler(request):
        body = json.loads(request.content) if request.content else None
        calls.append((request.url.path, body))
        status, payload = routes.get(request.url.path, (404, {"message": "Not found"}))
        if isinstance(payload, str):
            return httpx.Response(status, text=payload)
        return httpx.Response(status, json=payload)

    async def scenario():
        async with AuthGateway(store, BASE, 5.0, transport=httpx.MockTransport(handler)) as gw:
            return await work(AuthService(gw, store))

    return asyncio.run(scenario()), calls


def test_login_success_stores_session_and_user():
    store = MemoryCredentialStore()
    routes = {"/api/auth/login": (200, {"success": True, "data": SESSION})}

    result, calls = _run(routes, store, lambda s: s.login("9876543210", "secret"))

    assert result.ok
    assert result.message == "Login successful!"
    assert result.user.name == "Ravi Traders"
    assert calls == [("/api/auth/login", {"mobile": "9876543210", "password": "secret"})]
    assert store.get() == TokenPair("acc-1", "ref-1")
    assert store.get_user().mobile_number == "9876543210"


def test_login_failure_uses_server_message_and_keeps_session():
    store = MemoryCredentialStore(TokenPair("keep-a", "keep-r"))
    routes = {"/api/auth/login": (401, {"success": False, "message": "Invalid credentials"})}

    result, _ = _run(routes, store, lambda s: s.login("9876543210", "wrong"))

    assert not result.ok
    assert result.message == "Invalid credentials"
    assert store.get() == TokenPair("keep-a", "keep-r")


def test_login_failure_without_message_uses_fallback():
    store = MemoryCredentialStore()
    routes = {"/api/auth/login": (500, "<html>Internal error</html>")}

    result, _ = _run(routes, store, lambda s: s.login("9876543210", "x"))

    assert not result.ok
    assert result.message == "Login failed"
    assert store.get() is None


def test_login_without_tokens_is_a_failure():
    store = MemoryCredentialStore()
    routes = {"/api/auth/login": (200, {"success": True, "data": {"userId": "u-1"}})}

    result, _ = _run(routes, store, lambda s: s.login("9876543210", "x"))

    assert not result.ok
    assert result.message == "Server did not return a session"
    assert store.get() is None


def test_register_uses_given_name():
    store = MemoryCredentialStore()
    routes = {"/api/auth/register": (200, {"data": {"accessToken": "a", "refreshToken": "r", "userId": "u-2"}})}

    result, calls = _run(routes, store, lambda s: s.register("Sita", "9876543210", "pw"))

    assert result.ok
    assert result.message == "Registration successful!"
    assert result.user.name == "Sita"
    assert calls[0][1] == {"name": "Sita", "mobile": "9876543210", "password": "pw"}


def test_otp_flow():
    store = MemoryCredentialStore()
    routes = {
        "/api/auth/send-otp": (200, {"success": True, "message": "OTP sent"}),
        "/api/auth/verify-otp": (200, {"data": SESSION}),
    }

    sent, _ = _run(routes, store, lambda s: s.send_otp("9876543210"))
    verified, calls = _run(routes, store, lambda s: s.verify_otp("9876543210", "123456"))

    assert sent.ok and sent.message == "OTP sent, check your phone"
    assert verified.ok and verified.message == "OTP verified successfully!"
    assert calls[0][1] == {"mobile": "9876543210", "otp": "123456"}
    assert store.get_access_token() == "acc-1"


def test_send_otp_failure():
    store = MemoryCredentialStore()
    routes = {"/api/auth/send-otp": (400, {"message": "Too many attempts"})}

    result, _ = _run(routes, store, lambda s: s.send_otp("9876543210"))

    assert not result.ok
    assert result.message == "Too many attempts"


def test_logout_revokes_and_clears():
    store = MemoryCredentialStore(TokenPair("a", "r"))
    store.set_user(UserProfile(id="u", name="Ravi", mobile_number="9876543210"))
    routes = {"/api/auth/logout": (200, {"success": True})}

    result, calls = _run(routes, store, lambda s: s.logout())

    assert result.ok
    assert calls == [("/api/auth/logout", {"refreshToken": "r"})]
    assert store.get() is None
    assert store.get_user() is None


def test_logout_clears_even_when_server_fails():
    store = MemoryCredentialStore(TokenPair("a", "r"))
    routes = {"/api/auth/logout": (500, {"message": "down"})}

    result, _ = _run(routes, store, lambda s: s.logout())

    assert result.ok
    assert store.get() is None


def test_logout_without_session_skips_server():
    store = MemoryCredentialStore()

    result, calls = _run({}, store, lambda s: s.logout())

    assert result.ok
    assert calls == []


def test_logout_all_failure_reports_but_clears():
    store = MemoryCredentialStore(TokenPair("a", "r"))
    routes = {"/api/auth/logout-all": (500, {"message": "Could not revoke sessions"})}

    result, _ = _run(routes, store, lambda s: s.logout_all())

    assert not result.ok
    assert result.message == "Could not revoke sessions"
    assert store.get() is None


def test_current_user_requires_token():
    store = MemoryCredentialStore()
    store.set_user(UserProfile(id="u", name="Ravi", mobile_number="9876543210"))
    service = AuthService(gateway=None, store=store)
    assert service.current_user() is None

    store.set(TokenPair("a", "r"))
    assert service.current_user().name == "Ravi"


def test_update_password():
    store = MemoryCredentialStore(TokenPair("a", "r"))
    routes = {"/api/auth/update-password": (200, {"success": True})}

    result, calls = _run(routes, store, lambda s: s.update_password("old", "new"))

    assert result.ok
    assert calls == [("/api/auth/update-password", {"currentPassword": "old", "newPassword": "new"})]


def test_update_password_failure_message():
    store = MemoryCredentialStore(TokenPair("a", "r"))
    routes = {"/api/auth/update-password": (400, {"message": "Current password is incorrect"})}

    result, _ = _run(routes, store, lambda s: s.update_password("bad", "new"))

    assert not result.ok
    assert result.message == "Current password is incorrect"
    assert store.get() == TokenPair("a", "r")


def test_parked_auth_call_returns_result_when_refresh_fails():
    store = MemoryCredentialStore(TokenPair("old-a", "old-r"))
    store.set_user(UserProfile(id="u", name="Ravi", mobile_number="9876543210"))

    async def handler(request):
        await asyncio.sleep(0.01 if request.url.path == "/api/auth/refresh" else 0)
        if request.url.path == "/api/auth/refresh":
            return httpx.Response(401, json={"success": False, "message": "Refresh token expired"})
        return httpx.Response(401, json={"success": False, "message": "Token expired"})

    async def scenario():
        async with AuthGateway(store, BASE, 5.0, transport=httpx.MockTransport(handler)) as gw:
            service = AuthService(gw, store)
            return await asyncio.gather(
                gw.get("/bills/recent"),
                service.update_password("old", "new"),
                service.logout_all(),
                return_exceptions=True,
            )

    bills, password, logout_all = asyncio.run(scenario())

    assert isinstance(bills, httpx.HTTPStatusError)
    assert not password.ok
    assert password.message == "Refresh token expired"
    assert not logout_all.ok
    assert store.get() is None


def test_login_name_comes_from_server_only():
    store = MemoryCredentialStore()
    routes = {"/api/auth/login": (200, {"data": {"accessToken": "a", "refreshToken": "r"}})}

    result, _ = _run(routes, store, lambda s: s.login("9876543210", "pw"))

    assert result.ok
    assert result.user.name == ""


def test_verify_otp_name_falls_back_to_mobile():
    store = MemoryCredentialStore()
    routes = {"/api/auth/verify-otp": (200, {"data": {"accessToken": "a", "refreshToken": "r"}})}

    result, _ = _run(routes, store, lambda s: s.verify_otp("9876543210", "123456"))

    assert result.user.name == "9876543210"
