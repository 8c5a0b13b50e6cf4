# bananabill/usecases/auth.py
"""
UC: Authentication (login, registration, OTP, logout).

Every operation returns an `AuthResult` instead of raising: HTTP,
transport, refresh and malformed-payload failures are turned into a short
message via `extract_message`, and the current session is left as it
was. Only logout/logout-all touch the session on failure, because
their whole point is to end it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from bananabill.adapters.parsers import mask_mobile
from bananabill.domain.models import TokenPair, UserProfile
from bananabill.infra.credentials import CredentialStore
from bananabill.infra.errors import RefreshError, extract_message
from bananabill.infra.gateway import AuthGateway, unwrap_data
from bananabill.infra.logger import log_auth_event


@dataclass
class AuthResult:
    ok: bool
    message: Optional[str] = None
    user: Optional[UserProfile] = None


class AuthService:
    def __init__(self, gateway: AuthGateway, store: CredentialStore):
        self.gateway = gateway
        self.store = store

    # -----------------------
    # helpers
    # -----------------------

    async def _post(self, url: str, payload: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        response = await self.gateway.post(url, json=payload)
        data = unwrap_data(response.json())
        if not isinstance(data, dict):
            raise ValueError("Unexpected response from server")
        return data

    def _open_session(self, data: Dict[str, Any], name: str, mobile: str) -> UserProfile:
        access = data.get("accessToken")
        refresh = data.get("refreshToken")
        if not access or not refresh:
            raise ValueError("Server did not return a session")
        user = UserProfile(
            id=data.get("userId"),
            name=name,
            mobile_number=mobile,
            email="",
        )
        self.store.set(TokenPair(access_token=access, refresh_token=refresh))
        self.store.set_user(user)
        return user

    def _failed(self, action: str, mobile: Optional[str], error: Exception, fallback: str) -> AuthResult:
        message = extract_message(error, fallback)
        log_auth_event(action, mask_mobile(mobile), success=False, error=message)
        return AuthResult(ok=False, message=message)

    # -----------------------
    # operations
    # -----------------------

    async def login(self, mobile: str, password: str) -> AuthResult:
        try:
            data = await self._post("/auth/login", {"mobile": mobile, "password": password})
            user = self._open_session(data, data.get("userName") or "", mobile)
        except (httpx.HTTPError, RefreshError, ValueError) as e:
            return self._failed("login", mobile, e, "Login failed")
        log_auth_event("login", mask_mobile(mobile))
        return AuthResult(ok=True, message="Login successful!", user=user)

    async def register(self, name: str, mobile: str, password: str) -> AuthResult:
        try:
            data = await self._post("/auth/register", {"name": name, "mobile": mobile, "password": password})
            user = self._open_session(data, name, mobile)
        except (httpx.HTTPError, RefreshError, ValueError) as e:
            return self._failed("register", mobile, e, "Registration failed")
        log_auth_event("register", mask_mobile(mobile))
        return AuthResult(ok=True, message="Registration successful!", user=user)

    async def send_otp(self, mobile: str) -> AuthResult:
        try:
            await self.gateway.post("/auth/send-otp", json={"mobile": mobile})
        except (httpx.HTTPError, RefreshError) as e:
            return self._failed("send_otp", mobile, e, "Failed to send OTP")
        log_auth_event("send_otp", mask_mobile(mobile))
        return AuthResult(ok=True, message="OTP sent, check your phone")

    async def verify_otp(self, mobile: str, otp: str) -> AuthResult:
        try:
            data = await self._post("/auth/verify-otp", {"mobile": mobile, "otp": otp})
            user = self._open_session(data, data.get("userName") or mobile, mobile)
        except (httpx.HTTPError, RefreshError, ValueError) as e:
            return self._failed("verify_otp", mobile, e, "OTP verification failed")
        log_auth_event("verify_otp", mask_mobile(mobile))
        return AuthResult(ok=True, message="OTP verified successfully!", user=user)

    async def update_password(self, current_password: str, new_password: str) -> AuthResult:
        user = self.store.get_user()
        mobile = user.mobile_number if user else None
        try:
            await self.gateway.post(
                "/auth/update-password",
                json={"currentPassword": current_password, "newPassword": new_password},
            )
        except (httpx.HTTPError, RefreshError) as e:
            return self._failed("update_password", mobile, e, "Password update failed")
        log_auth_event("update_password", mask_mobile(mobile))
        return AuthResult(ok=True, message="Password updated")

    async def logout(self) -> AuthResult:
        """Revokes the current session on the server, then clears it locally."""
        refresh_token = self.store.get_refresh_token()
        try:
            if refresh_token:
                await self.gateway.post("/auth/logout", json={"refreshToken": refresh_token})
        except (httpx.HTTPError, RefreshError) as e:
            log_auth_event("logout", success=False, error=extract_message(e, "Logout failed"))
        finally:
            self.store.clear()
        log_auth_event("logout")
        return AuthResult(ok=True, message="Logged out successfully")

    async def logout_all(self) -> AuthResult:
        """Revokes every session of the user; the local session is cleared regardless."""
        try:
            await self.gateway.post("/auth/logout-all")
        except (httpx.HTTPError, RefreshError) as e:
            message = extract_message(e, "Logout from all devices failed")
            log_auth_event("logout_all", success=False, error=message)
            return AuthResult(ok=False, message=message)
        finally:
            self.store.clear()
        log_auth_event("logout_all")
        return AuthResult(ok=True, message="Logged out from all devices")

    def current_user(self) -> Optional[UserProfile]:
        if not self.store.get_access_token():
            return None
        return self.store.get_user()
