# bananabill/infra/errors.py
"""
Error tagging and user-facing message extraction.

Server errors arrive as JSON envelopes such as
``{"success": false, "message": "Invalid credentials"}``; transport
failures carry only their own message. `extract_message` turns either
into one short sentence for the UI, never a stack trace.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

import httpx


DEFAULT_MESSAGE = "Something went wrong"


class ErrorKind(str, Enum):
    HTTP = "http"
    TRANSPORT = "transport"
    UNEXPECTED = "unexpected"


class RefreshError(Exception):
    """The refresh endpoint did not return a usable token pair."""

    def __init__(self, message: str, response: Optional[httpx.Response] = None):
        super().__init__(message)
        self.response = response


def classify(error: BaseException) -> ErrorKind:
    if isinstance(error, httpx.HTTPStatusError):
        return ErrorKind.HTTP
    if isinstance(error, httpx.TransportError):
        return ErrorKind.TRANSPORT
    return ErrorKind.UNEXPECTED


def status_of(error: BaseException) -> Optional[int]:
    """HTTP status carried by the error, if any."""
    response = getattr(error, "response", None)
    if isinstance(response, httpx.Response):
        return response.status_code
    return None


def _server_message(response: Optional[httpx.Response]) -> Optional[str]:
    if response is None:
        return None
    try:
        body: Any = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    message = body.get("message")
    if not message and isinstance(body.get("error"), dict):
        message = body["error"].get("message")
    if isinstance(message, str) and message.strip():
        return message.strip()
    return None


def extract_message(error: Optional[BaseException], fallback: str = DEFAULT_MESSAGE) -> str:
    """Picks the message shown to the user for a failed call.

    Order: the server's ``message`` field, then the exception's own
    message, then ``fallback``. An HTTP error without a server message
    goes straight to ``fallback``: its own text is only status codes
    and URLs.
    """
    if error is None:
        return fallback
    message = _server_message(getattr(error, "response", None))
    if message:
        return message
    if isinstance(error, httpx.HTTPStatusError):
        return fallback
    own = str(error).strip()
    return own or fallback
