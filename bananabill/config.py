# bananabill/config.py
"""
Global settings and default values for the Banana Bill client.
"""

import os
from dataclasses import dataclass, field
from typing import Tuple


# Default REST API location (the backend serves everything under /api)
API_URL = os.environ.get("BANANABILL_API_URL", "http://localhost:8080/api")

# Default path of the SQLite file holding the local session
SESSION_DB_PATH = os.environ.get(
    "BANANABILL_SESSION_DB",
    os.path.join(os.getcwd(), "bananabill_session.db"),
)


@dataclass
class DefaultConfig:
    """Default values used across the client."""
    api_url: str = API_URL
    timeout_seconds: float = float(os.environ.get("BANANABILL_TIMEOUT", "30"))
    session_db: str = SESSION_DB_PATH
    login_route: str = "/login"
    # Auth endpoints that never go through the 401 -> refresh flow
    exempt_paths: Tuple[str, ...] = field(
        default=("/auth/login", "/auth/register", "/auth/refresh")
    )
    refresh_path: str = "/auth/refresh"


# Global instance of the default values
DEFAULTS = DefaultConfig()
