# bananabill/infra/logger.py
"""
Logging for the Banana Bill client.

This module configures and provides the loggers that record outbound
API traffic, token refresh cycles, authentication events and bill
operations. Tokens are never written in clear; callers pass them
through `mask_token` first.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional


# Global switch for logging
ENABLE_LOGGING = False
# Global switch for console output
ENABLE_OUTPUT = False


def print_system(*args, **kwargs):
    """Print guarded by ENABLE_OUTPUT."""
    if ENABLE_OUTPUT:
        print(*args, **kwargs)


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logger(name: str, log_file: str, level: int = logging.INFO) -> logging.Logger:
    """
    Configures a named logger writing to its own file.

    Args:
        name: Logger name
        log_file: Path of the log file
        level: Logging level

    Returns:
        The configured logger
    """
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False

    while logger.handlers:
        logger.removeHandler(logger.handlers[0])

    # delay=True: the file is only created on the first record
    file_handler = logging.FileHandler(log_file, encoding='utf-8', delay=True)
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    logger.addHandler(file_handler)

    return logger


BASE_DIR = Path(__file__).parent.parent
LOGS_DIR = BASE_DIR / "logs"

gateway_logger = setup_logger('bananabill.gateway', str(LOGS_DIR / 'gateway.log'))
auth_logger = setup_logger('bananabill.auth', str(LOGS_DIR / 'auth.log'))
bills_logger = setup_logger('bananabill.bills', str(LOGS_DIR / 'bills.log'))
system_logger = setup_logger('bananabill.system', str(LOGS_DIR / 'system.log'))


def mask_token(token: Optional[str]) -> str:
    if not token:
        return "<none>"
    if len(token) <= 8:
        return "****"
    return f"{token[:4]}...{token[-4:]}"


def log_request(method: str, url: str, status: Optional[int] = None, retried: bool = False, **kwargs) -> None:
    """
    Records an outbound request handled by the gateway.

    Args:
        method: HTTP method
        url: Path relative to the API base URL
        status: Response status code (None for transport failures)
        retried: True when this is the replay after a refresh
        **kwargs: Extra details
    """
    if not (ENABLE_LOGGING or ENABLE_OUTPUT):
        return
    log_data = {"method": method, "url": url, "status": status, "retried": retried, **kwargs}
    if status is None or status >= 400:
        gateway_logger.warning(f"REQUEST_FAILED: {log_data}")
    else:
        gateway_logger.info(f"REQUEST: {log_data}")


def log_refresh(stage: str, queued: int = 0, error: Optional[str] = None) -> None:
    """
    Records a step of the token refresh cycle.

    Args:
        stage: start, success, failure, skipped
        queued: Number of requests waiting on the refresh
        error: Error message when the refresh failed
    """
    if not (ENABLE_LOGGING or ENABLE_OUTPUT):
        return
    log_data = {"stage": stage, "queued": queued}
    if error:
        gateway_logger.error(f"REFRESH_{stage.upper()}: {error} - {log_data}")
    else:
        gateway_logger.info(f"REFRESH_{stage.upper()}: {log_data}")


def log_auth_event(action: str, mobile: Optional[str] = None, success: bool = True, error: Optional[str] = None) -> None:
    """
    Records a login/registration/OTP/logout outcome.

    Args:
        action: login, register, send_otp, verify_otp, logout, ...
        mobile: Masked mobile number (optional)
        success: Outcome
        error: Human readable failure message (optional)
    """
    if not (ENABLE_LOGGING or ENABLE_OUTPUT):
        return
    log_data = {"action": action, "mobile": mobile, "success": success}
    if error:
        auth_logger.warning(f"AUTH_{action.upper()}_FAILED: {error} - {log_data}")
    else:
        auth_logger.info(f"AUTH_{action.upper()}: {log_data}")


def log_bill_event(action: str, bill_id: Optional[str] = None, **kwargs) -> None:
    if not (ENABLE_LOGGING or ENABLE_OUTPUT):
        return
    log_data = {"action": action, "bill_id": bill_id, **kwargs}
    bills_logger.info(f"BILL_{action.upper()}: {log_data}")


def log_system_event(event: str, details: Dict[str, Any] = None, level: str = "info") -> None:
    """
    Records a system event.

    Args:
        event: Event description
        details: Extra details (optional)
        level: info, warning, error
    """
    if not (ENABLE_LOGGING or ENABLE_OUTPUT):
        return
    log_data = {"event": event, "details": details or {}}
    log_method = getattr(system_logger, level.lower(), system_logger.info)
    log_method(f"SYSTEM_EVENT: {event} - {log_data}")


def get_log_summary(log_type: str = "gateway", lines: int = 100) -> str:
    """
    Returns the last lines of one of the log files.

    Args:
        log_type: gateway, auth, bills, system
        lines: Number of lines to return
    """
    log_files = {
        "gateway": LOGS_DIR / "gateway.log",
        "auth": LOGS_DIR / "auth.log",
        "bills": LOGS_DIR / "bills.log",
        "system": LOGS_DIR / "system.log",
    }

    log_file = log_files.get(log_type)
    if not log_file or not log_file.exists():
        return f"Log {log_type} not found."

    try:
        with open(log_file, 'r', encoding='utf-8') as f:
            all_lines = f.readlines()
    except OSError as e:
        return f"Error reading log {log_type}: {e}"
    return ''.join(all_lines[-lines:])
