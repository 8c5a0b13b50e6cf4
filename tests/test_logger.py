import logging

from bananabill.infra import logger


def test_mask_token():
    assert logger.mask_token(None) == "<none>"
    assert logger.mask_token("short") == "****"
    assert logger.mask_token("eyJhbGciOiJIUzI1NiJ9.payload.sig") == "eyJh....sig"


def test_log_summary_missing_file(tmp_path, monkeypatch):
    monkeypatch.setattr(logger, "LOGS_DIR", tmp_path)
    assert logger.get_log_summary("gateway") == "Log gateway not found."
    assert logger.get_log_summary("unknown") == "Log unknown not found."


def test_refresh_logging_writes_when_enabled(tmp_path, monkeypatch):
    log_file = tmp_path / "gateway.log"
    test_logger = logger.setup_logger("bananabill.test.gateway", str(log_file))
    monkeypatch.setattr(logger, "gateway_logger", test_logger)
    monkeypatch.setattr(logger, "ENABLE_LOGGING", True)

    logger.log_refresh("start")
    logger.log_refresh("failure", queued=2, error="Refresh token expired")
    for handler in test_logger.handlers:
        handler.flush()

    text = log_file.read_text(encoding="utf-8")
    assert "REFRESH_START" in text
    assert "REFRESH_FAILURE: Refresh token expired" in text
    assert "'queued': 2" in text
    assert test_logger.level == logging.INFO


def test_logging_disabled_writes_nothing(tmp_path, monkeypatch):
    log_file = tmp_path / "auth.log"
    test_logger = logger.setup_logger("bananabill.test.auth", str(log_file))
    monkeypatch.setattr(logger, "auth_logger", test_logger)
    monkeypatch.setattr(logger, "ENABLE_LOGGING", False)
    monkeypatch.setattr(logger, "ENABLE_OUTPUT", False)

    logger.log_auth_event("login", "******3210")
    assert not log_file.exists()
