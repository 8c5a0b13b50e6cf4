import json
from math import isclose
from pathlib import Path

import httpx
from typer.testing import CliRunner

from bananabill.adapters import cli
from bananabill.adapters.cli import app
from bananabill.domain.models import TokenPair
from bananabill.infra.credentials import SqliteCredentialStore
from bananabill.infra.gateway import AuthGateway

runner = CliRunner()


def _fake_api(monkeypatch, handler):
    """Routes every gateway the CLI opens through `handler`."""
    def factory(store, base_url, timeout, **kwargs):
        return AuthGateway(store, base_url, timeout, transport=httpx.MockTransport(handler), **kwargs)
    monkeypatch.setattr(cli, "AuthGateway", factory)


def test_cli_calc_json():
    result = runner.invoke(app, [
        "calc", "--gross", "1,050", "--patti", "40", "--boxes", "10",
        "--tut", "5", "--rate", "12", "--majuri", "300", "--json",
    ])
    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert data["netWeight"] == 1000.0
    assert isclose(data["finalNetWeight"], 1075.0, rel_tol=1e-9)
    assert isclose(data["netAmount"], 12600.0, rel_tol=1e-9)


def test_cli_calc_table():
    result = runner.invoke(app, ["calc", "--gross", "100", "--patti", "5", "--boxes", "2"])
    assert result.exit_code == 0, result.output
    assert "93 kg" in result.output


def test_cli_calc_rejects_bad_number():
    result = runner.invoke(app, ["calc", "--gross", "abc"])
    assert result.exit_code == 1
    assert "Invalid gross weight" in result.output


def test_cli_whoami_not_logged_in(tmp_path: Path):
    result = runner.invoke(app, ["whoami", "--session", str(tmp_path / "s.db")])
    assert result.exit_code == 1
    assert "Not logged in." in result.output


def test_cli_login_then_whoami(tmp_path: Path, monkeypatch):
    session = str(tmp_path / "s.db")

    def handler(request):
        assert request.url.path == "/api/auth/login"
        return httpx.Response(200, json={"success": True, "data": {
            "accessToken": "a", "refreshToken": "r", "userId": "u-1", "userName": "Ravi Traders",
        }})

    _fake_api(monkeypatch, handler)
    result = runner.invoke(app, [
        "login", "--mobile", "+91 98765 43210", "--password", "pw",
        "--session", session, "--api", "http://api.test/api",
    ])
    assert result.exit_code == 0, result.output
    assert "Login successful!" in result.output

    result = runner.invoke(app, ["whoami", "--session", session])
    assert result.exit_code == 0, result.output
    assert result.stdout.strip() == "Ravi Traders (9876543210)"


def test_cli_login_rejects_invalid_mobile(tmp_path: Path):
    result = runner.invoke(app, ["login", "--mobile", "12345", "--password", "pw", "--session", str(tmp_path / "s.db")])
    assert result.exit_code == 1
    assert "Invalid mobile number" in result.output


def test_cli_expired_session_is_cleared(tmp_path: Path, monkeypatch):
    session = str(tmp_path / "s.db")
    SqliteCredentialStore(session).set(TokenPair("old-a", "old-r"))

    def handler(request):
        if request.url.path == "/api/auth/refresh":
            return httpx.Response(401, json={"success": False, "message": "Refresh token expired"})
        return httpx.Response(401, json={"success": False, "message": "Token expired"})

    _fake_api(monkeypatch, handler)
    result = runner.invoke(app, ["bills", "recent", "--session", session, "--api", "http://api.test/api"])
    assert result.exit_code == 1
    assert "Session expired" in result.output
    assert SqliteCredentialStore(session).get() is None


def test_cli_bills_recent(tmp_path: Path, monkeypatch):
    session = str(tmp_path / "s.db")
    SqliteCredentialStore(session).set(TokenPair("a", "r"))
    bill = {
        "id": 1, "billNumber": "BB-0001",
        "farmer": {"id": 2, "name": "Ramesh", "mobileNumber": "9876543210"},
        "finalNetWeight": 99.51, "netAmount": 1900, "paymentStatus": "UNPAID",
        "createdAt": "2024-03-05T10:30:00",
    }

    def handler(request):
        assert request.headers["Authorization"] == "Bearer a"
        assert request.url.params["limit"] == "3"
        return httpx.Response(200, json={"success": True, "data": [bill]})

    _fake_api(monkeypatch, handler)
    result = runner.invoke(app, ["bills", "recent", "--limit", "3", "--session", session, "--api", "http://api.test/api"])
    assert result.exit_code == 0, result.output
    assert "BB-0001" in result.output


def test_cli_config_show():
    result = runner.invoke(app, ["config", "show"])
    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert data["login_route"] == "/login"
    assert "/auth/refresh" in data["exempt_paths"]


def test_cli_pay_unpaid_overdue(tmp_path: Path, monkeypatch):
    session = str(tmp_path / "s.db")
    SqliteCredentialStore(session).set(TokenPair("a", "r"))
    bill = {
        "id": 7, "billNumber": "BB-0007",
        "farmer": {"id": 2, "name": "Ramesh", "mobileNumber": "9876543210"},
        "netAmount": 4000, "paidAmount": 1500, "paymentStatus": "PARTIAL",
    }
    seen = []

    def handler(request):
        seen.append(request.url.path)
        return httpx.Response(200, json={"data": [bill]})

    _fake_api(monkeypatch, handler)
    result = runner.invoke(app, ["pay", "unpaid", "--overdue", "--session", session, "--api", "http://api.test/api"])
    assert result.exit_code == 0, result.output
    assert seen == ["/api/bills/overdue"]
    assert "₹2,500" in result.output


def test_cli_pay_due_rejects_bad_date(tmp_path: Path):
    result = runner.invoke(app, ["pay", "due", "7", "05-03-2024", "--session", str(tmp_path / "s.db")])
    assert result.exit_code == 1
    assert "Invalid date" in result.output


def test_cli_config_logs_missing(tmp_path: Path, monkeypatch):
    monkeypatch.setattr("bananabill.infra.logger.LOGS_DIR", tmp_path)
    result = runner.invoke(app, ["config", "logs", "auth"])
    assert result.exit_code == 0, result.output
    assert "Log auth not found." in result.output


def _payment_api(monkeypatch, posted):
    bill = {
        "id": 7, "billNumber": "BB-0007",
        "farmer": {"id": 2, "name": "Ramesh", "mobileNumber": "9876543210"},
        "netAmount": 4000, "paidAmount": 1500, "paymentStatus": "PARTIAL",
    }

    def handler(request):
        if request.method == "POST":
            posted.append(request.url.params["amount"])
            paid = bill["paidAmount"] + float(request.url.params["amount"])
            status = "PAID" if paid >= bill["netAmount"] else "PARTIAL"
            return httpx.Response(200, json={"data": dict(bill, paidAmount=paid, paymentStatus=status)})
        return httpx.Response(200, json={"data": bill})

    _fake_api(monkeypatch, handler)


def test_cli_pay_record_previews_partial_payment(tmp_path: Path, monkeypatch):
    session = str(tmp_path / "s.db")
    SqliteCredentialStore(session).set(TokenPair("a", "r"))
    posted = []
    _payment_api(monkeypatch, posted)

    result = runner.invoke(app, ["pay", "record", "7", "1000", "--session", session, "--api", "http://api.test/api"])
    assert result.exit_code == 0, result.output
    assert "After this payment: PARTIAL" in result.output
    assert "advance" not in result.output
    assert posted == ["1000.0"]


def test_cli_pay_record_overpayment_needs_confirmation(tmp_path: Path, monkeypatch):
    session = str(tmp_path / "s.db")
    SqliteCredentialStore(session).set(TokenPair("a", "r"))
    posted = []
    _payment_api(monkeypatch, posted)

    result = runner.invoke(
        app, ["pay", "record", "7", "3000", "--session", session, "--api", "http://api.test/api"], input="n\n",
    )
    assert result.exit_code == 1
    assert "₹500.00 exceeds the bill" in result.output
    assert posted == []

    result = runner.invoke(app, ["pay", "record", "7", "3000", "--yes", "--session", session, "--api", "http://api.test/api"])
    assert result.exit_code == 0, result.output
    assert "After this payment: PAID" in result.output
    assert posted == ["3000.0"]
