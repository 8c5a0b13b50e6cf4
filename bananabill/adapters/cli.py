# bananabill/adapters/cli.py
"""
Banana Bill CLI (Typer).

Main commands:
- calc                      -> bill preview (weights and amounts) without the server
- login / register          -> open a session (stored in the local session file)
- otp send / otp verify     -> OTP login
- logout / logout-all       -> end this session / every session
- password                  -> change the account password
- whoami                    -> cached profile of the logged-in trader
- bills recent|show|search|create|delete
- pay mark|record|unpaid|due -> payments, outstanding bills and due dates
- report monthly|farmer     -> monthly and per-farmer reports
- config show|logs          -> effective settings, log tails
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import replace
from datetime import date
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

import httpx
import typer
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from bananabill.adapters.formatters import format_currency, format_date, format_weight
from bananabill.adapters.parsers import is_valid_mobile, normalize_mobile, parse_number
from bananabill.config import DEFAULTS
from bananabill.domain.models import Bill, BillDerived, BillInput
from bananabill.domain.policies import advance_amount, outstanding_amount, payment_status
from bananabill.infra.credentials import CredentialStore, build_credential_store
from bananabill.infra.errors import RefreshError, classify, extract_message, status_of
from bananabill.infra.gateway import AuthGateway
from bananabill.infra.logger import get_log_summary, log_system_event
from bananabill.usecases.auth import AuthResult, AuthService
from bananabill.usecases.bills import BillService, FarmerService, PaymentService, ReportService, preview_bill
from bananabill.usecases.history import BillFilters, farmer_totals, filter_bills, summarize


app = typer.Typer(help="Banana Bill — CLI")
console = Console()

T = TypeVar("T")

API_OPT = typer.Option(DEFAULTS.api_url, "--api", help="Base URL of the REST API")
SESSION_OPT = typer.Option(DEFAULTS.session_db, "--session", help="Path of the local session file")


# -----------------------
# util
# -----------------------

def _print_json(obj) -> None:
    typer.echo(json.dumps(obj, ensure_ascii=False, indent=2))


def _number(value: Optional[str], name: str) -> float:
    try:
        parsed = parse_number(value)
    except ValueError:
        console.print(f"[bold red]Invalid {name}:[/] {value}")
        raise typer.Exit(code=1)
    return parsed if parsed is not None else 0.0


def _mobile(value: str) -> str:
    if not is_valid_mobile(value):
        console.print(f"[bold red]Invalid mobile number:[/] {value}")
        raise typer.Exit(code=1)
    return normalize_mobile(value)


def _store(session_db: str) -> CredentialStore:
    return build_credential_store(replace(DEFAULTS, session_db=session_db))


def _session_expired() -> None:
    console.print("[bold yellow]Session expired. Please log in again.[/]")


def _run(api_url: str, session_db: str, work: Callable[[AuthGateway], Awaitable[T]]) -> T:
    """Opens a gateway on the stored session, runs `work` and maps failures to exit code 1."""
    store = _store(session_db)

    async def _main() -> T:
        async with AuthGateway(store, api_url, DEFAULTS.timeout_seconds, on_logout=_session_expired) as gateway:
            return await work(gateway)

    try:
        return asyncio.run(_main())
    except (httpx.HTTPError, RefreshError) as e:
        log_system_event(
            "cli_request_failed",
            {"kind": classify(e).value, "status": status_of(e), "error": str(e)},
            level="error",
        )
        console.print(f"[bold red]Error:[/] {extract_message(e)}")
        raise typer.Exit(code=1)


def _auth_outcome(result: AuthResult) -> None:
    if result.ok:
        console.print(f"[bold green]{result.message}[/]")
        return
    console.print(f"[bold red]{result.message}[/]")
    raise typer.Exit(code=1)


def _bill_table(bills: List[Bill], title: str) -> None:
    if not bills:
        console.print(Panel("No bills found", title=title, border_style="yellow"))
        return
    table = Table(title=title, box=box.ROUNDED)
    table.add_column("Bill")
    table.add_column("Date", justify="center")
    table.add_column("Farmer")
    table.add_column("Mobile")
    table.add_column("Weight", justify="right")
    table.add_column("Net amount", justify="right")
    table.add_column("Status")
    colours = {"PAID": "green", "PARTIAL": "yellow", "UNPAID": "red"}
    for b in bills:
        status = b.payment_status.value
        table.add_row(
            b.bill_number,
            format_date(b.created_at) if b.created_at else "",
            b.farmer.name,
            b.farmer.mobile_number,
            format_weight(b.final_net_weight),
            format_currency(b.net_amount),
            f"[bold {colours.get(status, 'white')}]{status}[/]",
        )
    console.print(table)


def _derived_table(bill: BillInput, derived: BillDerived, title: str) -> None:
    table = Table(title=title, box=box.ROUNDED)
    table.add_column("Field")
    table.add_column("Value", justify="right")
    table.add_row("Gross weight", format_weight(bill.gross_weight))
    table.add_row("Patti weight", format_weight(bill.patti_weight))
    table.add_row("Boxes", format_weight(bill.box_count))
    table.add_row("Net weight", format_weight(derived.net_weight))
    table.add_row("Danda (7%)", format_weight(derived.danda_weight))
    table.add_row("Tut wastage", format_weight(bill.tut_wastage))
    table.add_row("[bold]Final net weight[/]", f"[bold]{format_weight(derived.final_net_weight)}[/]")
    table.add_row("Rate per kg", format_currency(bill.rate_per_kg, 2))
    table.add_row("Total amount", format_currency(derived.total_amount, 2))
    table.add_row("Majuri", format_currency(bill.majuri, 2))
    table.add_row("[bold]Net amount[/]", f"[bold]{format_currency(derived.net_amount, 2)}[/]")
    console.print(table)


def _bill_input(gross: str, patti: str, boxes: str, tut: str, rate: str, majuri: str) -> BillInput:
    return BillInput(
        gross_weight=_number(gross, "gross weight"),
        patti_weight=_number(patti, "patti weight"),
        box_count=_number(boxes, "box count"),
        tut_wastage=_number(tut, "tut wastage"),
        rate_per_kg=_number(rate, "rate per kg"),
        majuri=_number(majuri, "majuri"),
    )


# -----------------------
# calculation
# -----------------------

@app.command("calc")
def cmd_calc(
    gross: str = typer.Option(..., "--gross", help="Gross weight (kg)"),
    patti: str = typer.Option("0", "--patti", help="Patti weight (kg)"),
    boxes: str = typer.Option("0", "--boxes", help="Box count"),
    tut: str = typer.Option("0", "--tut", help="Tut wastage (kg)"),
    rate: str = typer.Option("0", "--rate", help="Rate per kg (₹)"),
    majuri: str = typer.Option("0", "--majuri", help="Majuri (₹)"),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
):
    """Computes a bill locally: net, danda and final weights, total and net amounts."""
    bill = _bill_input(gross, patti, boxes, tut, rate, majuri)
    derived = preview_bill(bill)
    if as_json:
        _print_json(derived.as_dict())
        return
    _derived_table(bill, derived, "Bill Preview")


# -----------------------
# authentication
# -----------------------

@app.command("login")
def cmd_login(
    mobile: str = typer.Option(..., "--mobile", prompt=True),
    password: str = typer.Option(..., "--password", prompt=True, hide_input=True),
    api_url: str = API_OPT,
    session_db: str = SESSION_OPT,
):
    """Logs in with mobile number and password."""
    mobile = _mobile(mobile)
    result = _run(api_url, session_db, lambda gw: AuthService(gw, gw.store).login(mobile, password))
    _auth_outcome(result)


@app.command("register")
def cmd_register(
    name: str = typer.Option(..., "--name", prompt=True),
    mobile: str = typer.Option(..., "--mobile", prompt=True),
    password: str = typer.Option(..., "--password", prompt=True, hide_input=True, confirmation_prompt=True),
    api_url: str = API_OPT,
    session_db: str = SESSION_OPT,
):
    """Creates a trader account and logs in."""
    mobile = _mobile(mobile)
    result = _run(api_url, session_db, lambda gw: AuthService(gw, gw.store).register(name, mobile, password))
    _auth_outcome(result)


otp_app = typer.Typer(help="Login with a one-time password.")
app.add_typer(otp_app, name="otp")


@otp_app.command("send")
def cmd_otp_send(
    mobile: str = typer.Option(..., "--mobile", prompt=True),
    api_url: str = API_OPT,
    session_db: str = SESSION_OPT,
):
    """Sends an OTP to the mobile number."""
    mobile = _mobile(mobile)
    _auth_outcome(_run(api_url, session_db, lambda gw: AuthService(gw, gw.store).send_otp(mobile)))


@otp_app.command("verify")
def cmd_otp_verify(
    mobile: str = typer.Option(..., "--mobile", prompt=True),
    otp: str = typer.Option(..., "--otp", prompt=True),
    api_url: str = API_OPT,
    session_db: str = SESSION_OPT,
):
    """Verifies the OTP and opens a session."""
    mobile = _mobile(mobile)
    _auth_outcome(_run(api_url, session_db, lambda gw: AuthService(gw, gw.store).verify_otp(mobile, otp)))


@app.command("logout")
def cmd_logout(api_url: str = API_OPT, session_db: str = SESSION_OPT):
    """Ends this session."""
    _auth_outcome(_run(api_url, session_db, lambda gw: AuthService(gw, gw.store).logout()))


@app.command("logout-all")
def cmd_logout_all(api_url: str = API_OPT, session_db: str = SESSION_OPT):
    """Ends every session of this account, on every device."""
    _auth_outcome(_run(api_url, session_db, lambda gw: AuthService(gw, gw.store).logout_all()))


@app.command("password")
def cmd_password(
    current: str = typer.Option(..., "--current", prompt=True, hide_input=True),
    new: str = typer.Option(..., "--new", prompt=True, hide_input=True, confirmation_prompt=True),
    api_url: str = API_OPT,
    session_db: str = SESSION_OPT,
):
    """Changes the account password."""
    _auth_outcome(_run(api_url, session_db, lambda gw: AuthService(gw, gw.store).update_password(current, new)))


@app.command("whoami")
def cmd_whoami(session_db: str = SESSION_OPT):
    """Shows the logged-in trader."""
    store = _store(session_db)
    user = store.get_user() if store.get_access_token() else None
    if user is None:
        typer.echo("Not logged in.")
        raise typer.Exit(code=1)
    typer.echo(f"{user.name} ({user.mobile_number})")


# -----------------------
# bills
# -----------------------

bills_app = typer.Typer(help="Create, browse and search bills.")
app.add_typer(bills_app, name="bills")


@bills_app.command("recent")
def cmd_bills_recent(
    limit: int = typer.Option(10, help="Number of bills"),
    api_url: str = API_OPT,
    session_db: str = SESSION_OPT,
):
    """Lists the most recent bills."""
    bills = _run(api_url, session_db, lambda gw: BillService(gw).get_recent(limit))
    _bill_table(bills, f"Last {limit} bills")


@bills_app.command("show")
def cmd_bills_show(
    bill_id: str = typer.Argument(..., help="Bill id"),
    api_url: str = API_OPT,
    session_db: str = SESSION_OPT,
):
    """Shows one bill with all its weights and amounts."""
    bill = _run(api_url, session_db, lambda gw: BillService(gw).get_by_id(bill_id))
    if bill is None:
        console.print(f"[bold red]Bill {bill_id} not found[/]")
        raise typer.Exit(code=1)
    source = BillInput(
        gross_weight=bill.gross_weight,
        patti_weight=bill.patti_weight,
        box_count=bill.box_count,
        tut_wastage=bill.tut_wastage,
        rate_per_kg=bill.rate_per_kg,
        majuri=bill.majuri,
    )
    derived = BillDerived(
        net_weight=bill.net_weight,
        danda_weight=bill.danda_weight,
        final_net_weight=bill.final_net_weight,
        total_amount=bill.total_amount,
        net_amount=bill.net_amount,
    )
    _derived_table(source, derived, f"Bill {bill.bill_number}: {bill.farmer.name}")
    console.print(
        f"Status: [bold]{bill.payment_status.value}[/]  "
        f"Paid: {format_currency(bill.paid_amount, 2)}  "
        f"Outstanding: {format_currency(outstanding_amount(bill.net_amount, bill.paid_amount), 2)}"
    )


@bills_app.command("search")
def cmd_bills_search(
    mobile: Optional[str] = typer.Option(None, "--mobile", help="Farmer mobile"),
    status: str = typer.Option("all", "--status", help="all | paid | unpaid | partial"),
    start: Optional[str] = typer.Option(None, "--from", help="YYYY-MM-DD"),
    end: Optional[str] = typer.Option(None, "--to", help="YYYY-MM-DD"),
    api_url: str = API_OPT,
    session_db: str = SESSION_OPT,
):
    """Searches bills and prints totals for the result."""
    try:
        filters = BillFilters(
            payment_status=status,
            mobile=normalize_mobile(mobile) if mobile else None,
            start_date=date.fromisoformat(start) if start else None,
            end_date=date.fromisoformat(end) if end else None,
        )
    except ValueError as e:
        console.print(f"[bold red]Invalid date:[/] {e}")
        raise typer.Exit(code=1)

    bills = _run(
        api_url,
        session_db,
        lambda gw: BillService(gw).search_with_filters(
            mobile=filters.mobile,
            start_date=start,
            end_date=end,
        ),
    )
    bills = filter_bills(bills, filters)
    _bill_table(bills, "Bills")
    totals = summarize(bills)
    console.print(Panel(
        "\n".join([
            f"Bills: {totals['count']}",
            f"Total amount: {format_currency(totals['total_amount'])}",
            f"Total weight: {format_weight(totals['total_weight'])}",
            f"Outstanding: {format_currency(totals['unpaid_amount'])}",
        ]),
        title="Summary",
    ))


@bills_app.command("create")
def cmd_bills_create(
    farmer_mobile: str = typer.Option(..., "--farmer-mobile", prompt=True),
    farmer_name: str = typer.Option(..., "--farmer-name", prompt=True),
    vehicle: Optional[str] = typer.Option(None, "--vehicle", help="Vehicle number"),
    gross: str = typer.Option(..., "--gross", prompt=True),
    patti: str = typer.Option("0", "--patti"),
    boxes: str = typer.Option("0", "--boxes"),
    tut: str = typer.Option("0", "--tut"),
    rate: str = typer.Option(..., "--rate", prompt=True),
    majuri: str = typer.Option("0", "--majuri"),
    api_url: str = API_OPT,
    session_db: str = SESSION_OPT,
):
    """Creates a bill; the farmer is created or updated first."""
    mobile = _mobile(farmer_mobile)
    bill = _bill_input(gross, patti, boxes, tut, rate, majuri)
    _derived_table(bill, preview_bill(bill), "Bill Preview")

    async def work(gw: AuthGateway) -> Bill:
        farmer = await FarmerService(gw).upsert(mobile, farmer_name)
        return await BillService(gw).create(farmer.id, bill, vehicle)

    created = _run(api_url, session_db, work)
    console.print(f"[bold green]Bill {created.bill_number} created[/] (id {created.id})")


@bills_app.command("delete")
def cmd_bills_delete(
    bill_id: str = typer.Argument(..., help="Bill id"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
    api_url: str = API_OPT,
    session_db: str = SESSION_OPT,
):
    """Deletes a bill."""
    if not yes and not typer.confirm(f"Delete bill {bill_id}?"):
        raise typer.Exit(code=1)
    _run(api_url, session_db, lambda gw: BillService(gw).delete(bill_id))
    console.print(f"[bold green]Bill {bill_id} deleted[/]")


# -----------------------
# payments
# -----------------------

pay_app = typer.Typer(help="Record payments to farmers.")
app.add_typer(pay_app, name="pay")


@pay_app.command("mark")
def cmd_pay_mark(bill_id: str = typer.Argument(...), api_url: str = API_OPT, session_db: str = SESSION_OPT):
    """Marks a bill as fully paid."""
    bill = _run(api_url, session_db, lambda gw: PaymentService(gw).mark_as_paid(bill_id))
    console.print(f"Bill {bill.bill_number or bill_id}: [bold]{bill.payment_status.value}[/]")


@pay_app.command("record")
def cmd_pay_record(
    bill_id: str = typer.Argument(...),
    amount: str = typer.Argument(..., help="Amount paid (₹)"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Accept an overpayment without asking"),
    api_url: str = API_OPT,
    session_db: str = SESSION_OPT,
):
    """Records a (partial) payment on a bill."""
    value = _number(amount, "amount")
    if value <= 0:
        console.print("[bold red]Amount must be greater than zero[/]")
        raise typer.Exit(code=1)
    current = _run(api_url, session_db, lambda gw: BillService(gw).get_by_id(bill_id))
    if current is None:
        console.print(f"[bold red]Bill {bill_id} not found[/]")
        raise typer.Exit(code=1)

    paid_after = current.paid_amount + value
    expected = payment_status(current.net_amount, paid_after)
    advance = advance_amount(current.net_amount, paid_after)
    console.print(f"After this payment: [bold]{expected.value}[/]")
    if advance > 0:
        console.print(f"[bold yellow]{format_currency(advance, 2)} exceeds the bill and is kept as an advance[/]")
        if not yes and not typer.confirm("Record it anyway?"):
            raise typer.Exit(code=1)

    bill = _run(api_url, session_db, lambda gw: PaymentService(gw).record_payment(bill_id, value))
    console.print(
        f"Bill {bill.bill_number or bill_id}: [bold]{bill.payment_status.value}[/], "
        f"outstanding {format_currency(outstanding_amount(bill.net_amount, bill.paid_amount), 2)}"
    )


@pay_app.command("unpaid")
def cmd_pay_unpaid(
    overdue: bool = typer.Option(False, "--overdue", help="Only bills past their due date"),
    api_url: str = API_OPT,
    session_db: str = SESSION_OPT,
):
    """Lists bills still waiting for payment."""
    async def work(gw: AuthGateway) -> List[Bill]:
        service = PaymentService(gw)
        return await (service.get_overdue() if overdue else service.get_unpaid())

    bills = _run(api_url, session_db, work)
    _bill_table(bills, "Overdue bills" if overdue else "Unpaid bills")
    console.print(f"Outstanding: {format_currency(summarize(bills)['unpaid_amount'])}")


@pay_app.command("due")
def cmd_pay_due(
    bill_id: str = typer.Argument(...),
    due_date: str = typer.Argument(..., help="YYYY-MM-DD"),
    api_url: str = API_OPT,
    session_db: str = SESSION_OPT,
):
    """Sets the date by which a bill should be paid."""
    try:
        day = date.fromisoformat(due_date)
    except ValueError:
        console.print(f"[bold red]Invalid date:[/] {due_date}")
        raise typer.Exit(code=1)
    bill = _run(api_url, session_db, lambda gw: PaymentService(gw).set_due_date(bill_id, day.isoformat()))
    console.print(f"Bill {bill.bill_number or bill_id} due on {format_date(day)}")


# -----------------------
# reports
# -----------------------

report_app = typer.Typer(help="Monthly and per-farmer reports.")
app.add_typer(report_app, name="report")


def _report_panel(data: Dict[str, Any], title: str) -> None:
    lines = [
        f"Bills: {data.get('totalBills', len(data.get('bills') or []))}",
        f"Total amount: {format_currency(data.get('totalAmount') or 0)}",
        f"Total weight: {format_weight(data.get('totalWeight') or 0)}",
    ]
    if data.get("unpaidAmount") is not None:
        lines.append(f"Unpaid: {format_currency(data['unpaidAmount'])}")
    console.print(Panel("\n".join(lines), title=title))


@report_app.command("monthly")
def cmd_report_monthly(
    year: int = typer.Option(date.today().year, help="Year"),
    month: int = typer.Option(date.today().month, min=1, max=12, help="Month (1-12)"),
    api_url: str = API_OPT,
    session_db: str = SESSION_OPT,
):
    """Monthly totals and the top farmers of the month."""
    data = _run(api_url, session_db, lambda gw: ReportService(gw).monthly(year, month))
    _report_panel(data, f"Report {month:02d}/{year}")
    top = farmer_totals(data["bills"])[:5]
    if top:
        table = Table(title="Top farmers", box=box.ROUNDED)
        table.add_column("Farmer")
        table.add_column("Mobile")
        table.add_column("Bills", justify="right")
        table.add_column("Amount", justify="right")
        for row in top:
            table.add_row(row["name"], row["mobile"], str(row["bill_count"]), format_currency(row["total_amount"]))
        console.print(table)


@report_app.command("farmer")
def cmd_report_farmer(
    farmer_id: str = typer.Argument(..., help="Farmer id"),
    status: Optional[str] = typer.Option(None, "--status", help="PAID | UNPAID | PARTIAL"),
    start: Optional[str] = typer.Option(None, "--from", help="YYYY-MM-DD"),
    end: Optional[str] = typer.Option(None, "--to", help="YYYY-MM-DD"),
    api_url: str = API_OPT,
    session_db: str = SESSION_OPT,
):
    """Statement of one farmer."""
    data = _run(
        api_url,
        session_db,
        lambda gw: ReportService(gw).farmer_report(farmer_id, start, end, status.upper() if status else None),
    )
    farmer = data.get("farmer") or {}
    _report_panel(data, f"Statement: {farmer.get('name', farmer_id)}")
    _bill_table(data["bills"], "Bills")


# -----------------------
# config
# -----------------------

config_app = typer.Typer(help="Client settings.")
app.add_typer(config_app, name="config")


@config_app.command("show")
def cmd_config_show():
    """Prints the effective settings as JSON."""
    _print_json({
        "api_url": DEFAULTS.api_url,
        "timeout_seconds": DEFAULTS.timeout_seconds,
        "session_db": DEFAULTS.session_db,
        "login_route": DEFAULTS.login_route,
        "exempt_paths": list(DEFAULTS.exempt_paths),
    })


@config_app.command("logs")
def cmd_config_logs(
    log_type: str = typer.Argument("gateway", help="gateway | auth | bills | system"),
    lines: int = typer.Option(50, "--lines", "-n"),
):
    """Prints the tail of a log file."""
    typer.echo(get_log_summary(log_type, lines))


def main():
    app()


if __name__ == "__main__":
    main()
