"""CLI commands for mtaa."""

import asyncio
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, NoReturn, TypeVar

import httpx
import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from mtaa import __logo__, __version__
from mtaa.api.client import ApiClient
from mtaa.api.errors import ApiError
from mtaa.api.services import (
    LETTER_FIELDS,
    REQUEST_TYPES,
    URGENCY_LEVELS,
    MtaaService,
    letter_metadata,
)

app = typer.Typer(
    name="mtaa",
    help=f"{__logo__} mtaa - MTAA Connect letter requests",
    no_args_is_help=True,
)

console = Console()

T = TypeVar("T")

_STATUS_STYLES = {
    "pending": "yellow",
    "approved": "green",
    "rejected": "red",
}


def _make_client() -> ApiClient:
    return ApiClient()


def _fail(message: str) -> NoReturn:
    console.print(f"[red]{message}[/red]")
    raise typer.Exit(1)


def _run(action: Callable[[MtaaService], Awaitable[T]]) -> T:
    """Run one service action, turning API failures into a clean exit."""

    async def _go() -> T:
        async with _make_client() as client:
            return await action(MtaaService(client))

    try:
        return asyncio.run(_go())
    except ApiError as e:
        _fail(f"Error: {escape(e.message)}")
    except ValueError as e:
        _fail(escape(str(e)))
    except httpx.HTTPError as e:
        _fail(f"Cannot reach the API: {escape(str(e))}")


def _require_login() -> None:
    if not _make_client().store.is_authenticated():
        console.print("[red]Not logged in.[/red] Run [cyan]mtaa login[/cyan] first.")
        raise typer.Exit(1)


def _text(value: Any) -> str:
    """Server-supplied value as literal console text."""
    return escape("" if value is None else str(value))


def _parse_fields(pairs: list[str]) -> dict[str, str]:
    fields: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        key = key.strip()
        if not sep or not key:
            _fail(f"Expected key=value, got {escape(pair)}")
        if key not in LETTER_FIELDS:
            _fail(f"Unknown field {escape(key)}. Use one of: {', '.join(LETTER_FIELDS)}")
        fields[key] = value
    return fields


def _print_requests(page: dict[str, Any] | None, title: str) -> None:
    results = (page or {}).get("results") or []
    if not results:
        console.print("[dim]No requests.[/dim]")
        return

    table = Table(title=f"{title} ({_text((page or {}).get('count', len(results)))})")
    table.add_column("ID", style="cyan")
    table.add_column("Type")
    table.add_column("Status")
    table.add_column("Created", style="dim")
    table.add_column("Note")

    for item in results:
        status = str(item.get("status", ""))
        style = _STATUS_STYLES.get(status, "white")
        table.add_row(
            _text(item.get("id", "")),
            _text(item.get("request_type", "")),
            f"[{style}]{escape(status)}[/{style}]",
            _text(item.get("created_at", "")),
            _text(item.get("rejection_reason") or ""),
        )

    console.print(table)


def _print_account(data: dict[str, Any], title: str) -> None:
    user = data.get("user") or {}
    profile = data.get("profile") or {}

    table = Table(title=title)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Name", _text(user.get("full_name", "")))
    table.add_row("Email", _text(user.get("email", "")))
    table.add_row("Role", _text(user.get("role", "")))
    for key, value in profile.items():
        if value not in (None, ""):
            table.add_row(_text(key.replace("_", " ").title()), _text(value))
    console.print(table)


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} mtaa v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Show debug logs"),
):
    """mtaa - MTAA Connect letter requests."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG)


# ============================================================================
# Session
# ============================================================================


@app.command()
def login(
    email: str = typer.Option(..., "--email", "-e", prompt=True, help="Account email"),
    password: str = typer.Option(..., "--password", "-p", prompt=True, hide_input=True),
):
    """Log in and store the session tokens."""
    _run(lambda svc: svc.login(email, password))
    me = _run(lambda svc: svc.get_me())
    user = (me or {}).get("user") or {}
    console.print(
        f"[green]✓[/green] Logged in as {_text(user.get('full_name') or email)} "
        f"[dim]({_text(user.get('role', 'citizen'))})[/dim]"
    )


@app.command()
def logout():
    """Forget the stored session."""
    _make_client().store.clear_tokens()
    console.print("[green]✓[/green] Logged out")


@app.command()
def whoami():
    """Show the logged-in account."""
    _require_login()
    me = _run(lambda svc: svc.get_me()) or {}
    _print_account(me, f"{__logo__} {_text((me.get('user') or {}).get('full_name', ''))}")


@app.command()
def health():
    """Check that the API is reachable."""
    data = _run(lambda svc: svc.get_health()) or {}
    status = data.get("status", "unknown")
    style = "green" if status == "ok" else "yellow"
    console.print(f"API: [{style}]{_text(status)}[/{style}]")


# ============================================================================
# Requests
# ============================================================================


requests_app = typer.Typer(help="Letter requests")
app.add_typer(requests_app, name="requests")


@requests_app.command("list")
def requests_list(
    pending: bool = typer.Option(False, "--pending", help="Officer: requests awaiting review"),
    approved: bool = typer.Option(False, "--approved", help="Officer: approved requests"),
):
    """List letter requests."""
    _require_login()
    if pending:
        page = _run(lambda svc: svc.list_pending_requests())
        _print_requests(page, "Pending Requests")
    elif approved:
        page = _run(lambda svc: svc.list_approved_requests())
        _print_requests(page, "Approved Requests")
    else:
        page = _run(lambda svc: svc.list_requests())
        _print_requests(page, "My Requests")


@requests_app.command("show")
def requests_show(request_id: int = typer.Argument(..., help="Request ID")):
    """Show one request."""
    _require_login()
    data = _run(lambda svc: svc.get_request(request_id)) or {}

    table = Table(title=f"Request {request_id}")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for key, value in data.items():
        if isinstance(value, dict):
            value = ", ".join(f"{k}={v}" for k, v in value.items())
        table.add_row(_text(key), _text(value))
    console.print(table)


@requests_app.command("new")
def requests_new(
    request_type: str = typer.Option(
        None, "--type", "-t", help=f"Letter type: {', '.join(REQUEST_TYPES)}"
    ),
    purpose: str = typer.Option(None, "--purpose", help="Why the letter is needed"),
    info: str = typer.Option(None, "--info", help="Additional information"),
    urgency: str = typer.Option(None, "--urgency", help=f"One of {', '.join(URGENCY_LEVELS)}"),
    field: list[str] = typer.Option(
        None, "--field", "-f", help="Letter detail as key=value (repeatable)"
    ),
    resubmit: int = typer.Option(None, "--resubmit", help="Edit and resubmit a rejected request"),
):
    """Submit a new letter request, or fix and resubmit a rejected one."""
    _require_login()
    fields = _parse_fields(field or [])

    existing = None
    if resubmit is not None:
        current = _run(lambda svc: svc.get_request(resubmit)) or {}
        if current.get("status") != "rejected":
            _fail("Only rejected requests can be edited and resubmitted.")
        request_type = request_type or current.get("request_type", "")
        purpose = purpose if purpose is not None else current.get("purpose", "")
        info = info if info is not None else current.get("additional_info", "")
        urgency = urgency or current.get("urgency") or "normal"
        if isinstance(current.get("metadata"), dict):
            existing = current["metadata"]
    elif not request_type or not purpose:
        _fail("Both --type and --purpose are required for a new request.")

    info = info or ""
    urgency = urgency or "normal"
    if request_type not in REQUEST_TYPES:
        _fail(f"Unknown type {escape(str(request_type))}. Use one of: {', '.join(REQUEST_TYPES)}")
    if urgency not in URGENCY_LEVELS:
        _fail(f"Unknown urgency {escape(urgency)}. Use one of: {', '.join(URGENCY_LEVELS)}")

    metadata = letter_metadata(request_type, fields, existing)
    if resubmit is not None:
        _run(
            lambda svc: svc.resubmit_request(
                resubmit, request_type, purpose, info, urgency, metadata
            )
        )
        console.print(f"[green]✓[/green] Request {resubmit} resubmitted")
    else:
        data = _run(
            lambda svc: svc.create_request(request_type, purpose, info, urgency, metadata)
        )
        console.print(f"[green]✓[/green] Request {_text((data or {}).get('id', ''))} submitted")


@requests_app.command("download")
def requests_download(
    request_id: int = typer.Argument(..., help="Request ID"),
    output: Path = typer.Option(Path("."), "--output", "-o", help="Directory to save into"),
):
    """Download the approved letter as PDF."""
    _require_login()
    path = _run(lambda svc: svc.download_request_pdf(request_id, output))
    console.print(f"[green]✓[/green] Saved {escape(str(path))}")


@requests_app.command("approve")
def requests_approve(request_id: int = typer.Argument(..., help="Request ID")):
    """Officer: approve a request."""
    _require_login()
    _run(lambda svc: svc.approve_request(request_id))
    console.print(f"[green]✓[/green] Request {request_id} approved")


@requests_app.command("reject")
def requests_reject(
    request_id: int = typer.Argument(..., help="Request ID"),
    reason: str = typer.Option("Rejected by officer.", "--reason", "-r"),
):
    """Officer: reject a request."""
    _require_login()
    _run(lambda svc: svc.reject_request(request_id, reason))
    console.print(f"[green]✓[/green] Request {request_id} rejected")


@requests_app.command("reopen")
def requests_reopen(request_id: int = typer.Argument(..., help="Request ID")):
    """Officer: reopen a processed request."""
    _require_login()
    _run(lambda svc: svc.reopen_request(request_id))
    console.print(f"[green]✓[/green] Request {request_id} reopened")


# ============================================================================
# Citizens
# ============================================================================


citizens_app = typer.Typer(help="Officer: registered citizens")
app.add_typer(citizens_app, name="citizens")


@citizens_app.command("list")
def citizens_list():
    """List registered citizens."""
    _require_login()
    page = _run(lambda svc: svc.list_citizens()) or {}
    results = page.get("results") or []

    table = Table(title=f"Citizens ({_text(page.get('count', len(results)))})")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Email", style="dim")
    for item in results:
        table.add_row(
            _text(item.get("id", "")),
            _text(item.get("full_name", "")),
            _text(item.get("email", "")),
        )
    console.print(table)


@citizens_app.command("show")
def citizens_show(citizen_id: int = typer.Argument(..., help="Citizen ID")):
    """Show one citizen's account and profile."""
    _require_login()
    data = _run(lambda svc: svc.get_citizen(citizen_id)) or {}
    _print_account(data, f"Citizen {citizen_id}")


@app.command()
def stats():
    """Officer: request counts by status."""
    _require_login()
    stats = _run(lambda svc: svc.get_officer_stats()) or {}
    for key, value in stats.items():
        console.print(f"{_text(key.replace('_', ' ').title())}: [cyan]{_text(value)}[/cyan]")


# ============================================================================
# Profile
# ============================================================================


profile_app = typer.Typer(help="Your account profile")
app.add_typer(profile_app, name="profile")


@profile_app.command("update")
def profile_update(
    full_name: str = typer.Option(None, "--full-name", help="Full name"),
    email: str = typer.Option(None, "--email", help="Email address"),
    phone: str = typer.Option(None, "--phone", help="Phone number"),
    gender: str = typer.Option(None, "--gender", help="Citizen: gender"),
    age: int = typer.Option(None, "--age", help="Citizen: age"),
    address: str = typer.Option(None, "--address", help="Citizen: home address"),
    nida_number: str = typer.Option(None, "--nida-number", help="Citizen: NIDA number"),
    position: str = typer.Option(None, "--position", help="Officer: position"),
    office: str = typer.Option(None, "--office", help="Officer: office"),
):
    """Update the fields you pass; others stay as they are."""
    _require_login()
    values = {
        "full_name": full_name,
        "email": email,
        "phone": phone,
        "gender": gender,
        "age": age,
        "address": address,
        "nida_number": nida_number,
        "position": position,
        "office": office,
    }
    fields = {
        key: value.strip() if isinstance(value, str) else value
        for key, value in values.items()
        if value is not None
    }
    if not fields:
        _fail("Nothing to update. Pass at least one option, e.g. --phone.")

    _run(lambda svc: svc.update_profile(fields))
    console.print(f"[green]✓[/green] Profile updated ({', '.join(sorted(fields))})")


@profile_app.command("password")
def profile_password(
    current: str = typer.Option(
        ..., "--current", prompt="Current password", hide_input=True
    ),
    new: str = typer.Option(..., "--new", prompt="New password", hide_input=True),
    confirm: str = typer.Option(
        ..., "--confirm", prompt="Confirm new password", hide_input=True
    ),
):
    """Change your password. You are logged out afterwards."""
    _require_login()
    _run(lambda svc: svc.change_password(current, new, confirm))
    console.print("[green]✓[/green] Password updated. Please log in again with [cyan]mtaa login[/cyan].")


if __name__ == "__main__":
    app()
