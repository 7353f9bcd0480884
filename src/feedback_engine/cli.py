"""Typer CLI for Feedback-Engine."""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(name="feedback", help="Feedback-Engine: game feedback collection service")
console = Console()


@app.callback()
def main(
    log_level: str = typer.Option("INFO", envvar="FEEDBACK_LOG_LEVEL", help="Log level"),
):
    """Feedback-Engine administration."""
    from feedback_engine.common.logging import setup_logging

    setup_logging(log_level)


def _require_storage():
    from feedback_engine.common.config import get_settings

    settings = get_settings()
    if not settings.storage_configured:
        console.print("[bold red]FEEDBACK_DB_URL is required for this command.[/bold red]")
        raise typer.Exit(1)
    return settings


async def _open_db(settings):
    from feedback_engine.common.database import DatabaseManager

    db = DatabaseManager(settings)
    await db.init()
    await db.create_all()
    return db


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, help="Bind host [default: FEEDBACK_HOST]"),
    port: Optional[int] = typer.Option(None, help="Bind port [default: FEEDBACK_PORT]"),
):
    """Start the Feedback-Engine API server."""
    import uvicorn
    from feedback_engine.app import create_app
    from feedback_engine.common.config import get_settings

    settings = get_settings()
    host = host or settings.host
    port = port or settings.port
    console.print(f"[bold green]Starting Feedback-Engine on {host}:{port}[/bold green]")
    uvicorn.run(create_app(), host=host, port=port)


@app.command("create-beta-key")
def create_beta_key(
    uses: int = typer.Option(1, min=1, help="Maximum number of games the key may create"),
    days: int = typer.Option(30, min=1, help="Days until the key expires"),
):
    """Mint a beta access key. The plaintext is shown once."""
    from feedback_engine.beta.service import BetaAccessService

    settings = _require_storage()
    expires_at = datetime.now(timezone.utc) + timedelta(days=days)

    async def _run():
        db = await _open_db(settings)
        try:
            async with db.get_session() as session:
                return await BetaAccessService(settings).create_key(session, uses, expires_at)
        finally:
            await db.close()

    record, raw_key = asyncio.run(_run())
    console.print("[bold green]Beta access key created.[/bold green]")
    console.print(f"  ID: {record.id}")
    console.print(f"  Key (show once, copy now): [bold]{raw_key}[/bold]")
    console.print(f"  Max uses: {uses} | Expires: {expires_at.isoformat()}")


@app.command("list-beta-keys")
def list_beta_keys():
    """List beta keys by display prefix with their remaining uses."""
    from feedback_engine.beta.service import BetaAccessService
    from feedback_engine.common.models import as_utc

    settings = _require_storage()

    async def _run():
        db = await _open_db(settings)
        try:
            async with db.get_session() as session:
                return await BetaAccessService(settings).list_keys(session)
        finally:
            await db.close()

    table = Table("ID", "Prefix", "Uses", "Expires")
    for key in asyncio.run(_run()):
        table.add_row(
            key.id, key.key_prefix, f"{key.uses_count}/{key.max_uses}",
            as_utc(key.expires_at).isoformat(),
        )
    console.print(table)


@app.command("seed-account")
def seed_account():
    """Create the first dashboard account and print the env vars to set."""
    from feedback_engine.accounts.service import AccountService, generate_dashboard_token

    settings = _require_storage()

    async def _run():
        db = await _open_db(settings)
        try:
            async with db.get_session() as session:
                return await AccountService().seed_first_account(session)
        finally:
            await db.close()

    account, created = asyncio.run(_run())
    if not created:
        console.print("First account already exists:")
        console.print(f"  FEEDBACK_DASHBOARD_ACCOUNT_ID={account.id}")
        console.print("  Set FEEDBACK_DASHBOARD_TOKEN to a secret and send it as the Bearer token.")
        return

    console.print("[bold green]First dashboard account created.[/bold green] Add these to your environment:\n")
    console.print(f"FEEDBACK_DASHBOARD_ACCOUNT_ID={account.id}")
    console.print(f"FEEDBACK_DASHBOARD_TOKEN={generate_dashboard_token()}")


@app.command()
def health(
    url: str = typer.Option("http://localhost:4000", help="Server URL"),
):
    """Check Feedback-Engine server health."""
    import httpx

    try:
        resp = httpx.get(f"{url}/health", timeout=5)
        data = resp.json()
        console.print(f"[bold green]{data['status']}[/bold green] v{data['version']}")
    except (httpx.HTTPError, ValueError, KeyError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
