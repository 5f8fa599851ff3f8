"""
Command Line Interface for the Provenance Registry.
"""

from typing import Optional

import typer
import uvicorn
from rich import print as rprint
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..config import get_settings
from ..db.audit_service import AuditService
from ..db.base import get_session_local, init_database
from ..db.services import AccountService, ArtworkService, NotificationService
from ..log import configure_logging
from ..registry.roles import role_label

app = typer.Typer(help="Provenance Registry - artwork certificates of authenticity")
console = Console()

STATUS_STYLES = {
    "pending_artist_claim": "yellow",
    "pending_verification": "cyan",
    "verified": "green",
}


@app.command()
def serve(
    port: Optional[int] = typer.Option(None, help="Port to run the API server on"),
    host: Optional[str] = typer.Option(None, help="Host to bind the server to"),
    dev: bool = typer.Option(False, help="Run in development mode with reload"),
):
    """Start the API server."""
    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port

    rprint(Panel.fit("Starting Provenance Registry", style="bold blue"))
    console.print(f"Listening on http://{host}:{port}")
    uvicorn.run(
        "provenance_registry.main:app",
        host=host,
        port=port,
        reload=dev,
        workers=1 if dev else settings.api_workers,
    )


@app.command("init-db")
def init_db():
    """Create all tables in the configured database."""
    configure_logging(get_settings())
    init_database()
    console.print("Database initialized")


@app.command("show-account")
def show_account(
    account_id: str = typer.Argument(..., help="Account ID"),
):
    """Show an account's role and admin flag."""
    db = get_session_local()()
    try:
        account = AccountService(db).get_account(account_id)
        if not account:
            console.print(f"Account {account_id} not found")
            raise typer.Exit(code=1)

        table = Table(title=account.name, show_header=False)
        table.add_column("Field", style="cyan")
        table.add_column("Value")
        table.add_row("ID", account.id)
        table.add_row("Email", account.email or "-")
        table.add_row("Role", role_label(account.resolved_role.role))
        table.add_row("Admin", "yes" if account.is_admin else "no")
        console.print(table)
    finally:
        db.close()


@app.command("show-artwork")
def show_artwork(
    artwork_id: str = typer.Argument(..., help="Artwork ID"),
):
    """Show an artwork's certificate and its history."""
    db = get_session_local()()
    try:
        artwork = ArtworkService(db).get_artwork(artwork_id)
        if not artwork:
            console.print(f"Artwork {artwork_id} not found")
            raise typer.Exit(code=1)

        status_style = STATUS_STYLES.get(artwork.certificate_status, "white")
        table = Table(title=artwork.title, show_header=False)
        table.add_column("Field", style="cyan")
        table.add_column("Value")
        table.add_row("Certificate", artwork.certificate_number)
        table.add_row("Type", artwork.certificate_type)
        table.add_row("Status", f"[{status_style}]{artwork.certificate_status}[/{status_style}]")
        table.add_row("Artist", artwork.artist_name or "-")
        table.add_row("Posted by", artwork.account_id)
        table.add_row("Artist account", artwork.artist_account_id or "-")
        table.add_row("Claimed at", str(artwork.claimed_by_artist_at or "-"))
        table.add_row("Verified at", str(artwork.verified_by_owner_at or "-"))
        console.print(table)

        history = AuditService(db).query_by_entity("Artwork", artwork_id)
        if history:
            audit_table = Table(title="History", show_header=True, header_style="bold magenta")
            audit_table.add_column("When", style="yellow")
            audit_table.add_column("Action", style="green")
            audit_table.add_column("Actor")
            audit_table.add_column("Note")
            for entry in reversed(history):
                audit_table.add_row(
                    str(entry.ts), entry.action, entry.actor_id, entry.note or ""
                )
            console.print(audit_table)
    finally:
        db.close()


@app.command()
def notifications(
    account_id: str = typer.Argument(..., help="Account ID"),
    unread_only: bool = typer.Option(False, "--unread", help="Only unread notifications"),
    limit: int = typer.Option(20, help="Maximum number to show"),
):
    """List notifications for an account."""
    db = get_session_local()()
    try:
        service = NotificationService(db)
        items = service.get_notifications(account_id, unread_only=unread_only, limit=limit)
        unread = service.get_unread_count(account_id)
    finally:
        db.close()

    if not items:
        console.print("No notifications")
        return

    table = Table(
        title=f"Notifications ({unread} unread)",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("", width=1)
    table.add_column("Type", style="yellow")
    table.add_column("Title")
    table.add_column("Created", style="blue")
    for item in items:
        table.add_row(
            "" if item.read else "*",
            item.type,
            item.title,
            str(item.created_at),
        )
    console.print(table)


@app.command()
def version():
    """Show version information."""
    from .. import __version__

    rprint(Panel.fit(f"Provenance Registry v{__version__}", style="bold green"))


def main():
    """Main CLI entry point."""
    app()


if __name__ == "__main__":
    main()
