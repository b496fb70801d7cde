"""
Command Line Interface for Artifact Catalog.
"""

import json
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import typer
import uvicorn
from pydantic import ValidationError
from rich import print as rprint
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from sqlalchemy.orm import Session

from ..config import get_settings
from ..db.base import get_session_local, init_database
from ..db.services import CleanupService, StatsService
from ..logging_config import configure_logging
from ..schemas.transfer import ImportDocument
from ..transfer import TransferService, export_filename

app = typer.Typer(help="Artifact Catalog - collections, tags and sharing for AI artifacts")
console = Console()


@app.callback()
def main() -> None:
    configure_logging()


@contextmanager
def session_scope() -> Iterator[Session]:
    db = get_session_local()()
    try:
        yield db
    finally:
        db.close()


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, help="Host to bind the server to"),
    port: Optional[int] = typer.Option(None, help="Port to run the API server on"),
    reload: bool = typer.Option(False, help="Reload on code changes"),
):
    """Run the API server."""
    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port
    rprint(Panel.fit(f"Starting {settings.app_name} on http://{host}:{port}", style="bold blue"))
    uvicorn.run(
        "artifact_catalog.main:app",
        host=host,
        port=port,
        reload=reload,
        workers=1 if reload else settings.api_workers,
    )


@app.command("init-db")
def init_db():
    """Create any missing tables."""
    init_database()
    console.print("✅ Database initialized")


@app.command()
def export(
    owner: str = typer.Argument(..., help="Owner email"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="File to write"),
):
    """Export an owner's catalog as JSON."""
    with session_scope() as db:
        document = TransferService(db).export_catalog(owner)

    payload = json.dumps(document.model_dump(mode="json"), indent=2)
    if output is None:
        output = Path(export_filename(document.exported_at))
    output.write_text(payload, encoding="utf-8")
    console.print(
        f"✅ Exported {len(document.collections)} collections and "
        f"{len(document.artifacts)} artifacts to {output}"
    )


@app.command("import")
def import_(
    owner: str = typer.Argument(..., help="Owner email"),
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Export document"),
):
    """Merge an export document into an owner's catalog."""
    try:
        document = ImportDocument.model_validate_json(file.read_text(encoding="utf-8"))
    except ValidationError as e:
        console.print(f"❌ Not a catalog document: {e.error_count()} error(s)")
        raise typer.Exit(1)

    with session_scope() as db:
        result = TransferService(db).import_catalog(owner, document)
    console.print(f"✅ Imported {result.imported}, skipped {result.skipped}")


@app.command()
def cleanup(
    owner: str = typer.Argument(..., help="Owner email"),
    fix: bool = typer.Option(False, "--fix", help="Rename the artifacts found"),
):
    """Find artifacts stored under placeholder names."""
    with session_scope() as db:
        service = CleanupService(db)
        found = service.scan(owner)

        if not found:
            console.print("✅ No placeholder names found")
            return

        table = Table(title="Placeholder names", show_header=True, header_style="bold magenta")
        table.add_column("ID", style="cyan")
        table.add_column("Name")
        table.add_column("Type", style="green")
        for row in found:
            table.add_row(str(row["id"]), row["name"], row["artifact_type"])
        console.print(table)

        if fix:
            console.print(f"✅ Renamed {service.fix(owner)} artifacts")


@app.command()
def stats(owner: str = typer.Argument(..., help="Owner email")):
    """Show catalog counts for an owner."""
    with session_scope() as db:
        summary = StatsService(db).summary(owner)

    table = Table(title=f"Catalog stats for {owner}", show_header=True, header_style="bold magenta")
    table.add_column("Metric", style="cyan")
    table.add_column("Count", justify="right")
    for key, value in summary.items():
        table.add_row(key.replace("_", " ").title(), str(value))
    console.print(table)


if __name__ == "__main__":
    app()
