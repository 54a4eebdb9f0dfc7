"""
Command-line interface for notesqa.

Commands:
    serve   - Start the FastAPI server
    ingest  - Ingest text files into the note store
    ask     - Ask a question about ingested notes
    tenant  - Show the tenant key for a client id
    version - Show version information
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

app = typer.Typer(
    name="notesqa",
    help="Question answering over personal notes",
    add_completion=False,
)
console = Console()


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Override LOG_LEVEL (DEBUG, INFO, WARNING, ERROR)"
    ),
) -> None:
    """Configure logging for every command."""
    from notesqa.config import settings

    logging.basicConfig(
        level=(log_level or settings.log_level).upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
    )


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, help="Host to bind (default: API_HOST)"),
    port: Optional[int] = typer.Option(None, help="Port to bind (default: API_PORT)"),
    reload: bool = typer.Option(False, help="Enable auto-reload"),
) -> None:
    """Start the FastAPI server."""
    import uvicorn

    from notesqa.config import settings

    host = host or settings.api_host
    port = port or settings.api_port
    console.print(f"[green]Starting notesqa server on {host}:{port}[/green]")

    uvicorn.run(
        "notesqa.api.main:app",
        host=host,
        port=port,
        reload=reload,
        workers=1,  # in-process note store
    )


@app.command()
def ingest(
    files: list[Path] = typer.Argument(..., help="Text files to ingest"),
    client_id: str = typer.Option(..., "--client-id", "-c", help="Client identifier"),
) -> None:
    """Ingest text files into the note store."""
    from notesqa.retrieval.ingestion import SourceDocument
    from notesqa.retrieval.resources import get_notes_service

    documents = []
    for path in files:
        if not path.is_file():
            console.print(f"[red]File not found: {path}[/red]")
            raise typer.Exit(1)
        documents.append(
            SourceDocument(
                name=path.name,
                text=path.read_text(encoding="utf-8", errors="replace"),
                mime_type="text/markdown" if path.suffix.lower() == ".md" else "text/plain",
            )
        )

    service = get_notes_service()

    try:
        with console.status("[bold green]Ingesting..."):
            results = asyncio.run(service.ingest(client_id, documents))
    except ValueError as e:
        console.print(f"[red]Could not ingest: {e}[/red]")
        raise typer.Exit(1)

    table = Table(title="Ingestion results")
    table.add_column("File", style="cyan")
    table.add_column("Status")
    table.add_column("Chunks", justify="right")
    table.add_column("Reason", style="dim")

    styles = {"processed": "green", "skipped": "yellow", "error": "red"}
    for result in results:
        table.add_row(
            result.name,
            f"[{styles[result.status]}]{result.status}[/{styles[result.status]}]",
            "" if result.chunk_count is None else str(result.chunk_count),
            result.reason or "",
        )
    console.print(table)

    if any(r.status == "error" for r in results):
        raise typer.Exit(1)


@app.command()
def ask(
    question: str = typer.Argument(..., help="Question to ask"),
    client_id: str = typer.Option(..., "--client-id", "-c", help="Client identifier"),
    match_count: Optional[int] = typer.Option(None, "--match-count", "-k", help="Chunks to retrieve"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show snippets and timing"),
) -> None:
    """Ask a question about ingested notes."""
    from notesqa.graph.workflow import AnswerError
    from notesqa.retrieval.resources import get_notes_service

    console.print(f"[blue]Question:[/blue] {question}\n")

    service = get_notes_service()
    try:
        with console.status("[bold green]Thinking..."):
            result = asyncio.run(service.ask(client_id, question, match_count))
    except (ValueError, AnswerError) as e:
        console.print(f"[red]Could not answer: {e}[/red]")
        raise typer.Exit(1)

    console.print("[green]Answer:[/green]")
    console.print(result.answer or "No answer generated.")
    console.print()

    if result.sources:
        console.print("[blue]Sources:[/blue]")
        for source in result.sources:
            console.print(f"  • {source.title}")
            if verbose:
                console.print(f"    [dim]{source.snippet}[/dim]")
        console.print()

    if verbose:
        console.print(f"[dim]Latency: {result.processing_time_ms:.0f}ms[/dim]")


@app.command()
def tenant(
    client_id: str = typer.Argument(..., help="Client identifier"),
) -> None:
    """Show the tenant key derived from a client id."""
    from notesqa.tenant import derive_tenant_key

    console.print(derive_tenant_key(client_id))


@app.command()
def version() -> None:
    """Show version information."""
    from notesqa import __version__

    console.print(f"notesqa v{__version__}")


if __name__ == "__main__":
    app()
