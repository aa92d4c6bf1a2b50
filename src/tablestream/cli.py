"""Command-line interface for tablestream."""

from __future__ import annotations

import signal
import threading

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from tablestream import __version__

app = typer.Typer(
    name="tablestream",
    help="Stream relational tables into Amazon Kinesis",
    add_completion=False,
)

console = Console()


def _load_settings(config: str | None):
    from tablestream.core.config import get_settings

    return get_settings(config)


@app.command()
def run(
    config: str = typer.Option(None, "--config", "-c", help="Config file path"),
) -> None:
    """Poll the configured tables and deliver new rows until interrupted."""
    from tablestream.core.exceptions import TableStreamError
    from tablestream.core.router import EventRouter
    from tablestream.delivery import KinesisOutput
    from tablestream.orchestration import SQLInput
    from tablestream.utils.logging import setup_logging, shutdown_logging

    try:
        settings = _load_settings(config)
    except Exception as e:
        console.print(f"[red]Error:[/red] {str(e)}")
        raise typer.Exit(1)

    setup_logging(
        level=settings.logging.level,
        format=settings.logging.format.value,
        log_file=settings.logging.file,
    )

    if settings.source is None:
        console.print("[red]Error:[/red] no 'source' section configured")
        raise typer.Exit(1)

    router = EventRouter()
    output = None
    sql_input = None
    try:
        if settings.sink is not None:
            output = KinesisOutput(settings.sink)
            output.start()
            router.add_route("*", output)
        else:
            console.print("[yellow]No 'sink' configured; extracted rows are dropped[/yellow]")

        sql_input = SQLInput(settings.source, router)
        sql_input.start()
    except TableStreamError as e:
        console.print(f"[red]Error:[/red] {str(e)}")
        if output is not None:
            output.shutdown()
        shutdown_logging()
        raise typer.Exit(1)

    console.print(Panel.fit(
        f"[bold blue]tablestream v{__version__}[/bold blue]\n"
        f"Tables: {', '.join(sql_input.active_tables) or '-'}\n"
        f"Interval: {settings.source.select_interval:g}s",
        title="Running",
    ))

    stop = threading.Event()

    def _request_stop(signum, frame) -> None:
        stop.set()

    signal.signal(signal.SIGINT, _request_stop)
    signal.signal(signal.SIGTERM, _request_stop)
    stop.wait()

    console.print("Shutting down...")
    sql_input.shutdown()
    if output is not None:
        output.shutdown()
    console.print("[green]✓[/green] Stopped")
    shutdown_logging()


@app.command("check-stream")
def check_stream(
    config: str = typer.Option(None, "--config", "-c", help="Config file path"),
) -> None:
    """Check that the configured Kinesis stream is reachable."""
    from tablestream.connectors.streaming import (
        KinesisConnectionConfig,
        StreamConnectionManager,
    )

    try:
        settings = _load_settings(config)
        if settings.sink is None:
            console.print("[red]Error:[/red] no 'sink' section configured")
            raise typer.Exit(1)

        manager = StreamConnectionManager(KinesisConnectionConfig.from_sink_config(settings.sink))
        info = manager.validate()
        console.print(
            f"[green]✓[/green] {info['stream_name']}: "
            f"{info['stream_status']}, {info['shard_count']} shard(s)"
        )
    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[red]Error:[/red] {str(e)}")
        raise typer.Exit(1)


@app.command()
def watermarks(
    config: str = typer.Option(None, "--config", "-c", help="Config file path"),
    reset: str = typer.Option(None, "--reset", "-r", help="Forget the checkpoint of a table"),
) -> None:
    """Show the stored checkpoints, or reset one table."""
    from tablestream.extraction.watermark import FileWatermarkStore

    try:
        settings = _load_settings(config)
        if settings.source is None or not settings.source.state_file:
            console.print("[red]Error:[/red] no 'source.state_file' configured")
            raise typer.Exit(1)

        store = FileWatermarkStore(settings.source.state_file)

        if reset:
            if store.delete(reset):
                store.persist()
                console.print(f"[green]✓[/green] Checkpoint of {reset} reset")
            else:
                console.print(f"No checkpoint stored for {reset}")
            return

        checkpoints = store.load()
        if not checkpoints:
            console.print("No checkpoints stored.")
            return

        table = Table(show_header=True, header_style="bold")
        table.add_column("Table")
        table.add_column("Checkpoint")
        for name, value in checkpoints.items():
            table.add_row(name, str(value))
        console.print(table)

    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[red]Error:[/red] {str(e)}")
        raise typer.Exit(1)


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"tablestream version {__version__}")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
