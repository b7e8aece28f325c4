"""Command-line interface for gantt-stream.

Commands:
- `gantt-stream serve`: run the demo push source
- `gantt-stream watch`: consume a push stream and render the Gantt table

Example:
    $ gantt-stream serve --port 8765
    $ gantt-stream watch --url http://127.0.0.1:8765/events --mode accumulate
"""

import asyncio
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from gantt_stream.core.config import GanttStreamConfig, PublishMode, load_config
from gantt_stream.core.exceptions import ConfigError
from gantt_stream.gantt.models import AggregatedGraph
from gantt_stream.sink import GanttTableSink
from gantt_stream.stream.coordinator import Coordinator
from gantt_stream.stream.source import ConnectionState, StreamStatus

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_CONFIG_ERROR = 2

app = typer.Typer(
    name="gantt-stream",
    help="Push-stream ingestion pipeline for a Gantt chart",
    no_args_is_help=True,
)

# Shared console for output
console = Console()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=verbose)],
        force=True,
    )


def _load(config: Path | None) -> GanttStreamConfig:
    try:
        return load_config(config)
    except ConfigError as e:
        console.print(f"[red][ERR][/red] {escape(str(e))}")
        raise typer.Exit(code=EXIT_CONFIG_ERROR) from None


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Push-stream ingestion pipeline for a Gantt chart."""
    _setup_logging(verbose)


@app.command(name="serve")
def serve_command(
    config: Path = typer.Option(None, "--config", "-c", help="Path to gantt-stream.yaml"),
    host: str = typer.Option(None, "--host", help="Bind address (overrides config)"),
    port: int = typer.Option(None, "--port", "-p", help="Bind port (overrides config)"),
) -> None:
    """Run the demo push source emitting dummy project records."""
    import uvicorn

    from gantt_stream.demo.server import create_app

    settings = _load(config).demo
    updates = {key: value for key, value in (("host", host), ("port", port)) if value is not None}
    if updates:
        settings = settings.model_copy(update=updates)

    console.print(f"Serving demo stream on http://{settings.host}:{settings.port}{settings.path}")
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_level="info")


async def _watch(config: GanttStreamConfig, tree: bool) -> int:
    """Run one stream to completion and render what arrived.

    Returns:
        Exit code: success if the stream closed cleanly, error if it failed.

    """
    coordinator = Coordinator(config)
    sink = GanttTableSink(config.state.publish_mode)
    failures: list[StreamStatus] = []

    def on_update(graph: AggregatedGraph) -> None:
        sink(graph)
        console.print(
            f"[green]+[/green] update {sink.received}: "
            f"{len(graph.tasks)} task(s), {len(graph.links)} link(s)"
        )

    def on_status(status: StreamStatus) -> None:
        if status.state is ConnectionState.FAILED:
            failures.append(status)
            console.print(f"[red]stream failed:[/red] {escape(status.error or '')}")
        else:
            console.print(f"[dim]stream {status.state}[/dim] {status.url}")

    updates_sub = coordinator.observe_updates(on_update)
    status_sub = coordinator.observe_status(on_status)
    try:
        await coordinator.start_stream()
        await coordinator.wait_closed()
    finally:
        updates_sub.cancel()
        status_sub.cancel()
        await coordinator.aclose()

    console.print(sink.render_tree() if tree else sink.render())
    dangling = sink.dangling_links()
    if dangling:
        console.print(f"[yellow][WARN][/yellow] {len(dangling)} link(s) reference unknown tasks")
    return EXIT_ERROR if failures else EXIT_SUCCESS


@app.command(name="watch")
def watch_command(
    config: Path = typer.Option(None, "--config", "-c", help="Path to gantt-stream.yaml"),
    url: str = typer.Option(None, "--url", "-u", help="Stream URL (overrides config)"),
    mode: PublishMode = typer.Option(None, "--mode", "-m", help="Publish mode (overrides config)"),
    tree: bool = typer.Option(False, "--tree", help="Render a hierarchy tree instead of a table"),
) -> None:
    """Consume a push stream and render the resulting Gantt graph.

    Exits with code 0 when the stream closes cleanly, 1 when it fails,
    2 on configuration errors.
    """
    cfg = _load(config)
    if url is not None:
        cfg = cfg.model_copy(update={"stream": cfg.stream.model_copy(update={"url": url})})
    if mode is not None:
        cfg = cfg.model_copy(update={"state": cfg.state.model_copy(update={"publish_mode": mode})})

    try:
        exit_code = asyncio.run(_watch(cfg, tree))
    except KeyboardInterrupt:
        console.print("\n[yellow]Cancelled[/yellow]")
        raise typer.Exit(code=130) from None
    raise typer.Exit(code=exit_code)


if __name__ == "__main__":
    app()
