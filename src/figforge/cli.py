"""FigForge CLI - typer application entry point."""

from __future__ import annotations

import asyncio
import atexit
import json
from pathlib import Path
from typing import Annotated, Any

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from figforge.observability import close_file_logging, configure_logging, get_logger

# Load environment variables from .env file
load_dotenv()

app = typer.Typer(
    name="figforge",
    help="FigForge: publication-quality figure generation with automated QA.",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)

log = get_logger(__name__)

# Global state for logging flags (set by callback, used by commands)
_verbose: int = 0
_log_enabled: bool = False
_config_path: Path | None = None


@app.callback()
def main(
    verbose: Annotated[
        int,
        typer.Option(
            "-v",
            "--verbose",
            count=True,
            help="Increase verbosity: -v for INFO, -vv for DEBUG.",
        ),
    ] = 0,
    log_to_file: Annotated[
        bool,
        typer.Option(
            "--log",
            help="Enable file logging to {output_dir}/logs/debug.jsonl.",
        ),
    ] = False,
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Settings file (default: ./figforge.yaml if present).",
            envvar="FIGFORGE_CONFIG",
        ),
    ] = None,
) -> None:
    """FigForge: publication-quality figure generation with automated QA."""
    global _verbose, _log_enabled, _config_path
    _verbose = verbose
    _log_enabled = log_to_file
    _config_path = config

    # File logging is configured later, once the output directory is known
    configure_logging(verbosity=verbose)


def _configure_file_logging(output_dir: Path) -> None:
    if _log_enabled:
        configure_logging(verbosity=_verbose, log_to_file=True, log_dir=output_dir)
        atexit.register(close_file_logging)


def _print_error(error: dict[str, Any]) -> None:
    err_console.print(f"[red]Error[/red] [dim]({error.get('code')})[/dim]: {error.get('message')}")
    if error.get("suggestion"):
        err_console.print(f"  [yellow]Hint:[/yellow] {error['suggestion']}")


def _print_qa(qa: dict[str, Any]) -> None:
    status_icons = {
        "pass": "[green]✓[/green] pass",
        "fail": "[red]✗[/red] fail",
        "warning": "[yellow]![/yellow] warning",
        "skipped": "[dim]○[/dim] skipped",
    }
    table = Table(title=f"QA: {qa['status']} (score {qa['score']:.2f}, attempt {qa['attempts']})")
    table.add_column("Check", style="cyan")
    table.add_column("Severity")
    table.add_column("Status", style="bold")
    table.add_column("Detail", style="dim")
    for check in qa["checks"]:
        table.add_row(
            check["name"],
            check["severity"],
            status_icons.get(check["status"], check["status"]),
            check.get("detail") or "-",
        )
    console.print()
    console.print(table)


@app.command()
def generate(
    prompt: Annotated[str, typer.Argument(help="What the figure should show.")],
    figure_style: Annotated[
        str | None,
        typer.Option(
            "--figure-style",
            "-s",
            help="scientific_diagram, scientific_map or scientific_chart.",
        ),
    ] = None,
    validate_qa: Annotated[
        bool | None,
        typer.Option(
            "--validate-qa/--no-validate-qa",
            help="Run QA on this figure (requires --figure-style).",
        ),
    ] = None,
    input_image: Annotated[
        Path | None,
        typer.Option("--input-image", "-i", help="Source image to edit."),
    ] = None,
    file_name: Annotated[
        str | None,
        typer.Option("--file-name", "-o", help="Output file name."),
    ] = None,
    aspect_ratio: Annotated[
        str | None,
        typer.Option("--aspect-ratio", help="e.g. 1:1, 16:9, 4:3."),
    ] = None,
    image_size: Annotated[
        str | None,
        typer.Option("--image-size", help="2K or 4K."),
    ] = None,
    edit_mode: Annotated[
        str | None,
        typer.Option("--edit-mode", help="strict or creative (with --input-image)."),
    ] = None,
    google_search: Annotated[
        bool,
        typer.Option("--google-search", help="Ground generation with Google Search."),
    ] = False,
    output_dir: Annotated[
        Path | None,
        typer.Option("--output-dir", help="Directory for generated figures."),
    ] = None,
    image_provider: Annotated[
        str | None,
        typer.Option(
            "--image-provider",
            help="Image provider spec, e.g. gemini/gemini-3-pro-image-preview or placeholder.",
        ),
    ] = None,
) -> None:
    """Generate one figure and save it to the output directory."""
    from figforge.config import load_settings
    from figforge.errors import ConfigError
    from figforge.service import FigureService

    try:
        settings = load_settings(
            _config_path,
            output_dir=output_dir,
            image_provider=image_provider,
        )
    except ConfigError as e:
        _print_error(e.to_structured())
        raise typer.Exit(1) from e

    _configure_file_logging(settings.output_dir)

    arguments: dict[str, Any] = {"prompt": prompt}
    optional = {
        "figureStyle": figure_style,
        "validateQa": validate_qa,
        "inputImagePath": str(input_image) if input_image else None,
        "fileName": file_name,
        "aspectRatio": aspect_ratio,
        "imageSize": image_size,
        "editMode": edit_mode,
        "useGoogleSearch": google_search or None,
    }
    arguments.update({k: v for k, v in optional.items() if v is not None})

    service = FigureService(settings)
    with console.status("Generating figure..."):
        response = asyncio.run(service.call_tool("generate_image", arguments))

    payload = response["structuredContent"]
    if response["isError"]:
        _print_error(payload["error"])
        raise typer.Exit(1)

    resource = payload["resource"]
    metadata = payload["metadata"]
    console.print(f"[green]✓[/green] Saved [bold]{resource['name']}[/bold]")
    console.print(f"  Location: {resource['uri']}")
    console.print(f"  Model: {metadata['model']}  ({metadata['processingTime']} ms)")
    if "qa" in metadata:
        _print_qa(metadata["qa"])


@app.command()
def checks(
    style: Annotated[
        str,
        typer.Argument(help="scientific_diagram, scientific_map or scientific_chart."),
    ],
) -> None:
    """List the QA checks applied to a figure style."""
    from figforge.qa.checks import FigureStyle, get_effective_checks

    try:
        definitions = get_effective_checks(style)
    except ValueError as e:
        supported = ", ".join(s.value for s in FigureStyle)
        err_console.print(f"[red]Error:[/red] Unknown figure style '{style}'")
        err_console.print(f"  Supported styles: {supported}")
        raise typer.Exit(1) from e

    table = Table(title=f"QA checks: {style}")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Severity", style="bold")
    table.add_column("Instruction", style="dim")
    for definition in definitions:
        severity = "[red]hard[/red]" if definition.severity == "hard" else "[yellow]soft[/yellow]"
        table.add_row(definition.id, definition.name, severity, definition.instruction)

    console.print()
    console.print(table)
    console.print()


@app.command()
def tools() -> None:
    """Print the tool descriptors as JSON."""
    from figforge.service import tool_descriptors

    console.print_json(json.dumps(tool_descriptors()))


@app.command()
def version() -> None:
    """Show version information."""
    from figforge import __version__

    console.print(f"FigForge v{__version__}")


if __name__ == "__main__":
    app()
