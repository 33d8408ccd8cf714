#!/usr/bin/env python3
"""Command-line front end for the trip photo pipeline.

Usage:
    # Enrich and group every photo in a folder (config.yaml for the API key)
    trip-photos process ~/Pictures/trip

    # Walk subfolders, override worker count, emit JSON
    trip-photos process ~/Pictures/trip --recursive --workers 8 --json

    # Show what EXIF metadata a single photo carries
    trip-photos inspect ~/Pictures/trip/IMG_0001.HEIC
"""

import json
import logging
from datetime import datetime
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)

from trip_photos.config import get_path, load_config
from trip_photos.exif_extractor import extract_metadata
from trip_photos.models import BatchResult, PhotoSource
from trip_photos.pipeline import PhotoPipeline
from trip_photos.sources import scan_images

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(help="Enrich photos with time, place and address, then group them by day and location.")


def _setup_logging(verbose: bool, log_dir: Path | None = None) -> Path | None:
    """Warnings (or everything with --verbose) to stderr, INFO and up to a dated file.

    Returns:
        Path of the log file, or None when no log directory is given.
    """
    console_handler = RichHandler(console=err_console, rich_tracebacks=True)
    console_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    handlers: list[logging.Handler] = [console_handler]

    log_file = None
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / f"trip-photos_{datetime.now():%Y%m%d}.log"
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)-8s %(name)s: %(message)s")
        )
        handlers.append(file_handler)

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=handlers,
        force=True,
    )
    return log_file


def _load_config_or_exit(config: str | None) -> dict:
    try:
        return load_config(config)
    except FileNotFoundError as e:
        typer.echo(f"❌ {e}")
        raise typer.Exit(1) from None
    except Exception as e:
        typer.echo(f"❌ Error loading config: {e}")
        raise typer.Exit(1) from None


def print_groups(result: BatchResult) -> None:
    """Render groups as date headers, location headers and photo rows."""
    previous_date = None
    for group in result.groups:
        if group.date_key != previous_date:
            console.print(f"\n[bold cyan]📅 {group.date_key}[/bold cyan]")
            previous_date = group.date_key

        label = group.location_key
        address = group.photos[0].address.short_label()
        if address:
            label = f"{label}  [dim]({address})[/dim]"
        console.print(f"  [magenta]📍 {label}[/magenta]")

        for photo in group.photos:
            when = photo.captured_at.strftime("%H:%M:%S") if photo.captured_at else "--:--:--"
            console.print(f"    [green]{when}[/green]  {photo.source.name}")


def print_summary(result: BatchResult) -> None:
    console.print(f"\n[bold green]{'=' * 60}[/bold green]")
    console.print("[bold green]Processing Complete[/bold green]")
    console.print(f"[bold green]{'=' * 60}[/bold green]")
    console.print(f"[green]✅ Photos:[/green] {len(result.photos)}")
    console.print(f"[cyan]📊 Groups:[/cyan] {len(result.groups)}")

    located = sum(1 for p in result.photos if p.has_location)
    dated = sum(1 for p in result.photos if p.captured_at is not None)
    console.print(f"[cyan]📅 With capture time:[/cyan] {dated}")
    console.print(f"[cyan]📍 With GPS:[/cyan] {located}")

    if result.failures:
        console.print(f"[red]❌ Failures:[/red] {len(result.failures)}")
        for failure in result.failures:
            console.print(
                f"  [dim red]{failure.source.name} ({failure.stage}): {failure.message}[/dim red]"
            )
    console.print(f"[bold green]{'=' * 60}[/bold green]")


@app.command()
def process(
    paths: list[Path] = typer.Argument(None, help="Image files or folders (default: config input_directory)"),
    config: str | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to configuration file",
    ),
    recursive: bool | None = typer.Option(
        None,
        "--recursive/--no-recursive",
        "-r",
        help="Walk subfolders (overrides config)",
    ),
    workers: int | None = typer.Option(
        None,
        "--workers",
        "-w",
        min=1,
        help="Photos processed concurrently (overrides config)",
    ),
    api_key: str | None = typer.Option(
        None,
        "--api-key",
        help="Google Geocoding API key (overrides config and environment)",
    ),
    precision: int | None = typer.Option(
        None,
        "--precision",
        min=0,
        help="Decimal places of the grouping location key (overrides config)",
    ),
    as_json: bool = typer.Option(False, "--json", help="Print groups as JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Enrich photos with capture time, GPS and address, then group them."""
    config_data = _load_config_or_exit(config)
    _setup_logging(verbose, get_path(config_data, "log_directory"))

    if recursive is not None:
        config_data["processing"]["recursive"] = recursive
    if workers is not None:
        config_data["processing"]["max_workers"] = workers
    if api_key:
        config_data["geocoding"]["api_key"] = api_key
    if precision is not None:
        config_data["grouping"]["location_precision"] = precision

    inputs = paths or [config_data["paths"]["input_directory"]]
    try:
        files = list(scan_images(inputs, recursive=config_data["processing"]["recursive"]))
    except FileNotFoundError as e:
        typer.echo(f"❌ {e}")
        raise typer.Exit(1) from None

    if not files:
        typer.echo("❌ No image files found")
        raise typer.Exit(1)

    sources = [PhotoSource.from_path(f) for f in files]
    with PhotoPipeline.from_config(config_data) as pipeline, Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        console=console,
        disable=as_json,
    ) as progress:
        task = progress.add_task("[cyan]Processing photos...", total=len(sources))

        def on_progress(index: int, total: int, label: str) -> None:
            name = sources[index].name
            if label in ("done", "failed"):
                progress.advance(task)
            progress.update(task, description=f"[cyan]📸 {label} {name}")

        result = pipeline.process_sync(sources, progress=on_progress)

    if as_json:
        typer.echo(json.dumps([g.to_dict() for g in result.groups], ensure_ascii=False, indent=2))
        return

    print_groups(result)
    print_summary(result)


@app.command()
def inspect(path: Path = typer.Argument(..., help="Image file")):
    """Print the capture time and GPS coordinates embedded in one photo."""
    if not path.is_file():
        typer.echo(f"❌ File not found: {path}")
        raise typer.Exit(1)

    metadata = extract_metadata(path.read_bytes())
    captured = metadata.captured_at.isoformat(sep=" ") if metadata.captured_at else None

    console.print(f"[cyan]File:[/cyan] {path.name}")
    if captured:
        console.print(f"✅ Captured: {captured}")
    else:
        console.print("❌ No capture time in EXIF")
    if metadata.has_location:
        console.print(f"✅ GPS found: ({metadata.latitude:.6f}, {metadata.longitude:.6f})")
    else:
        console.print("❌ No GPS data in this image")


if __name__ == "__main__":
    app()
