"""slidekit CLI.

Command-line interface for inspecting whole-slide image files.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated

import typer

from slidekit import __version__
from slidekit.slide import Slide, SlideError
from slidekit.utils.logging import (
    clear_slide_context,
    configure_logging,
    get_logger,
    set_slide_context,
)

app = typer.Typer(
    name="slidekit",
    help="slidekit: inspect pyramidal whole-slide images",
    add_completion=False,
)

Verbosity = Annotated[
    int,
    typer.Option(
        "--verbose", "-v", count=True, help="Increase verbosity (-v, -vv)"
    ),
]
JsonOutput = Annotated[bool, typer.Option("--json", help="Output as JSON")]


# =============================================================================
# Commands
# =============================================================================


@app.command()
def version(json_output: JsonOutput = False) -> None:
    """Show slidekit and engine version information."""
    engine_version = Slide.engine_version()
    if json_output:
        typer.echo(json.dumps({"version": __version__, "engine": engine_version}))
    else:
        typer.echo(f"slidekit {__version__} (engine {engine_version})")


@app.command("open")
def open_slides(
    files: Annotated[list[Path], typer.Argument(help="Slide files to open")],
    verbose: Verbosity = 0,
) -> None:
    """Check whether each slide can be opened."""
    _configure_logging(verbose)
    logger = get_logger(__name__)

    failed = 0
    for path in files:
        set_slide_context(slide=str(path), operation="open")
        with Slide.open(path) as slide:
            if slide.has_error:
                typer.echo(f"{path}: {slide.error_message}", err=True)
                failed += 1
            else:
                logger.info("Slide opened", vendor=slide.vendor)
    clear_slide_context()

    if failed:
        raise typer.Exit(1)


@app.command()
def vendor(
    files: Annotated[list[Path], typer.Argument(help="Slide files to inspect")],
    verbose: Verbosity = 0,
) -> None:
    """Print the detected vendor of each slide."""
    _configure_logging(verbose)

    failed = 0
    for path in files:
        detected = Slide.detect_vendor(path)
        if not detected:
            typer.echo(f"{path}: No vendor detected", err=True)
            failed += 1
        elif len(files) > 1:
            typer.echo(f"{path}: {detected}")
        else:
            typer.echo(detected)

    if failed:
        raise typer.Exit(1)


@app.command()
def properties(
    file: Annotated[Path, typer.Argument(help="Slide file to inspect")],
    json_output: JsonOutput = False,
    verbose: Verbosity = 0,
) -> None:
    """Print the property catalog of a slide."""
    _configure_logging(verbose)
    set_slide_context(slide=str(file), operation="properties")

    try:
        with Slide.open(file) as slide:
            catalog = dict(sorted(slide.properties.items()))
    except SlideError as e:
        if json_output:
            typer.echo(json.dumps({"error": str(e)}))
        else:
            typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None
    finally:
        clear_slide_context()

    if json_output:
        typer.echo(json.dumps(catalog, indent=2))
    else:
        for key, value in catalog.items():
            typer.echo(f"{key}: {value!r}")


def _configure_logging(verbose: int) -> None:
    """Configure logging based on verbosity level."""
    if verbose == 0:
        level = "WARNING"
    elif verbose == 1:
        level = "INFO"
    else:  # verbose >= 2
        level = "DEBUG"

    configure_logging(level=level)


if __name__ == "__main__":
    app()
