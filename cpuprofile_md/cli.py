"""CLI entry point for cpuprofile-md."""

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from cpuprofile_md.analyzer import analyze as analyze_profile
from cpuprofile_md.errors import ProfileError
from cpuprofile_md.formatter import FORMAT_LEVELS, format_result
from cpuprofile_md.models import AnalyzeOptions, FormatOptions
from cpuprofile_md.parser import normalize

app = typer.Typer(
    help="cpuprofile-md - Convert V8 CPU profiles to LLM-friendly Markdown",
    no_args_is_help=True
)
console = Console(stderr=True)


def _setup_logging(verbose: bool) -> None:
    root = logging.getLogger("cpuprofile_md")
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)
    if not any(isinstance(handler, RichHandler) for handler in root.handlers):
        root.addHandler(RichHandler(console=console, show_path=False))


def _read_input(source: str) -> bytes:
    if source == "-":
        return sys.stdin.buffer.read()

    path = Path(source)
    if not path.exists():
        console.print(f"[red]Error:[/red] Profile file not found: {path}")
        raise typer.Exit(code=1)
    if not path.is_file():
        console.print(f"[red]Error:[/red] Path is not a file: {path}")
        raise typer.Exit(code=1)
    try:
        return path.read_bytes()
    except OSError as e:
        console.print(f"[red]Error:[/red] Could not read profile {path}: {e}")
        raise typer.Exit(code=1)


@app.command()
def convert(
    profile: str = typer.Argument(..., help="Path to .cpuprofile file, or - for stdin"),
    format_level: str = typer.Option("adaptive", "--format", "-f", help="Output format: summary, detailed, adaptive"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output Markdown file (default: stdout)"),
    source_dir: Optional[Path] = typer.Option(
        None, "--source-dir", "-s", envvar="CPUPROFILE_MD_SOURCE_DIR", help="Source directory for code context"
    ),
    include_source: bool = typer.Option(False, "--include-source", help="Include source code snippets in output"),
    fetch_remote: bool = typer.Option(False, "--fetch-remote", help="Download http(s) scripts for source snippets"),
    fetch_timeout: float = typer.Option(
        10.0, "--fetch-timeout", envvar="CPUPROFILE_MD_FETCH_TIMEOUT", help="Timeout in seconds for remote sources"
    ),
    max_hotspots: int = typer.Option(20, "--max-hotspots", help="Maximum number of hotspots to include"),
    max_paths: int = typer.Option(5, "--max-paths", help="Maximum number of critical paths"),
    hotspot_threshold: float = typer.Option(1.0, "--hotspot-threshold", help="Minimum self% for hotspot inclusion"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Convert a CPU profile to Markdown."""
    _setup_logging(verbose)

    if format_level not in FORMAT_LEVELS:
        console.print(f"[red]Error:[/red] Invalid format level: {format_level}")
        console.print(f"Valid options: {', '.join(FORMAT_LEVELS)}")
        raise typer.Exit(code=1)

    raw = _read_input(profile)

    try:
        result = analyze_profile(
            normalize(raw),
            AnalyzeOptions(
                hotspot_threshold=hotspot_threshold,
                max_hotspots=max_hotspots,
                max_paths=max_paths
            )
        )
        markdown = format_result(
            result,
            format_level,
            FormatOptions(
                profile_name=profile if profile != "-" else "CPU Profile",
                source_dir=str(source_dir) if source_dir else None,
                include_source=include_source,
                fetch_remote=fetch_remote,
                fetch_timeout=fetch_timeout
            )
        )
    except ProfileError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)

    if output is None:
        typer.echo(markdown)
        return

    try:
        output.write_text(markdown, encoding="utf-8")
    except OSError as e:
        console.print(f"[red]Error writing output:[/red] {e}")
        raise typer.Exit(code=1)
    console.print(f"[green]✓[/green] Analysis written to {output}")


@app.command()
def analyze(
    profile: str = typer.Argument(..., help="Path to .cpuprofile file, or - for stdin"),
    out: Path = typer.Option("analysis.json", "--out", help="Output JSON file path"),
    max_hotspots: int = typer.Option(20, "--max-hotspots", help="Maximum number of hotspots to include"),
    max_paths: int = typer.Option(5, "--max-paths", help="Maximum number of critical paths"),
    hotspot_threshold: float = typer.Option(1.0, "--hotspot-threshold", help="Minimum self% for hotspot inclusion"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Analyze a CPU profile and write analysis.json."""
    _setup_logging(verbose)

    console.print(f"[blue]Analyzing profile:[/blue] {profile}")
    console.print(f"[blue]Output file:[/blue] {out}")
    console.print(f"[blue]Hotspot threshold:[/blue] {hotspot_threshold}%")

    raw = _read_input(profile)

    try:
        result = analyze_profile(
            normalize(raw),
            AnalyzeOptions(
                hotspot_threshold=hotspot_threshold,
                max_hotspots=max_hotspots,
                max_paths=max_paths
            )
        )
        with open(out, "w") as f:
            json.dump(result.to_dict(), f, indent=2)
    except (ProfileError, OSError) as e:
        console.print(f"[red]Error during analysis:[/red] {e}")
        raise typer.Exit(code=1)

    console.print(f"[green]✓[/green] Analysis complete: {out}")


if __name__ == "__main__":
    app()
