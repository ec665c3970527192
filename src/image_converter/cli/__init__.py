from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .. import __version__
from ..adapters import encoder_available
from ..codec import native_support
from ..config import AppConfig, ConfigError, dump_config
from ..core import ConversionError, ConversionService
from ..formats import ALL_TOKEN, REGISTRY, FormatError, Strategy, parse_format_tokens
from ..models import ConversionRequest
from ..overwrite import OverwriteArbiter, console_prompt
from ..reporting import Reporter
from ..settings import resolve_config
from ..transforms import TransformError, TransformSpec

console = Console(soft_wrap=True, highlight=False)
error_console = Console(stderr=True, soft_wrap=True, highlight=False)

app = typer.Typer(
    name="image-converter",
    help="Convert images to different formats using Pillow and cjxl.",
    add_completion=False,
)


def _load_config(path: Path | None) -> AppConfig:
    try:
        return resolve_config(path)
    except ConfigError as exc:
        error_console.print(f"[red]❌ Invalid configuration:[/red] {escape(str(exc))}")
        raise typer.Exit(1) from exc


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"image-converter {__version__}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def _main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit.",
    ),
) -> None:
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


@app.command(context_settings={"allow_extra_args": True})
def convert(
    ctx: typer.Context,
    source: Path | None = typer.Argument(None, help="Image file or directory path"),
    formats: list[str] | None = typer.Option(
        None,
        "--formats",
        "-f",
        help="Target formats (jpg, png, webp, avif, jpegxl, or all). Several may follow one flag.",
    ),
    out: Path | None = typer.Option(None, "--out", "-o", help="Output directory (default: same as source)"),
    width: int | None = typer.Option(None, "--width", "-w", help="Resize to width (pixels)"),
    height: int | None = typer.Option(None, "--height", "-h", help="Resize to height (pixels)"),
    no_enlargement: bool = typer.Option(
        False, "--no-enlargement", help="Never upscale beyond the source dimensions"
    ),
    rotate: float | None = typer.Option(
        None, "--rotate", help="Rotate clockwise by degrees (replaces EXIF auto-orientation)"
    ),
    grayscale: bool = typer.Option(False, "--grayscale", help="Convert to grayscale"),
    to_srgb: bool = typer.Option(False, "--to-srgb", help="Convert colours to the sRGB profile"),
    verbose: bool = typer.Option(False, "--verbose", help="Enable detailed logging"),
    config: Path | None = typer.Option(None, "--config", help="Path to config.toml"),
) -> None:
    """Convert an image, or every image in a directory, to the requested formats."""

    tokens = [*(formats or []), *ctx.args]
    if source is None:
        if not tokens:
            typer.echo(ctx.get_help())
            raise typer.Exit()
        error_console.print("[red]❌ Missing source image or directory.[/red]")
        raise typer.Exit(1)

    try:
        target_formats = parse_format_tokens(tokens)
        transform = TransformSpec(
            width=width,
            height=height,
            allow_enlargement=not no_enlargement,
            rotate_degrees=rotate,
            grayscale=grayscale,
            to_srgb=to_srgb,
        )
        transform.validate()
    except (FormatError, TransformError) as exc:
        error_console.print(f"[red]❌ {escape(str(exc))}[/red]")
        raise typer.Exit(1) from exc

    cfg = _load_config(config)
    verbose = verbose or cfg.runtime.verbose
    reporter = Reporter(console, error_console, verbose=verbose)

    if not encoder_available(cfg.external.command):
        reporter.warning(
            f"{cfg.external.command} is not installed or not in your PATH. JPEG XL output will fail."
        )
    if verbose and ALL_TOKEN in (token.strip().lower() for token in tokens):
        reporter.progress(f"📦 Using all formats: {', '.join(f.value for f in target_formats)}")

    if not source.exists():
        reporter.error(f"Error: source does not exist: {source}")
        raise typer.Exit(1)
    if not (source.is_file() or source.is_dir()):
        reporter.error("Source must be a file or directory.")
        raise typer.Exit(1)

    arbiter = OverwriteArbiter(prompt=lambda path: console_prompt(path, console))
    service = ConversionService(cfg, arbiter=arbiter, reporter=reporter)
    request = ConversionRequest(
        source=source,
        formats=target_formats,
        output_dir=out,
        transform=transform,
        verbose=verbose,
    )
    try:
        result = service.run(request)
    except ConversionError as exc:
        reporter.error(f"Error: {exc}")
        raise typer.Exit(1) from exc

    if result.aborted:
        console.print("🛑 Aborted by user.")
        raise typer.Exit()
    reporter.render_summary(result)


@app.command("formats")
def list_formats(
    config: Path | None = typer.Option(None, "--config", help="Path to config.toml"),
) -> None:
    """Show supported formats and whether their encoders are available."""

    cfg = _load_config(config)
    table = Table(title="Supported formats")
    table.add_column("Token")
    table.add_column("Extension")
    table.add_column("Strategy")
    table.add_column("Source")
    table.add_column("Available")
    for spec in REGISTRY.values():
        if spec.strategy is Strategy.EXTERNAL:
            available = encoder_available(cfg.external.command)
            backend = cfg.external.command
        else:
            available = native_support(spec.format_id)
            backend = "Pillow"
        table.add_row(
            spec.format_id.value,
            spec.extension,
            f"{spec.strategy.value} ({escape(backend)})",
            "yes" if spec.decodable else "no",
            "[green]yes[/green]" if available else "[red]no[/red]",
        )
    console.print(table)


@app.command("config")
def show_config(
    config: Path | None = typer.Option(None, "--config", help="Path to config.toml"),
) -> None:
    """Print the effective configuration as JSON."""

    cfg = _load_config(config)
    typer.echo(dump_config(cfg))


if __name__ == "__main__":
    app()
