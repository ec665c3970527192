"""Console reporting for conversion runs.

Nothing here touches the filesystem: run summaries live in memory and are only
rendered to the terminal.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .formats import Strategy, strategy_for
from .utils import format_bytes

if TYPE_CHECKING:
    from .models import BatchConversionResult, ConversionOutcome


@dataclass(slots=True)
class StageTimings:
    read_ms: float = 0.0
    decode_ms: float = 0.0
    transform_ms: float = 0.0
    encode_ms: float | None = None

    def describe(self) -> str:
        text = (
            f"read {self.read_ms:.1f} ms, decode {self.decode_ms:.1f} ms, "
            f"transform {self.transform_ms:.1f} ms"
        )
        if self.encode_ms is not None:
            text += f", encode {self.encode_ms:.1f} ms"
        return text


@dataclass(slots=True)
class BatchSummary:
    files: int = 0
    written: int = 0
    skipped: int = 0
    failed: int = 0
    unsupported: int = 0

    def add(self, outcome: ConversionOutcome) -> None:
        status = outcome.status.value
        if status == "written":
            self.written += 1
        elif status == "skipped":
            self.skipped += 1
        elif status == "failed":
            self.failed += 1
        elif status == "unsupported":
            self.unsupported += 1

    def describe(self) -> str:
        noun = "file" if self.files == 1 else "files"
        return (
            f"Processed {self.files} {noun}: {self.written} written, "
            f"{self.skipped} skipped, {self.failed} failed, {self.unsupported} unsupported."
        )


class Reporter:
    def __init__(
        self,
        console: Console | None = None,
        error_console: Console | None = None,
        *,
        verbose: bool = False,
    ) -> None:
        self.console = console or Console(soft_wrap=True, highlight=False)
        self.error_console = error_console or Console(stderr=True, soft_wrap=True, highlight=False)
        self.verbose = verbose

    def progress(self, message: str) -> None:
        self.console.print(f"[dim]{escape(message)}[/dim]")

    def warning(self, message: str) -> None:
        self.error_console.print(f"[yellow]⚠️  {escape(message)}[/yellow]")

    def error(self, message: str) -> None:
        self.error_console.print(f"[red]❌ {escape(message)}[/red]")

    def record(self, outcome: ConversionOutcome) -> None:
        status = outcome.status.value
        if status == "written":
            if strategy_for(outcome.format_id) is Strategy.EXTERNAL:
                self.console.print(f"[green]✅ Created:[/green] {escape(str(outcome.output_path))}")
            else:
                self.console.print(
                    f"[green]✅ Converted:[/green] {escape(str(outcome.source))} -> "
                    f"{escape(str(outcome.output_path))}"
                )
        elif status == "skipped":
            if self.verbose:
                self.progress(f"⏭️  Skipped: {outcome.output_path}")
        elif status == "failed":
            self.error(f"Failed to convert to {outcome.format_id.value}: {outcome.message}")

    def render_summary(self, result: BatchConversionResult) -> None:
        if self.verbose and result.outcomes:
            table = Table(title="Conversion summary")
            table.add_column("Source")
            table.add_column("Format")
            table.add_column("Status")
            table.add_column("Output")
            table.add_column("Size", justify="right")
            table.add_column("Time", justify="right")
            table.add_column("Stages")
            for outcome in result.outcomes:
                table.add_row(
                    escape(outcome.source.name),
                    outcome.format_id.value,
                    outcome.status.value if not outcome.error else f"{outcome.status.value} ({outcome.error})",
                    escape(str(outcome.output_path)),
                    format_bytes(outcome.size_bytes) if outcome.written else "-",
                    f"{outcome.elapsed_ms:.0f} ms",
                    outcome.timings.describe() if outcome.timings else "-",
                )
            self.console.print(table)
        self.console.print(escape(result.summary.describe()))


__all__ = ["BatchSummary", "Reporter", "StageTimings"]
