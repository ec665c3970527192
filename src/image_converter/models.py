"""Domain models for image conversion runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from .formats import FormatId
from .reporting import BatchSummary, StageTimings
from .transforms import TransformSpec


class OutcomeStatus(str, Enum):
    WRITTEN = "written"
    SKIPPED = "skipped"
    FAILED = "failed"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True, slots=True)
class ConversionRequest:
    """Everything a single CLI invocation asks for."""

    source: Path
    formats: tuple[FormatId, ...]
    output_dir: Path | None = None
    transform: TransformSpec = field(default_factory=TransformSpec)
    verbose: bool = False


@dataclass(slots=True)
class ConversionOutcome:
    """Result of converting one source file into one target format."""

    source: Path
    format_id: FormatId
    output_path: Path
    status: OutcomeStatus
    error: str | None = None
    message: str | None = None
    elapsed_ms: float = 0.0
    size_bytes: int = 0
    timings: StageTimings | None = None

    @property
    def written(self) -> bool:
        return self.status is OutcomeStatus.WRITTEN


@dataclass(slots=True)
class BatchConversionResult:
    """Aggregate outcomes for a file or directory run."""

    outcomes: list[ConversionOutcome]
    summary: BatchSummary
    aborted: bool = False


__all__ = [
    "BatchConversionResult",
    "ConversionOutcome",
    "ConversionRequest",
    "OutcomeStatus",
]
