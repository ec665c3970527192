from __future__ import annotations

import time
from dataclasses import replace
from pathlib import Path
from typing import Sequence

from PIL import Image, ImageCms

from .adapters import Runner, build_encoders, run_external_encoder
from .codec import CODEC_ERRORS, decode
from .config import AppConfig
from .errors import ConversionAborted, ConversionError
from .formats import FormatId, is_decodable, output_path_for
from .models import BatchConversionResult, ConversionOutcome, ConversionRequest, OutcomeStatus
from .overwrite import OverwriteArbiter, WriteVerdict
from .reporting import BatchSummary, Reporter, StageTimings
from .transforms import TransformSpec, apply_plan, plan
from .utils import iter_images

_TRANSFORM_ERRORS: tuple[type[BaseException], ...] = (*CODEC_ERRORS, ImageCms.PyCMSError)


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


class ConversionService:
    def __init__(
        self,
        config: AppConfig,
        *,
        arbiter: OverwriteArbiter | None = None,
        reporter: Reporter | None = None,
        runner: Runner = run_external_encoder,
    ) -> None:
        self._config = config
        self._arbiter = arbiter or OverwriteArbiter()
        self._reporter = reporter or Reporter(verbose=config.runtime.verbose)
        self._encoders = build_encoders(config, runner=runner, progress=self._reporter.progress)

    def run(self, request: ConversionRequest) -> BatchConversionResult:
        request.transform.validate()
        source = request.source
        if source.is_dir():
            return self.process_directory(source, request)
        if source.is_file():
            return self._run_sequential_batch([source], request)
        if not source.exists():
            raise ConversionError("INVALID_SOURCE", f"Source does not exist: {source}")
        raise ConversionError("INVALID_SOURCE", f"Source must be a file or directory: {source}")

    def process_directory(self, directory: Path, request: ConversionRequest) -> BatchConversionResult:
        try:
            paths = list(iter_images(directory))
        except OSError as exc:
            raise ConversionError("DIRECTORY_READ", f"Could not read directory {directory}: {exc}") from exc
        if request.verbose:
            self._reporter.progress(f"📂 Found {len(paths)} image file(s) in {directory}")
        return self._run_sequential_batch(paths, request)

    def convert_file(self, path: Path, request: ConversionRequest) -> list[ConversionOutcome]:
        targets = {
            format_id: output_path_for(format_id, path, request.output_dir)
            for format_id in request.formats
        }
        if not is_decodable(path):
            self._reporter.warning(
                f"Skipping {path}: unsupported file extension '{path.suffix or '<none>'}'"
            )
            return [
                ConversionOutcome(
                    source=path,
                    format_id=format_id,
                    output_path=output_path,
                    status=OutcomeStatus.UNSUPPORTED,
                    error="UNSUPPORTED_SOURCE",
                    message=f"Unsupported source extension: {path.suffix or '<none>'}",
                )
                for format_id, output_path in targets.items()
            ]

        timings = StageTimings()
        try:
            image = self._load_and_transform(path, request.transform, timings)
        except ConversionError as exc:
            return [
                self._record(self._failure(path, format_id, output_path, exc, 0.0, timings))
                for format_id, output_path in targets.items()
            ]
        if request.verbose:
            self._reporter.progress(f"⏱️  {path.name}: {timings.describe()}")

        outcomes: list[ConversionOutcome] = []
        for format_id, output_path in targets.items():
            try:
                outcome = self._convert_format(
                    path, image, format_id, output_path, request, timings
                )
            except ConversionAborted as exc:
                exc.outcomes[:0] = outcomes
                raise
            outcomes.append(self._record(outcome))
        return outcomes

    def _load_and_transform(
        self, path: Path, transform: TransformSpec, timings: StageTimings
    ) -> Image.Image:
        read_start = time.perf_counter()
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise ConversionError("READ_FAILED", f"Could not read {path}: {exc}") from exc
        timings.read_ms = _elapsed_ms(read_start)

        decode_start = time.perf_counter()
        try:
            decoded = decode(data)
        except CODEC_ERRORS as exc:
            raise ConversionError("DECODE_FAILED", f"Could not decode {path.name}: {exc}") from exc
        timings.decode_ms = _elapsed_ms(decode_start)

        transform_start = time.perf_counter()
        operations = plan(transform, decoded.size, decoded.orientation)
        try:
            image = apply_plan(decoded.image, operations)
        except _TRANSFORM_ERRORS as exc:
            raise ConversionError("TRANSFORM_FAILED", f"Could not transform {path.name}: {exc}") from exc
        timings.transform_ms = _elapsed_ms(transform_start)
        return image

    def _convert_format(
        self,
        path: Path,
        image: Image.Image,
        format_id: FormatId,
        output_path: Path,
        request: ConversionRequest,
        timings: StageTimings,
    ) -> ConversionOutcome:
        start = time.perf_counter()
        if request.verbose:
            self._reporter.progress(f"🔍 Converting: {path} → {output_path}")
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            error = ConversionError("WRITE_FAILED", f"Could not create {output_path.parent}: {exc}")
            return self._failure(path, format_id, output_path, error, _elapsed_ms(start))

        verdict = self._arbiter.check_write(output_path)
        if verdict is WriteVerdict.ABORT:
            raise ConversionAborted()
        if verdict is WriteVerdict.DENIED:
            return ConversionOutcome(
                source=path,
                format_id=format_id,
                output_path=output_path,
                status=OutcomeStatus.SKIPPED,
                message="Existing file kept",
                elapsed_ms=_elapsed_ms(start),
                timings=timings,
            )

        encoder = self._encoders[format_id]
        encode_start = time.perf_counter()
        try:
            response = encoder.write(image, output_path, verbose=request.verbose)
        except ConversionError as exc:
            stages = replace(timings, encode_ms=_elapsed_ms(encode_start))
            return self._failure(path, format_id, output_path, exc, _elapsed_ms(start), stages)
        stages = replace(timings, encode_ms=_elapsed_ms(encode_start))
        return ConversionOutcome(
            source=path,
            format_id=format_id,
            output_path=response.output_path,
            status=OutcomeStatus.WRITTEN,
            elapsed_ms=_elapsed_ms(start),
            size_bytes=response.size_bytes,
            timings=stages,
        )

    def _failure(
        self,
        path: Path,
        format_id: FormatId,
        output_path: Path,
        exc: ConversionError,
        elapsed_ms: float,
        timings: StageTimings | None = None,
    ) -> ConversionOutcome:
        return ConversionOutcome(
            source=path,
            format_id=format_id,
            output_path=output_path,
            status=OutcomeStatus.FAILED,
            error=exc.code,
            message=str(exc),
            elapsed_ms=elapsed_ms,
            timings=timings,
        )

    def _record(self, outcome: ConversionOutcome) -> ConversionOutcome:
        self._reporter.record(outcome)
        return outcome

    def _run_sequential_batch(
        self, paths: Sequence[Path], request: ConversionRequest
    ) -> BatchConversionResult:
        summary = BatchSummary()
        outcomes: list[ConversionOutcome] = []
        aborted = False
        for path in paths:
            summary.files += 1
            try:
                file_outcomes = self.convert_file(path, request)
            except ConversionAborted as exc:
                file_outcomes = exc.outcomes
                aborted = True
            for outcome in file_outcomes:
                summary.add(outcome)
            outcomes.extend(file_outcomes)
            if aborted:
                break
        return BatchConversionResult(outcomes=outcomes, summary=summary, aborted=aborted)


__all__ = [
    "ConversionAborted",
    "ConversionError",
    "ConversionService",
]
