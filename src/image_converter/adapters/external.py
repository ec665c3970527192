"""JPEG XL output through the ``cjxl`` command-line encoder."""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from typing import Callable, Sequence

from PIL import Image

from .base import EncodeResponse
from ..codec import CODEC_ERRORS, encode
from ..config import EncodingConfig, ExternalEncoderConfig
from ..errors import ConversionError
from ..formats import FormatId, FormatSpec
from ..utils import atomic_write_bytes, intermediate_path

Runner = Callable[[Sequence[str], bool], int]
ProgressFn = Callable[[str], None]


def run_external_encoder(args: Sequence[str], verbose: bool = False) -> int:
    """Run the encoder to completion; child output is shown only when verbose."""

    stream = None if verbose else subprocess.DEVNULL
    completed = subprocess.run(list(args), stdout=stream, stderr=stream, check=False)
    return completed.returncode


def encoder_available(command: str) -> bool:
    return shutil.which(command) is not None


class ExternalEncoder:
    def __init__(
        self,
        spec: FormatSpec,
        config: ExternalEncoderConfig,
        encoding: EncodingConfig,
        *,
        runner: Runner = run_external_encoder,
        progress: ProgressFn | None = None,
    ) -> None:
        self.spec = spec
        self._config = config
        self._encoding = encoding
        self._runner = runner
        self._progress = progress or (lambda _: None)

    def command_for(self, source: Path, destination: Path) -> list[str]:
        return [self._config.command, *self._config.args, str(source), str(destination)]

    def write(self, image: Image.Image, output_path: Path, *, verbose: bool = False) -> EncodeResponse:
        temp_path = intermediate_path(output_path, self._config.intermediate_suffix)
        if verbose:
            self._progress(f"🔧 Creating intermediate PNG for JXL: {temp_path}")
        try:
            payload = encode(image, FormatId.PNG, self._encoding)
        except CODEC_ERRORS as exc:
            raise ConversionError("ENCODE_FAILED", f"Intermediate PNG encoder error: {exc}") from exc
        try:
            atomic_write_bytes(temp_path, payload)
        except OSError as exc:
            raise ConversionError("WRITE_FAILED", f"Could not write {temp_path}: {exc}") from exc

        command = self.command_for(temp_path, output_path)
        if verbose:
            self._progress(f"📦 Running: {' '.join(command)}")
        try:
            exit_code = self._runner(command, verbose)
        except OSError as exc:
            raise ConversionError(
                "EXTERNAL_LAUNCH", f"{self._config.command} error: {exc}"
            ) from exc
        if exit_code != 0:
            raise ConversionError(
                "EXTERNAL_EXIT", f"{self._config.command} exited with code {exit_code}"
            )

        temp_path.unlink(missing_ok=True)
        size = output_path.stat().st_size if output_path.exists() else 0
        return EncodeResponse(output_path=output_path, size_bytes=size)
