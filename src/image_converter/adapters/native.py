from __future__ import annotations

from pathlib import Path

from PIL import Image

from .base import EncodeResponse
from ..codec import CODEC_ERRORS, encode
from ..config import EncodingConfig
from ..errors import ConversionError
from ..formats import FormatSpec
from ..utils import atomic_write_bytes


class NativeEncoder:
    """Encode in memory with Pillow, then swap the bytes into place."""

    def __init__(self, spec: FormatSpec, config: EncodingConfig) -> None:
        self.spec = spec
        self._config = config

    def write(self, image: Image.Image, output_path: Path, *, verbose: bool = False) -> EncodeResponse:
        try:
            payload = encode(image, self.spec.format_id, self._config)
        except CODEC_ERRORS as exc:
            raise ConversionError("ENCODE_FAILED", f"{self.spec.pillow_format} encoder error: {exc}") from exc
        try:
            atomic_write_bytes(output_path, payload)
        except OSError as exc:
            raise ConversionError("WRITE_FAILED", f"Could not write {output_path}: {exc}") from exc
        return EncodeResponse(output_path=output_path, size_bytes=len(payload))
