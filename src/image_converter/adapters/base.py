from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from PIL import Image

from ..formats import FormatSpec


@dataclass(slots=True)
class EncodeResponse:
    output_path: Path
    size_bytes: int


class Encoder(Protocol):
    spec: FormatSpec

    def write(
        self, image: Image.Image, output_path: Path, *, verbose: bool = False
    ) -> EncodeResponse:  # pragma: no cover - interface
        ...
