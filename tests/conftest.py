from __future__ import annotations

import hashlib
import io
from pathlib import Path
from typing import Callable, Sequence

import pytest
from PIL import Image
from rich.console import Console

from image_converter.config import AppConfig
from image_converter.core import ConversionService
from image_converter.overwrite import OverwriteArbiter
from image_converter.reporting import Reporter

ImageFactory = Callable[..., Path]


def file_hash(path: Path) -> str:
    return hashlib.md5(path.read_bytes()).hexdigest()


@pytest.fixture
def make_image() -> ImageFactory:
    def _make(
        path: Path,
        size: tuple[int, int] = (100, 50),
        color: tuple[int, ...] = (200, 30, 30),
        *,
        mode: str = "RGB",
        orientation: int | None = None,
    ) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        image = Image.new(mode, size, color)
        params: dict[str, object] = {}
        if orientation is not None:
            exif = Image.Exif()
            exif[0x0112] = orientation
            params["exif"] = exif
        image.save(path, **params)
        return path

    return _make


class FakeRunner:
    """Stands in for cjxl: records each call and writes a placeholder output."""

    def __init__(self, exit_code: int = 0, error: OSError | None = None) -> None:
        self.exit_code = exit_code
        self.error = error
        self.calls: list[list[str]] = []
        self.inputs_existed: list[bool] = []

    def __call__(self, args: Sequence[str], verbose: bool) -> int:
        self.calls.append(list(args))
        self.inputs_existed.append(Path(args[-2]).exists())
        if self.error is not None:
            raise self.error
        if self.exit_code == 0:
            Path(args[-1]).write_bytes(b"\xff\x0ajxl")
        return self.exit_code


class ScriptedPrompt:
    def __init__(self, *answers: str) -> None:
        self._answers = list(answers)
        self.asked: list[Path] = []

    def __call__(self, path: Path) -> str:
        self.asked.append(path)
        if not self._answers:
            raise AssertionError(f"Unexpected overwrite prompt for {path}")
        return self._answers.pop(0)


def quiet_reporter(verbose: bool = False) -> tuple[Reporter, io.StringIO]:
    buffer = io.StringIO()
    console = Console(file=buffer, soft_wrap=True, highlight=False, color_system=None)
    return Reporter(console, console, verbose=verbose), buffer


@pytest.fixture
def build_service() -> Callable[..., tuple[ConversionService, io.StringIO]]:
    def _build(
        *,
        prompt: Callable[[Path], str] | None = None,
        runner: Callable[[Sequence[str], bool], int] | None = None,
        reporter: Reporter | None = None,
        config: AppConfig | None = None,
    ) -> tuple[ConversionService, io.StringIO]:
        buffer = io.StringIO()
        if reporter is None:
            reporter, buffer = quiet_reporter()
        arbiter = OverwriteArbiter(prompt=prompt or ScriptedPrompt())
        service = ConversionService(
            config or AppConfig(),
            arbiter=arbiter,
            reporter=reporter,
            runner=runner or FakeRunner(),
        )
        return service, buffer

    return _build
