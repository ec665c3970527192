"""Plan and apply the pre-encode image operations.

Operations always run in the same order: orientation (explicit rotation or
EXIF auto-orient, never both), resize, grayscale, then sRGB normalization.
"""

from __future__ import annotations

import io
import math
from dataclasses import dataclass
from typing import Protocol, Sequence

from PIL import Image, ImageCms, ImageOps

from .codec import matching_icc_profile

# EXIF orientations that swap width and height.
_TRANSPOSED_ORIENTATIONS = frozenset({5, 6, 7, 8})

_RIGHT_ANGLE_TRANSPOSES: dict[int, Image.Transpose] = {
    90: Image.Transpose.ROTATE_270,
    180: Image.Transpose.ROTATE_180,
    270: Image.Transpose.ROTATE_90,
}


class TransformError(ValueError):
    """Raised for transform options that can never be applied."""


@dataclass(frozen=True, slots=True)
class TransformSpec:
    width: int | None = None
    height: int | None = None
    allow_enlargement: bool = True
    rotate_degrees: float | None = None
    grayscale: bool = False
    to_srgb: bool = False

    def validate(self) -> None:
        for name, value in (("width", self.width), ("height", self.height)):
            if value is not None and value <= 0:
                raise TransformError(f"Resize {name} must be a positive integer, got {value}")
        if self.rotate_degrees is not None and not math.isfinite(self.rotate_degrees):
            raise TransformError(f"Rotation must be a finite number, got {self.rotate_degrees}")


class Operation(Protocol):
    def apply(self, image: Image.Image) -> Image.Image:  # pragma: no cover - interface
        ...


@dataclass(frozen=True, slots=True)
class AutoOrient:
    orientation: int

    def apply(self, image: Image.Image) -> Image.Image:
        return ImageOps.exif_transpose(image)


@dataclass(frozen=True, slots=True)
class Rotate:
    """Rotate clockwise by ``degrees``; non right angles grow the canvas."""

    degrees: float

    def apply(self, image: Image.Image) -> Image.Image:
        angle = float(self.degrees) % 360
        if angle == 0:
            return image
        if angle.is_integer() and int(angle) in _RIGHT_ANGLE_TRANSPOSES:
            return image.transpose(_RIGHT_ANGLE_TRANSPOSES[int(angle)])
        return image.rotate(-angle, resample=Image.Resampling.BICUBIC, expand=True)


@dataclass(frozen=True, slots=True)
class Resize:
    width: int
    height: int
    crop: bool = False

    def apply(self, image: Image.Image) -> Image.Image:
        size = (self.width, self.height)
        if self.crop:
            return ImageOps.fit(image, size, method=Image.Resampling.LANCZOS)
        return image.resize(size, resample=Image.Resampling.LANCZOS)


@dataclass(frozen=True, slots=True)
class Grayscale:
    def apply(self, image: Image.Image) -> Image.Image:
        alpha = image.getchannel("A") if "A" in image.getbands() else None
        gray = ImageOps.grayscale(image).convert("RGB")
        if alpha is not None:
            gray.putalpha(alpha)
        return gray


@dataclass(frozen=True, slots=True)
class ToSRGB:
    def apply(self, image: Image.Image) -> Image.Image:
        target_mode = "RGBA" if "A" in image.getbands() else "RGB"
        srgb = ImageCms.createProfile("sRGB")
        icc = matching_icc_profile(image)
        if icc and image.mode in {"RGB", "RGBA", "CMYK", "L"}:
            source = ImageCms.ImageCmsProfile(io.BytesIO(icc))
            converted = ImageCms.profileToProfile(image, source, srgb, outputMode=target_mode)
            if converted is None:  # pragma: no cover - only when inPlace=True
                converted = image
        else:
            converted = image.convert(target_mode) if image.mode != target_mode else image.copy()
        converted.info["icc_profile"] = ImageCms.ImageCmsProfile(srgb).tobytes()
        return converted


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def rotated_size(size: tuple[int, int], degrees: float) -> tuple[int, int]:
    width, height = size
    angle = float(degrees) % 360
    if angle in (0, 180):
        return width, height
    if angle in (90, 270):
        return height, width
    # Mirrors the corner projection of Image.rotate(-angle, expand=True).
    radians = -math.radians((-angle) % 360.0)
    a = round(math.cos(radians), 15)
    b = round(math.sin(radians), 15)
    d = round(-math.sin(radians), 15)
    e = round(math.cos(radians), 15)
    cx, cy = width / 2.0, height / 2.0
    c = a * -cx + b * -cy + cx
    f = d * -cx + e * -cy + cy
    xs = [a * x + b * y + c for x, y in ((0, 0), (width, 0), (width, height), (0, height))]
    ys = [d * x + e * y + f for x, y in ((0, 0), (width, 0), (width, height), (0, height))]
    return (
        math.ceil(max(xs)) - math.floor(min(xs)),
        math.ceil(max(ys)) - math.floor(min(ys)),
    )


def oriented_size(size: tuple[int, int], orientation: int) -> tuple[int, int]:
    if orientation in _TRANSPOSED_ORIENTATIONS:
        return size[1], size[0]
    return size


def resize_target(spec: TransformSpec, size: tuple[int, int]) -> tuple[int, int] | None:
    """Return the (width, height) to resize to, or ``None`` to keep ``size``."""

    width, height = spec.width, spec.height
    source_width, source_height = size
    if width is not None and height is not None:
        target = (width, height)
    elif width is not None:
        target = (width, max(1, round_half_up(source_height * width / source_width)))
    elif height is not None:
        target = (max(1, round_half_up(source_width * height / source_height)), height)
    else:
        return None

    if not spec.allow_enlargement and (target[0] > source_width or target[1] > source_height):
        return None
    if target == size:
        return None
    return target


def plan(
    spec: TransformSpec, source_size: tuple[int, int], orientation: int = 1
) -> tuple[Operation, ...]:
    operations: list[Operation] = []
    if spec.rotate_degrees is not None:
        operations.append(Rotate(spec.rotate_degrees))
        size = rotated_size(source_size, spec.rotate_degrees)
    else:
        if orientation != 1:
            operations.append(AutoOrient(orientation))
        size = oriented_size(source_size, orientation)

    target = resize_target(spec, size)
    if target is not None:
        crop = spec.width is not None and spec.height is not None
        operations.append(Resize(target[0], target[1], crop=crop))

    if spec.grayscale:
        operations.append(Grayscale())
    if spec.to_srgb:
        operations.append(ToSRGB())
    return tuple(operations)


def apply_plan(image: Image.Image, operations: Sequence[Operation]) -> Image.Image:
    for operation in operations:
        image = operation.apply(image)
    return image


__all__ = [
    "AutoOrient",
    "Grayscale",
    "Operation",
    "Resize",
    "Rotate",
    "ToSRGB",
    "TransformError",
    "TransformSpec",
    "apply_plan",
    "oriented_size",
    "plan",
    "resize_target",
    "rotated_size",
    "round_half_up",
]
