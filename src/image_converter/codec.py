"""Thin wrapper over Pillow's decode/encode primitives."""

from __future__ import annotations

import io
from dataclasses import dataclass
from typing import Any

from PIL import Image, ImageCms, features

from .config import EncodingConfig
from .formats import FormatId, spec_for

ORIENTATION_TAG = 0x0112

# Pillow raises these for corrupt, truncated or unsupported payloads.
CODEC_ERRORS: tuple[type[BaseException], ...] = (
    OSError,
    ValueError,
    KeyError,
    SyntaxError,
    Image.DecompressionBombError,
)

# Pillow feature names backing each native format.
_FEATURES: dict[FormatId, str] = {
    FormatId.JPG: "jpg",
    FormatId.PNG: "zlib",
    FormatId.WEBP: "webp",
    FormatId.AVIF: "avif",
}

_ENCODABLE_MODES: dict[FormatId, frozenset[str]] = {
    FormatId.JPG: frozenset({"L", "RGB", "CMYK"}),
    FormatId.PNG: frozenset({"1", "L", "LA", "I", "I;16", "RGB", "RGBA"}),
    FormatId.WEBP: frozenset({"RGB", "RGBA"}),
    FormatId.AVIF: frozenset({"RGB", "RGBA"}),
}


@dataclass(slots=True)
class DecodedImage:
    image: Image.Image
    orientation: int = 1

    @property
    def size(self) -> tuple[int, int]:
        return self.image.size


def decode(data: bytes) -> DecodedImage:
    with Image.open(io.BytesIO(data)) as opened:
        opened.load()
        orientation = int(opened.getexif().get(ORIENTATION_TAG, 1) or 1)
        image = _normalize_mode(opened)
    return DecodedImage(image=image, orientation=orientation)


def encode(image: Image.Image, format_id: FormatId, config: EncodingConfig) -> bytes:
    spec = spec_for(format_id)
    prepared = _prepare_mode(image, format_id)
    if "icc_profile" in prepared.info and matching_icc_profile(prepared) is None:
        # Some plugins fall back to info["icc_profile"] when the option is absent.
        prepared = prepared.copy()
        del prepared.info["icc_profile"]
    buffer = io.BytesIO()
    prepared.save(buffer, format=spec.pillow_format, **save_options(prepared, format_id, config))
    return buffer.getvalue()


def save_options(image: Image.Image, format_id: FormatId, config: EncodingConfig) -> dict[str, Any]:
    options: dict[str, Any]
    if format_id is FormatId.JPG:
        options = {"quality": config.jpeg_quality, "optimize": True}
    elif format_id is FormatId.PNG:
        options = {"compress_level": config.png_compress_level}
    elif format_id is FormatId.WEBP:
        options = {"quality": config.webp_quality}
    elif format_id is FormatId.AVIF:
        options = {"quality": config.avif_quality}
    else:
        raise ValueError(f"{format_id.value} has no native encoder")
    icc = matching_icc_profile(image)
    if icc:
        options["icc_profile"] = icc
    return options


def matching_icc_profile(image: Image.Image) -> bytes | None:
    """Return the embedded ICC profile only while it still describes the pixel data."""

    icc = image.info.get("icc_profile")
    if not icc:
        return None
    try:
        profile = ImageCms.ImageCmsProfile(io.BytesIO(icc))
    except (OSError, ImageCms.PyCMSError):
        return None
    if profile.profile.xcolor_space.strip() != _colour_space(image.mode):
        return None
    return icc


def _colour_space(mode: str) -> str:
    if mode == "CMYK":
        return "CMYK"
    if mode in {"1", "L", "LA", "I", "I;16", "F"}:
        return "GRAY"
    return "RGB"


def native_support(format_id: FormatId) -> bool:
    feature = _FEATURES.get(format_id)
    if feature is None:
        return False
    return bool(features.check(feature))


def _normalize_mode(image: Image.Image) -> Image.Image:
    if image.mode in {"L", "RGB", "RGBA", "CMYK"}:
        return image.copy()
    if image.mode == "P":
        has_alpha = "transparency" in image.info
        return image.convert("RGBA" if has_alpha else "RGB")
    return image.convert("RGBA" if "A" in image.getbands() else "RGB")


def _prepare_mode(image: Image.Image, format_id: FormatId) -> Image.Image:
    allowed = _ENCODABLE_MODES.get(format_id)
    if allowed is None or image.mode in allowed:
        return image
    if format_id is FormatId.JPG:
        return image.convert("RGB")
    return image.convert("RGBA" if "A" in image.getbands() else "RGB")


__all__ = [
    "CODEC_ERRORS",
    "DecodedImage",
    "decode",
    "encode",
    "matching_icc_profile",
    "native_support",
    "save_options",
]
