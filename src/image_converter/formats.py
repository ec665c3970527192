from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class FormatId(str, Enum):
    JPG = "jpg"
    PNG = "png"
    WEBP = "webp"
    AVIF = "avif"
    JPEGXL = "jpegxl"


class Strategy(str, Enum):
    NATIVE = "native"
    EXTERNAL = "external"


@dataclass(frozen=True, slots=True)
class FormatSpec:
    format_id: FormatId
    extension: str
    pillow_format: str
    strategy: Strategy
    decodable: bool


# Native formats come first so that "all" expands deterministically.
REGISTRY: dict[FormatId, FormatSpec] = {
    FormatId.JPG: FormatSpec(FormatId.JPG, ".jpg", "JPEG", Strategy.NATIVE, True),
    FormatId.PNG: FormatSpec(FormatId.PNG, ".png", "PNG", Strategy.NATIVE, True),
    FormatId.WEBP: FormatSpec(FormatId.WEBP, ".webp", "WEBP", Strategy.NATIVE, True),
    FormatId.AVIF: FormatSpec(FormatId.AVIF, ".avif", "AVIF", Strategy.NATIVE, True),
    FormatId.JPEGXL: FormatSpec(FormatId.JPEGXL, ".jxl", "JXL", Strategy.EXTERNAL, False),
}

_missing = set(FormatId) - set(REGISTRY)
if _missing:
    raise RuntimeError(f"Format registry is missing entries for: {sorted(m.value for m in _missing)}")

EXTENSION_MAP: dict[str, FormatId] = {
    ".jpg": FormatId.JPG,
    ".jpeg": FormatId.JPG,
    ".png": FormatId.PNG,
    ".webp": FormatId.WEBP,
    ".avif": FormatId.AVIF,
    ".jxl": FormatId.JPEGXL,
}

SOURCE_EXTENSIONS: frozenset[str] = frozenset(
    ext for ext, format_id in EXTENSION_MAP.items() if REGISTRY[format_id].decodable
)

ALL_TOKEN = "all"


class FormatError(ValueError):
    """Raised when requested target formats cannot be resolved."""

    def __init__(self, message: str, invalid: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.invalid = tuple(invalid)


def all_formats() -> tuple[FormatId, ...]:
    native = [spec.format_id for spec in REGISTRY.values() if spec.strategy is Strategy.NATIVE]
    external = [spec.format_id for spec in REGISTRY.values() if spec.strategy is Strategy.EXTERNAL]
    return tuple(native + external)


def classify(path: Path) -> FormatId | None:
    return EXTENSION_MAP.get(path.suffix.lower())


def is_decodable(path: Path) -> bool:
    return path.suffix.lower() in SOURCE_EXTENSIONS


def spec_for(format_id: FormatId) -> FormatSpec:
    return REGISTRY[format_id]


def strategy_for(format_id: FormatId) -> Strategy:
    return REGISTRY[format_id].strategy


def parse_format_tokens(tokens: Iterable[str]) -> tuple[FormatId, ...]:
    normalized = [token.strip().lower() for token in tokens if token.strip()]
    if not normalized:
        raise FormatError("No target formats given. Use --formats with one of: " + _choices())
    if ALL_TOKEN in normalized:
        return all_formats()

    known = {format_id.value: format_id for format_id in FormatId}
    invalid = [token for token in normalized if token not in known]
    if invalid:
        raise FormatError(f"Invalid formats: {', '.join(invalid)}", invalid)

    ordered: dict[FormatId, None] = {}
    for token in normalized:
        ordered.setdefault(known[token], None)
    return tuple(ordered)


def output_path_for(format_id: FormatId, source: Path, output_dir: Path | None = None) -> Path:
    target_dir = output_dir if output_dir is not None else source.parent
    return target_dir / f"{source.stem}{REGISTRY[format_id].extension}"


def _choices() -> str:
    return ", ".join([format_id.value for format_id in FormatId] + [ALL_TOKEN])


__all__ = [
    "ALL_TOKEN",
    "EXTENSION_MAP",
    "FormatError",
    "FormatId",
    "FormatSpec",
    "REGISTRY",
    "SOURCE_EXTENSIONS",
    "Strategy",
    "all_formats",
    "classify",
    "is_decodable",
    "output_path_for",
    "parse_format_tokens",
    "spec_for",
    "strategy_for",
]
