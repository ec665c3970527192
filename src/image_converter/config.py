from __future__ import annotations

import json
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Mapping


CONFIG_FILE = Path("config.toml")


class ConfigError(ValueError):
    """Raised when config.toml holds values the converter cannot use."""


@dataclass(slots=True)
class EncodingConfig:
    jpeg_quality: int = 80
    webp_quality: int = 80
    avif_quality: int = 50
    png_compress_level: int = 6


@dataclass(slots=True)
class ExternalEncoderConfig:
    command: str = "cjxl"
    args: tuple[str, ...] = ()
    intermediate_suffix: str = ".temp.png"


@dataclass(slots=True)
class RuntimeConfig:
    verbose: bool = False


@dataclass(slots=True)
class AppConfig:
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)
    encoding: EncodingConfig = field(default_factory=EncodingConfig)
    external: ExternalEncoderConfig = field(default_factory=ExternalEncoderConfig)


def _read_toml(path: Path) -> Mapping[str, object]:
    if not path.exists():
        return {}
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc


def _bounded_int(data: Mapping[str, object], key: str, default: int, low: int, high: int) -> int:
    raw = data.get(key, default)
    try:
        value = int(raw)  # type: ignore[call-overload]
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{key} must be an integer, got {raw!r}") from exc
    if not low <= value <= high:
        raise ConfigError(f"{key} must be between {low} and {high}, got {value}")
    return value


def _build_encoding(data: Mapping[str, object] | None) -> EncodingConfig:
    if not data:
        return EncodingConfig()
    return EncodingConfig(
        jpeg_quality=_bounded_int(data, "jpeg_quality", 80, 0, 100),
        webp_quality=_bounded_int(data, "webp_quality", 80, 0, 100),
        avif_quality=_bounded_int(data, "avif_quality", 50, 0, 100),
        png_compress_level=_bounded_int(data, "png_compress_level", 6, 0, 9),
    )


def _tuple_of_strings(value: object | None, default: Iterable[str]) -> tuple[str, ...]:
    if not value:
        return tuple(default)
    if isinstance(value, str):
        return (value,)
    if isinstance(value, Iterable):
        return tuple(str(item) for item in value)
    raise ConfigError(f"Unsupported argument list: {value!r}")


def _build_external(data: Mapping[str, object] | None) -> ExternalEncoderConfig:
    if not data:
        return ExternalEncoderConfig()
    command = str(data.get("command", "cjxl")).strip()
    if not command:
        raise ConfigError("external.command cannot be empty")
    suffix = str(data.get("intermediate_suffix", ".temp.png"))
    if not suffix.lower().endswith(".png"):
        raise ConfigError(f"external.intermediate_suffix must end in .png, got {suffix!r}")
    return ExternalEncoderConfig(
        command=command,
        args=_tuple_of_strings(data.get("args"), ()),
        intermediate_suffix=suffix,
    )


def _build_runtime(data: Mapping[str, object] | None) -> RuntimeConfig:
    if not data:
        return RuntimeConfig()
    return RuntimeConfig(verbose=bool(data.get("verbose", False)))


def _section(raw: Mapping[str, object], name: str) -> Mapping[str, object] | None:
    value = raw.get(name)
    return value if isinstance(value, Mapping) else None


def load_config(path: Path | None = None) -> AppConfig:
    path = path or CONFIG_FILE
    raw = _read_toml(path)
    return AppConfig(
        runtime=_build_runtime(_section(raw, "runtime")),
        encoding=_build_encoding(_section(raw, "encoding")),
        external=_build_external(_section(raw, "external")),
    )


def dump_config(config: AppConfig) -> str:
    payload = {
        "runtime": {
            "verbose": config.runtime.verbose,
        },
        "encoding": {
            "jpeg_quality": config.encoding.jpeg_quality,
            "webp_quality": config.encoding.webp_quality,
            "avif_quality": config.encoding.avif_quality,
            "png_compress_level": config.encoding.png_compress_level,
        },
        "external": {
            "command": config.external.command,
            "args": list(config.external.args),
            "intermediate_suffix": config.external.intermediate_suffix,
        },
    }
    return json.dumps(payload, indent=2)
