from __future__ import annotations

from .base import EncodeResponse, Encoder
from .external import (
    ExternalEncoder,
    ProgressFn,
    Runner,
    encoder_available,
    run_external_encoder,
)
from .native import NativeEncoder
from ..config import AppConfig
from ..formats import REGISTRY, FormatId, FormatSpec, Strategy


def build_encoder(
    spec: FormatSpec,
    config: AppConfig,
    *,
    runner: Runner = run_external_encoder,
    progress: ProgressFn | None = None,
) -> Encoder:
    if spec.strategy is Strategy.EXTERNAL:
        return ExternalEncoder(
            spec, config.external, config.encoding, runner=runner, progress=progress
        )
    return NativeEncoder(spec, config.encoding)


def build_encoders(
    config: AppConfig,
    *,
    runner: Runner = run_external_encoder,
    progress: ProgressFn | None = None,
) -> dict[FormatId, Encoder]:
    return {
        format_id: build_encoder(spec, config, runner=runner, progress=progress)
        for format_id, spec in REGISTRY.items()
    }


__all__ = [
    "EncodeResponse",
    "Encoder",
    "ExternalEncoder",
    "NativeEncoder",
    "Runner",
    "build_encoder",
    "build_encoders",
    "encoder_available",
    "run_external_encoder",
]
