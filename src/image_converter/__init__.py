"""Batch image-format converter built on Pillow and cjxl."""

from .config import AppConfig, load_config
from .core import ConversionService
from .formats import FormatId, parse_format_tokens
from .models import BatchConversionResult, ConversionOutcome, ConversionRequest
from .overwrite import OverwriteArbiter
from .transforms import TransformSpec

__version__ = "0.1.0"

__all__ = [
    "AppConfig",
    "BatchConversionResult",
    "ConversionOutcome",
    "ConversionRequest",
    "ConversionService",
    "FormatId",
    "OverwriteArbiter",
    "TransformSpec",
    "__version__",
    "load_config",
    "parse_format_tokens",
]
