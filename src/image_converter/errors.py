from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import ConversionOutcome


class ConversionError(RuntimeError):
    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code


class ConversionAborted(Exception):
    """Raised when the operator answers "quit" at an overwrite prompt."""

    def __init__(self, outcomes: list[ConversionOutcome] | None = None) -> None:
        super().__init__("Aborted by user.")
        self.outcomes: list[ConversionOutcome] = list(outcomes or [])


__all__ = ["ConversionAborted", "ConversionError"]
