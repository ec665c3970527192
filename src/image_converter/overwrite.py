"""Interactive overwrite policy for existing output files."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Callable

from rich.console import Console

PromptFn = Callable[[Path], str]


class OverwriteDecision(str, Enum):
    YES = "yes"
    NO = "no"
    ALL = "all"
    QUIT = "quit"


class WriteVerdict(str, Enum):
    ALLOWED = "allowed"
    DENIED = "denied"
    ABORT = "abort"


class ArbiterState(str, Enum):
    FRESH = "fresh"
    ALL = "all"


_ANSWERS: dict[str, OverwriteDecision] = {
    "y": OverwriteDecision.YES,
    "yes": OverwriteDecision.YES,
    "n": OverwriteDecision.NO,
    "no": OverwriteDecision.NO,
    "a": OverwriteDecision.ALL,
    "all": OverwriteDecision.ALL,
    "q": OverwriteDecision.QUIT,
    "quit": OverwriteDecision.QUIT,
}


def parse_decision(answer: str | None) -> OverwriteDecision:
    """Map operator input to a decision; anything unrecognised means no."""

    if answer is None:
        return OverwriteDecision.NO
    return _ANSWERS.get(answer.strip().lower(), OverwriteDecision.NO)


def console_prompt(path: Path, console: Console | None = None) -> str:
    console = console or Console()
    console.print(f"⚠️  File already exists: {path}", markup=False, highlight=False)
    try:
        return console.input("Overwrite? [y]es / [n]o / [a]ll / [q]uit: ", markup=False)
    except EOFError:
        return ""


class OverwriteArbiter:
    def __init__(self, prompt: PromptFn = console_prompt) -> None:
        self._prompt = prompt
        self._state = ArbiterState.FRESH

    @property
    def state(self) -> ArbiterState:
        return self._state

    def check_write(self, path: Path) -> WriteVerdict:
        if self._state is ArbiterState.ALL or not path.exists():
            return WriteVerdict.ALLOWED
        decision = parse_decision(self._prompt(path))
        if decision is OverwriteDecision.YES:
            return WriteVerdict.ALLOWED
        if decision is OverwriteDecision.ALL:
            self._state = ArbiterState.ALL
            return WriteVerdict.ALLOWED
        if decision is OverwriteDecision.QUIT:
            return WriteVerdict.ABORT
        return WriteVerdict.DENIED


__all__ = [
    "ArbiterState",
    "OverwriteArbiter",
    "OverwriteDecision",
    "PromptFn",
    "WriteVerdict",
    "console_prompt",
    "parse_decision",
]
