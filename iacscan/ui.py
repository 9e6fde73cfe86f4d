"""Progress and status output of the IaC test command."""

from __future__ import annotations

import logging
import os
import sys
from typing import Protocol

TITLE = "Snyk Infrastructure As Code"
PROGRESS_TEXT = "Snyk testing Infrastructure as Code configuration issues."
COMPLETION_TEXT = "Test completed."
INFINITE_PROGRESS = -1.0

_BOLD = "\x1b[1m"
_GREEN = "\x1b[32m"
_RESET = "\x1b[0m"

_log = logging.getLogger(__name__)


class ProgressBar(Protocol):
    def set_title(self, title: str) -> None: ...

    def update_progress(self, progress: float) -> None: ...

    def clear(self) -> None: ...


class UserInterface(Protocol):
    def output(self, message: str) -> None: ...

    def new_progress_bar(self) -> ProgressBar: ...


def _use_color() -> bool:
    if os.environ.get("NO_COLOR"):
        return False
    isatty = getattr(sys.stdout, "isatty", None)
    return bool(isatty and isatty())


class UI:
    """Shows the title, a progress bar and a completion message, unless disabled."""

    def __init__(
        self,
        backend: UserInterface,
        logger: logging.Logger | None = None,
        disabled: bool = False,
        color: bool | None = None,
    ) -> None:
        self._backend = backend
        self._logger = logger if logger is not None else _log
        self._disabled = disabled
        self._color = _use_color() if color is None else color
        self._bar = backend.new_progress_bar()

    def _style(self, text: str, code: str) -> str:
        return f"{code}{text}{_RESET}" if self._color else text

    def display_title(self) -> None:
        if self._disabled:
            return
        self._backend.output(f"\n{self._style(TITLE, _BOLD)}\n")

    def display_completed(self) -> None:
        if self._disabled:
            return
        self._backend.output(f"{self._style('✔', _GREEN)} {COMPLETION_TEXT}")

    def start_progress_bar(self) -> None:
        if self._disabled:
            return
        self._bar.set_title(PROGRESS_TEXT)
        try:
            self._bar.update_progress(INFINITE_PROGRESS)
        except Exception:
            self._logger.exception("Failed to update progress")

    def clear_progress_bar(self) -> None:
        if self._disabled:
            return
        try:
            self._bar.clear()
        except Exception:
            self._logger.exception("Failed to clear progress")