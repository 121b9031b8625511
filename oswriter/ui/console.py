"""Terminal console used for operator messages and blocking prompts."""

from __future__ import annotations

import sys
from typing import Callable, Optional, TextIO

from oswriter.logging import LoggerFactory
from oswriter.storage.exceptions import SelectionCancelledError

log = LoggerFactory.for_menu()


class Console:
    """Plain-text operator console.

    Messages go to stderr (like the prompts) so stdout stays free for
    anything a caller may want to pipe. Every prompt blocks with no timeout.
    """

    def __init__(
        self,
        input_func: Callable[[str], str] = input,
        stream: Optional[TextIO] = None,
    ):
        self._input = input_func
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        return self._stream or sys.stderr

    def show(self, message: str = "") -> None:
        print(message, file=self.stream, flush=True)

    def info(self, message: str) -> None:
        self.show(message)

    def success(self, message: str) -> None:
        self.show(message)

    def warning(self, message: str) -> None:
        self.show(message)

    def error(self, message: str) -> None:
        self.show(message)

    def ask(self, prompt: str) -> str:
        """Read one line of operator input.

        End of input is treated as the operator walking away.
        """
        try:
            answer = self._input(prompt)
        except EOFError:
            self.show()
            raise SelectionCancelledError() from None
        log.trace(f"{prompt!r} -> {answer!r}")
        return answer.strip()

    def confirm(self, prompt: str) -> bool:
        """Ask a y/n question; only a single ``y`` or ``Y`` counts as yes."""
        return self.ask(f"{prompt} (y/n): ") in ("y", "Y")
