from __future__ import annotations

from typing import Optional

from oswriter.logging import LoggerFactory
from oswriter.storage.exceptions import SelectionCancelledError
from oswriter.ui.console import Console

from .model import MenuScreen

log = LoggerFactory.for_menu()


def render_menu(console: Console, screen: MenuScreen) -> None:
    console.info(screen.title)
    for item in screen.items:
        console.show(f"{item.key}) {item.label}")


def choose(
    console: Console, screen: MenuScreen, max_attempts: Optional[int] = None
) -> str:
    """Show ``screen`` and return the key the operator picked.

    Invalid answers re-prompt; with ``max_attempts`` set, running out of
    attempts cancels.
    """
    render_menu(console, screen)
    prompt = screen.prompt or "Enter your choice: "
    attempts = 0
    while True:
        answer = console.ask(prompt)
        if answer in screen.keys:
            log.debug(f"Menu {screen.screen_id}: picked {answer}")
            return answer
        attempts += 1
        console.error("Invalid option. Please try again.")
        if max_attempts is not None and attempts >= max_attempts:
            raise SelectionCancelledError(
                f"No valid option chosen after {attempts} attempts."
            )
