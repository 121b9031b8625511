"""Menu definitions."""

from __future__ import annotations

from oswriter.domain import MediaType

from .model import MenuItem, MenuScreen

EXIT_KEY = "0"
CREATE_MEDIA_KEY = "1"
CHECK_UPDATES_KEY = "2"

MAIN_MENU = MenuScreen(
    screen_id="main",
    title="What would you like to do?",
    items=[
        MenuItem(CREATE_MEDIA_KEY, "Create a bootable USB drive"),
        MenuItem(CHECK_UPDATES_KEY, "Check for updates"),
        MenuItem(EXIT_KEY, "Exit"),
    ],
    prompt="Enter your choice (0-2): ",
)

MEDIA_MENU = MenuScreen(
    screen_id="media",
    title="Select the operating system you want to install:",
    items=[
        MenuItem(MediaType.LINUX.value, "Ubuntu/Debian/Other Linux distributions (ISO)"),
        MenuItem(MediaType.WINDOWS.value, "Windows (ISO)"),
        MenuItem(MediaType.MULTIBOOT.value, "Ventoy (for multiple operating systems)"),
        MenuItem(MediaType.CUSTOM.value, "Custom image (using dd)"),
        MenuItem(EXIT_KEY, "Exit"),
    ],
    prompt="Enter your choice (0-4): ",
)
