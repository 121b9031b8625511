from oswriter.menu.definitions import MAIN_MENU, MEDIA_MENU
from oswriter.menu.model import MenuItem, MenuScreen
from oswriter.menu.navigator import choose, render_menu

__all__ = [
    "MAIN_MENU",
    "MEDIA_MENU",
    "MenuItem",
    "MenuScreen",
    "choose",
    "render_menu",
]
