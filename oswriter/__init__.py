"""Create bootable USB installation media from the terminal."""

from .__version__ import __version__


__all__ = ["__version__"]
