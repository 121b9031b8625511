"""Version information for oswriter."""

__version__ = "0.5.0"
