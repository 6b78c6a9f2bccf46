"""Version information for streamdash."""

__version__ = "0.1.0"
