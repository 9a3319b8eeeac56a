"""Tennis club tournament manager: brackets, advancement and standings."""

__version__ = "0.1.0"
