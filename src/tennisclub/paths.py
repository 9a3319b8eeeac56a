"""
Path utilities for tennisclub.
"""

from pathlib import Path


def get_package_dir() -> Path:
    """Directory of the installed tennisclub package."""
    return Path(__file__).parent


def get_locales_dir() -> Path:
    """Get the directory of the YAML string tables (shipped inside the package)."""
    return get_package_dir() / "locales"

