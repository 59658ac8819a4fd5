"""OpenStack cluster resource cleanup."""

from .handler import main

__version__ = "1.0.0"
__description__ = "Tag-driven teardown of OpenStack cluster infrastructure"

__all__ = ["main"]
