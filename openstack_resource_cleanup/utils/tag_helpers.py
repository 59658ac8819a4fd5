"""Tag formatting helpers."""

from __future__ import annotations


def format_tag(key: str, value: str) -> str:
    """Render a tag the way the installer writes it on network resources."""
    return f"{key}={value}"
