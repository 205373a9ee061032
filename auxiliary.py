#!/usr/bin/env python3
"""
Auxiliary utility functions for megethos

Size and path formatting shared by the scanner output and the status console.
"""

import pathlib
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

MEGABYTE = 1024**2


def format_megabytes(size_bytes: int) -> str:
    """Format a blob size as the record size label

    Args:
        size_bytes: Size in bytes

    Returns:
        Size in MB rounded half-up to one decimal place, e.g. "2.0MB" or "0.3MB"
    """
    megabytes = Decimal(repr(size_bytes / MEGABYTE))
    return f"{megabytes.quantize(Decimal('0.1'), rounding=ROUND_HALF_UP)}MB"


def format_bytes(size_bytes: int) -> str:
    """Format byte size into human-readable string

    Args:
        size_bytes: Size in bytes to format

    Returns:
        Formatted string like "1.2 GiB", "345.0 MiB", "12.0 KiB", or "789 B"
    """
    if size_bytes >= 1024**3:
        return f"{size_bytes / (1024**3):.1f} GiB"
    if size_bytes >= MEGABYTE:
        return f"{size_bytes / MEGABYTE:.1f} MiB"
    if size_bytes >= 1024:
        return f"{size_bytes / 1024:.1f} KiB"
    return f"{size_bytes} B"


def format_path_for_display(path: pathlib.Path, home_path: Optional[str] = None) -> str:
    """Show a repository location with the home directory replaced by ~"""
    if home_path is None:
        home_path = str(pathlib.Path.home())

    return str(path.resolve()).replace(home_path, "~")
