"""
This module contains helper functions for formatting data into human-readable strings
and for matching file extensions. They are used throughout the application, mostly
in log messages and by the input normalizer.
"""

from datetime import timedelta
from pathlib import Path
from typing import Iterable


def format_timedelta(td_object: timedelta) -> str:
    """
    Formats a timedelta object into a "HH:MM:SS.mmm" string.

    GIF jobs usually finish in seconds, so milliseconds are kept.

    Args:
        td_object: The timedelta object to format.

    Returns:
        A string such as "00:00:03.250". Returns "00:00:00.000" if the input is
        not a timedelta.
    """
    if not isinstance(td_object, timedelta):
        return "00:00:00.000"

    total_ms = max(0, int(td_object.total_seconds() * 1000))
    total_seconds, ms = divmod(total_ms, 1000)
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02}:{minutes:02}:{seconds:02}.{ms:03}"


def formatted_size(size_bytes: float) -> str:
    """
    Converts a size in bytes to a human-readable string (e.g., B, KB, MB, GB, TB).

    Args:
        size_bytes: The size of the file in bytes.

    Returns:
        A formatted string with the appropriate unit.
        For example, 1536 becomes "1.50 KB", and 2097152 becomes "2 MB".
    """
    if size_bytes < 0:
        size_bytes = 0

    units = ["B", "KB", "MB", "GB", "TB", "PB"]
    factor = 1024.0

    if size_bytes == 0:
        return "0 B"

    for unit in units:
        if size_bytes < factor:
            if unit == "B":
                return f"{int(size_bytes)} {unit}"
            # "2.00 MB" -> "2 MB"
            return f"{size_bytes:.2f} {unit}".replace(".00", "")
        size_bytes /= factor

    return f"{size_bytes:.2f} {units[-1]}".replace(".00", "")


def normalize_extensions(extensions: Iterable[str]) -> frozenset:
    """Lower-cases extensions and strips any leading dot: {".PNG", "jpg"} -> {"png", "jpg"}."""
    return frozenset(ext.lower().lstrip(".") for ext in extensions if ext)


def contains_any_extensions(file_path_obj: Path, extensions_to_check: Iterable[str]) -> bool:
    """
    Checks if a file's extension is present in a given collection (case-insensitive).

    Args:
        file_path_obj: A `pathlib.Path` object for the file to check.
        extensions_to_check: Extensions with or without the leading dot
                             (e.g., ["png", ".JPG"]).

    Returns:
        True if the file's extension is in the collection, False otherwise.
    """
    normalized_extensions = normalize_extensions(extensions_to_check)
    if not normalized_extensions:
        return False

    file_extension = Path(file_path_obj).suffix.lower().lstrip(".")
    return bool(file_extension) and file_extension in normalized_extensions
