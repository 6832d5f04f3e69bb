"""Text helpers for human-readable output."""

from __future__ import annotations

_SIZE_UNITS = ("KB", "MB", "GB", "TB", "PB", "EB")


def truncate_middle(text: str, max_length: int, *, mesial: str = "…") -> str:
    """Shorten text by cutting out its middle.

    Keeps the beginning and the end, which for paths and log lines carry the
    most information.
    """
    if not text:
        return ""
    if max_length <= 0 or len(text) <= max_length:
        return text

    half = max_length // 2
    if half > 1:
        return f"{text[:half].strip()}{mesial}{text[-half:].strip()}"
    return f"{text[:max_length].strip()}{mesial}"


def readable_duration(seconds: float, *, report_milliseconds: bool = False) -> str:
    """Describe a duration the way a person would say it."""
    if seconds < 1:
        if report_milliseconds:
            return f"{seconds * 1000:,.1f} milliseconds"
        return "less than one second"
    if seconds < 60:
        whole = int(seconds)
        return "one second" if whole == 1 else f"{whole} seconds"
    if seconds < 120:
        return "a minute"
    if seconds < 3000:
        return f"{int(seconds // 60)} minutes"
    if seconds < 5400:
        return "an hour"
    if seconds < 86400:
        return f"{int(seconds // 3600)} hours"
    if seconds < 172800:
        return "one day"
    days = int(seconds // 86400)
    if days < 30:
        return f"{days} days"
    if days < 360:
        months = days // 30
        return "one month" if months <= 1 else f"{months} months"
    years = days // 365
    return "one year" if years <= 1 else f"{years} years"


def file_size(num_bytes: int) -> str:
    """Format a byte count with a binary unit."""
    if num_bytes < 1024:
        return f"{num_bytes} Bytes"
    size = float(num_bytes)
    for unit in _SIZE_UNITS:
        size /= 1024
        if size < 1024 or unit == _SIZE_UNITS[-1]:
            return f"{size:.0f}{unit}"
    return f"{size:.0f}{_SIZE_UNITS[-1]}"


def format_percent(fraction: float) -> str:
    return f"{fraction * 100:g}%"
