"""Formatting utilities for display values."""


def format_currency(value: float) -> str:
    """Format a float as USD currency."""
    return f"${value:,.2f}"


def format_elapsed(seconds: int) -> str:
    """Format a running timer as HH:MM:SS."""
    seconds = max(int(seconds), 0)
    hours, rem = divmod(seconds, 3600)
    minutes, secs = divmod(rem, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def format_duration(minutes: int) -> str:
    """Format a logged duration like '2h 15m'."""
    hours, mins = divmod(max(int(minutes), 0), 60)
    return f"{hours}h {mins}m"
