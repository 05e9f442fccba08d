"""Date and time helpers for result listings."""

from __future__ import annotations

from datetime import datetime, timezone


def format_date_time(moment: datetime | None) -> tuple[str, str]:
    """Return ``(DD/MM/YYYY, HH:MM)`` in UTC; naive datetimes are taken as UTC."""
    if moment is None:
        return "Unknown date", "Unknown time"
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%d/%m/%Y"), moment.strftime("%H:%M")


def format_elapsed(start: datetime, end: datetime) -> str:
    """Human-readable age of ``start`` relative to ``end``, e.g. ``"3 hours ago"``."""
    seconds = int((end - start).total_seconds())
    if seconds < 0:
        raise ValueError("End time cannot be before start time")

    minutes = seconds // 60
    hours = minutes // 60
    days = hours // 24
    for amount, unit in ((days, "day"), (hours, "hour"), (minutes, "minute")):
        if amount > 0:
            return f"{amount} {unit}{'' if amount == 1 else 's'} ago"
    return "Just now"
