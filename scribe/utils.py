from datetime import datetime, timezone

# -------------------------------------------------------------- #
# Time Helpers
# -------------------------------------------------------------- #


def utc_now() -> datetime:
    """Get the current UTC timestamp."""
    return datetime.now(timezone.utc)


def to_iso_utc(moment: datetime) -> str:
    """Format a datetime as ISO-8601 UTC with milliseconds and a trailing ``Z``.

    Example:
        >>> to_iso_utc(datetime(2025, 3, 1, 19, 30, tzinfo=timezone.utc))
        '2025-03-01T19:30:00.000Z'
    """
    if moment.tzinfo is None:
        raise ValueError("Timestamp must be timezone-aware")
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def utc_now_iso() -> str:
    return to_iso_utc(utc_now())


# -------------------------------------------------------------- #
# Reply Formatting
# -------------------------------------------------------------- #


def format_character_note(name: str, note: str | None) -> str:
    """Reply text for a character note lookup."""
    if note:
        return f"**{name}**:\n{note}"
    return f"No info found for {name}."
