"""Human readable rendering of minute durations."""

MINUTES_PER_HOUR = 60
MINUTES_PER_DAY = 24 * MINUTES_PER_HOUR


def _unit(amount: int, name: str) -> str:
    return f"{amount} {name}" if amount == 1 else f"{amount} {name}s"


def format_duration(minutes: int) -> str:
    """Convert a minute count into a string such as ``"1 day, 2 hours"``.

    Only the two largest non-zero units among days, hours and minutes are
    kept; smaller remainders are dropped.

    Args:
        minutes: Non-negative number of minutes.

    Returns:
        The formatted duration, ``"0 minutes"`` for zero.

    Raises:
        ValueError: If ``minutes`` is negative.
    """
    if minutes < 0:
        raise ValueError(f"Duration must be non-negative, got {minutes}")

    days, remainder = divmod(minutes, MINUTES_PER_DAY)
    hours, mins = divmod(remainder, MINUTES_PER_HOUR)

    parts = [
        _unit(amount, name)
        for amount, name in ((days, "day"), (hours, "hour"), (mins, "minute"))
        if amount
    ]
    if not parts:
        return "0 minutes"
    return ", ".join(parts[:2])
