"""Header clock formatting"""

from datetime import datetime

TITLE = "License Plate Recorder"


def format_header_time(now=None):
    """
    Format the header clock, e.g. 'Sun, Jan 7, 2024, 02:30:25 PM'

    Args:
        now: datetime to format, defaults to the current local time
    """
    now = now or datetime.now()
    return (
        f"{now:%a}, {now:%b} {now.day}, {now.year}, "
        f"{now:%I}:{now:%M}:{now:%S} {now:%p}"
    )
