# payaso/utils/dates.py
from datetime import datetime


def naive_local(moment: datetime) -> datetime:
    """Stored datetimes are naive local time; convert aware values to that."""
    if moment.tzinfo is not None:
        return moment.astimezone().replace(tzinfo=None)
    return moment


def parse_iso(value: str) -> datetime:
    """ISO timestamp from a query string, ``Z`` suffix included, as naive local time."""
    value = value.strip()
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    return naive_local(datetime.fromisoformat(value))
