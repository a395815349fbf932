"""
capacity.py
Per-role capacity, event visibility and the viewer's event history.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import NamedTuple
from urllib.parse import urlencode

from .roles import Role, policy
from .types import EventType, PayasoEvent

CATEGORIES = ("all", "training", "visit")


class Slot(NamedTuple):
    taken: int
    max: int


class History(NamedTuple):
    upcoming: list
    past: list


def capacity_for_role(event: PayasoEvent, role) -> Slot:
    if event.type == EventType.training:
        return Slot(event.total_attendees, event.total_capacity)
    return Slot(
        policy.capacity_of(event.attendees, role),
        policy.capacity_of(event.capacity, role),
    )


def is_full(event: PayasoEvent, role) -> bool:
    # a registered viewer already holds a spot
    slot = capacity_for_role(event, role)
    return slot.taken >= slot.max and not event.registered


def is_visible(event: PayasoEvent, role) -> bool:
    if policy.is_administrative(role):
        return True
    if event.type == EventType.training:
        return True
    return policy.capacity_of(event.capacity, role) > 0


def matches_category(event: PayasoEvent, category: str) -> bool:
    if category in (None, "", "all"):
        return True
    return event.type.value == category


def filter_events(events, role, category="all"):
    visible = [e for e in events if is_visible(e, role)]
    return [e for e in visible if matches_category(e, category)]


def partition_history(events, now: datetime | None = None) -> History:
    """Split the viewer's registered events into upcoming and past."""
    now = now or datetime.now()
    mine = [e for e in events if e.registered]
    upcoming = sorted((e for e in mine if e.date >= now), key=lambda e: e.date)
    past = sorted((e for e in mine if e.date < now), key=lambda e: e.date, reverse=True)
    return History(upcoming, past)


def next_mission(history: History):
    return history.upcoming[0] if history.upcoming else None


def calendar_link(event: PayasoEvent, role=None, duration_hours=2) -> str:
    """Google Calendar template link for an event (two hours by default)."""
    fmt = "%Y%m%dT%H%M%S"
    start = event.date
    end = start + timedelta(hours=duration_hours)
    details = event.description
    if role is not None:
        details = f"{details}\n\nRol: {Role.parse(role).label}"
    query = urlencode({
        "action": "TEMPLATE",
        "text": event.title,
        "dates": f"{start.strftime(fmt)}/{end.strftime(fmt)}",
        "details": details,
        "location": event.location,
    })
    return f"https://calendar.google.com/calendar/render?{query}"