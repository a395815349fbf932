"""
reports.py
Read-only rollups for the admin dashboard.
"""

from __future__ import annotations

from collections import Counter

from .roles import Role, policy
from .types import EventType, PaymentStatus

MONTH_NAMES = ['Ene', 'Feb', 'Mar', 'Abr', 'May', 'Jun',
               'Jul', 'Ago', 'Sep', 'Oct', 'Nov', 'Dic']
WEEKDAY_NAMES = ['Dom', 'Lun', 'Mar', 'Mié', 'Jue', 'Vie', 'Sáb']


def role_distribution(users):
    counts = Counter(u.role for u in users)
    return [
        {"name": "Dr. Payaso", "value": counts[Role.dr_payaso]},
        {"name": "Reclutas", "value": counts[Role.recruit]},
        {"name": "Fotógrafos", "value": counts[Role.photographer]},
        {"name": "Staff", "value": sum(counts[r] for r in policy.staff)},
    ]


def _payment_month_index(label):
    # loose join: first three letters of the month word
    words = (label or "").split()
    if not words:
        return None
    prefix = words[0][:3].lower()
    for idx, name in enumerate(MONTH_NAMES):
        if name.lower() == prefix:
            return idx
    return None


def monthly_activity(events, payments):
    months = [{"name": m, "visits": 0, "trainings": 0, "financial": 0} for m in MONTH_NAMES]
    for event in events:
        bucket = months[event.date.month - 1]
        if event.type == EventType.visit:
            bucket["visits"] += 1
        else:
            bucket["trainings"] += 1

    for payment in payments:
        if payment.status != PaymentStatus.paid:
            continue
        idx = _payment_month_index(payment.month)
        if idx is not None:
            months[idx]["financial"] += payment.amount
    return months


def weekday_activity(events):
    days = [{"name": d, "count": 0} for d in WEEKDAY_NAMES]
    for event in events:
        if event.type == EventType.visit:
            # weekday() starts on Monday, the chart starts on Sunday
            days[(event.date.weekday() + 1) % 7]["count"] += 1
    return days


def top_locations(events, limit=5):
    counts = Counter(e.location for e in events if e.location)
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [{"name": name, "count": count} for name, count in ranked[:limit]]


def dashboard_stats(users, events, payments, top=5) -> dict:
    users, events, payments = list(users or []), list(events or []), list(payments or [])
    return {
        "total_volunteers": len(users),
        "active_volunteers": sum(1 for u in users if u.is_active),
        "role_distribution": role_distribution(users),
        "monthly_visits": monthly_activity(events, payments),
        "weekday_activity": weekday_activity(events),
        "top_locations": top_locations(events, top),
    }
