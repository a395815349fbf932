"""
compliance.py
Monthly dues: month labels, per-user compliance and the treasury overview.
"""

from __future__ import annotations

import re
from datetime import date

from .types import PaymentStatus

SPANISH_MONTHS = (
    "enero", "febrero", "marzo", "abril", "mayo", "junio",
    "julio", "agosto", "septiembre", "octubre", "noviembre", "diciembre",
)

STATUS_FILTERS = ("all", "uptodate", "overdue", "exempt")


def month_label(day: date | None = None) -> str:
    """'Junio 2024' style label for the calendar month containing ``day``."""
    day = day or date.today()
    return f"{SPANISH_MONTHS[day.month - 1].capitalize()} {day.year}"


def normalize_label(label: str) -> str:
    # "junio de 2024" and "Junio 2024" name the same month
    label = " ".join((label or "").lower().split())
    return re.sub(r"\s+de\s+(?=\d)", " ", label)


def same_month(label: str, other: str) -> bool:
    return normalize_label(label) == normalize_label(other)


def paid_only(payments):
    return [p for p in payments if p.status == PaymentStatus.paid]


def total_paid(payments) -> float:
    return sum(p.amount for p in paid_only(payments))


def is_compliant(user, payments, today: date | None = None) -> bool:
    if user.exempt_from_fees:
        return True
    current = month_label(today)
    return any(
        p.user_id == user.id and same_month(p.month, current)
        for p in paid_only(payments)
    )


def last_paid_month(payments, default="Sin pagos"):
    paid = sorted(paid_only(payments), key=lambda p: p.date_paid or date.min, reverse=True)
    return paid[0].month if paid else default


def user_dues(user, payments, today=None) -> dict:
    mine = [p for p in payments if p.user_id == user.id]
    return {
        "user_id": user.id,
        "full_name": user.full_name,
        "exempt_from_fees": user.exempt_from_fees,
        "is_up_to_date": is_compliant(user, mine, today),
        "total_paid": total_paid(mine),
        "last_payment_month": last_paid_month(mine),
    }


def _matches_status(row, status_filter):
    if status_filter == "uptodate":
        return row["is_up_to_date"] and not row["exempt_from_fees"]
    if status_filter == "overdue":
        return not row["is_up_to_date"] and not row["exempt_from_fees"]
    if status_filter == "exempt":
        return row["exempt_from_fees"]
    return True


def treasury_summary(users, payments, today=None, monthly_fee=0,
                     status_filter="all", search="") -> dict:
    """Dues overview for active users; exempt users are left out of the rates."""
    current = month_label(today)
    rows = [user_dues(u, payments, today) for u in users if u.is_active]
    eligible = [r for r in rows if not r["exempt_from_fees"]]
    up_to_date = sum(1 for r in eligible if r["is_up_to_date"])

    collected = sum(
        p.amount for p in paid_only(payments) if same_month(p.month, current)
    )
    pending = [p for p in payments if p.status == PaymentStatus.pending_approval]

    needle = (search or "").strip().lower()
    emails = {u.id: (u.email or "").lower() for u in users}
    filtered = [
        r for r in rows
        if _matches_status(r, status_filter)
        and (not needle or needle in r["full_name"].lower() or needle in emails.get(r["user_id"], ""))
    ]

    return {
        "current_month": current,
        "monthly_fee": monthly_fee,
        "collected_this_month": collected,
        "pending_payments": pending,
        "up_to_date_count": up_to_date,
        "overdue_count": len(eligible) - up_to_date,
        "compliance_rate": round(up_to_date / len(eligible) * 100) if eligible else 0,
        "users": filtered,
    }
