"""
graduation.py
Recruit promotion thresholds.
"""

from __future__ import annotations

from typing import NamedTuple

from ..errors import AlreadyRequested, PermissionDenied, ValidationError
from .roles import Role
from .types import GraduationStatus

REQUIRED_HOURS = 20
REQUIRED_VISITS = 5


class GraduationProgress(NamedTuple):
    hours_pct: float
    visits_pct: float
    eligible: bool


def percent(accumulated, threshold) -> float:
    if threshold <= 0:
        return 100.0
    return min(100.0, 100.0 * accumulated / threshold)


def graduation_progress(stats, required_hours=REQUIRED_HOURS,
                        required_visits=REQUIRED_VISITS) -> GraduationProgress:
    return GraduationProgress(
        hours_pct=percent(stats.training_hours, required_hours),
        visits_pct=percent(stats.visits_count, required_visits),
        eligible=is_eligible(stats, required_hours, required_visits),
    )


def is_eligible(stats, required_hours=REQUIRED_HOURS, required_visits=REQUIRED_VISITS) -> bool:
    return stats.training_hours >= required_hours and stats.visits_count >= required_visits


def check_can_request(user, stats, existing_requests, required_hours=REQUIRED_HOURS,
                      required_visits=REQUIRED_VISITS):
    if Role.recruit not in user.available_roles:
        raise PermissionDenied("Only recruits can request graduation")
    if any(r.user_id == user.id and r.status == GraduationStatus.pending for r in existing_requests):
        raise AlreadyRequested()
    if not is_eligible(stats, required_hours, required_visits):
        raise ValidationError("Training hours or visits below the graduation threshold")


def promoted_roles(roles):
    """Roles after graduation: recruit is replaced by dr_payaso."""
    promoted = [Role.dr_payaso if r == Role.recruit else r for r in roles]
    if Role.dr_payaso not in promoted:
        promoted.append(Role.dr_payaso)
    return tuple(dict.fromkeys(promoted))
