"""
state.py
Coordination of a viewer's working set: ordered refreshes, the dashboard
snapshot and the optimistic attendance/registration commands.
"""

from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime

from payaso.domain import AttendanceStatus, EventType, policy
from payaso.domain.registration import (
    Action, RegistrationState, attendance_action, check_can_register, transition, viewer_state,
)
from payaso.errors import PortalError

logger = logging.getLogger(__name__)


class RefreshSequencer:
    """Hands out increasing tokens per viewer; only the newest may commit."""

    def __init__(self):
        self._counter = itertools.count(1)
        self._latest = {}
        self._lock = threading.Lock()

    def issue(self, viewer_id) -> int:
        with self._lock:
            token = next(self._counter)
            self._latest[viewer_id] = token
            return token

    def is_current(self, viewer_id, token) -> bool:
        return self._latest.get(viewer_id) == token

    def commit(self, viewer_id, token, apply) -> bool:
        with self._lock:
            if self._latest.get(viewer_id) != token:
                logger.debug("Dropping superseded refresh %s for viewer %s", token, viewer_id)
                return False
            apply()
            return True


@dataclass(frozen=True)
class DashboardSnapshot:
    events: list
    payments: list
    stats: object
    users: list = field(default_factory=list)
    loaded_at: datetime = field(default_factory=datetime.now)
    stale: bool = False


class DashboardLoader:
    """Loads a viewer's dashboard as one batch.

    A failing batch keeps the last good snapshot, flagged ``stale``. With no
    previous snapshot the error propagates.
    """

    def __init__(self, service, sequencer=None):
        self.service = service
        self.sequencer = sequencer or RefreshSequencer()
        self._snapshots = {}

    def last(self, viewer_id):
        return self._snapshots.get(viewer_id)

    def _fetch(self, user):
        sees_all_payments = policy.can_manage_treasury(user)
        return DashboardSnapshot(
            events=self.service.list_events(user.id),
            payments=self.service.list_payments(None if sees_all_payments else user.id),
            stats=self.service.get_user_stats(user.id),
            users=self.service.list_users() if policy.is_staff(user.role) or user.is_super_admin else [],
        )

    def load(self, user) -> DashboardSnapshot:
        token = self.sequencer.issue(user.id)
        try:
            snapshot = self._fetch(user)
        except PortalError as exc:
            previous = self._snapshots.get(user.id)
            logger.warning("Dashboard batch failed for user %s: %s", user.id, exc.message)
            if previous is None:
                raise
            return replace(previous, stale=True)

        def store():
            self._snapshots[user.id] = snapshot

        if not self.sequencer.commit(user.id, token, store):
            return self._snapshots.get(user.id, snapshot)
        return snapshot


def _with_registration(event, role, registered):
    step = 1 if registered else -1
    attendees = event.attendees
    if event.type == EventType.visit:
        bucket = policy.bucket_for(role)
        attendees = replace(attendees, **{bucket: max(0, getattr(attendees, bucket) + step)})
    return replace(
        event,
        attendees=attendees,
        total_attendees=max(0, event.total_attendees + step),
        registered=registered,
        current_user_status=AttendanceStatus.registered if registered else None,
    )


def _compensate(reload, *args):
    try:
        reload(*args)
    except PortalError as exc:
        logger.error("Reload after a failed write also failed: %s", exc.message)


class WorkingSet:
    """The events one viewer currently holds, keyed by id."""

    def __init__(self, viewer_id, events=()):
        self.viewer_id = viewer_id
        self.events = {e.id: e for e in events}

    @classmethod
    def load(cls, service, viewer_id, event_ids=None):
        if event_ids is None:
            return cls(viewer_id, service.list_events(viewer_id))
        return cls(viewer_id, [service.get_event(i, viewer_id) for i in event_ids])

    def refresh_event(self, service, event_id):
        self.events[event_id] = service.get_event(event_id, self.viewer_id)
        return self.events[event_id]


class Roster:
    """Attendance records of one event, keyed by user id."""

    def __init__(self, event_id, records=()):
        self.event_id = event_id
        self.records = {r.user_id: r for r in records}

    @classmethod
    def load(cls, service, event_id):
        return cls(event_id, service.list_attendees(event_id))

    def refresh(self, service):
        self.records = {r.user_id: r for r in service.list_attendees(self.event_id)}


class MarkAttendanceCommand:
    def __init__(self, service, roster, user_id, status):
        self.service = service
        self.roster = roster
        self.user_id = str(user_id)
        self.status = AttendanceStatus(status)

    def execute(self):
        record = self.roster.records.get(self.user_id)
        current = RegistrationState.from_status(record.status if record else None)
        target = transition(current, attendance_action(self.status))
        if record is not None:
            self.roster.records[self.user_id] = replace(record, status=AttendanceStatus(target.value))
        try:
            self.service.mark_attendance(self.roster.event_id, self.user_id, self.status)
        except PortalError:
            logger.warning("Marking %s as %s failed on event %s, reloading roster",
                           self.user_id, self.status.value, self.roster.event_id)
            _compensate(self.roster.refresh, self.service)
            raise
        return self.roster.records.get(self.user_id)


class ToggleRegistrationCommand:
    """Register or unregister a viewer; ``register=None`` flips the current state."""

    def __init__(self, service, working_set, event_id, user, register=None):
        self.service = service
        self.working_set = working_set
        self.event_id = str(event_id)
        self.user = user
        self.register = register

    def execute(self):
        event = self.working_set.events.get(self.event_id)
        if event is None:
            event = self.working_set.refresh_event(self.service, self.event_id)
        want = (not event.registered) if self.register is None else self.register
        role = self.user.role

        if want:
            if not check_can_register(event, role):
                return event
            write = self.service.register
            args = (self.event_id, self.user.id, role)
        else:
            state = viewer_state(event)
            if state == RegistrationState.unregistered:
                return event
            transition(state, Action.unregister)
            write = self.service.unregister
            args = (self.event_id, self.user.id)

        self.working_set.events[self.event_id] = _with_registration(event, role, want)
        try:
            write(*args)
        except PortalError:
            logger.warning("Registration change on event %s failed for user %s, reloading",
                           self.event_id, self.user.id)
            _compensate(self.working_set.refresh_event, self.service, self.event_id)
            raise
        return self.working_set.events[self.event_id]
